# utils/etag.py
"""
ETag 生成与条件请求 (If-None-Match) 处理。

列表接口流程：
1. 带 If-None-Match 时先跑轻量查询（max(updated_at) + count + sum），匹配则直接 304；
2. 否则查全量数据，并用实际返回的数据重新计算 ETag（以全量结果为准）。
"""
import json
import hashlib
from datetime import timezone
from flask import request, jsonify, make_response
from sqlalchemy import func
from utils.errors import NotFound

CACHE_CONTROL = 'private, no-cache, must-revalidate'


def generate_etag(data):
    """按 key 顺序序列化后做内容哈希，返回带引号的 ETag"""
    payload = json.dumps(data, ensure_ascii=False, separators=(',', ':'), default=str)
    digest = hashlib.md5(payload.encode('utf-8'), usedforsecurity=False).hexdigest()
    return f'"{digest}"'


def _strip_validator(value):
    value = value.strip()
    if value.startswith('W/'):
        value = value[2:]
    return value.replace('"', '')


def compare_etag(if_none_match, etag):
    """If-None-Match 可能是逗号分隔的多个 ETag，任意一个匹配即返回 True"""
    if not if_none_match:
        return False
    current = _strip_validator(etag)
    candidates = [_strip_validator(v) for v in if_none_match.split(',')]
    return current in candidates


def normalize_timestamp(value):
    # 统一成不带时区的 UTC，避免同一时间点出现两种写法
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def latest_updated_at(rows):
    """最大 updated_at；相等时保留已看到的值"""
    latest = None
    for row in rows:
        ts = normalize_timestamp(getattr(row, 'updated_at', None))
        if ts is None:
            continue
        if latest is None or ts > latest:
            latest = ts
    return latest


def build_fingerprint_inputs(filters, latest, count, total=None):
    latest = normalize_timestamp(latest)
    inputs = {
        'filter': filters,
        'latestUpdatedAt': latest.isoformat() if latest else None,
    }
    if total is not None:
        inputs['totalAmount'] = total
    inputs['count'] = count
    return inputs


def apply_cache_headers(response, etag):
    response.headers['ETag'] = etag
    response.headers['Cache-Control'] = CACHE_CONTROL
    response.headers['Vary'] = 'Authorization'
    return response


def not_modified(etag):
    return apply_cache_headers(make_response('', 304), etag)


def cheap_list_etag(query, model, filters, sum_column=None):
    """只查 max(updated_at)/count/sum，不加载整行"""
    columns = [func.max(model.updated_at), func.count(model.id)]
    if sum_column is not None:
        columns.append(func.coalesce(func.sum(sum_column), 0))
    stats = query.with_entities(*columns).one()

    total = int(stats[2]) if sum_column is not None else None
    return generate_etag(build_fingerprint_inputs(filters, stats[0], stats[1], total))


def conditional_list_response(query, model, filters, build_payload, order_by=(), sum_attr=None):
    """
    列表接口的条件请求处理。

    query       已按可见账户和筛选条件过滤、尚未排序的查询
    filters     影响结果集的全部筛选参数（原样放进 ETag）
    build_payload(rows, total) -> dict
    sum_attr    需要汇总进 ETag 的数值字段名（例如 amount）
    """
    sum_column = getattr(model, sum_attr) if sum_attr else None

    if_none_match = request.headers.get('If-None-Match')
    if if_none_match:
        etag = cheap_list_etag(query, model, filters, sum_column)
        if compare_etag(if_none_match, etag):
            return not_modified(etag)

    rows = query.order_by(*order_by).all()
    total = sum((getattr(r, sum_attr) or 0) for r in rows) if sum_attr else None
    etag = generate_etag(build_fingerprint_inputs(filters, latest_updated_at(rows), len(rows), total))

    return apply_cache_headers(jsonify(build_payload(rows, total)), etag)


def _detail_etag(record_id, updated_at):
    updated_at = normalize_timestamp(updated_at)
    return generate_etag({
        'id': record_id,
        'updatedAt': updated_at.isoformat() if updated_at else None,
    })


def conditional_detail_response(query, model, serialize, not_found_message='Item not found'):
    if_none_match = request.headers.get('If-None-Match')
    if if_none_match:
        row = query.with_entities(model.id, model.updated_at).first()
        if not row:
            raise NotFound(not_found_message)
        etag = _detail_etag(row[0], row[1])
        if compare_etag(if_none_match, etag):
            return not_modified(etag)

    record = query.first()
    if not record:
        raise NotFound(not_found_message)
    etag = _detail_etag(record.id, record.updated_at)
    return apply_cache_headers(jsonify(serialize(record)), etag)

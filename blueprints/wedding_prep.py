from flask import Blueprint, request, jsonify, g
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from models import WeddingPrep
from utils.auth_utils import jwt_required
from utils.connection import get_shared_user_ids
from utils.errors import AppError, NotFound, ValidationError
from utils.etag import conditional_list_response, conditional_detail_response
from utils.logger import get_logger
from utils.request_utils import parse_int_arg
from utils.time_utils import parse_datetime

wedding_prep_bp = Blueprint('wedding_prep', __name__, url_prefix='/api/wedding-prep')
logger = get_logger('wedding_prep')

STATUS_DONE = '완료'
STATUS_IN_PROGRESS = '진행중'


def visible_items(user_ids=None):
    if user_ids is None:
        user_ids = get_shared_user_ids(g.current_user_id)
    return WeddingPrep.query.filter(
        WeddingPrep.user_id.in_(user_ids),
        WeddingPrep.is_deleted == False  # noqa: E712
    )


# 列表（带筛选，连接后包含对方的数据）
@wedding_prep_bp.route('', methods=['GET'])
@jwt_required
def list_items():
    category = request.args.get('category')
    status = request.args.get('status')

    try:
        min_value = parse_int_arg('minAmount')
        max_value = parse_int_arg('maxAmount')
    except AppError as e:
        return e.to_response()

    owners = sorted(get_shared_user_ids(g.current_user_id))
    query = visible_items(owners)
    if category:
        query = query.filter(WeddingPrep.category == category)
    if status:
        query = query.filter(WeddingPrep.status == status)
    if min_value is not None:
        query = query.filter(WeddingPrep.amount >= min_value)
    if max_value is not None:
        query = query.filter(WeddingPrep.amount <= max_value)

    # 可见账号集合也决定结果行，换连接对象后 ETag 必须变化
    filters = {'owners': owners, 'category': category, 'status': status,
               'minAmount': min_value, 'maxAmount': max_value}

    def build_payload(rows, total):
        return {'items': [r.to_dict() for r in rows], 'totalAmount': total, 'count': len(rows)}

    return conditional_list_response(
        query, WeddingPrep, filters, build_payload,
        order_by=(WeddingPrep.priority.desc(), WeddingPrep.created_at.desc()),
        sum_attr='amount',
    )


def apply_fields(item, data):
    if 'category' in data:
        item.category = data['category']
    if 'subCategory' in data:
        item.sub_category = data['subCategory'] or None
    if 'content' in data:
        item.content = data['content']
    if 'amount' in data:
        item.amount = int(data['amount'] or 0)
    if 'priority' in data:
        item.priority = int(data['priority'] or 0)
    if 'note' in data:
        item.note = data['note'] or None
    if 'dueDate' in data:
        item.due_date = parse_datetime(data['dueDate'])
    if 'remindEnabled' in data:
        item.remind_enabled = bool(data['remindEnabled'])


def apply_status(item, status, completed_at=None):
    # 状态改为完成时记录完成时间，改回其他状态时清空
    if status == STATUS_DONE and not item.completed_at:
        item.completed_at = parse_datetime(completed_at) or datetime.now(timezone.utc)
    elif status != STATUS_DONE:
        item.completed_at = None
    item.status = status


@wedding_prep_bp.route('', methods=['POST'])
@jwt_required
def create_item():
    data = request.get_json(silent=True) or {}

    if not data.get('category') or not data.get('content'):
        return ValidationError('category and content are required').to_response()

    item = WeddingPrep(user_id=g.current_user_id, updated_by_id=g.current_user_id)
    try:
        apply_fields(item, data)
        apply_status(item, data.get('status') or STATUS_IN_PROGRESS, data.get('completedAt'))
    except (TypeError, ValueError):
        return ValidationError('Invalid amount, priority or date').to_response()

    try:
        db.session.add(item)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Wedding prep create error')
        return jsonify({'success': False, 'message': 'Failed to create item'}), 500

    logger.info(f"Wedding prep item created: {item.id}")
    return jsonify(item.to_dict()), 201


@wedding_prep_bp.route('/<string:item_id>', methods=['GET'])
@jwt_required
def get_item(item_id):
    try:
        return conditional_detail_response(
            visible_items().filter(WeddingPrep.id == item_id), WeddingPrep, lambda r: r.to_dict()
        )
    except AppError as e:
        return e.to_response()


@wedding_prep_bp.route('/<string:item_id>', methods=['PUT'])
@jwt_required
def update_item(item_id):
    data = request.get_json(silent=True) or {}

    item = visible_items().filter(WeddingPrep.id == item_id).first()
    if not item:
        return NotFound('Item not found').to_response()

    try:
        apply_fields(item, data)
        if 'status' in data:
            if not data['status']:
                return ValidationError('status must not be empty').to_response()
            apply_status(item, data['status'], data.get('completedAt'))
    except (TypeError, ValueError):
        return ValidationError('Invalid amount, priority or date').to_response()
    item.updated_by_id = g.current_user_id

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Wedding prep update error')
        return jsonify({'success': False, 'message': 'Failed to update item'}), 500

    logger.info(f"Wedding prep item updated: {item.id}")
    return jsonify(item.to_dict())


@wedding_prep_bp.route('/<string:item_id>', methods=['DELETE'])
@jwt_required
def delete_item(item_id):
    item = visible_items().filter(WeddingPrep.id == item_id).first()
    if not item:
        return NotFound('Item not found').to_response()

    # 软删除
    item.is_deleted = True
    item.updated_by_id = g.current_user_id
    db.session.commit()

    logger.info(f"Wedding prep item deleted: {item_id}")
    return jsonify({'success': True, 'message': 'Item deleted'})

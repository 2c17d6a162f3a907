# utils/request_utils.py
from flask import request
from utils.errors import ValidationError


def parse_int_arg(name):
    """查询参数转 int，缺省返回 None，非数字抛 ValidationError"""
    value = request.args.get(name)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")

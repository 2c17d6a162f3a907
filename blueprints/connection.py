from flask import Blueprint, request, jsonify, g
from models import User
from utils.auth_utils import jwt_required
from utils.connection import (
    get_connected_partner_id, create_request, list_incoming_requests, respond_to_request, disconnect,
    ACTION_REJECT, normalize_action
)
from utils.errors import AppError

connection_bp = Blueprint('connection', __name__, url_prefix='/api/connection')


# 我的连接状态：对方信息或 null
@connection_bp.route('', methods=['GET'])
@jwt_required
def get_connection():
    partner_id = get_connected_partner_id(g.current_user_id)
    if not partner_id:
        return jsonify({'partner': None})

    partner = User.query.filter_by(id=partner_id, is_deleted=False).first()
    if not partner:
        return jsonify({'partner': None})

    return jsonify({'partner': partner.to_summary()})


# 发起连接申请
@connection_bp.route('', methods=['POST'])
@jwt_required
def send_request():
    data = request.get_json(silent=True) or {}
    to_user_id = data.get('toUserId') or data.get('partnerId') or data.get('userId')

    try:
        req = create_request(g.current_user_id, to_user_id)
    except AppError as e:
        return e.to_response()

    return jsonify({'success': True, 'message': 'Connection request sent', 'requestId': req.id})


# 收到的待处理申请
@connection_bp.route('/requests', methods=['GET'])
@jwt_required
def get_requests():
    items = list_incoming_requests(g.current_user_id)
    return jsonify({'items': [r.to_dict() for r in items]})


# 接受或拒绝：body { action: 'approve' | 'reject' }
@connection_bp.route('/requests/<string:request_id>', methods=['POST'])
@jwt_required
def answer_request(request_id):
    data = request.get_json(silent=True) or {}
    action = normalize_action(data.get('action'))

    try:
        respond_to_request(request_id, g.current_user_id, action)
    except AppError as e:
        return e.to_response()

    if action == ACTION_REJECT:
        return jsonify({'success': True, 'message': 'Connection request rejected'})
    return jsonify({'success': True, 'message': 'Connected'})


# 断开连接
@connection_bp.route('/disconnect', methods=['POST'])
@jwt_required
def disconnect_partner():
    try:
        disconnect(g.current_user_id)
    except AppError as e:
        return e.to_response()

    return jsonify({'success': True, 'message': 'Disconnected'})

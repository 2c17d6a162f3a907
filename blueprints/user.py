from flask import Blueprint, request, jsonify, g
from urllib.parse import urlparse
from extensions import db
from utils.auth_utils import jwt_required
from utils.connection import get_connected_partner_id, disconnect
from utils.errors import ValidationError
from utils.logger import get_logger

user_bp = Blueprint('user', __name__, url_prefix='/api/user')
logger = get_logger('user')


@user_bp.route('', methods=['GET'])
@jwt_required
def get_me():
    return jsonify({'user': g.current_user.to_dict()})


def is_valid_webhook(url):
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


# 配置提醒推送地址，传空字符串或 null 表示清除
@user_bp.route('/webhook', methods=['PUT'])
@jwt_required
def update_webhook():
    data = request.get_json(silent=True) or {}
    url = (data.get('discordWebhookUrl') or '').strip()

    if url and not is_valid_webhook(url):
        return ValidationError('discordWebhookUrl must be an http(s) URL').to_response()

    user = g.current_user
    user.discord_webhook_url = url or None
    db.session.commit()

    logger.info(f"Webhook {'configured' if url else 'cleared'} for user {user.id}")
    return jsonify({'success': True, 'user': user.to_dict()})


# 注销账户：软删除，同时解除连接
@user_bp.route('', methods=['DELETE'])
@jwt_required
def delete_me():
    user = g.current_user
    if get_connected_partner_id(user.id):
        disconnect(user.id)

    user.is_deleted = True
    db.session.commit()

    logger.info(f"User soft-deleted: {user.id}")
    return jsonify({'success': True, 'message': 'Account deleted'})

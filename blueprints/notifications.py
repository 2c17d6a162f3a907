import hmac
from flask import Blueprint, request, jsonify, g, current_app
from utils.auth_utils import jwt_required, extract_bearer
from utils.errors import Unauthenticated, Unauthorized
from utils.logger import get_logger
from utils.reminders import run_reminder_sweep, send_reminders_now

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')
logger = get_logger('notifications')


def cron_secret_error():
    """定时任务鉴权：Authorization: Bearer <CRON_SECRET> 或 X-Cron-Secret"""
    expected = current_app.config.get('CRON_SECRET')
    if not expected:
        logger.warning('CRON_SECRET is not configured, rejecting sweep request')
        return Unauthorized('Cron secret not configured')

    provided = extract_bearer(request.headers.get('Authorization')) or request.headers.get('X-Cron-Secret')
    if not provided or not hmac.compare_digest(provided.encode('utf-8'), expected.encode('utf-8')):
        return Unauthenticated('Invalid cron secret')
    return None


# 定时任务：非指定整点直接返回 sent=0
@notifications_bp.route('/send-reminders', methods=['GET'])
def cron_send_reminders():
    error = cron_secret_error()
    if error:
        return error.to_response()

    result = run_reminder_sweep()
    if result['skipped']:
        message = 'Outside reminder hour, nothing sent'
    else:
        message = f"Sent {result['today']} for today, {result['tomorrow']} for tomorrow"

    return jsonify({
        'success': True,
        'sent': result['sent'],
        'today': result['today'],
        'tomorrow': result['tomorrow'],
        'failed': result['failed'],
        'skipped': result['skipped'],
        'message': message,
    })


# 用户手动发送：今天/明天到期的日程立即推送，不影响定时任务的发送标记
@notifications_bp.route('/send-reminders', methods=['POST'])
@jwt_required
def manual_send_reminders():
    sent = send_reminders_now(g.current_user_id)
    return jsonify({
        'success': True,
        'sent': sent,
        'message': f"Sent {sent} reminders" if sent > 0 else 'Nothing to send (only today/tomorrow schedules)',
    })

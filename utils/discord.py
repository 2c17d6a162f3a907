# utils/discord.py
import requests
from flask import current_app
from utils.errors import UpstreamError
from utils.logger import get_logger

logger = get_logger('discord')

DEFAULT_TIMEOUT = 10


def post_webhook(webhook_url, content, timeout=None):
    """POST 一条消息，非 2xx 或网络异常抛 UpstreamError"""
    if timeout is None:
        timeout = current_app.config.get('WEBHOOK_TIMEOUT', DEFAULT_TIMEOUT)
    try:
        resp = requests.post(webhook_url, json={'content': content}, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamError(f"Webhook request failed: {e}") from e

    if not 200 <= resp.status_code < 300:
        raise UpstreamError(f"Webhook responded {resp.status_code}")
    return True


def send_discord_webhook(webhook_url, content):
    """发送失败只记日志，返回 False；不在这里重试"""
    try:
        return post_webhook(webhook_url, content)
    except UpstreamError as e:
        logger.error(f"[send_discord_webhook] 发送失败: {e.message}")
        return False

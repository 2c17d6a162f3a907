# utils/reminders.py
"""
日程提醒发送。

- run_reminder_sweep: 定时任务入口，只在参考时区的指定整点执行；
  每条记录有“前一天”“当天”两个窗口，发送成功后写入对应的已发送标记，
  标记不会自动清除，所以同一小时内重复调用不会重复发送。
- send_reminders_now: 用户手动发送，忽略且不修改已发送标记。
"""
from datetime import datetime, timezone
from flask import current_app
from extensions import db
from models import User, REMINDABLE_MODELS
from utils.connection import get_shared_user_ids
from utils.discord import send_discord_webhook
from utils.logger import get_logger
from utils.time_utils import as_utc, day_difference, get_zone, local_day_start_utc

logger = get_logger('reminders')

WINDOW_DAY_BEFORE = 'day_before'
WINDOW_DAY_OF = 'day_of'

MARKER_FIELDS = {
    WINDOW_DAY_BEFORE: 'day_before_reminded_at',
    WINDOW_DAY_OF: 'day_of_reminded_at',
}

WINDOW_LABELS = {
    WINDOW_DAY_BEFORE: '내일',
    WINDOW_DAY_OF: '오늘',
}


def _resolve_clock(now, tz_name):
    if tz_name is None:
        tz_name = current_app.config['REMINDER_TIMEZONE']
    if now is None:
        now = datetime.now(timezone.utc)
    return as_utc(now), get_zone(tz_name)


def window_for(due_date, now, tz):
    diff = day_difference(due_date, now, tz)
    if diff == 1:
        return WINDOW_DAY_BEFORE
    if diff == 0:
        return WINDOW_DAY_OF
    return None


def build_message(record, window, tz):
    due_formatted = as_utc(record.due_date).astimezone(tz).strftime('%Y-%m-%d %H:%M')
    message = (
        f"@everyone 🔔 일정 알림 ({WINDOW_LABELS[window]})\n"
        f"**{record.reminder_title()}**\n"
        f"예정일: {due_formatted}"
    )
    note = record.reminder_note()
    if note:
        message += f"\n{note}"
    return message


def dispatch_to_viewers(record, message):
    """发给记录所有者和连接对方，返回成功送达的人数"""
    user_ids = get_shared_user_ids(record.user_id)
    users = User.query.filter(User.id.in_(user_ids), User.is_deleted == False).all()  # noqa: E712

    delivered = 0
    for user in users:
        if not user.discord_webhook_url:
            continue
        # 单个目标失败不影响其他目标
        if send_discord_webhook(user.discord_webhook_url, message):
            delivered += 1
    return delivered


def due_soon_query(model, now, tz):
    """参考时区今天 00:00 到后天 00:00 之间到期、开启提醒的记录"""
    start = local_day_start_utc(now, tz)
    end = local_day_start_utc(now, tz, offset_days=2)
    return model.query.filter(
        model.is_deleted == False,  # noqa: E712
        model.remind_enabled == True,  # noqa: E712
        model.due_date.isnot(None),
        model.due_date >= start,
        model.due_date < end,
    )


def mark_window_sent(model, record_id, window, sent_at):
    """条件更新：标记仍为空才写入；不改 updated_at"""
    field = MARKER_FIELDS[window]
    updated = model.query.filter(
        model.id == record_id,
        getattr(model, field).is_(None)
    ).update({field: sent_at.replace(tzinfo=None), 'updated_at': model.updated_at},
             synchronize_session=False)
    db.session.commit()
    return updated == 1


def run_reminder_sweep(now=None, tz_name=None, trigger_hour=None):
    now, tz = _resolve_clock(now, tz_name)
    if trigger_hour is None:
        trigger_hour = current_app.config['REMINDER_HOUR']

    result = {'sent': 0, 'today': 0, 'tomorrow': 0, 'failed': 0, 'skipped': False}

    local_now = now.astimezone(tz)
    if local_now.hour != trigger_hour:
        logger.info(f"Reminder sweep skipped: local hour {local_now.hour} != {trigger_hour}")
        result['skipped'] = True
        return result

    for model in REMINDABLE_MODELS:
        for record in due_soon_query(model, now, tz).all():
            try:
                window = window_for(record.due_date, now, tz)
                if window is None:
                    continue
                if getattr(record, MARKER_FIELDS[window]) is not None:
                    continue

                delivered = dispatch_to_viewers(record, build_message(record, window, tz))
                if delivered == 0:
                    # 没有可用的推送地址时不写标记，留给下次扫描
                    logger.info(f"No delivery target for {model.__tablename__}:{record.id} ({window})")
                    continue

                mark_window_sent(model, record.id, window, now)
                if window == WINDOW_DAY_OF:
                    result['today'] += 1
                else:
                    result['tomorrow'] += 1
            except Exception:
                db.session.rollback()
                result['failed'] += 1
                logger.exception(f"Reminder failed for {model.__tablename__}:{record.id}")

    result['sent'] = result['today'] + result['tomorrow']
    logger.info(f"Reminders sent (cron): today={result['today']}, tomorrow={result['tomorrow']}, "
                f"failed={result['failed']}")
    return result


def send_reminders_now(user_id, now=None, tz_name=None):
    now, tz = _resolve_clock(now, tz_name)
    user_ids = get_shared_user_ids(user_id)

    sent = 0
    for model in REMINDABLE_MODELS:
        records = due_soon_query(model, now, tz).filter(model.user_id.in_(user_ids)).all()
        for record in records:
            try:
                window = window_for(record.due_date, now, tz)
                if window is None:
                    continue
                if dispatch_to_viewers(record, build_message(record, window, tz)) > 0:
                    sent += 1
            except Exception:
                logger.exception(f"Manual reminder failed for {model.__tablename__}:{record.id}")

    logger.info(f"Reminders sent (manual): {sent} schedules for user {user_id}")
    return sent

from extensions import scheduler
from utils.logger import get_logger
from utils.reminders import run_reminder_sweep

logger = get_logger('scheduler')


def reminder_sweep_job(app):
    with app.app_context():
        try:
            result = run_reminder_sweep()
            logger.info(f"Reminder sweep job finished: sent={result['sent']}, failed={result['failed']}")
        except Exception:
            logger.exception('Reminder sweep job failed')


def start_scheduler(app):
    tz = app.config['REMINDER_TIMEZONE']
    hour = app.config['REMINDER_HOUR']

    # 每天参考时区指定整点执行一次提醒扫描
    scheduler.add_job(
        reminder_sweep_job, 'cron', args=[app], hour=hour, minute=0, timezone=tz,
        id='reminder_sweep', replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()
    logger.info(f"Scheduler started: reminder sweep daily at {hour:02d}:00 {tz}")
    return scheduler

from app import create_app
from scheduler import start_scheduler

app = create_app()
# 多进程部署时只在一个实例上开启定时任务
if app.config['SCHEDULER_ENABLED']:
    start_scheduler(app)

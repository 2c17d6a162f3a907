# extensions.py
from flask_sqlalchemy import SQLAlchemy
from apscheduler.schedulers.background import BackgroundScheduler

db = SQLAlchemy()

# 不绑定 app，在 scheduler.start_scheduler 中注册任务
scheduler = BackgroundScheduler()

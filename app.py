from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from dotenv import load_dotenv
import os

# 提前导入模型注册函数（明确显示依赖关系）
from models import register_models

from blueprints.auth import auth_bp
from blueprints.user import user_bp
from blueprints.connection import connection_bp
from blueprints.wedding_prep import wedding_prep_bp
from blueprints.real_estate import real_estate_bp
from blueprints.travel_schedule import travel_schedule_bp
from blueprints.notifications import notifications_bp
from utils.errors import AppError
from utils.logger import get_logger

load_dotenv()

logger = get_logger('app')


def create_app(test_config=None):
    app = Flask(__name__)

    CORS(app, supports_credentials=True, expose_headers=['ETag'])

    # ===== 配置 =====
    app.config.update(
        SECRET_KEY=os.getenv('SECRET_KEY'),
        JWT_SECRET=os.getenv('JWT_SECRET'),
        JWT_EXP_DELTA_SECONDS=int(os.getenv('JWT_EXP_DELTA_SECONDS', '3600')),
        SQLALCHEMY_DATABASE_URI=os.getenv('DB_URI', 'sqlite:///wedplan.db'),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        CRON_SECRET=os.getenv('CRON_SECRET'),
        REMINDER_TIMEZONE=os.getenv('REMINDER_TIMEZONE', 'Asia/Seoul'),
        REMINDER_HOUR=int(os.getenv('REMINDER_HOUR', '9')),
        WEBHOOK_TIMEOUT=float(os.getenv('WEBHOOK_TIMEOUT', '10')),
        SCHEDULER_ENABLED=os.getenv('SCHEDULER_ENABLED', 'False') == 'True',
    )
    if test_config:
        app.config.update(test_config)

    # ===== 初始化扩展 =====
    db.init_app(app)
    Migrate(app, db)

    with app.app_context():
        register_models()  # 确保在应用上下文中注册

    # ===== 注册蓝图 =====
    blueprints = [
        auth_bp,
        user_bp,
        connection_bp,
        wedding_prep_bp,
        real_estate_bp,
        travel_schedule_bp,
        notifications_bp,
    ]
    for bp in blueprints:
        app.register_blueprint(bp)

    # ===== 统一错误处理 =====
    @app.errorhandler(AppError)
    def handle_app_error(e):
        return e.to_response()

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        db.session.rollback()
        logger.exception('Database error')
        return jsonify({'success': False, 'code': 'INTERNAL_ERROR', 'message': 'Database error'}), 500

    # 健康检查
    @app.route('/')
    def health_check():
        return jsonify({'status': 'healthy'})

    return app


if __name__ == '__main__':
    from scheduler import start_scheduler  # 延迟导入
    app = create_app()
    start_scheduler(app)
    app.run(host='0.0.0.0', port=5000)

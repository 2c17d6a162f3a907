# 1. 显式导入所有模型类（供__all__和直接引用使用）
from extensions import db

from .user_models import User
from .connection_models import Connection, ConnectionMember, ConnectionRequest, RequestStatusEnum
from .schedule_models import WeddingPrep, TravelSchedule, REMINDABLE_MODELS
from .real_estate_models import RealEstate

# 2. 定义__all__（控制from models import *的行为）
__all__ = [
    'User',
    'Connection',
    'ConnectionMember',
    'ConnectionRequest',
    'RequestStatusEnum',
    'WeddingPrep',
    'TravelSchedule',
    'REMINDABLE_MODELS',
    'RealEstate',
]


# 3. 显式注册函数（确保Flask-Migrate能发现模型）
def register_models():
    """强制导入所有模型模块（触发SQLAlchemy注册）"""
    from . import user_models
    from . import connection_models
    from . import schedule_models
    from . import real_estate_models

import uuid
from datetime import datetime, timezone
from sqlalchemy import ForeignKey
from sqlalchemy.orm import declared_attr, relationship
from extensions import db


def _now():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class SharedRecordMixin:
    """所有者 + 最后修改时间，连接双方共享可见"""

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now, index=True)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)

    @declared_attr
    def user_id(cls):
        return db.Column(db.String(36), ForeignKey('users.id'), nullable=False, index=True)


class ReminderMixin:
    """带提醒的记录：前一天 / 当天两个窗口各自的已发送标记"""

    due_date = db.Column(db.DateTime, nullable=True, index=True)
    remind_enabled = db.Column(db.Boolean, default=False, nullable=False)
    day_before_reminded_at = db.Column(db.DateTime, nullable=True)
    day_of_reminded_at = db.Column(db.DateTime, nullable=True)

    # 提醒消息标题
    def reminder_title(self):
        raise NotImplementedError

    def reminder_note(self):
        return getattr(self, 'note', None)


class WeddingPrep(SharedRecordMixin, ReminderMixin, db.Model):
    __tablename__ = 'wedding_preps'

    updated_by_id = db.Column(db.String(36), ForeignKey('users.id'), nullable=True)
    category = db.Column(db.String(64), nullable=False, index=True)
    sub_category = db.Column(db.String(64), nullable=True)
    content = db.Column(db.String(500), nullable=False)
    amount = db.Column(db.BigInteger, default=0, nullable=False)
    status = db.Column(db.String(20), default='진행중', nullable=False)  # 진행중 / 완료
    priority = db.Column(db.Integer, default=0, nullable=False)
    note = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    updated_by = relationship("User", foreign_keys=[updated_by_id])

    def reminder_title(self):
        return self.content

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'category': self.category,
            'subCategory': self.sub_category,
            'content': self.content,
            'amount': self.amount,
            'status': self.status,
            'priority': self.priority,
            'dueDate': _iso(self.due_date),
            'remindEnabled': self.remind_enabled,
            'note': self.note,
            'completedAt': _iso(self.completed_at),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'updatedBy': self.updated_by.to_summary() if self.updated_by else None,
        }


class TravelSchedule(SharedRecordMixin, ReminderMixin, db.Model):
    __tablename__ = 'travel_schedules'

    updated_by_id = db.Column(db.String(36), ForeignKey('users.id'), nullable=True)
    title = db.Column(db.String(200), nullable=False)
    note = db.Column(db.Text, nullable=True)
    remind_enabled = db.Column(db.Boolean, default=True, nullable=False)

    updated_by = relationship("User", foreign_keys=[updated_by_id])

    def reminder_title(self):
        return self.title

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'title': self.title,
            'dueDate': _iso(self.due_date),
            'note': self.note,
            'remindEnabled': self.remind_enabled,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'updatedBy': self.updated_by.to_summary() if self.updated_by else None,
        }


# 扫描任务需要遍历的所有可提醒模型
REMINDABLE_MODELS = (WeddingPrep, TravelSchedule)

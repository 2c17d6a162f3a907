import uuid
from enum import Enum
from datetime import datetime, timezone
from sqlalchemy import UniqueConstraint, CheckConstraint, ForeignKey
from sqlalchemy.orm import relationship
from extensions import db


class RequestStatusEnum(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


class Connection(db.Model):
    # 两个账户之间的连接，按 id 字典序存储 (user_id1 < user_id2)
    __tablename__ = 'connections'

    id = db.Column(db.Integer, primary_key=True)
    user_id1 = db.Column(db.String(36), ForeignKey('users.id'), nullable=False)
    user_id2 = db.Column(db.String(36), ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    members = relationship("ConnectionMember", back_populates="connection",
                           cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('user_id1', 'user_id2', name='uix_connection_pair'),
        CheckConstraint('user_id1 < user_id2', name='ck_connection_canonical_order'),
    )

    def partner_of(self, user_id):
        return self.user_id2 if self.user_id1 == user_id else self.user_id1


class ConnectionMember(db.Model):
    # 每个账户最多出现一次：user_id 为主键，由数据库保证一人只能有一个连接
    __tablename__ = 'connection_members'

    user_id = db.Column(db.String(36), ForeignKey('users.id'), primary_key=True)
    connection_id = db.Column(db.Integer, ForeignKey('connections.id', ondelete='CASCADE'),
                              nullable=False, index=True)

    connection = relationship("Connection", back_populates="members")


class ConnectionRequest(db.Model):
    __tablename__ = 'connection_requests'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    from_user_id = db.Column(db.String(36), ForeignKey('users.id'), nullable=False, index=True)
    to_user_id = db.Column(db.String(36), ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=RequestStatusEnum.PENDING.value)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    from_user = relationship("User", foreign_keys=[from_user_id])

    __table_args__ = (
        UniqueConstraint('from_user_id', 'to_user_id', name='uix_request_from_to'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'fromUserId': self.from_user_id,
            'fromUser': self.from_user.to_summary() if self.from_user else None,
            'status': self.status,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

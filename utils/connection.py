# utils/connection.py
"""
账户连接（1:1）与共享可见范围。

连接成员表 connection_members 以 user_id 为主键，
一个账户只能出现在一条连接里，由数据库唯一约束保证，
接受申请时的并发竞争由事务 + IntegrityError 兜底。
"""
from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from extensions import db
from models import User, Connection, ConnectionMember, ConnectionRequest, RequestStatusEnum
from utils.errors import (
    AlreadyLinked, Conflict, InvalidTarget, NoActiveLink, NotFound, RequestNotFound, ValidationError
)
from utils.logger import get_logger

logger = get_logger('connection')

ACTION_ACCEPT = 'accept'
ACTION_REJECT = 'reject'


def get_connected_partner_id(user_id):
    """连接的对方 user_id，没有连接返回 None。每次都查库，不做缓存"""
    member = ConnectionMember.query.filter_by(user_id=user_id).first()
    if not member:
        return None
    return member.connection.partner_of(user_id)


def get_shared_user_ids(user_id):
    """本人 + 连接对方（共享查询用）。没有连接只返回 [user_id]"""
    partner_id = get_connected_partner_id(user_id)
    if not partner_id:
        return [user_id]
    return [user_id, partner_id]


def canonical_pair(a, b):
    return (a, b) if a < b else (b, a)


def create_request(from_user_id, to_user_id):
    if not to_user_id or not isinstance(to_user_id, str):
        raise ValidationError('Partner id (toUserId) is required')
    to_user_id = to_user_id.strip()
    if to_user_id == from_user_id:
        raise InvalidTarget()

    target = User.query.filter_by(id=to_user_id, is_deleted=False).first()
    if not target:
        raise NotFound('User not found')

    if get_connected_partner_id(from_user_id):
        raise AlreadyLinked()

    now = datetime.now(timezone.utc)
    req = ConnectionRequest.query.filter_by(from_user_id=from_user_id, to_user_id=to_user_id).first()
    if req:
        # 同一 (from, to) 只保留一条，重新申请时重置为 pending
        req.status = RequestStatusEnum.PENDING.value
        req.updated_at = now
    else:
        req = ConnectionRequest(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            status=RequestStatusEnum.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        db.session.add(req)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('Connection request already sent')

    logger.info(f"Connection request sent: {from_user_id} -> {to_user_id}")
    return req


def list_incoming_requests(user_id):
    return ConnectionRequest.query.filter_by(
        to_user_id=user_id,
        status=RequestStatusEnum.PENDING.value
    ).order_by(ConnectionRequest.created_at.desc()).all()


def normalize_action(action):
    # 与前端约定：只有 reject 是拒绝，其余（approve / accept / 缺省）都视为接受
    return ACTION_REJECT if action == ACTION_REJECT else ACTION_ACCEPT


def _claim_pending(request_id, respondent_id, new_status, now):
    """条件更新：只有仍是 pending 的申请才会被改状态，返回是否抢到"""
    updated = ConnectionRequest.query.filter_by(
        id=request_id,
        to_user_id=respondent_id,
        status=RequestStatusEnum.PENDING.value
    ).update({'status': new_status, 'updated_at': now}, synchronize_session=False)
    return updated == 1


def respond_to_request(request_id, respondent_id, action):
    action = normalize_action(action)

    req = ConnectionRequest.query.filter_by(
        id=request_id,
        to_user_id=respondent_id,
        status=RequestStatusEnum.PENDING.value
    ).first()
    if not req:
        raise RequestNotFound()

    now = datetime.now(timezone.utc)

    if action == ACTION_REJECT:
        if not _claim_pending(request_id, respondent_id, RequestStatusEnum.REJECTED.value, now):
            db.session.rollback()
            raise RequestNotFound()
        db.session.commit()
        logger.info(f"Connection request rejected: {request_id}")
        return None

    from_user_id = req.from_user_id
    requester = User.query.filter_by(id=from_user_id, is_deleted=False).first()
    if not requester:
        raise RequestNotFound()

    # 接受时重新检查双方，申请发出后任何一方可能已经有了连接
    if get_connected_partner_id(from_user_id) or get_connected_partner_id(respondent_id):
        raise AlreadyLinked()

    user_id1, user_id2 = canonical_pair(from_user_id, respondent_id)
    try:
        if not _claim_pending(request_id, respondent_id, RequestStatusEnum.ACCEPTED.value, now):
            db.session.rollback()
            raise RequestNotFound()

        conn = Connection(user_id1=user_id1, user_id2=user_id2, created_at=now)
        conn.members = [
            ConnectionMember(user_id=user_id1),
            ConnectionMember(user_id=user_id2),
        ]
        db.session.add(conn)
        db.session.commit()
    except IntegrityError:
        # 并发接受：成员表主键冲突，整笔回滚（申请状态也一起回滚）
        db.session.rollback()
        logger.warning(f"Concurrent accept rejected for request {request_id}")
        raise AlreadyLinked()

    logger.info(f"Connection accepted: {user_id1}, {user_id2}")
    return conn


def disconnect(user_id):
    member = ConnectionMember.query.filter_by(user_id=user_id).first()
    if not member:
        raise NoActiveLink()

    conn = member.connection
    pair = (conn.user_id1, conn.user_id2)
    db.session.delete(conn)
    db.session.commit()

    logger.info(f"Connection disconnected: {pair[0]}, {pair[1]}")
    return pair

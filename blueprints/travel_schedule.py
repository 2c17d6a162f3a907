from flask import Blueprint, request, jsonify, g, current_app
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from models import TravelSchedule
from utils.auth_utils import jwt_required
from utils.connection import get_shared_user_ids
from utils.errors import AppError, NotFound, ValidationError
from utils.etag import conditional_list_response, conditional_detail_response
from utils.logger import get_logger
from utils.time_utils import get_zone, local_day_start_utc, parse_datetime

travel_schedule_bp = Blueprint('travel_schedule', __name__, url_prefix='/api/travel-schedule')
logger = get_logger('travel_schedule')


def visible_schedules(user_ids=None):
    if user_ids is None:
        user_ids = get_shared_user_ids(g.current_user_id)
    return TravelSchedule.query.filter(
        TravelSchedule.user_id.in_(user_ids),
        TravelSchedule.is_deleted == False  # noqa: E712
    )


def today_start_utc(now=None):
    tz = get_zone(current_app.config['REMINDER_TIMEZONE'])
    return local_day_start_utc(now or datetime.now(timezone.utc), tz)


def upcoming_first(rows, today_start):
    """今天（参考时区）及以后的日程在前，已过期和没有日期的在后"""
    upcoming = [r for r in rows if r.due_date and r.due_date >= today_start]
    past = [r for r in rows if not r.due_date or r.due_date < today_start]
    return upcoming + past


def apply_fields(schedule, data):
    if 'title' in data:
        schedule.title = data['title']
    if 'dueDate' in data:
        schedule.due_date = parse_datetime(data['dueDate'])
    if 'note' in data:
        schedule.note = data['note']
    if 'remindEnabled' in data:
        schedule.remind_enabled = bool(data['remindEnabled'])


@travel_schedule_bp.route('', methods=['GET'])
@jwt_required
def list_schedules():
    today_start = today_start_utc()
    owners = sorted(get_shared_user_ids(g.current_user_id))

    def build_payload(rows, _total):
        return {'items': [r.to_dict() for r in upcoming_first(rows, today_start)]}

    # 排序依赖“今天”，跨天后 ETag 也要变
    return conditional_list_response(
        visible_schedules(owners), TravelSchedule,
        {'owners': owners, 'today': today_start.isoformat()}, build_payload,
        order_by=(TravelSchedule.due_date.asc(), TravelSchedule.created_at.asc()),
    )


@travel_schedule_bp.route('', methods=['POST'])
@jwt_required
def create_schedule():
    data = request.get_json(silent=True) or {}

    if not data.get('title'):
        return ValidationError('title is required').to_response()

    schedule = TravelSchedule(user_id=g.current_user_id, updated_by_id=g.current_user_id,
                              remind_enabled=True)
    try:
        apply_fields(schedule, data)
    except ValueError:
        return ValidationError('Invalid dueDate').to_response()

    try:
        db.session.add(schedule)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Travel schedule create error')
        return jsonify({'success': False, 'message': 'Failed to create schedule'}), 500

    logger.info(f"Travel schedule created: {schedule.id}")
    return jsonify(schedule.to_dict()), 201


@travel_schedule_bp.route('/<string:schedule_id>', methods=['GET'])
@jwt_required
def get_schedule(schedule_id):
    try:
        return conditional_detail_response(
            visible_schedules().filter(TravelSchedule.id == schedule_id), TravelSchedule,
            lambda r: r.to_dict(), not_found_message='Schedule not found'
        )
    except AppError as e:
        return e.to_response()


@travel_schedule_bp.route('/<string:schedule_id>', methods=['PUT'])
@jwt_required
def update_schedule(schedule_id):
    data = request.get_json(silent=True) or {}

    schedule = visible_schedules().filter(TravelSchedule.id == schedule_id).first()
    if not schedule:
        return NotFound('Schedule not found').to_response()
    if 'title' in data and not data['title']:
        return ValidationError('title is required').to_response()

    try:
        apply_fields(schedule, data)
    except ValueError:
        return ValidationError('Invalid dueDate').to_response()
    schedule.updated_by_id = g.current_user_id

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Travel schedule update error')
        return jsonify({'success': False, 'message': 'Failed to update schedule'}), 500

    logger.info(f"Travel schedule updated: {schedule.id}")
    return jsonify(schedule.to_dict())


@travel_schedule_bp.route('/<string:schedule_id>', methods=['DELETE'])
@jwt_required
def delete_schedule(schedule_id):
    schedule = visible_schedules().filter(TravelSchedule.id == schedule_id).first()
    if not schedule:
        return NotFound('Schedule not found').to_response()

    schedule.is_deleted = True
    schedule.updated_by_id = g.current_user_id
    db.session.commit()

    logger.info(f"Travel schedule deleted: {schedule_id}")
    return jsonify({'success': True, 'message': 'Schedule deleted'})

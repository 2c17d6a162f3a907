from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError
from models import User
from extensions import db
from utils.auth_utils import generate_token
from utils.errors import ValidationError, Conflict, Unauthenticated
from utils.logger import get_logger

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')
logger = get_logger('auth')


# 注册
@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')
    name = (data.get('name') or '').strip() or None

    if not email or not password:
        return ValidationError('email and password are required').to_response()

    if User.query.filter_by(email=email).first():
        return Conflict('Email already registered').to_response()

    try:
        user = User(email=email, name=name)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Register error')
        return jsonify({'success': False, 'message': 'Registration failed'}), 500

    logger.info(f"User registered: {user.id}")
    return jsonify({'success': True, 'user': user.to_summary()}), 201


# 登录
@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    user = User.query.filter_by(email=email, is_deleted=False).first()
    if user and user.check_password(password):
        return jsonify({'success': True, 'token': generate_token(user), 'user': user.to_summary()})
    return Unauthenticated('Invalid email or password').to_response()

# auth_utils.py
import jwt
import datetime
from flask import request, current_app, g
from functools import wraps
from models import User
from utils.errors import Unauthenticated


def generate_token(user):
    payload = {
        'user_id': user.id,
        'email': user.email,
        'exp': datetime.datetime.now(datetime.timezone.utc)
               + datetime.timedelta(seconds=current_app.config['JWT_EXP_DELTA_SECONDS'])
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm='HS256')


def extract_bearer(auth_header):
    # Authorization: Bearer <token>
    if not auth_header:
        return None
    parts = auth_header.split(' ')
    if len(parts) != 2 or parts[0] != 'Bearer':
        return None
    return parts[1]


def jwt_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = extract_bearer(request.headers.get('Authorization'))
        if not token:
            return Unauthenticated('Missing authorization token').to_response()

        try:
            payload = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
        except jwt.ExpiredSignatureError:
            return Unauthenticated('Authorization token expired').to_response()
        except jwt.InvalidTokenError:
            return Unauthenticated('Invalid authorization token').to_response()

        user = User.query.filter_by(id=payload.get('user_id'), is_deleted=False).first()
        if not user:
            return Unauthenticated('Account not found').to_response()

        g.current_user_id = user.id
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function

# utils/errors.py
from flask import jsonify


class AppError(Exception):
    status_code = 500
    code = 'INTERNAL_ERROR'
    message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_response(self):
        return jsonify({'success': False, 'code': self.code, 'message': self.message}), self.status_code


class Unauthenticated(AppError):
    status_code = 401
    code = 'UNAUTHENTICATED'
    message = 'Authentication required'


class Unauthorized(AppError):
    status_code = 403
    code = 'UNAUTHORIZED'
    message = 'Forbidden'


class NotFound(AppError):
    status_code = 404
    code = 'NOT_FOUND'
    message = 'Not found'


class Conflict(AppError):
    status_code = 409
    code = 'CONFLICT'
    message = 'Conflict'


class ValidationError(AppError):
    status_code = 400
    code = 'VALIDATION_ERROR'
    message = 'Invalid request'


# ----------------- 连接相关 -----------------
class InvalidTarget(ValidationError):
    code = 'INVALID_TARGET'
    message = 'You cannot send a connection request to yourself'


class AlreadyLinked(Conflict):
    code = 'ALREADY_LINKED'
    message = 'Already connected to a partner. Disconnect first.'


class NoActiveLink(NotFound):
    code = 'NO_ACTIVE_LINK'
    message = 'No connected partner'


class RequestNotFound(NotFound):
    code = 'REQUEST_NOT_FOUND'
    message = 'Connection request not found or already processed'


class UpstreamError(AppError):
    # webhook 不可达，只记录日志，不向上抛给用户
    status_code = 502
    code = 'UPSTREAM_ERROR'
    message = 'Notification endpoint unreachable'

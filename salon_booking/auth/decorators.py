from functools import wraps

from flask_login import current_user, login_required

from salon_booking.errors import ErrorCode, Forbidden


def roles_required(*roles):
    """Require an authenticated user holding one of the given roles"""
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            if current_user.role not in roles:
                raise Forbidden(code=ErrorCode.INSUFFICIENT_PERMISSIONS)
            return f(*args, **kwargs)
        return decorated_function
    return decorator

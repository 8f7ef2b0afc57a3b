"""Bearer access tokens and refresh tokens"""
import secrets
from datetime import timedelta

from flask import current_app, g
from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy import select

from salon_booking import db, login_manager
from salon_booking.errors import ErrorCode, UnauthorizedError
from salon_booking.models.base import utcnow
from salon_booking.models.tokens import RefreshToken, token_digest
from salon_booking.models.user import User

ACCESS_SALT = 'access-token'


def get_token_serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'])


def issue_access_token(user):
    return get_token_serializer().dumps({'uid': user.id}, salt=ACCESS_SALT)


def issue_refresh_token(session, user):
    """Stage a new refresh token row and return the raw token (only its digest is stored)"""
    raw = secrets.token_urlsafe(48)
    expires_at = utcnow() + timedelta(days=current_app.config['REFRESH_TOKEN_DAYS'])
    session.add(RefreshToken(user.id, raw, expires_at))
    return raw


def find_refresh_token(session, raw):
    return session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == token_digest(raw))
    ).scalar_one_or_none()


def load_user_from_access_token(token):
    try:
        payload = get_token_serializer().loads(
            token, salt=ACCESS_SALT, max_age=current_app.config['ACCESS_TOKEN_MAX_AGE']
        )
    except BadSignature:
        return None
    if not isinstance(payload, dict) or 'uid' not in payload:
        return None

    user = db.session.get(User, payload['uid'])
    if user is None:
        return None
    if user.is_deactivated:
        g.auth_error = ErrorCode.ACCOUNT_DEACTIVATED
        return None
    return user


def init_app(app):
    @login_manager.request_loader
    def load_user_from_request(request):
        header = request.headers.get('Authorization', '')
        scheme, _, token = header.partition(' ')
        if scheme.lower() != 'bearer' or not token:
            return None
        return load_user_from_access_token(token.strip())

    @login_manager.unauthorized_handler
    def unauthorized():
        raise UnauthorizedError(code=g.get('auth_error', ErrorCode.UNAUTHORIZED))

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required
from sqlalchemy import select

from salon_booking.accounts import get_deactivation_service, get_password_reset_service
from salon_booking.auth.forms import LoginForm, PasswordResetForm, PasswordResetRequestForm, RefreshForm, RegisterForm
from salon_booking.auth.tokens import find_refresh_token, issue_access_token, issue_refresh_token
from salon_booking.errors import ConflictError, ErrorCode, UnauthorizedError
from salon_booking.models.base import utcnow
from salon_booking.models.user import ROLE_CUSTOMER, User
from salon_booking.utils.audit import log_audit
from salon_booking.utils.responses import success_response

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _transactions():
    return current_app.extensions['transaction_manager']


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a customer account and sign it in"""
    form = RegisterForm.from_json(request.get_json(silent=True)).validated()
    email = form.email.data.strip().lower()

    def operation(session):
        if session.execute(select(User.id).where(User.email == email)).first() is not None:
            raise ConflictError(code=ErrorCode.EMAIL_EXISTS)
        user = User(
            email=email,
            first_name=form.first_name.data.strip(),
            last_name=form.last_name.data.strip(),
            password=form.password.data,
            role=ROLE_CUSTOMER,
            phone=form.phone.data or None,
        )
        session.add(user)
        session.flush()
        return user, issue_refresh_token(session, user)

    user, refresh_token = _transactions().run(operation)

    log_audit('create', 'user', entity_id=user.id, user_id=user.id, details={
        'email': user.email,
        'role': user.role,
    })
    return success_response({
        'accessToken': issue_access_token(user),
        'refreshToken': refresh_token,
        'expiresIn': current_app.config['ACCESS_TOKEN_MAX_AGE'],
        'user': user.to_dict(),
    }, status=201, message='Registration successful')


@auth_bp.route('/login', methods=['POST'])
def login():
    form = LoginForm.from_json(request.get_json(silent=True)).validated()
    email = form.email.data.strip().lower()

    def operation(session):
        user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if user is None or not user.check_password(form.password.data):
            raise UnauthorizedError(code=ErrorCode.INVALID_CREDENTIALS)
        if user.is_deactivated:
            raise UnauthorizedError(code=ErrorCode.ACCOUNT_DEACTIVATED)
        return user, issue_refresh_token(session, user)

    try:
        user, refresh_token = _transactions().run(operation)
    except UnauthorizedError as e:
        current_app.logger.info(f"Failed login for {email}: {e.code.value}")
        raise

    log_audit('perform', 'login', entity_id=user.id, user_id=user.id, details={
        'user_agent': request.user_agent.string,
    })
    return success_response({
        'accessToken': issue_access_token(user),
        'refreshToken': refresh_token,
        'expiresIn': current_app.config['ACCESS_TOKEN_MAX_AGE'],
        'user': user.to_dict(),
    }, message='Login successful')


@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    form = RefreshForm.from_json(request.get_json(silent=True)).validated()

    def operation(session):
        row = find_refresh_token(session, form.refresh_token.data)
        if row is None or not row.is_usable():
            raise UnauthorizedError(code=ErrorCode.INVALID_REFRESH_TOKEN)
        user = session.get(User, row.user_id)
        if user is None or user.is_deactivated:
            raise UnauthorizedError(code=ErrorCode.INVALID_REFRESH_TOKEN)
        return user

    user = _transactions().run(operation, read_only=True)
    return success_response({
        'accessToken': issue_access_token(user),
        'expiresIn': current_app.config['ACCESS_TOKEN_MAX_AGE'],
    })


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Revoke the presented refresh token; access tokens run out on their own"""
    form = RefreshForm.from_json(request.get_json(silent=True)).validated()

    def operation(session):
        row = find_refresh_token(session, form.refresh_token.data)
        if row is None:
            raise UnauthorizedError(code=ErrorCode.INVALID_REFRESH_TOKEN)
        if row.revoked_at is not None:
            return row.user_id, False
        row.revoked_at = utcnow()
        return row.user_id, True

    user_id, revoked = _transactions().run(operation)
    if revoked:
        log_audit('perform', 'logout', entity_id=user_id, user_id=user_id)
    return success_response(None, message='Logged out')


@auth_bp.route('/deactivate', methods=['PATCH'])
@login_required
def deactivate():
    """Deactivate the caller's own account and cancel their live appointments"""
    result = get_deactivation_service().deactivate_account(current_user.id, initiated_by=current_user.id)
    return success_response(result.to_dict(), message='Account deactivated')


@auth_bp.route('/password-reset', methods=['POST'])
def request_password_reset():
    form = PasswordResetRequestForm.from_json(request.get_json(silent=True)).validated()
    get_password_reset_service().request_reset(form.email.data)
    # Same answer whether or not the address exists
    return success_response(
        None, message='If an account exists for that email, a password reset link has been sent.'
    )


@auth_bp.route('/password-reset/confirm', methods=['POST'])
def confirm_password_reset():
    form = PasswordResetForm.from_json(request.get_json(silent=True)).validated()
    get_password_reset_service().confirm_reset(form.token.data, form.password.data)
    return success_response(None, message='Your password has been reset. You can now log in.')

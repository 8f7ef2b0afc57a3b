import logging
import secrets
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import timedelta

from flask import current_app, render_template
from flask_mail import Message
from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy import select, update

from salon_booking.accounts.deactivation import revoke_user_tokens
from salon_booking.errors import DependencyTimeout, ErrorCode, TooManyRequests, ValidationError
from salon_booking.models.base import utcnow
from salon_booking.models.tokens import PasswordResetToken, token_digest
from salon_booking.models.user import User
from salon_booking.utils.audit import log_audit

logger = logging.getLogger(__name__)

RESET_SALT = 'password-reset'

_mail_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='reset-mail')


def get_token_serializer():
    """Creates a secure token serializer using the app's secret key"""
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'])


def _invalid_token():
    return ValidationError(code=ErrorCode.INVALID_RESET_TOKEN)


class PasswordResetService:
    """Issues and redeems password reset tokens"""

    def __init__(self, transactions, throttle, mail, timeout=15.0, max_age=3600, throttle_seconds=60, frontend_url=''):
        self.transactions = transactions
        self.throttle = throttle
        self.mail = mail
        self.timeout = timeout
        self.max_age = max_age
        self.throttle_seconds = throttle_seconds
        self.frontend_url = frontend_url.rstrip('/')

    def request_reset(self, email):
        """
        Send a reset link if the email belongs to an active account.
        Unknown addresses succeed silently so registered emails are not revealed.
        """
        user = self.transactions.run(
            lambda session: session.execute(
                select(User).where(User.email == email.strip().lower())
            ).scalar_one_or_none(),
            read_only=True,
        )
        if user is None or user.is_deactivated:
            logger.info('Password reset requested for an unknown or inactive address')
            return False

        throttle_key = f"password-reset:{user.id}"
        if not self.throttle.try_set_if_absent(throttle_key, utcnow().isoformat(), self.throttle_seconds):
            raise TooManyRequests()

        token = get_token_serializer().dumps({'uid': user.id, 'nonce': secrets.token_hex(8)}, salt=RESET_SALT)

        def operation(session):
            now = utcnow()
            # A new link supersedes any earlier one
            session.execute(
                update(PasswordResetToken)
                .where(
                    PasswordResetToken.user_id == user.id,
                    PasswordResetToken.used_at.is_(None),
                    PasswordResetToken.revoked_at.is_(None),
                )
                .values(revoked_at=now)
                .execution_options(synchronize_session=False)
            )
            session.add(PasswordResetToken(user.id, token, now + timedelta(seconds=self.max_age)))

        try:
            # Committed before sending, so the emailed link is always redeemable
            self.transactions.run(operation)
            self.send_reset_email(user, token)
        except DependencyTimeout:
            # The mail may still go out late; keep the window
            raise
        except Exception:
            self.throttle.release(throttle_key)
            raise
        log_audit('password_reset_requested', 'user', entity_id=user.id, user_id=user.id)
        return True

    def send_reset_email(self, user, token):
        reset_url = f"{self.frontend_url}/reset-password?token={token}"
        context = dict(user=user, reset_url=reset_url, expires_minutes=self.max_age // 60)
        message = Message(
            'Reset Your Password',
            recipients=[user.email],
            body=render_template('email/reset_password.txt', **context),
            html=render_template('email/reset_password.html', **context),
        )

        app = current_app._get_current_object()
        future = _mail_executor.submit(self._deliver, app, message)
        try:
            future.result(timeout=self.timeout)
        except FutureTimeout:
            logger.error(f"Password reset email to user {user.id} not sent within {self.timeout}s")
            raise DependencyTimeout('Sending the password reset email timed out. Please try again shortly.')

    def _deliver(self, app, message):
        with app.app_context():
            self.mail.send(message)

    def confirm_reset(self, token, new_password):
        try:
            payload = get_token_serializer().loads(token, salt=RESET_SALT, max_age=self.max_age)
        except BadSignature:
            raise _invalid_token()
        user_id = payload.get('uid') if isinstance(payload, dict) else None
        if not user_id:
            raise _invalid_token()

        def operation(session):
            row = session.execute(
                select(PasswordResetToken)
                .where(PasswordResetToken.token_hash == token_digest(token))
                .with_for_update()
            ).scalar_one_or_none()
            if row is None or row.user_id != user_id or not row.is_pending():
                raise _invalid_token()

            user = session.get(User, user_id)
            if user is None or user.is_deactivated:
                raise _invalid_token()

            now = utcnow()
            row.used_at = now
            user.set_password(new_password)
            # Existing sessions end with the old password
            revoke_user_tokens(session, user_id, now)
            return user_id

        self.transactions.run(operation)
        logger.info(f"Password reset completed for user {user_id}")
        log_audit('password_reset', 'user', entity_id=user_id, user_id=user_id)
        return True

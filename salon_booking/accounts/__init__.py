from flask import current_app

from salon_booking.accounts.deactivation import AccountDeactivationService
from salon_booking.accounts.password_reset import PasswordResetService
from salon_booking.accounts.throttle import TokenThrottle
from salon_booking.booking.repository import AppointmentRepository


def init_app(app):
    from salon_booking import db, mail

    transactions = app.extensions['transaction_manager']
    throttle = TokenThrottle(app.config['REDIS_URL'])

    app.extensions['token_throttle'] = throttle
    app.extensions['account_deactivation'] = AccountDeactivationService(
        repository=AppointmentRepository(db),
        transactions=transactions,
    )
    app.extensions['password_reset'] = PasswordResetService(
        transactions=transactions,
        throttle=throttle,
        mail=mail,
        timeout=app.config['PASSWORD_RESET_TIMEOUT_SECONDS'],
        max_age=app.config['PASSWORD_RESET_MAX_AGE'],
        throttle_seconds=app.config['PASSWORD_RESET_THROTTLE_SECONDS'],
        frontend_url=app.config['FRONTEND_URL'],
    )


def get_deactivation_service():
    return current_app.extensions['account_deactivation']


def get_password_reset_service():
    return current_app.extensions['password_reset']

import logging
from dataclasses import dataclass

from sqlalchemy import select, update

from salon_booking.errors import ErrorCode, NotFound
from salon_booking.models.base import utcnow
from salon_booking.models.tokens import PasswordResetToken, RefreshToken
from salon_booking.models.user import User
from salon_booking.utils.audit import log_audit

logger = logging.getLogger(__name__)

DEACTIVATION_NOTE = 'Appointment cancelled due to account deactivation'


@dataclass(frozen=True)
class DeactivationResult:
    user_id: str
    cancelled_appointments: int = 0
    revoked_tokens: int = 0
    newly_deactivated: bool = False

    @property
    def changed(self):
        return bool(self.cancelled_appointments or self.revoked_tokens or self.newly_deactivated)

    def to_dict(self):
        return {
            'userId': self.user_id,
            'cancelledAppointments': self.cancelled_appointments,
            'revokedTokens': self.revoked_tokens,
            'newlyDeactivated': self.newly_deactivated,
        }


def revoke_user_tokens(session, user_id, now=None):
    """
    Revoke live refresh tokens and pending reset tokens of an account.
    Only issues UPDATEs for rows that are actually live.
    """
    now = now or utcnow()

    refresh_ids = list(session.execute(
        select(RefreshToken.id).where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        )
    ).scalars())
    reset_ids = list(session.execute(
        select(PasswordResetToken.id).where(
            PasswordResetToken.user_id == user_id,
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.revoked_at.is_(None),
        )
    ).scalars())

    if refresh_ids:
        session.execute(
            update(RefreshToken)
            .where(RefreshToken.id.in_(refresh_ids))
            .values(revoked_at=now)
            .execution_options(synchronize_session='fetch')
        )
    if reset_ids:
        session.execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.id.in_(reset_ids))
            .values(revoked_at=now)
            .execution_options(synchronize_session='fetch')
        )
    return len(refresh_ids) + len(reset_ids)


def _lock_user(session, user_id):
    user = session.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if user is None:
        raise NotFound(code=ErrorCode.USER_NOT_FOUND)
    return user


class AccountDeactivationService:
    """Deactivates an account and cancels every live appointment it takes part in"""

    def __init__(self, repository, transactions):
        self.repository = repository
        self.transactions = transactions

    def deactivate_account(self, user_id, initiated_by=None):
        def operation(session):
            user = _lock_user(session, user_id)

            now = utcnow()
            appointment_ids = self.repository.find_active_for_account(user_id)
            cancelled = self.repository.cancel_appointments(appointment_ids, DEACTIVATION_NOTE)
            revoked = revoke_user_tokens(session, user_id, now)

            newly_deactivated = not user.is_deactivated
            if newly_deactivated:
                user.is_deactivated = True
                user.deactivated_at = now

            return DeactivationResult(
                user_id=user_id,
                cancelled_appointments=cancelled,
                revoked_tokens=revoked,
                newly_deactivated=newly_deactivated,
            )

        result = self.transactions.run(operation)

        if result.changed:
            logger.info(
                f"Account {user_id} deactivated: {result.cancelled_appointments} appointment(s) cancelled, "
                f"{result.revoked_tokens} token(s) revoked"
            )
            log_audit('deactivate', 'user', entity_id=user_id, user_id=initiated_by or user_id,
                      details=result.to_dict())
        else:
            logger.info(f"Account {user_id} already deactivated, nothing to do")
        return result

    def reactivate_account(self, user_id, initiated_by=None):
        """Clear the deactivation flag; appointments and tokens ended by the cascade stay ended"""

        def operation(session):
            user = _lock_user(session, user_id)
            changed = user.is_deactivated
            if changed:
                user.is_deactivated = False
                user.deactivated_at = None
            return user.to_dict(), changed

        data, changed = self.transactions.run(operation)

        if changed:
            logger.info(f"Account {user_id} reactivated")
            log_audit('reactivate', 'user', entity_id=user_id, user_id=initiated_by or user_id)
        return data

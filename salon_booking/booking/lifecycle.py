"""Appointment status state machine"""
from salon_booking.errors import Forbidden, InvalidTransition, ValidationError
from salon_booking.models.appointment import (
    APPOINTMENT_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    TERMINAL_STATUSES,
)
from salon_booking.models.user import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_STYLIST

# (from, to) -> roles allowed to make the move
TRANSITIONS = {
    (STATUS_PENDING, STATUS_CONFIRMED): {ROLE_ADMIN, ROLE_STYLIST},
    (STATUS_PENDING, STATUS_CANCELLED): {ROLE_ADMIN, ROLE_STYLIST, ROLE_CUSTOMER},
    (STATUS_CONFIRMED, STATUS_COMPLETED): {ROLE_ADMIN, ROLE_STYLIST},
    (STATUS_CONFIRMED, STATUS_CANCELLED): {ROLE_ADMIN, ROLE_STYLIST, ROLE_CUSTOMER},
}


def allowed_targets(current):
    return sorted(target for (source, target) in TRANSITIONS if source == current)


def transition(current, requested, actor_role):
    """
    Return the status an appointment moves to.

    Requesting the current status of a live appointment is a no-op. Terminal
    appointments never move, not even to their own status.
    """
    if requested not in APPOINTMENT_STATUSES:
        raise ValidationError.for_fields({'status': [f'Unknown status: {requested}']})
    if current not in APPOINTMENT_STATUSES:
        raise ValidationError.for_fields({'status': [f'Unknown current status: {current}']})

    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"A {current.lower()} appointment cannot change status")

    if requested == current:
        return current

    roles = TRANSITIONS.get((current, requested))
    if roles is None:
        raise InvalidTransition(
            f"Cannot move appointment from {current} to {requested}",
            details={'allowed': allowed_targets(current)},
        )
    if actor_role not in roles:
        raise Forbidden(f"Role '{actor_role}' cannot move an appointment from {current} to {requested}")

    return requested

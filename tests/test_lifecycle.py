import pytest

from salon_booking.booking.lifecycle import transition
from salon_booking.errors import Forbidden, InvalidTransition, ValidationError
from salon_booking.models.appointment import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
)
from salon_booking.models.user import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_STYLIST


@pytest.mark.parametrize('current, requested, role', [
    (STATUS_PENDING, STATUS_CONFIRMED, ROLE_STYLIST),
    (STATUS_PENDING, STATUS_CONFIRMED, ROLE_ADMIN),
    (STATUS_PENDING, STATUS_CANCELLED, ROLE_CUSTOMER),
    (STATUS_CONFIRMED, STATUS_COMPLETED, ROLE_STYLIST),
    (STATUS_CONFIRMED, STATUS_CANCELLED, ROLE_CUSTOMER),
    (STATUS_CONFIRMED, STATUS_CANCELLED, ROLE_ADMIN),
])
def test_allowed_transitions(current, requested, role):
    assert transition(current, requested, role) == requested


@pytest.mark.parametrize('current, requested', [
    (STATUS_CANCELLED, STATUS_CONFIRMED),
    (STATUS_CANCELLED, STATUS_PENDING),
    (STATUS_COMPLETED, STATUS_PENDING),
    (STATUS_COMPLETED, STATUS_CONFIRMED),
    (STATUS_COMPLETED, STATUS_CANCELLED),
    (STATUS_COMPLETED, STATUS_COMPLETED),
    (STATUS_CANCELLED, STATUS_CANCELLED),
    (STATUS_PENDING, STATUS_COMPLETED),
    (STATUS_CONFIRMED, STATUS_PENDING),
])
def test_invalid_transitions(current, requested):
    with pytest.raises(InvalidTransition):
        transition(current, requested, ROLE_ADMIN)


def test_same_status_on_live_appointment_is_noop():
    assert transition(STATUS_CONFIRMED, STATUS_CONFIRMED, ROLE_CUSTOMER) == STATUS_CONFIRMED


def test_customer_cannot_confirm_or_complete():
    with pytest.raises(Forbidden):
        transition(STATUS_PENDING, STATUS_CONFIRMED, ROLE_CUSTOMER)
    with pytest.raises(Forbidden):
        transition(STATUS_CONFIRMED, STATUS_COMPLETED, ROLE_CUSTOMER)


def test_validity_is_checked_before_role():
    with pytest.raises(InvalidTransition):
        transition(STATUS_CANCELLED, STATUS_CONFIRMED, ROLE_CUSTOMER)


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        transition(STATUS_PENDING, 'ARCHIVED', ROLE_ADMIN)


def test_invalid_transition_lists_allowed_targets():
    with pytest.raises(InvalidTransition) as exc:
        transition(STATUS_PENDING, STATUS_COMPLETED, ROLE_ADMIN)

    assert exc.value.details == {'allowed': [STATUS_CANCELLED, STATUS_CONFIRMED]}

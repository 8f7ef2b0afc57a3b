import json
from datetime import timedelta

import pytest
from sqlalchemy import event

from salon_booking import db
from salon_booking.accounts.deactivation import DEACTIVATION_NOTE
from salon_booking.errors import NotFound
from salon_booking.models.appointment import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Appointment,
)
from salon_booking.models.audit import AuditLog
from salon_booking.models.base import utcnow
from salon_booking.models.tokens import PasswordResetToken, RefreshToken
from salon_booking.models.user import User


@pytest.fixture
def deactivation(app, ctx):
    return app.extensions['account_deactivation']


def statuses(*ids):
    db.session.expire_all()
    return [db.session.get(Appointment, i).status for i in ids]


def test_cancels_both_sides_of_the_account(deactivation, seed, make_appointment):
    as_customer = make_appointment(customer_id=seed.customer, stylist_id=seed.stylist, status=STATUS_PENDING)
    as_stylist = make_appointment(customer_id=seed.other_customer, stylist_id=seed.stylist, status=STATUS_CONFIRMED)
    unrelated = make_appointment(customer_id=seed.other_customer, stylist_id=seed.other_stylist)

    result = deactivation.deactivate_account(seed.stylist)

    assert result.cancelled_appointments == 2
    assert result.newly_deactivated
    assert statuses(as_customer, as_stylist, unrelated) == [STATUS_CANCELLED, STATUS_CANCELLED, STATUS_PENDING]
    assert db.session.get(Appointment, as_stylist).notes == DEACTIVATION_NOTE

    user = db.session.get(User, seed.stylist)
    assert user.is_deactivated
    assert user.deactivated_at is not None


def test_terminal_appointments_are_untouched(deactivation, seed, make_appointment):
    completed = make_appointment(status=STATUS_COMPLETED, notes='lovely')
    cancelled = make_appointment(status=STATUS_CANCELLED, notes='changed plans')

    result = deactivation.deactivate_account(seed.customer)

    assert result.cancelled_appointments == 0
    assert statuses(completed, cancelled) == [STATUS_COMPLETED, STATUS_CANCELLED]
    assert db.session.get(Appointment, completed).notes == 'lovely'
    assert db.session.get(Appointment, cancelled).notes == 'changed plans'


def test_second_run_writes_nothing(deactivation, seed, make_appointment):
    make_appointment()
    deactivation.deactivate_account(seed.customer)
    deactivated_at = db.session.get(User, seed.customer).deactivated_at

    writes = []

    def record(conn, cursor, statement, parameters, context, executemany):
        if not statement.lstrip().upper().startswith('SELECT'):
            writes.append(statement)

    engine = db.engine
    event.listen(engine, 'before_cursor_execute', record)
    try:
        result = deactivation.deactivate_account(seed.customer)
    finally:
        event.remove(engine, 'before_cursor_execute', record)

    assert not result.changed
    assert [w for w in writes if w.lstrip().upper().startswith(('UPDATE', 'INSERT', 'DELETE'))] == []
    db.session.expire_all()
    assert db.session.get(User, seed.customer).deactivated_at == deactivated_at


def test_tokens_are_revoked(deactivation, seed):
    now = utcnow()
    live_refresh = RefreshToken(seed.customer, 'refresh-live', now + timedelta(days=1))
    reset_pending = PasswordResetToken(seed.customer, 'reset-pending', now + timedelta(hours=1))
    reset_used = PasswordResetToken(seed.customer, 'reset-used', now + timedelta(hours=1))
    reset_used.used_at = now
    other = RefreshToken(seed.other_customer, 'refresh-other', now + timedelta(days=1))
    db.session.add_all([live_refresh, reset_pending, reset_used, other])
    db.session.commit()

    result = deactivation.deactivate_account(seed.customer)

    db.session.expire_all()
    assert result.revoked_tokens == 2
    assert db.session.get(RefreshToken, live_refresh.id).revoked_at is not None
    assert db.session.get(PasswordResetToken, reset_pending.id).revoked_at is not None
    assert db.session.get(PasswordResetToken, reset_used.id).revoked_at is None
    assert db.session.get(RefreshToken, other.id).revoked_at is None


def test_unknown_account(deactivation, seed):
    with pytest.raises(NotFound):
        deactivation.deactivate_account('no-such-user')


def test_audit_entry_written_once(deactivation, seed, make_appointment):
    make_appointment()
    deactivation.deactivate_account(seed.customer)
    deactivation.deactivate_account(seed.customer)

    entries = db.session.execute(
        db.select(AuditLog).where(AuditLog.action == 'deactivate', AuditLog.entity_id == seed.customer)
    ).scalars().all()
    assert len(entries) == 1
    assert json.loads(entries[0].details)['cancelledAppointments'] == 1


def test_self_deactivation_route(app, client, seed, auth_headers, make_appointment):
    appointment_id = make_appointment(customer_id=seed.customer)
    headers = auth_headers(seed.customer)

    response = client.patch('/auth/deactivate', headers=headers)

    assert response.status_code == 200
    assert response.get_json()['data']['cancelledAppointments'] == 1

    with app.app_context():
        assert db.session.get(Appointment, appointment_id).status == STATUS_CANCELLED

    # The old access token no longer authenticates
    response = client.get('/appointments/user/appointments', headers=headers)
    assert response.status_code == 401
    assert response.get_json()['error']['code'] == 'ACCOUNT_DEACTIVATED'


def test_admin_deactivation_route(app, client, seed, auth_headers, make_appointment):
    appointment_id = make_appointment(stylist_id=seed.other_stylist)

    response = client.patch(f'/users/{seed.other_stylist}/deactivate', headers=auth_headers(seed.admin))
    assert response.status_code == 200

    response = client.patch(f'/users/{seed.other_stylist}/deactivate', headers=auth_headers(seed.admin))
    assert response.status_code == 200
    assert response.get_json()['data'] == {
        'userId': seed.other_stylist,
        'cancelledAppointments': 0,
        'revokedTokens': 0,
        'newlyDeactivated': False,
    }

    with app.app_context():
        assert db.session.get(Appointment, appointment_id).status == STATUS_CANCELLED


def test_only_admins_deactivate_others(client, seed, auth_headers):
    response = client.patch(f'/users/{seed.other_customer}/deactivate', headers=auth_headers(seed.customer))

    assert response.status_code == 403
    assert response.get_json()['error']['code'] == 'INSUFFICIENT_PERMISSIONS'


def test_unknown_user_via_admin_route(client, seed, auth_headers):
    response = client.patch('/users/nobody/deactivate', headers=auth_headers(seed.admin))

    assert response.status_code == 404
    assert response.get_json()['error']['code'] == 'USER_NOT_FOUND'


def test_admin_reactivation_restores_login_only(app, client, seed, auth_headers, make_appointment):
    appointment_id = make_appointment(customer_id=seed.customer)
    with app.app_context():
        app.extensions['account_deactivation'].deactivate_account(seed.customer)

    response = client.patch(f'/users/{seed.customer}/reactivate', headers=auth_headers(seed.admin))

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['isDeactivated'] is False
    assert data['deactivatedAt'] is None

    login = client.post('/auth/login', json={'email': 'customer@salonmail.com', 'password': 'password123'})
    assert login.status_code == 200

    with app.app_context():
        assert db.session.get(Appointment, appointment_id).status == STATUS_CANCELLED
        entries = db.session.execute(
            db.select(AuditLog).where(AuditLog.action == 'reactivate', AuditLog.entity_id == seed.customer)
        ).scalars().all()
        assert [entry.user_id for entry in entries] == [seed.admin]


def test_reactivating_an_active_account_changes_nothing(app, client, seed, auth_headers):
    response = client.patch(f'/users/{seed.other_customer}/reactivate', headers=auth_headers(seed.admin))

    assert response.status_code == 200
    assert response.get_json()['data']['isDeactivated'] is False
    with app.app_context():
        assert db.session.execute(
            db.select(db.func.count(AuditLog.id)).where(AuditLog.action == 'reactivate')
        ).scalar() == 0


def test_only_admins_reactivate(client, seed, auth_headers):
    response = client.patch(f'/users/{seed.other_customer}/reactivate', headers=auth_headers(seed.customer))

    assert response.status_code == 403


def test_reactivate_unknown_user(client, seed, auth_headers):
    response = client.patch('/users/nobody/reactivate', headers=auth_headers(seed.admin))

    assert response.status_code == 404
    assert response.get_json()['error']['code'] == 'USER_NOT_FOUND'

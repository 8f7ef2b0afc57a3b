from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from salon_booking import create_app, db
from salon_booking.auth.tokens import issue_access_token
from salon_booking.models.appointment import STATUS_PENDING, Appointment, AppointmentServiceLine
from salon_booking.models.base import utcnow
from salon_booking.models.service import Category, Service
from salon_booking.models.user import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_STYLIST, User

PASSWORD = 'password123'

TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret',
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'MAIL_SUPPRESS_SEND': True,
    'MAIL_DEFAULT_SENDER': 'noreply@salonmail.com',
    'PASSWORD_RESET_TIMEOUT_SECONDS': 5,
    'LOG_LEVEL': 'WARNING',
}


class FakeRedis:
    """Just enough of redis.Redis for SET NX EX and DEL"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.store:
            return None
        self.store[name] = value
        self.ttls[name] = ex
        return True

    def delete(self, name):
        self.ttls.pop(name, None)
        return 1 if self.store.pop(name, None) is not None else 0


def build_app(**overrides):
    app = create_app({**TEST_CONFIG, **overrides})
    app.extensions['token_throttle'].client = FakeRedis()
    return app


@pytest.fixture
def app():
    app = build_app()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


def seed_data(app):
    with app.app_context():
        admin = User('admin@salonmail.com', 'Ada', 'Admin', password=PASSWORD, role=ROLE_ADMIN)
        stylist = User('stylist@salonmail.com', 'Sam', 'Shears', password=PASSWORD, role=ROLE_STYLIST)
        other_stylist = User('stylist2@salonmail.com', 'Kim', 'Comb', password=PASSWORD, role=ROLE_STYLIST)
        customer = User('customer@salonmail.com', 'Cara', 'Client', password=PASSWORD, role=ROLE_CUSTOMER)
        other_customer = User('customer2@salonmail.com', 'Otto', 'Other', password=PASSWORD, role=ROLE_CUSTOMER)

        hair = Category('Hair')
        cut = Service('Haircut', Decimal('30.00'), 30, category=hair)
        color = Service('Colour', Decimal('80.00'), 120, category=hair)
        retired = Service('Perm', Decimal('50.00'), 45, is_active=False, category=hair)

        db.session.add_all([admin, stylist, other_stylist, customer, other_customer, hair, cut, color, retired])
        db.session.commit()

        return SimpleNamespace(
            admin=admin.id,
            stylist=stylist.id,
            other_stylist=other_stylist.id,
            customer=customer.id,
            other_customer=other_customer.id,
            cut=cut.id,
            color=color.id,
            retired=retired.id,
        )


@pytest.fixture
def seed(app):
    return seed_data(app)


@pytest.fixture
def auth_headers(app):
    def _headers(user_id):
        with app.app_context():
            user = db.session.get(User, user_id)
            return {'Authorization': f'Bearer {issue_access_token(user)}'}
    return _headers


def create_appointment(app, customer_id, stylist_id, lines, when=None, status=STATUS_PENDING, notes=None):
    """Insert an appointment directly, bypassing the booking rules"""
    with app.app_context():
        services = {s.id: s for s in db.session.execute(
            db.select(Service).where(Service.id.in_([service_id for service_id, _ in lines]))
        ).scalars()}
        appointment = Appointment(
            user_id=customer_id,
            stylist_id=stylist_id,
            date_time=when or utcnow() + timedelta(days=7),
            estimated_duration=sum(s.duration_minutes for s in services.values()),
            total_price=sum((services[service_id].price * people for service_id, people in lines), Decimal('0')),
            notes=notes,
            status=status,
        )
        for service_id, people in lines:
            appointment.services.append(AppointmentServiceLine(service_id, people))
        db.session.add(appointment)
        db.session.commit()
        return appointment.id


@pytest.fixture
def make_appointment(app, seed):
    def _make(customer_id=None, stylist_id=None, lines=None, **kwargs):
        return create_appointment(
            app,
            customer_id or seed.customer,
            stylist_id or seed.stylist,
            lines or [(seed.cut, 1)],
            **kwargs,
        )
    return _make


@pytest.fixture
def file_app(tmp_path):
    """App on a file database so several threads get their own connections"""
    app = build_app(
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'salon.db'}",
        SQLALCHEMY_ENGINE_OPTIONS={
            'connect_args': {'check_same_thread': False, 'timeout': 5},
        },
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def file_seed(file_app):
    return seed_data(file_app)


@pytest.fixture
def file_appointment(file_app, file_seed):
    return create_appointment(file_app, file_seed.customer, file_seed.stylist, [(file_seed.cut, 1)])

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from salon_booking import db
from salon_booking.models.base import new_id, utcnow

# User roles
ROLE_CUSTOMER = 'customer'
ROLE_STYLIST = 'stylist'
ROLE_ADMIN = 'admin'


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=True)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_CUSTOMER)
    is_deactivated = db.Column(db.Boolean, nullable=False, default=False)
    deactivated_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    appointments_as_customer = db.relationship('Appointment', foreign_keys='Appointment.user_id', back_populates='user', lazy='dynamic')
    appointments_as_stylist = db.relationship('Appointment', foreign_keys='Appointment.stylist_id', back_populates='stylist', lazy='dynamic')

    def __init__(self, email, first_name, last_name, password=None, role=ROLE_CUSTOMER, phone=None):
        self.email = email.strip().lower()
        self.first_name = first_name
        self.last_name = last_name
        if password:
            self.set_password(password)
        self.role = role
        self.phone = phone
        self.is_deactivated = False

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_active(self):
        return not self.is_deactivated

    def is_stylist(self):
        return self.role == ROLE_STYLIST

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_summary(self):
        """Compact representation embedded in appointment payloads"""
        return {
            'id': self.id,
            'name': self.get_full_name(),
            'email': self.email,
        }

    def to_dict(self):
        return {
            **self.to_summary(),
            'phone': self.phone,
            'role': self.role,
            'isDeactivated': self.is_deactivated,
            'deactivatedAt': self.deactivated_at.isoformat() if self.deactivated_at else None,
        }

    def __repr__(self):
        return f'<User {self.email}>'

from salon_booking import db
from salon_booking.models.base import new_id, utcnow

# Appointment status constants
STATUS_PENDING = 'PENDING'
STATUS_CONFIRMED = 'CONFIRMED'
STATUS_CANCELLED = 'CANCELLED'
STATUS_COMPLETED = 'COMPLETED'

APPOINTMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED, STATUS_COMPLETED)
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)
TERMINAL_STATUSES = (STATUS_CANCELLED, STATUS_COMPLETED)


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    stylist_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    date_time = db.Column(db.DateTime, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    notes = db.Column(db.Text, nullable=True)
    estimated_duration = db.Column(db.Integer, nullable=False)  # Minutes
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint('total_price >= 0', name='ck_appointments_total_price'),
    )

    # Relationships
    user = db.relationship('User', foreign_keys=[user_id], back_populates='appointments_as_customer')
    stylist = db.relationship('User', foreign_keys=[stylist_id], back_populates='appointments_as_stylist')
    services = db.relationship(
        'AppointmentServiceLine',
        back_populates='appointment',
        cascade='all, delete-orphan',
        lazy='selectin',
    )

    def __init__(self, user_id, stylist_id, date_time, estimated_duration, total_price, notes=None, status=STATUS_PENDING):
        self.user_id = user_id
        self.stylist_id = stylist_id
        self.date_time = date_time
        self.estimated_duration = estimated_duration
        self.total_price = total_price
        self.notes = notes
        self.status = status

    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'stylistId': self.stylist_id,
            'dateTime': self.date_time.isoformat(),
            'status': self.status,
            'notes': self.notes,
            'estimatedDuration': self.estimated_duration,
            'totalPrice': str(self.total_price),
            'services': [line.to_dict() for line in self.services],
            'user': self.user.to_summary() if self.user else None,
            'stylist': self.stylist.to_summary() if self.stylist else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Appointment {self.id}: {self.date_time} {self.status}>'


class AppointmentServiceLine(db.Model):
    """One (service, headcount) pairing inside an appointment"""
    __tablename__ = 'appointment_services'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    appointment_id = db.Column(db.String(36), db.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False, index=True)
    service_id = db.Column(db.String(36), db.ForeignKey('services.id'), nullable=False)
    number_of_people = db.Column(db.Integer, nullable=False, default=1)

    __table_args__ = (
        db.CheckConstraint('number_of_people >= 1', name='ck_appointment_services_headcount'),
    )

    appointment = db.relationship('Appointment', back_populates='services')
    service = db.relationship('Service', lazy='joined')

    def __init__(self, service_id, number_of_people=1):
        self.service_id = service_id
        self.number_of_people = number_of_people

    def to_dict(self):
        return {
            'serviceId': self.service_id,
            'numberOfPeople': self.number_of_people,
            'service': self.service.to_dict() if self.service else None,
        }

    def __repr__(self):
        return f'<AppointmentServiceLine {self.service_id} x{self.number_of_people}>'

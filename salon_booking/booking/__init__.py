from flask import current_app

from salon_booking.booking.catalog import ServiceCatalog
from salon_booking.booking.repository import AppointmentRepository
from salon_booking.booking.service import AppointmentService


def init_app(app):
    from salon_booking import db

    app.extensions['appointment_service'] = AppointmentService(
        repository=AppointmentRepository(db),
        catalog=ServiceCatalog(db),
        transactions=app.extensions['transaction_manager'],
        reject_unknown_services=app.config['BOOKING_REJECT_UNKNOWN_SERVICES'],
        prevent_overlap=app.config['BOOKING_PREVENT_OVERLAP'],
    )


def get_appointment_service():
    return current_app.extensions['appointment_service']

import logging
from dataclasses import dataclass

from sqlalchemy import select

from salon_booking.booking.lifecycle import transition
from salon_booking.booking.pricing import compute_totals
from salon_booking.booking.repository import AppointmentFilters
from salon_booking.errors import ConflictError, ErrorCode, Forbidden, InvalidTransition, NotFound, ValidationError
from salon_booking.models.appointment import STATUS_CANCELLED, ACTIVE_STATUSES
from salon_booking.models.user import User, ROLE_ADMIN, ROLE_CUSTOMER, ROLE_STYLIST
from salon_booking.utils.audit import log_audit
from salon_booking.utils.pagination import DEFAULT_SORT, PageRequest, build_pagination

logger = logging.getLogger(__name__)

APPOINTMENT_NOT_FOUND = 'Appointment not found'


@dataclass(frozen=True)
class Actor:
    """Who is acting, as far as the booking rules care"""
    id: str
    role: str

    @classmethod
    def from_user(cls, user):
        return cls(id=user.id, role=user.role)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class AppointmentChanges:
    """Fields of an admin update; None leaves a field unchanged"""
    date_time: object = None
    status: str = None
    notes: str = None
    selections: list = None

    def touches_schedule(self):
        return self.date_time is not None or self.selections is not None


def _not_found():
    return NotFound(APPOINTMENT_NOT_FOUND)


class AppointmentService:
    """Booking, status changes, listings and statistics for appointments"""

    def __init__(self, repository, catalog, transactions, reject_unknown_services=True, prevent_overlap=True):
        self.repository = repository
        self.catalog = catalog
        self.transactions = transactions
        self.reject_unknown_services = reject_unknown_services
        self.prevent_overlap = prevent_overlap

    # Booking

    def create_appointment(self, actor, stylist_id, date_time, selections, notes=None):
        if stylist_id == actor.id:
            raise ValidationError.for_fields({'stylistId': ['You cannot book an appointment with yourself']})

        def operation(session):
            self._require_stylist(session, stylist_id)
            totals = compute_totals(selections, self.catalog, reject_unknown=self.reject_unknown_services)
            self._check_slot(stylist_id, date_time, totals.estimated_duration)
            appointment = self.repository.create(
                user_id=actor.id,
                stylist_id=stylist_id,
                date_time=date_time,
                totals=totals,
                selections=selections,
                notes=notes,
            )
            return appointment.to_dict()

        data = self.transactions.run(operation)
        logger.info(f"Appointment {data['id']} booked with stylist {stylist_id}")
        log_audit('create', 'appointment', entity_id=data['id'], user_id=actor.id, details={
            'stylist_id': stylist_id,
            'date_time': date_time,
            'total_price': data['totalPrice'],
            'estimated_duration': data['estimatedDuration'],
        })
        return data

    def update_appointment(self, actor, appointment_id, changes):
        """Generic update; admins only, and still bound by the status rules"""
        if not actor.is_admin:
            raise Forbidden(code=ErrorCode.INSUFFICIENT_PERMISSIONS)

        def operation(session):
            appointment = self.repository.lock_by_id(appointment_id)
            if appointment is None:
                raise _not_found()

            if appointment.is_terminal() and changes.touches_schedule():
                raise InvalidTransition(f"A {appointment.status.lower()} appointment cannot be rescheduled or repriced")

            fields = {}
            if changes.status is not None:
                fields['status'] = transition(appointment.status, changes.status, actor.role)
            if changes.date_time is not None:
                fields['date_time'] = changes.date_time
            if changes.notes is not None:
                fields['notes'] = changes.notes

            totals = None
            if changes.selections is not None:
                totals = compute_totals(changes.selections, self.catalog, reject_unknown=self.reject_unknown_services)

            if changes.touches_schedule() and fields.get('status', appointment.status) in ACTIVE_STATUSES:
                self._lock_stylist(session, appointment.stylist_id)
                duration = totals.estimated_duration if totals else appointment.estimated_duration
                self._check_slot(
                    appointment.stylist_id,
                    fields.get('date_time', appointment.date_time),
                    duration,
                    exclude_id=appointment.id,
                )

            self.repository.update(appointment, fields, selections=changes.selections, totals=totals)
            return appointment.to_dict()

        data = self.transactions.run(operation)
        log_audit('update', 'appointment', entity_id=appointment_id, user_id=actor.id, details={
            'status': changes.status,
            'date_time': changes.date_time,
            'services_replaced': changes.selections is not None,
        })
        return data

    def cancel_appointment(self, actor, appointment_id):
        """Cancel flow for the appointment's customer, its stylist or an admin"""

        def operation(session):
            appointment = self.repository.lock_by_id(appointment_id)
            role = self._relation_role(actor, appointment)
            new_status = transition(appointment.status, STATUS_CANCELLED, role)
            self.repository.update(appointment, {'status': new_status})
            return appointment.to_dict()

        data = self.transactions.run(operation)
        log_audit('cancel', 'appointment', entity_id=appointment_id, user_id=actor.id)
        return data

    def update_stylist_appointment_status(self, actor, appointment_id, status):
        """Stylist confirms, completes or cancels one of their own appointments"""
        if actor.role != ROLE_STYLIST:
            raise Forbidden(code=ErrorCode.INSUFFICIENT_PERMISSIONS)

        def operation(session):
            appointment = self.repository.lock_by_id(appointment_id)
            if appointment is None or appointment.stylist_id != actor.id:
                raise _not_found()
            previous = appointment.status
            new_status = transition(previous, status, ROLE_STYLIST)
            if new_status != previous:
                self.repository.update(appointment, {'status': new_status})
            return previous, appointment.to_dict()

        previous, data = self.transactions.run(operation)
        if previous != data['status']:
            log_audit('status_change', 'appointment', entity_id=appointment_id, user_id=actor.id, details={
                'from': previous,
                'to': data['status'],
            })
        return data

    # Reads

    def get_appointment(self, actor, appointment_id):
        """Admins see everything; anyone else only appointments they take part in"""

        def operation(session):
            if actor.is_admin:
                appointment = self.repository.find_by_id(appointment_id)
            else:
                appointment = (
                    self.repository.find_user_appointment_by_id(appointment_id, actor.id)
                    or self.repository.find_stylist_appointment_by_id(appointment_id, actor.id)
                )
            if appointment is None:
                raise _not_found()
            return appointment.to_dict()

        return self.transactions.run(operation, read_only=True)

    def list_appointments(self, filters=None, page_request=None, sort=DEFAULT_SORT):
        filters = filters or AppointmentFilters()
        return self._page(
            lambda: self.repository.paginate_appointments(filters, page_request or PageRequest(), sort)
        )

    def list_user_appointments(self, actor, filters=None, page_request=None, sort=DEFAULT_SORT):
        return self._page(
            lambda: self.repository.paginate_user_appointments(actor.id, filters, page_request or PageRequest(), sort)
        )

    def list_stylist_appointments(self, actor, filters=None, page_request=None, sort=DEFAULT_SORT):
        if actor.role != ROLE_STYLIST:
            raise Forbidden(code=ErrorCode.INSUFFICIENT_PERMISSIONS)
        return self._page(
            lambda: self.repository.paginate_stylist_appointments(actor.id, filters, page_request or PageRequest(), sort)
        )

    def get_total_income(self, stylist_ids=None, date_range=None):
        return self.transactions.run(
            lambda session: self.repository.total_income(stylist_ids, date_range),
            read_only=True,
        )

    def get_total_service_count(self, stylist_ids=None, date_range=None):
        return self.transactions.run(
            lambda session: self.repository.total_services(stylist_ids, date_range),
            read_only=True,
        )

    # Helpers

    def _page(self, paginate):
        def operation(session):
            page = paginate()
            return {
                'items': [appointment.to_dict() for appointment in page.items],
                'pagination': build_pagination(page),
            }

        return self.transactions.run(operation, read_only=True)

    @staticmethod
    def _lock_stylist(session, stylist_id):
        """Row lock on the stylist; slot checks and writes for one stylist run one at a time"""
        return session.execute(
            select(User)
            .where(User.id == stylist_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _require_stylist(self, session, stylist_id):
        stylist = self._lock_stylist(session, stylist_id)
        if stylist is None or not stylist.is_stylist() or stylist.is_deactivated:
            raise NotFound('Stylist not found', code=ErrorCode.USER_NOT_FOUND)
        return stylist

    @staticmethod
    def _relation_role(actor, appointment):
        # Missing and foreign appointments are reported the same way
        if appointment is None:
            raise _not_found()
        if actor.is_admin:
            return ROLE_ADMIN
        if appointment.user_id == actor.id:
            return ROLE_CUSTOMER
        if appointment.stylist_id == actor.id:
            return ROLE_STYLIST
        raise _not_found()

    def _check_slot(self, stylist_id, date_time, duration_minutes, exclude_id=None):
        if not self.prevent_overlap:
            return
        clash = self.repository.find_overlapping(stylist_id, date_time, duration_minutes, exclude_id=exclude_id)
        if clash is not None:
            raise ConflictError(code=ErrorCode.APPOINTMENT_SLOT_TAKEN)

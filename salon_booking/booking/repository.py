from dataclasses import dataclass, replace
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import delete, func, or_, select, update

from salon_booking.models.appointment import (
    ACTIVE_STATUSES,
    STATUS_CANCELLED,
    Appointment,
    AppointmentServiceLine,
)
from salon_booking.models.base import utcnow
from salon_booking.utils.pagination import DEFAULT_SORT, MAX_PAGE_SIZE

SORT_COLUMNS = {
    'dateTime': Appointment.date_time,
    'createdAt': Appointment.created_at,
}


@dataclass(frozen=True)
class AppointmentFilters:
    customer_ids: list = None
    stylist_ids: list = None
    statuses: list = None
    date_range: object = None


def _date_conditions(column, date_range):
    conditions = []
    if date_range is None:
        return conditions
    lower = date_range.lower_bound()
    upper = date_range.upper_bound()
    if lower is not None:
        conditions.append(column >= lower)
    if upper is not None:
        conditions.append(column < upper)
    return conditions


def build_conditions(filters):
    """Shared WHERE clause for appointment listings and their counts"""
    conditions = []
    if filters is None:
        return conditions
    if filters.customer_ids:
        conditions.append(Appointment.user_id.in_(filters.customer_ids))
    if filters.stylist_ids:
        conditions.append(Appointment.stylist_id.in_(filters.stylist_ids))
    if filters.statuses:
        conditions.append(Appointment.status.in_(filters.statuses))
    conditions.extend(_date_conditions(Appointment.date_time, filters.date_range))
    return conditions


class AppointmentRepository:
    """
    Persistence for appointments and their service lines.

    Methods only stage work on the session; the caller's TransactionManager
    unit commits or rolls back.
    """

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    # Writes

    def create(self, user_id, stylist_id, date_time, totals, selections, notes=None):
        appointment = Appointment(
            user_id=user_id,
            stylist_id=stylist_id,
            date_time=date_time,
            estimated_duration=totals.estimated_duration,
            total_price=totals.total_price,
            notes=notes,
        )
        for selection in selections:
            appointment.services.append(
                AppointmentServiceLine(selection.service_id, selection.number_of_people)
            )
        self.session.add(appointment)
        self.session.flush()
        return appointment

    def lock_by_id(self, appointment_id):
        """Load the appointment with a row lock held until the transaction ends"""
        stmt = (
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def update(self, appointment, fields, selections=None, totals=None):
        """
        Apply field changes and, when selections are given, swap the whole line
        set: old lines are deleted before the new ones are inserted, and the
        frozen totals are replaced along with them.
        """
        for name, value in fields.items():
            setattr(appointment, name, value)

        if selections is not None:
            self.replace_services(appointment, selections)
            appointment.total_price = totals.total_price
            appointment.estimated_duration = totals.estimated_duration

        appointment.updated_at = utcnow()
        self.session.flush()
        return appointment

    def replace_services(self, appointment, selections):
        self.session.execute(
            delete(AppointmentServiceLine)
            .where(AppointmentServiceLine.appointment_id == appointment.id)
            .execution_options(synchronize_session=False)
        )
        for selection in selections:
            line = AppointmentServiceLine(selection.service_id, selection.number_of_people)
            line.appointment_id = appointment.id
            self.session.add(line)
        self.session.flush()
        self.session.expire(appointment, ['services'])

    def cancel_appointments(self, appointment_ids, reason):
        """Bulk cancel; rows that already left PENDING/CONFIRMED are not touched"""
        if not appointment_ids:
            return 0
        result = self.session.execute(
            update(Appointment)
            .where(Appointment.id.in_(appointment_ids), Appointment.status.in_(ACTIVE_STATUSES))
            .values(status=STATUS_CANCELLED, notes=reason, updated_at=utcnow())
            .execution_options(synchronize_session='fetch')
        )
        return result.rowcount

    # Reads

    def find_by_id(self, appointment_id):
        return self.session.get(Appointment, appointment_id)

    def find_user_appointment_by_id(self, appointment_id, user_id):
        stmt = select(Appointment).where(
            Appointment.id == appointment_id,
            Appointment.user_id == user_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_stylist_appointment_by_id(self, appointment_id, stylist_id):
        stmt = select(Appointment).where(
            Appointment.id == appointment_id,
            Appointment.stylist_id == stylist_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_active_for_account(self, user_id):
        """Ids of live appointments where the account is the customer or the stylist"""
        stmt = select(Appointment.id).where(
            or_(Appointment.user_id == user_id, Appointment.stylist_id == user_id),
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        return list(self.session.execute(stmt).scalars())

    def find_overlapping(self, stylist_id, start, duration_minutes, exclude_id=None):
        """First live appointment of the stylist that overlaps [start, start + duration)"""
        end = start + timedelta(minutes=duration_minutes)
        base = [
            Appointment.stylist_id == stylist_id,
            Appointment.status.in_(ACTIVE_STATUSES),
        ]
        if exclude_id is not None:
            base.append(Appointment.id != exclude_id)

        longest = self.session.execute(
            select(func.max(Appointment.estimated_duration)).where(*base)
        ).scalar()
        if not longest:
            return None

        candidates = self.session.execute(
            select(Appointment)
            .where(
                *base,
                Appointment.date_time < end,
                Appointment.date_time > start - timedelta(minutes=longest),
            )
            .order_by(Appointment.date_time)
        ).scalars()

        for candidate in candidates:
            if candidate.date_time + timedelta(minutes=candidate.estimated_duration) > start:
                return candidate
        return None

    def _listing(self, filters, sort):
        column = SORT_COLUMNS.get(sort.field, Appointment.created_at)
        ordering = column.asc() if sort.order == 'asc' else column.desc()
        return select(Appointment).where(*build_conditions(filters)).order_by(ordering, Appointment.id)

    def paginate_appointments(self, filters, page_request, sort=DEFAULT_SORT):
        """One page of appointments; the total is counted under the same WHERE clause"""
        return self.db.paginate(
            self._listing(filters, sort),
            page=page_request.page,
            per_page=page_request.count,
            max_per_page=MAX_PAGE_SIZE,
            error_out=False,
        )

    def paginate_user_appointments(self, user_id, filters, page_request, sort=DEFAULT_SORT):
        return self.paginate_appointments(self._for_customer(filters, user_id), page_request, sort)

    def paginate_stylist_appointments(self, stylist_id, filters, page_request, sort=DEFAULT_SORT):
        return self.paginate_appointments(self._for_stylist(filters, stylist_id), page_request, sort)

    @staticmethod
    def _for_customer(filters, user_id):
        return replace(filters or AppointmentFilters(), customer_ids=[user_id])

    @staticmethod
    def _for_stylist(filters, stylist_id):
        return replace(filters or AppointmentFilters(), stylist_ids=[stylist_id])

    # Aggregates

    def total_income(self, stylist_ids=None, date_range=None):
        conditions = _date_conditions(Appointment.date_time, date_range)
        if stylist_ids:
            conditions.append(Appointment.stylist_id.in_(stylist_ids))

        stmt = select(func.coalesce(func.sum(Appointment.total_price), 0)).where(*conditions)
        value = self.session.execute(stmt).scalar_one()
        return Decimal(str(value)).quantize(Decimal('0.01'))

    def total_services(self, stylist_ids=None, date_range=None):
        conditions = _date_conditions(Appointment.date_time, date_range)
        if stylist_ids:
            conditions.append(Appointment.stylist_id.in_(stylist_ids))

        stmt = (
            select(func.coalesce(func.sum(AppointmentServiceLine.number_of_people), 0))
            .select_from(AppointmentServiceLine)
            .join(Appointment, AppointmentServiceLine.appointment_id == Appointment.id)
            .where(*conditions)
        )
        return int(self.session.execute(stmt).scalar_one())

from flask import Blueprint, request
from flask_login import current_user, login_required

from salon_booking.appointments.forms import AppointmentForm, AppointmentStatusForm, AppointmentUpdateForm
from salon_booking.auth.decorators import roles_required
from salon_booking.booking import get_appointment_service
from salon_booking.booking.repository import AppointmentFilters
from salon_booking.booking.service import Actor, AppointmentChanges
from salon_booking.errors import ValidationError
from salon_booking.models.appointment import APPOINTMENT_STATUSES
from salon_booking.models.user import ROLE_ADMIN, ROLE_STYLIST
from salon_booking.utils.pagination import parse_date_range, parse_list, parse_pagination, parse_sort
from salon_booking.utils.responses import success_response

appointments_bp = Blueprint('appointments', __name__, url_prefix='/appointments')

SORTABLE_FIELDS = ('dateTime',)


def _actor():
    return Actor.from_user(current_user)


def _json_body():
    return request.get_json(silent=True)


def _filters_from_args(args):
    statuses = parse_list(args, 'statuses', 'status')
    if statuses:
        statuses = [s.upper() for s in statuses]
        unknown = [s for s in statuses if s not in APPOINTMENT_STATUSES]
        if unknown:
            raise ValidationError.for_fields({'statuses': [f"Unknown status: {', '.join(unknown)}"]})

    return AppointmentFilters(
        customer_ids=parse_list(args, 'customerIds', 'customerId'),
        stylist_ids=parse_list(args, 'stylistIds', 'stylistId'),
        statuses=statuses,
        date_range=parse_date_range(args),
    )


def _listing_args():
    args = request.args
    return _filters_from_args(args), parse_pagination(args), parse_sort(args, SORTABLE_FIELDS)


def _paginated(result):
    return success_response({
        'appointments': result['items'],
        'pagination': result['pagination'],
    })


@appointments_bp.route('', methods=['POST'])
@login_required
def create_appointment():
    """Book a new appointment for the current user"""
    form = AppointmentForm.from_json(_json_body()).validated()

    data = get_appointment_service().create_appointment(
        _actor(),
        stylist_id=form.stylist_id.data,
        date_time=form.date_time.data,
        selections=form.selections(),
        notes=form.notes.data or None,
    )
    return success_response(data, status=201, message='Appointment booked successfully')


@appointments_bp.route('', methods=['GET'])
@roles_required(ROLE_ADMIN)
def list_appointments():
    filters, page_request, sort = _listing_args()
    return _paginated(get_appointment_service().list_appointments(filters, page_request, sort))


@appointments_bp.route('/<appointment_id>', methods=['GET'])
@login_required
def get_appointment(appointment_id):
    return success_response(get_appointment_service().get_appointment(_actor(), appointment_id))


@appointments_bp.route('/<appointment_id>', methods=['PUT'])
@roles_required(ROLE_ADMIN)
def update_appointment(appointment_id):
    payload = _json_body() or {}
    form = AppointmentUpdateForm.from_json(payload).validated()

    changes = AppointmentChanges(
        date_time=form.date_time.data,
        status=form.status.data or None,
        notes=form.notes.data if 'notes' in payload else None,
        selections=form.selections() if 'services' in payload else None,
    )
    data = get_appointment_service().update_appointment(_actor(), appointment_id, changes)
    return success_response(data, message='Appointment updated')


@appointments_bp.route('/<appointment_id>/cancel', methods=['POST'])
@login_required
def cancel_appointment(appointment_id):
    data = get_appointment_service().cancel_appointment(_actor(), appointment_id)
    return success_response(data, message='Appointment cancelled')


@appointments_bp.route('/user/appointments', methods=['GET'])
@login_required
def user_appointments():
    """Appointments the current user booked"""
    filters, page_request, sort = _listing_args()
    return _paginated(get_appointment_service().list_user_appointments(_actor(), filters, page_request, sort))


@appointments_bp.route('/stylist/appointments', methods=['GET'])
@roles_required(ROLE_STYLIST)
def stylist_appointments():
    filters, page_request, sort = _listing_args()
    return _paginated(get_appointment_service().list_stylist_appointments(_actor(), filters, page_request, sort))


@appointments_bp.route('/stylist/appointments/<appointment_id>/status', methods=['PATCH'])
@roles_required(ROLE_STYLIST)
def update_stylist_appointment_status(appointment_id):
    form = AppointmentStatusForm.from_json(_json_body()).validated()
    data = get_appointment_service().update_stylist_appointment_status(_actor(), appointment_id, form.status.data)
    return success_response(data, message='Appointment status updated')


@appointments_bp.route('/stats/income', methods=['GET'])
@roles_required(ROLE_ADMIN)
def income_stats():
    stylist_ids = parse_list(request.args, 'stylistIds', 'stylistId')
    date_range = parse_date_range(request.args)
    total = get_appointment_service().get_total_income(stylist_ids, date_range)
    return success_response({
        'totalIncome': str(total),
        'stylistIds': stylist_ids,
        'startDate': date_range.start.isoformat() if date_range and date_range.start else None,
        'endDate': date_range.end.isoformat() if date_range and date_range.end else None,
    })


@appointments_bp.route('/stats/services', methods=['GET'])
@roles_required(ROLE_ADMIN)
def service_stats():
    stylist_ids = parse_list(request.args, 'stylistIds', 'stylistId')
    date_range = parse_date_range(request.args)
    total = get_appointment_service().get_total_service_count(stylist_ids, date_range)
    return success_response({
        'totalServices': total,
        'stylistIds': stylist_ids,
        'startDate': date_range.start.isoformat() if date_range and date_range.start else None,
        'endDate': date_range.end.isoformat() if date_range and date_range.end else None,
    })

from wtforms import DateTimeField, FieldList, Form, FormField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional, ValidationError

from salon_booking.booking.pricing import ServiceSelection
from salon_booking.models.appointment import APPOINTMENT_STATUSES
from salon_booking.models.base import utcnow
from salon_booking.utils.forms import ApiForm, DATETIME_FORMATS


def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value


class ServiceLineForm(Form):
    """One selected service and how many people it is for"""
    service_id = StringField('Service', validators=[DataRequired()])
    number_of_people = IntegerField('Number of People', default=1, validators=[Optional(), NumberRange(min=1)])


class AppointmentServicesMixin:
    def selections(self):
        return [
            ServiceSelection(line['service_id'], line['number_of_people'] or 1)
            for line in self.services.data
        ]


class AppointmentForm(AppointmentServicesMixin, ApiForm):
    """Form for booking a new appointment"""
    stylist_id = StringField('Stylist', validators=[DataRequired()])
    date_time = DateTimeField('Appointment Time', validators=[DataRequired()], format=DATETIME_FORMATS)
    services = FieldList(
        FormField(ServiceLineForm),
        validators=[Length(min=1, message='At least one service is required.')]
    )
    notes = TextAreaField('Special Requests/Notes', validators=[Optional(), Length(max=500)])

    def validate_date_time(self, date_time):
        if date_time.data and date_time.data <= utcnow():
            raise ValidationError('Appointment time must be in the future.')


class AppointmentUpdateForm(AppointmentServicesMixin, ApiForm):
    """Admin update; every field is optional"""
    date_time = DateTimeField('Appointment Time', validators=[Optional()], format=DATETIME_FORMATS)
    status = StringField('Status', filters=[_upper], validators=[Optional(), AnyOf(APPOINTMENT_STATUSES)])
    services = FieldList(FormField(ServiceLineForm))
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=500)])


class AppointmentStatusForm(ApiForm):
    status = StringField('Status', filters=[_upper], validators=[DataRequired(), AnyOf(APPOINTMENT_STATUSES)])

from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, EqualTo, Length, Optional

from salon_booking.utils.forms import ApiForm


class LoginForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])


class RefreshForm(ApiForm):
    refresh_token = StringField('Refresh Token', validators=[DataRequired()])


class PasswordResetRequestForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(), Email()])


class PasswordResetForm(ApiForm):
    token = StringField('Token', validators=[DataRequired()])
    password = PasswordField('New Password', validators=[DataRequired(), Length(min=8, max=128)])
    confirm_password = PasswordField(
        'Confirm New Password',
        validators=[Optional(), EqualTo('password', message='Passwords must match.')]
    )


class RegisterForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    first_name = StringField('First Name', validators=[DataRequired(), Length(max=50)])
    last_name = StringField('Last Name', validators=[DataRequired(), Length(max=50)])
    phone = StringField('Phone', validators=[Optional(), Length(max=20)])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=8, max=128)])
    confirm_password = PasswordField(
        'Confirm Password',
        validators=[Optional(), EqualTo('password', message='Passwords must match.')]
    )

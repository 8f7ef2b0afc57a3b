import re

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict

from salon_booking.errors import ValidationError

DATETIME_FORMATS = [
    '%Y-%m-%dT%H:%M:%S.%fZ',
    '%Y-%m-%dT%H:%M:%SZ',
    '%Y-%m-%dT%H:%M:%S.%f',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
]

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def snake_case(name):
    return _CAMEL_BOUNDARY.sub('_', name).lower()


def _scalar(value):
    if isinstance(value, bool):
        return 'y' if value else ''
    return str(value)


def flatten_json(payload, prefix=''):
    """
    Turn a JSON object into WTForms form data:
    {"services": [{"serviceId": "a"}]} -> services-0-service_id=a
    """
    items = []
    for key, value in (payload or {}).items():
        name = f"{prefix}{snake_case(key)}"
        if value is None:
            continue
        if isinstance(value, dict):
            items.extend(flatten_json(value, f"{name}-"))
        elif isinstance(value, list):
            for index, entry in enumerate(value):
                if isinstance(entry, dict):
                    items.extend(flatten_json(entry, f"{name}-{index}-"))
                else:
                    items.append((name, _scalar(entry)))
        else:
            items.append((name, _scalar(value)))
    return items


class ApiForm(FlaskForm):
    """Base for forms fed from JSON request bodies"""

    class Meta:
        csrf = False

    @classmethod
    def from_json(cls, payload):
        if payload is not None and not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object')
        return cls(formdata=MultiDict(flatten_json(payload)))

    def validated(self):
        if not self.validate():
            raise ValidationError.for_fields(self.errors)
        return self

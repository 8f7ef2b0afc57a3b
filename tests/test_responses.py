import pytest

from salon_booking.errors import ValidationError
from salon_booking.utils.forms import flatten_json, snake_case
from salon_booking.utils.request_id import REQUEST_ID_HEADER


def test_flatten_json_uses_wtforms_names():
    payload = {
        'stylistId': 's1',
        'notes': None,
        'services': [{'serviceId': 'a', 'numberOfPeople': 2}, {'serviceId': 'b'}],
    }

    assert flatten_json(payload) == [
        ('stylist_id', 's1'),
        ('services-0-service_id', 'a'),
        ('services-0-number_of_people', '2'),
        ('services-1-service_id', 'b'),
    ]


def test_snake_case():
    assert snake_case('numberOfPeople') == 'number_of_people'
    assert snake_case('email') == 'email'


def test_non_object_body_rejected(app):
    from salon_booking.auth.forms import LoginForm

    with app.test_request_context():
        with pytest.raises(ValidationError):
            LoginForm.from_json(['not', 'an', 'object'])


def test_request_id_is_generated_and_echoed(client):
    response = client.get('/appointments/user/appointments')

    generated = response.headers[REQUEST_ID_HEADER]
    assert generated
    assert response.get_json()['meta']['requestId'] == generated

    response = client.get('/appointments/user/appointments', headers={REQUEST_ID_HEADER: 'trace-abc-123'})
    assert response.headers[REQUEST_ID_HEADER] == 'trace-abc-123'


def test_unsafe_request_id_is_replaced(client):
    response = client.get('/appointments/user/appointments', headers={REQUEST_ID_HEADER: '<script>'})
    assert response.headers[REQUEST_ID_HEADER] != '<script>'


def test_unknown_route_uses_error_envelope(client):
    response = client.get('/nowhere')
    body = response.get_json()

    assert response.status_code == 404
    assert body['success'] is False
    assert body['data'] is None
    assert body['error']['code'] == 'NOT_FOUND'
    assert body['meta']['requestId'] == response.headers[REQUEST_ID_HEADER]


def test_unexpected_errors_are_generic(app, client):
    @app.route('/boom')
    def boom():
        raise RuntimeError('secret internals')

    response = client.get('/boom')
    body = response.get_json()

    assert response.status_code == 500
    assert body['error']['code'] == 'INTERNAL_SERVER_ERROR'
    assert 'secret' not in body['message']

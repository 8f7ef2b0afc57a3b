from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from salon_booking.errors import AppError, ErrorCode, ERROR_MESSAGES
from salon_booking.models.base import utcnow
from salon_booking.utils.request_id import get_request_id


def _meta():
    return {
        'timestamp': utcnow().isoformat() + 'Z',
        'requestId': get_request_id(),
    }


def success_response(data=None, status=200, message=None):
    payload = {'success': True, 'data': data}
    if message:
        payload['message'] = message
    payload['meta'] = _meta()
    return jsonify(payload), status


def error_response(code, message, status, details=None):
    error = {'code': code}
    if details:
        error['details'] = details
    payload = {
        'success': False,
        'data': None,
        'message': message,
        'error': error,
        'meta': _meta(),
    }
    return jsonify(payload), status


def register_error_handlers(app):
    """Every error leaves the API as the same JSON envelope"""

    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{error.code.value}: {error.message}")
        body = error.to_dict()
        return error_response(body['code'], error.message, error.status_code, body.get('details'))

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return error_response(error.name.upper().replace(' ', '_'), error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        current_app.logger.exception(f"Unhandled error: {error}")
        code = ErrorCode.INTERNAL_SERVER_ERROR
        return error_response(code.value, ERROR_MESSAGES[code], 500)

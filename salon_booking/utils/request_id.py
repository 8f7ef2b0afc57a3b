import logging
import uuid

from flask import g, has_request_context, request

REQUEST_ID_HEADER = 'X-Request-ID'
LOG_FORMAT = '%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s'


def get_request_id():
    if has_request_context():
        return getattr(g, 'request_id', None)
    return None


class RequestIdFilter(logging.Filter):
    """Stamp every log record with the current request id ('-' outside requests)"""

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        return True


def init_request_id(app):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())

    # app.logger is the 'salon_booking' logger; module loggers below it propagate here
    app.logger.handlers = [handler]
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    app.logger.propagate = False

    @app.before_request
    def assign_request_id():
        incoming = request.headers.get(REQUEST_ID_HEADER, '')
        # Accept a caller supplied id only if it looks sane
        if incoming and len(incoming) <= 64 and incoming.replace('-', '').isalnum():
            g.request_id = incoming
        else:
            g.request_id = str(uuid.uuid4())

    @app.after_request
    def add_request_id_header(response):
        request_id = get_request_id()
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response

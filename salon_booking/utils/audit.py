from flask import request, current_app, has_request_context
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from salon_booking.models.audit import AuditLog
from salon_booking.utils.request_id import get_request_id
from salon_booking import db


def log_audit(action, entity_type, entity_id=None, details=None, user_id=None):
    """
    Log an audit entry

    Called after the audited unit of work has committed, so a failure here
    never rolls back the change itself.

    Parameters:
    - action: The action performed (e.g., 'create', 'update', 'cancel')
    - entity_type: The type of entity affected (e.g., 'appointment', 'user')
    - entity_id: ID of the affected entity (optional)
    - details: Additional details about the action (optional)
    - user_id: Acting user, defaults to the authenticated user
    """
    try:
        ip_address = None
        request_id = None
        if has_request_context():
            # Get user ID if logged in
            if user_id is None and current_user and current_user.is_authenticated:
                user_id = current_user.id
            ip_address = request.remote_addr
            request_id = get_request_id()

        audit_entry = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=AuditLog.encode_details(details),
            ip_address=ip_address,
            request_id=request_id
        )

        db.session.add(audit_entry)
        db.session.commit()

        return True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to log audit entry: {e}")
        return False

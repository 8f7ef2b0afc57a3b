from flask import Blueprint
from flask_login import current_user

from salon_booking.accounts import get_deactivation_service
from salon_booking.auth.decorators import roles_required
from salon_booking.models.user import ROLE_ADMIN
from salon_booking.utils.responses import success_response

users_bp = Blueprint('users', __name__, url_prefix='/users')


@users_bp.route('/<user_id>/deactivate', methods=['PATCH'])
@roles_required(ROLE_ADMIN)
def deactivate_user(user_id):
    """Admin initiated deactivation; same cascade as self-deactivation"""
    result = get_deactivation_service().deactivate_account(user_id, initiated_by=current_user.id)
    return success_response(result.to_dict(), message='User deactivated')


@users_bp.route('/<user_id>/reactivate', methods=['PATCH'])
@roles_required(ROLE_ADMIN)
def reactivate_user(user_id):
    data = get_deactivation_service().reactivate_account(user_id, initiated_by=current_user.id)
    return success_response(data, message='User reactivated')

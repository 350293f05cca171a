from flask import Blueprint
from flask_jwt_extended import current_user, jwt_required
from tiva.middleware import API_TOKEN_LOCATIONS
from tiva.services import password_service
from tiva.services.audit_service import audit_for_user, log_audit
from tiva.utils import api_success, get_json_body
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('password', __name__)


@bp.route('/forgot', methods=['POST'])
def forgot():
    data = get_json_body()
    user = password_service.forgot_password(data.get('email'))
    if user is not None:
        audit_for_user(user, 'PASSWORD_RESET_REQUESTED',
                       target_type='USER', target_id=user.id)
    return api_success(message=password_service.FORGOT_PASSWORD_MESSAGE)


@bp.route('/verify/<token>', methods=['GET'])
def verify(token):
    user = password_service.find_by_token(token)
    return api_success(
        {'email': user.email, 'name': user.name},
        message='Token is valid',
    )


@bp.route('/reset', methods=['POST'])
def reset():
    data = get_json_body()
    user = password_service.reset_password(
        data.get('token'), data.get('newPassword'))
    audit_for_user(user, 'PASSWORD_RESET', target_type='USER',
                   target_id=user.id)
    return api_success(message='Password reset successfully')


@bp.route('/change', methods=['POST'])
@jwt_required(locations=API_TOKEN_LOCATIONS)
def change():
    data = get_json_body()
    user = current_user
    password_service.change_password(
        user, data.get('currentPassword'), data.get('newPassword'))
    log_audit(
        actor_id=user.id,
        actor_role=user.role.value,
        store_id=user.store_id,
        action='PASSWORD_CHANGED',
        target_type='USER',
        target_id=user.id,
    )
    return api_success(message='Password updated successfully')

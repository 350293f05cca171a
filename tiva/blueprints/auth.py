from flask import Blueprint
from flask_jwt_extended import current_user, jwt_required
from tiva.middleware import API_TOKEN_LOCATIONS
from tiva.services import auth_service
from tiva.services.audit_service import audit_for_user, log_audit
from tiva.services.errors import ServiceError
from tiva.utils import api_success, get_json_body
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)


@bp.route('/register', methods=['POST'])
def register():
    data = get_json_body()
    user, token = auth_service.register(data)
    audit_for_user(
        user,
        'REGISTER',
        target_type='STORE',
        target_id=user.store_id,
        payload={'email': user.email},
    )
    return api_success(
        auth_service.session_payload(user, token),
        message='User registered successfully',
        status=201,
    )


@bp.route('/login', methods=['POST'])
def login():
    data = get_json_body()
    try:
        user, token = auth_service.login(
            data.get('email'), data.get('password'))
    except ServiceError as e:
        if e.status_code == 401:
            log_audit(
                action='LOGIN_FAILED',
                target_type='USER',
                payload={'reason': e.message},
            )
        raise
    audit_for_user(user, 'LOGIN_SUCCESS', target_type='USER',
                   target_id=user.id)
    return api_success(
        auth_service.session_payload(user, token),
        message='Login successful',
    )


@bp.route('/me', methods=['GET'])
@jwt_required(locations=API_TOKEN_LOCATIONS)
def me():
    return api_success(auth_service.session_payload(current_user))


@bp.route('/logout', methods=['POST'])
@jwt_required(locations=API_TOKEN_LOCATIONS)
def logout():
    # Tokens are stateless; the client simply discards its copy.
    audit_for_user(current_user, 'LOGOUT', target_type='USER',
                   target_id=current_user.id)
    return api_success(message='Logged out successfully')

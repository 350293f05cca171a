from flask_jwt_extended import create_access_token
from tiva.extensions import db
from tiva.models import User, UserRole
from tiva.services import email_service, store_service
from tiva.services.errors import ServiceError
from tiva.services.password_service import validate_new_password
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials'


class AuthError(ServiceError):
    status_code = 401


def issue_token(user):
    return create_access_token(identity=str(user.id))


def session_payload(user, token=None):
    store = user.store
    payload = {
        'user': user.to_dict(),
        'store': store.to_dict() if store else None,
        'storeId': user.store_id,
    }
    if token is not None:
        payload['token'] = token
    return payload


def register(data):
    name = str(data.get('name') or '').strip()
    email = str(data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    store_name = str(data.get('storeName') or '').strip()

    if not name or not email or not password or not store_name:
        raise ServiceError(
            'Name, email, password and store name are required')
    if len(name) > 100:
        raise ServiceError('Name must be at most 100 characters')
    validate_new_password(password)

    if User.query.filter_by(email=email).first() is not None:
        raise ServiceError('User already exists with this email')

    try:
        user = User(name=name, email=email, role=UserRole.OWNER)
        if data.get('phone'):
            user.phone = str(data.get('phone')).strip()
    except ValueError as e:
        raise ServiceError(str(e))
    user.set_password(password)
    db.session.add(user)
    db.session.flush()

    store = store_service.create_store(user, store_name)
    db.session.commit()
    logger.info(f"Registered user {user.id} with store {store.catalog_id}")

    try:
        email_service.send_welcome_email(user, store)
    except email_service.EmailDeliveryError as e:
        logger.warning(f"Welcome email to user {user.id} not sent: {e}")

    return user, issue_token(user)


def login(email, password):
    email = str(email or '').strip().lower()
    if not email or not password:
        raise ServiceError('Email and password are required')

    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        raise AuthError(INVALID_CREDENTIALS)
    if not user.is_active:
        raise AuthError('Account deactivated')

    user.last_login_at = datetime.utcnow()
    db.session.commit()
    return user, issue_token(user)

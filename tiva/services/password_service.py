from flask import current_app
from tiva.extensions import db
from tiva.models import User
from tiva.services import email_service
from tiva.services.errors import ServiceError
from datetime import datetime
import logging
import secrets

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    'If the email exists in our system, you will receive a link '
    'to reset your password'
)
INVALID_TOKEN_MESSAGE = 'Invalid or expired token'


def validate_new_password(password, label='Password'):
    min_length = current_app.config['MIN_PASSWORD_LENGTH']
    if not password or len(password) < min_length:
        raise ServiceError(
            f'{label} must be at least {min_length} characters')
    return password


def reset_link(token):
    base = current_app.config['FRONTEND_URL'].rstrip('/')
    return f'{base}/reset-password?token={token}'


def forgot_password(email):
    """Start a reset; the answer never reveals whether the email exists."""
    email = str(email or '').strip().lower()
    if not email:
        raise ServiceError('Email is required')

    user = User.query.filter_by(email=email).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None

    user.reset_password_token = secrets.token_hex(
        current_app.config['RESET_TOKEN_BYTES'])
    user.reset_password_expires = (
        datetime.utcnow() + current_app.config['RESET_TOKEN_TTL'])
    db.session.commit()

    try:
        email_service.send_password_reset_email(
            user, reset_link(user.reset_password_token))
    except email_service.EmailDeliveryError:
        # Compensate: without a delivered link the token must not linger.
        user.clear_reset_token()
        db.session.commit()
        raise
    return user


def find_by_token(token):
    token = str(token or '').strip()
    if not token:
        raise ServiceError('Token is required')
    user = User.query.filter(
        User.reset_password_token == token,
        User.reset_password_expires > datetime.utcnow(),
    ).first()
    if user is None:
        raise ServiceError(INVALID_TOKEN_MESSAGE)
    return user


def reset_password(token, new_password):
    if not token or not new_password:
        raise ServiceError('Token and new password are required')
    validate_new_password(new_password)
    user = find_by_token(token)
    user.set_password(new_password)
    user.clear_reset_token()
    db.session.commit()
    logger.info(f"Password reset completed for user {user.id}")
    return user


def change_password(user, current_password, new_password):
    if not current_password or not new_password:
        raise ServiceError(
            'Current password and new password are required')
    validate_new_password(new_password, 'New password')
    if not user.check_password(current_password):
        raise ServiceError('Current password is incorrect')
    user.set_password(new_password)
    db.session.commit()
    logger.info(f"Password changed for user {user.id}")
    return user

from flask import request, redirect, url_for, flash, abort
from flask_jwt_extended import (
    current_user,
    get_current_user,
    unset_jwt_cookies,
    verify_jwt_in_request,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from tiva.extensions import db, jwt
from tiva.models import TenantScope, User
from tiva.utils import api_error
from functools import wraps
import logging

logger = logging.getLogger(__name__)

API_TOKEN_LOCATIONS = ['headers']
PAGE_TOKEN_LOCATIONS = ['cookies']

NO_STORE_MESSAGE = 'No store associated with this user'


def is_static_file(path):
    return path.startswith('/static/')


def scope_for(user):
    if user is None or user.store_id is None:
        return None
    return TenantScope(
        store_id=user.store_id,
        user_id=user.id,
        role=user.role,
    )


@jwt.user_lookup_loader
def load_user(jwt_header, jwt_data):
    try:
        user_id = int(jwt_data['sub'])
    except (KeyError, TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


@jwt.unauthorized_loader
def missing_token(reason):
    return api_error('Access token required', 401)


@jwt.invalid_token_loader
def invalid_token(reason):
    logger.info(f"Rejected token: {reason}")
    return api_error('Invalid token', 401)


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_data):
    return api_error('Token expired', 401)


@jwt.user_lookup_error_loader
def unknown_user(jwt_header, jwt_data):
    logger.warning(f"Token subject {jwt_data.get('sub')} has no user")
    return api_error('User not found', 401)


def tenant_required(f):
    """Require a Bearer token and inject ``scope`` for the user's store."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request(locations=API_TOKEN_LOCATIONS)
        scope = scope_for(current_user)
        if scope is None:
            return api_error(NO_STORE_MESSAGE, 404)
        kwargs['scope'] = scope
        return f(*args, **kwargs)
    return decorated_function


def resolve_optional_scope(locations=None):
    try:
        verify_jwt_in_request(optional=True, locations=locations)
        return scope_for(get_current_user())
    except (JWTExtendedException, PyJWTError) as e:
        logger.debug(f"Ignoring unusable token on {request.path}: {e}")
        return None


def optional_identity(f):
    """Like tenant_required but never rejects; ``scope`` may be None."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        kwargs['scope'] = resolve_optional_scope()
        return f(*args, **kwargs)
    return decorated_function


def role_required(*allowed_roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request(locations=API_TOKEN_LOCATIONS)
            role = current_user.role.value
            if role not in allowed_roles:
                logger.warning(
                    "User %s attempted to access roles %s, current role: %s",
                    current_user.id,
                    allowed_roles,
                    role,
                )
                return api_error('Insufficient permissions', 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def page_login_required(f):
    """Dashboard pages: JWT from the access cookie, redirect on failure."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            verify_jwt_in_request(locations=PAGE_TOKEN_LOCATIONS)
            user = get_current_user()
        except (JWTExtendedException, PyJWTError) as e:
            logger.info(f"Dashboard access denied on {request.path}: {e}")
            flash('Please log in to continue', 'error')
            response = redirect(url_for('dashboard.login',
                                        next=request.full_path))
            unset_jwt_cookies(response)
            return response
        scope = scope_for(user)
        if scope is None:
            abort(404, description=NO_STORE_MESSAGE)
        kwargs['scope'] = scope
        return f(*args, **kwargs)
    return decorated_function


def setup_auth_middleware(app):

    @app.before_request
    def log_request():
        if is_static_file(request.path):
            return None
        logger.info(
            "%s %s from %s ua=%s",
            request.method,
            request.path,
            request.remote_addr,
            request.headers.get('User-Agent', '-'),
        )
        return None

from flask import has_request_context, request
import logging
import json

logger = logging.getLogger(__name__)
major_logger = logging.getLogger('major_events')

MAJOR_ACTION_PREFIXES = (
    'LOGIN',
    'LOGOUT',
    'REGISTER',
    'PASSWORD_',
    'ORDER_',
    'STORE_',
)


def setup_major_events_log(path='major_events.log'):
    if major_logger.handlers:
        return
    handler = logging.FileHandler(path)
    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    major_logger.addHandler(handler)
    major_logger.setLevel(logging.INFO)
    major_logger.propagate = False


def _should_log_major(action: str) -> bool:
    if not action:
        return False
    return action.startswith(MAJOR_ACTION_PREFIXES)


def _brief(payload):
    if payload is None:
        return None
    try:
        text = json.dumps(
            payload, ensure_ascii=False, default=str, separators=(',', ':'))
    except (TypeError, ValueError):
        return repr(payload)[:600]
    if len(text) > 600:
        text = text[:600] + '...'
    return text


def log_audit(
        actor_id=None,
        actor_role='ANONYMOUS',
        action='',
        store_id=None,
        target_type=None,
        target_id=None,
        payload=None):
    method = path = ip = None
    if has_request_context():
        method = request.method
        path = request.path
        ip = request.remote_addr

    payload_brief = _brief(payload)
    logger.info(
        "AUDIT action=%s actor_role=%s actor_id=%s store_id=%s "
        "target_type=%s target_id=%s method=%s path=%s ip=%s payload=%s",
        action,
        actor_role,
        actor_id,
        store_id,
        target_type,
        target_id,
        method,
        path,
        ip,
        payload_brief,
    )

    if _should_log_major(action):
        major_logger.info(
            "action=%s actor_role=%s actor_id=%s store_id=%s "
            "target_type=%s target_id=%s payload=%s",
            action,
            actor_role,
            actor_id,
            store_id,
            target_type,
            target_id,
            payload_brief,
        )


def audit_for_user(user, action, **kwargs):
    log_audit(
        actor_id=user.id if user else None,
        actor_role=user.role.value if user else 'ANONYMOUS',
        store_id=kwargs.pop('store_id', user.store_id if user else None),
        action=action,
        **kwargs)

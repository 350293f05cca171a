from flask import jsonify, request
from datetime import datetime, date, timezone
import logging

logger = logging.getLogger(__name__)


def wants_json_response() -> bool:
    accept = request.headers.get('Accept', '') or ''
    xrw = request.headers.get('X-Requested-With')
    return (
        request.path.startswith('/api/')
        or request.path == '/api'
        or request.is_json
        or ('application/json' in accept and 'text/html' not in accept)
        or (xrw == 'XMLHttpRequest')
    )


def api_success(data=None, message=None, status=200, pagination=None):
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    if pagination is not None:
        body['pagination'] = pagination
    return jsonify(body), status


def api_error(message, status=400, **extra):
    body = {'success': False, 'message': message}
    body.update(extra)
    return jsonify(body), status


def get_json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _as_positive_int(value, default):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return max(value, 1)


def page_params(args, default_limit=10):
    """Read page/limit from query args, both floored at 1."""
    page = _as_positive_int(args.get('page'), 1)
    limit = _as_positive_int(args.get('limit'), default_limit)
    return page, limit


def paginate_query(query, page=1, per_page=10):
    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    pages = (total + per_page - 1) // per_page if per_page else 0
    return {
        'items': items,
        'page': page,
        'limit': per_page,
        'pages': pages,
        'total': total,
    }


def pagination_meta(result):
    return {
        'page': result['page'],
        'limit': result['limit'],
        'total': result['total'],
        'pages': result['pages'],
    }


def parse_sort(raw, fields, default='-createdAt'):
    """Turn '-createdAt' into (column, descending) using a camelCase map.

    Unknown field names fall back to the default sort.
    """
    raw = (raw or '').strip()
    descending = raw.startswith('-')
    name = raw.lstrip('-+')
    if name not in fields:
        descending = default.startswith('-')
        name = default.lstrip('-')
    column = fields[name]
    return column.desc() if descending else column.asc()


def parse_date(value, end_of_day=False):
    """Parse an ISO date or datetime; None when empty.

    A bare date used as an upper bound covers the whole day.
    Raises ValueError on malformed input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        value = value.isoformat()
    value = str(value).strip()
    if not value:
        return None
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if end_of_day and len(value) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59,
                                microsecond=999999)
    return parsed

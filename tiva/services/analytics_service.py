from flask import current_app
from tiva.extensions import db
from tiva.models import Order, OrderChannel, OrderItem, TenantScope
from tiva.services.errors import ServiceError
from tiva.utils import parse_date
from datetime import datetime, timedelta
from functools import wraps
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)


def _aggregation(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Analytics {f.__name__} failed: {e}",
                         exc_info=True)
            db.session.rollback()
            raise ServiceError('Internal server error', 500)
    return wrapper


def date_range(date_from=None, date_to=None):
    try:
        start = parse_date(date_from)
        end = parse_date(date_to, end_of_day=True)
    except ValueError:
        raise ServiceError('Invalid date range')
    return start, end


def _order_filters(scope: TenantScope, start=None, end=None):
    if scope is None or scope.store_id is None:
        raise ValueError('Analytics queries require a tenant scope')
    filters = [Order.store_id == scope.store_id]
    if start is not None:
        filters.append(Order.created_at >= start)
    if end is not None:
        filters.append(Order.created_at <= end)
    return filters


def _float(value):
    return float(value) if value is not None else 0.0


def channel_percentages(counts):
    """Integer percentage per channel, each rounded half up on its own.

    The shares may not add up to exactly 100. Every channel is present;
    no orders means all zeros.
    """
    channels = [c.value for c in OrderChannel]
    total = sum(counts.get(c, 0) for c in channels)
    if total == 0:
        return {c: 0 for c in channels}
    # floor(count * 100 / total + 0.5) in integer arithmetic
    return {
        c: (counts.get(c, 0) * 200 + total) // (2 * total)
        for c in channels
    }


@_aggregation
def overview(scope: TenantScope, date_from=None, date_to=None):
    start, end = date_range(date_from, date_to)
    filters = _order_filters(scope, start, end)

    total_orders, total_revenue = db.session.query(
        func.count(Order.id),
        func.coalesce(func.sum(Order.total), 0),
    ).filter(*filters).one()

    qty = func.sum(OrderItem.quantity).label('qty')
    top = db.session.query(
        OrderItem.product_id,
        func.min(OrderItem.product_name),
        qty,
        func.sum(OrderItem.total),
    ).join(Order, Order.id == OrderItem.order_id).filter(
        *filters
    ).group_by(OrderItem.product_id).order_by(
        qty.desc(), OrderItem.product_id
    ).first()

    counts = dict(db.session.query(
        Order.channel,
        func.count(Order.id),
    ).filter(*filters).group_by(Order.channel).all())
    counts = {channel.value: count for channel, count in counts.items()}

    return {
        'totalOrders': total_orders,
        'totalRevenue': _float(total_revenue),
        'topProduct': {
            'name': top[1],
            'qty': int(top[2] or 0),
            'revenue': _float(top[3]),
        } if top else None,
        'channelBreakdown': channel_percentages(counts),
    }


@_aggregation
def top_products(scope: TenantScope, date_from=None, date_to=None,
                 limit=None):
    start, end = date_range(date_from, date_to)
    if limit is None:
        limit = current_app.config['TOP_PRODUCTS_LIMIT']
    try:
        limit = max(int(limit), 1)
    except (TypeError, ValueError):
        raise ServiceError('limit must be an integer')

    qty = func.sum(OrderItem.quantity).label('qty')
    rows = db.session.query(
        OrderItem.product_id,
        func.min(OrderItem.product_name),
        qty,
        func.sum(OrderItem.total),
        func.avg(OrderItem.price),
    ).join(Order, Order.id == OrderItem.order_id).filter(
        *_order_filters(scope, start, end)
    ).group_by(OrderItem.product_id).order_by(
        qty.desc(), OrderItem.product_id
    ).limit(limit).all()

    return [
        {
            'productId': product_id,
            'name': name,
            'qty': int(total_qty or 0),
            'revenue': _float(revenue),
            'avgPrice': _float(avg_price),
        }
        for product_id, name, total_qty, revenue, avg_price in rows
    ]


@_aggregation
def orders_by_day(scope: TenantScope, days=None):
    if days is None:
        days = current_app.config['ORDERS_BY_DAY_DAYS']
    try:
        days = max(int(days), 1)
    except (TypeError, ValueError):
        raise ServiceError('days must be an integer')
    since = datetime.utcnow() - timedelta(days=days)

    day = func.date(Order.created_at)
    rows = db.session.query(
        day,
        func.count(Order.id),
        func.coalesce(func.sum(Order.total), 0),
    ).filter(
        *_order_filters(scope, since)
    ).group_by(day).order_by(day).all()

    return [
        {
            'date': str(value)[:10],
            'count': count,
            'revenue': _float(revenue),
        }
        for value, count, revenue in rows
    ]


@_aggregation
def channel_stats(scope: TenantScope, date_from=None, date_to=None):
    start, end = date_range(date_from, date_to)
    count = func.count(Order.id).label('count')
    rows = db.session.query(
        Order.channel,
        count,
        func.coalesce(func.sum(Order.total), 0),
        func.avg(Order.total),
    ).filter(
        *_order_filters(scope, start, end)
    ).group_by(Order.channel).order_by(count.desc(), Order.channel).all()

    return [
        {
            'channel': channel.value,
            'count': total,
            'revenue': _float(revenue),
            'avgOrderValue': _float(avg_value),
        }
        for channel, total, revenue, avg_value in rows
    ]

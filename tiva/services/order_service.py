from flask import current_app
from tiva.extensions import db
from tiva.models import (
    ASSIGNABLE_ORDER_STATUSES,
    EMAIL_RE,
    PHONE_RE,
    Order,
    OrderChannel,
    OrderItem,
    OrderStatus,
    Product,
    ProductStatus,
    TenantScope,
    enum_from_value,
)
from tiva.services import store_service
from tiva.services.contact_links import build_contact_links
from tiva.services.errors import NotFoundError, ServiceError
from tiva.utils import page_params, paginate_query, parse_date, parse_sort
from decimal import Decimal, InvalidOperation
import logging

logger = logging.getLogger(__name__)

ORDER_NUMBER_FORMAT = 'ORD-%06d'

SORT_FIELDS = {
    'createdAt': Order.created_at,
    'updatedAt': Order.updated_at,
    'orderNumber': Order.order_number,
    'status': Order.status,
    'channel': Order.channel,
    'total': Order.total,
}


def next_order_number(store_id):
    # Count-then-insert is not atomic; the (store_id, order_number)
    # unique constraint rejects a concurrent duplicate.
    count = Order.query.filter_by(store_id=store_id).count()
    return ORDER_NUMBER_FORMAT % (count + 1)


def _money(value, label):
    if value in (None, ''):
        return Decimal('0')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ServiceError(f'{label} must be a number')
    if not amount.is_finite() or amount < 0:
        raise ServiceError(f'{label} must be zero or greater')
    return amount.quantize(Decimal('0.01'))


def _quantity(value):
    if isinstance(value, bool):
        raise ServiceError('Quantity must be a positive integer')
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ServiceError('Quantity must be a positive integer')
    return value


def _customer(data):
    customer = data.get('customer')
    if not isinstance(customer, dict):
        customer = {}
    name = str(customer.get('name') or '').strip()
    phone = str(customer.get('phone') or '').strip()
    if not name or not phone:
        raise ServiceError('Customer name and phone are required')
    if len(name) > 100:
        raise ServiceError('Customer name must be at most 100 characters')
    if not PHONE_RE.match(phone):
        raise ServiceError('Invalid customer phone')
    email = str(customer.get('email') or '').strip().lower() or None
    if email and not EMAIL_RE.match(email):
        raise ServiceError('Invalid customer email')
    return name, phone, email, customer


def _notes(*candidates):
    for value in candidates:
        value = str(value or '').strip()
        if value:
            if len(value) > 500:
                raise ServiceError('Notes must be at most 500 characters')
            return value
    return None


def _channel(value, default=None):
    if value in (None, '') and default is not None:
        return default
    channel = enum_from_value(OrderChannel, value)
    if channel is None:
        raise ServiceError('Invalid order channel')
    return channel


def _items(data):
    items = data.get('items')
    if not isinstance(items, list) or not items:
        raise ServiceError('Order must include at least one product')
    for item in items:
        if not isinstance(item, dict) or not item.get('productId'):
            raise ServiceError('Each item needs a productId')
    return items


def _lookup_product(store_id, product_id, active_only):
    scope = TenantScope(store_id=store_id)
    product = Product.get_scoped(scope, product_id)
    if product is None or not product.is_active:
        return None
    if active_only and product.status != ProductStatus.ACTIVE:
        return None
    return product


def _build_line(product, quantity, price=None, name=None):
    price = product.price if price is None else price
    return OrderItem(
        product_id=product.id,
        product_name=name or product.name,
        price=price,
        quantity=quantity,
        total=Decimal(price) * quantity,
    )


def _persist(order, lines):
    order.items = lines
    order.order_number = next_order_number(order.store_id)
    db.session.add(order)
    db.session.commit()
    return order


def create_order(scope: TenantScope, data):
    """Order entered by merchant staff from the dashboard or API."""
    store = store_service.get_store(scope)
    name, phone, email, _ = _customer(data)
    channel = data.get('channel')
    if not channel:
        raise ServiceError('Order channel is required')
    channel = _channel(channel)
    status = OrderStatus.CREATED
    if data.get('status'):
        status = enum_from_value(OrderStatus, data.get('status'))
        if status not in ASSIGNABLE_ORDER_STATUSES:
            raise ServiceError('Invalid order status')

    lines = []
    subtotal = Decimal('0')
    for item in _items(data):
        product = _lookup_product(store.id, item['productId'],
                                  active_only=False)
        if product is None:
            raise ServiceError(
                f"Product {item['productId']} not found in this store")
        quantity = _quantity(item.get('quantity'))
        price = None
        if item.get('price') not in (None, ''):
            price = _money(item.get('price'), 'Price')
        line = _build_line(product, quantity, price,
                           str(item.get('productName') or '').strip())
        subtotal += line.total
        lines.append(line)

    totals = data.get('totals') if isinstance(data.get('totals'), dict) \
        else {}
    shipping = _money(totals.get('shipping'), 'Shipping')
    tax = _money(totals.get('tax'), 'Tax')

    order = Order(
        store_id=store.id,
        customer_name=name,
        customer_phone=phone,
        customer_email=email,
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=subtotal + shipping + tax,
        currency=store.currency,
        status=status,
        channel=channel,
        notes=_notes(data.get('notes')),
        created_by=scope.user_id,
    )
    _persist(order, lines)
    logger.info(
        f"Order {order.order_number} created in store {store.id} "
        f"by user {scope.user_id}")
    return order


def create_public_order(catalog_id, data):
    """Order placed by an anonymous shopper from the public catalog.

    Returns the persisted order and the generated contact links.
    """
    store = store_service.get_store_by_catalog(catalog_id)
    name, phone, email, customer = _customer(data)
    items = data.get('items')
    if not isinstance(items, list) or not items:
        raise ServiceError('Order must include at least one product')

    lines = []
    total = Decimal('0')
    for item in items:
        product_id = item.get('productId') if isinstance(item, dict) \
            else None
        product = _lookup_product(store.id, product_id, active_only=True)
        if product is None:
            raise ServiceError(
                f'Product {product_id} not found or unavailable')
        quantity = _quantity(item.get('quantity'))
        if quantity > product.stock:
            raise ServiceError(f'Insufficient stock for {product.name}')
        line = _build_line(product, quantity)
        total += line.total
        lines.append(line)

    order = Order(
        store_id=store.id,
        customer_name=name,
        customer_phone=phone,
        customer_email=email,
        subtotal=total,
        shipping=Decimal('0'),
        tax=Decimal('0'),
        total=total,
        currency=store.currency,
        status=OrderStatus.PENDING,
        channel=_channel(data.get('channel'), OrderChannel.WHATSAPP),
        notes=_notes(customer.get('notes'), data.get('notes')),
        created_by=None,
    )
    order.items = lines
    order.order_number = next_order_number(store.id)
    links = build_contact_links(store, order, lines)
    order.whatsapp_link = links.get('whatsapp')
    order.sms_link = links.get('sms')
    db.session.add(order)
    db.session.commit()
    logger.info(
        f"Public order {order.order_number} created in store {store.id} "
        f"channel={order.channel.value}")
    return order, links


def list_orders(scope: TenantScope, args):
    page, limit = page_params(args, current_app.config['ORDERS_PER_PAGE'])
    query = Order.scoped(scope)

    if args.get('status'):
        status = enum_from_value(OrderStatus, args.get('status'))
        if status is None:
            raise ServiceError('Invalid order status')
        query = query.filter(Order.status == status)
    if args.get('channel'):
        query = query.filter(Order.channel == _channel(args.get('channel')))

    try:
        start = parse_date(args.get('startDate'))
        end = parse_date(args.get('endDate'), end_of_day=True)
    except ValueError:
        raise ServiceError('Invalid date filter')
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        query = query.filter(Order.created_at <= end)

    query = query.order_by(
        parse_sort(args.get('sort'), SORT_FIELDS), Order.id.desc())
    return paginate_query(query, page, limit)


def get_order(scope: TenantScope, order_id):
    order = Order.get_scoped(scope, order_id)
    if order is None:
        raise NotFoundError('Order not found')
    return order


def update_status(scope: TenantScope, order_id, status):
    new_status = enum_from_value(OrderStatus, status)
    if new_status not in ASSIGNABLE_ORDER_STATUSES:
        raise ServiceError('Invalid order status')
    order = get_order(scope, order_id)
    previous = order.status
    order.status = new_status
    db.session.commit()
    logger.info(
        f"Order {order.order_number} status {previous.value} -> "
        f"{new_status.value}")
    return order, previous


def latest_orders(scope: TenantScope, limit=5):
    return Order.scoped(scope).order_by(
        Order.created_at.desc(), Order.id.desc()).limit(limit).all()

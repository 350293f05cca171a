from flask import (
    Blueprint,
    request,
    render_template,
    redirect,
    url_for,
    flash,
)
from tiva.middleware import resolve_optional_scope
from tiva.models import OrderChannel
from tiva.services import order_service, product_service, store_service
from tiva.services.audit_service import log_audit
from tiva.services.contact_links import format_amount
from tiva.services.errors import ServiceError
from tiva.utils import pagination_meta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('storefront', __name__)


@bp.app_template_filter('money')
def money_filter(value):
    return format_amount(value)


def _cart_items(form):
    items = []
    for key, value in form.items():
        if not key.startswith('qty_'):
            continue
        value = (value or '').strip()
        if not value or value == '0':
            continue
        quantity = int(value) if value.isdigit() else value
        items.append({'productId': key[len('qty_'):], 'quantity': quantity})
    return items


def _render_catalog(store, form=None, status=200):
    result = product_service.list_public_products(store, request.args)
    return render_template(
        'storefront/catalog.html',
        store=store,
        products=result['items'],
        pagination=pagination_meta(result),
        search=request.args.get('search', ''),
        channels=[
            c.value for c in (OrderChannel.WHATSAPP, OrderChannel.SMS)
        ],
        form=form or {},
    ), status


@bp.route('/')
def index():
    return render_template('landing.html')


@bp.route('/reset-password')
def reset_password_link():
    # Reset emails point at FRONTEND_URL/reset-password.
    return redirect(url_for('dashboard.reset_password',
                            token=request.args.get('token', '')))


@bp.route('/catalog/<catalog_id>', methods=['GET'])
def catalog(catalog_id):
    store = store_service.get_store_by_catalog(catalog_id)
    store_service.record_view(store, resolve_optional_scope(['cookies']))
    return _render_catalog(store)


@bp.route('/catalog/<catalog_id>', methods=['POST'])
def place_order(catalog_id):
    store = store_service.get_store_by_catalog(catalog_id)
    form = request.form
    payload = {
        'customer': {
            'name': form.get('customer_name', ''),
            'phone': form.get('customer_phone', ''),
            'email': form.get('customer_email', ''),
            'notes': form.get('notes', ''),
        },
        'items': _cart_items(form),
        'channel': form.get('channel') or OrderChannel.WHATSAPP.value,
    }
    try:
        order, links = order_service.create_public_order(catalog_id, payload)
    except ServiceError as e:
        logger.info(f"Storefront order rejected for {catalog_id}: {e}")
        flash(e.message, 'error')
        return _render_catalog(store, form=form, status=e.status_code)

    log_audit(
        action='ORDER_PUBLIC_CREATED',
        store_id=store.id,
        target_type='ORDER',
        target_id=order.id,
        payload={'orderNumber': order.order_number, 'via': 'storefront'},
    )
    return render_template(
        'storefront/confirmation.html',
        store=store,
        order=order,
        links=links,
    ), 201
from flask import Blueprint, request
from tiva.middleware import optional_identity
from tiva.services import order_service, product_service, store_service
from tiva.services.audit_service import log_audit
from tiva.utils import api_success, get_json_body, pagination_meta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('public', __name__)


@bp.route('/catalog/<catalog_id>', methods=['GET'])
@optional_identity
def catalog_info(catalog_id, scope=None):
    store = store_service.get_store_by_catalog(catalog_id)
    store_service.record_view(store, scope)
    return api_success(store.to_public_dict())


@bp.route('/catalog/<catalog_id>/products', methods=['GET'])
def catalog_products(catalog_id):
    store = store_service.get_store_by_catalog(catalog_id)
    result = product_service.list_public_products(store, request.args)
    return api_success({
        'products': [p.to_public_dict() for p in result['items']],
        'pagination': pagination_meta(result),
    })


@bp.route('/catalog/<catalog_id>/order', methods=['POST'])
def create_order(catalog_id):
    order, links = order_service.create_public_order(
        catalog_id, get_json_body())
    log_audit(
        action='ORDER_PUBLIC_CREATED',
        store_id=order.store_id,
        target_type='ORDER',
        target_id=order.id,
        payload={
            'orderNumber': order.order_number,
            'total': float(order.total),
            'channel': order.channel.value,
        },
    )
    return api_success(
        {
            'orderId': order.id,
            'orderNumber': order.order_number,
            'total': float(order.total),
            'contactLinks': links,
        },
        message='Order created successfully',
        status=201,
    )

from flask import Blueprint, request
from flask_jwt_extended import current_user
from tiva.middleware import tenant_required
from tiva.models import TenantScope
from tiva.services import order_service
from tiva.services.audit_service import audit_for_user
from tiva.utils import api_success, get_json_body, pagination_meta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('orders', __name__)


@bp.route('', methods=['GET'])
@tenant_required
def list_orders(scope: TenantScope):
    result = order_service.list_orders(scope, request.args)
    return api_success(
        [o.to_dict() for o in result['items']],
        pagination=pagination_meta(result),
    )


@bp.route('/<int:order_id>', methods=['GET'])
@tenant_required
def get_order(scope: TenantScope, order_id):
    order = order_service.get_order(scope, order_id)
    return api_success(order.to_dict())


@bp.route('', methods=['POST'])
@tenant_required
def create_order(scope: TenantScope):
    order = order_service.create_order(scope, get_json_body())
    audit_for_user(
        current_user,
        'ORDER_CREATED',
        target_type='ORDER',
        target_id=order.id,
        payload={
            'orderNumber': order.order_number,
            'total': float(order.total),
            'channel': order.channel.value,
        },
    )
    return api_success(
        order.to_dict(),
        message='Order created successfully',
        status=201,
    )


@bp.route('/<int:order_id>/status', methods=['PATCH'])
@tenant_required
def update_order_status(scope: TenantScope, order_id):
    data = get_json_body()
    order, previous = order_service.update_status(
        scope, order_id, data.get('status'))
    audit_for_user(
        current_user,
        'ORDER_STATUS_CHANGED',
        target_type='ORDER',
        target_id=order.id,
        payload={'from': previous.value, 'to': order.status.value},
    )
    return api_success(
        order.to_dict(),
        message='Order status updated successfully',
    )

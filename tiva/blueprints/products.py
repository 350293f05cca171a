from flask import Blueprint, request
from flask_jwt_extended import current_user
from tiva.middleware import tenant_required
from tiva.models import TenantScope
from tiva.services import product_service
from tiva.services.audit_service import audit_for_user
from tiva.utils import api_success, get_json_body, pagination_meta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('products', __name__)


def _audit(action, product, payload=None):
    audit_for_user(
        current_user,
        action,
        target_type='PRODUCT',
        target_id=product.id,
        payload=payload,
    )


@bp.route('', methods=['GET'])
@tenant_required
def list_products(scope: TenantScope):
    result = product_service.list_products(scope, request.args)
    return api_success(
        [p.to_dict() for p in result['items']],
        pagination=pagination_meta(result),
    )


@bp.route('/<int:product_id>', methods=['GET'])
@tenant_required
def get_product(scope: TenantScope, product_id):
    product = product_service.get_product(scope, product_id)
    return api_success(product.to_dict())


@bp.route('', methods=['POST'])
@tenant_required
def create_product(scope: TenantScope):
    product = product_service.create_product(scope, get_json_body())
    _audit('PRODUCT_CREATED', product, {'name': product.name})
    return api_success(
        product.to_dict(),
        message='Product created successfully',
        status=201,
    )


@bp.route('/<int:product_id>', methods=['PATCH'])
@tenant_required
def update_product(scope: TenantScope, product_id):
    data = get_json_body()
    product = product_service.update_product(scope, product_id, data)
    _audit('PRODUCT_UPDATED', product, {'fields': sorted(data.keys())})
    return api_success(
        product.to_dict(),
        message='Product updated successfully',
    )


@bp.route('/<int:product_id>/archive', methods=['PATCH'])
@tenant_required
def archive_product(scope: TenantScope, product_id):
    product = product_service.archive_product(scope, product_id)
    _audit('PRODUCT_ARCHIVED', product)
    return api_success(
        product.to_dict(),
        message='Product archived successfully',
    )


@bp.route('/<int:product_id>', methods=['DELETE'])
@tenant_required
def delete_product(scope: TenantScope, product_id):
    product = product_service.delete_product(scope, product_id)
    _audit('PRODUCT_DELETED', product)
    return api_success(message='Product deleted successfully')

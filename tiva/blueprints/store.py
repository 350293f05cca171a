from flask import Blueprint
from flask_jwt_extended import current_user
from tiva.middleware import role_required, tenant_required
from tiva.models import TenantScope
from tiva.services import store_service
from tiva.services.audit_service import audit_for_user
from tiva.utils import api_success, get_json_body
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('store', __name__)


@bp.route('/me', methods=['GET'])
@tenant_required
def get_my_store(scope: TenantScope):
    store = store_service.get_store(scope)
    return api_success(store.to_dict())


@bp.route('/me', methods=['PUT'])
@tenant_required
@role_required('owner')
def update_my_store(scope: TenantScope):
    data = get_json_body()
    store, changed = store_service.update_store(scope, data)
    audit_for_user(
        current_user,
        'STORE_UPDATED',
        target_type='STORE',
        target_id=store.id,
        payload={'fields': changed},
    )
    return api_success(store.to_dict(), message='Store updated successfully')


@bp.route('/catalog-url', methods=['GET'])
@tenant_required
def catalog_url(scope: TenantScope):
    store = store_service.get_store(scope)
    return api_success({
        'catalogUrl': store_service.catalog_link(store),
        'storeName': store.name,
    })

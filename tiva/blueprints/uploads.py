from flask import Blueprint, request
from tiva.middleware import tenant_required
from tiva.models import TenantScope
from tiva.services import upload_service
from tiva.utils import api_success
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('uploads', __name__)


@bp.route('', methods=['POST'])
@tenant_required
def upload_image(scope: TenantScope):
    result = upload_service.upload_image(scope, request.files.get('image'))
    return api_success(result, message='Image uploaded successfully')


@bp.route('/multiple', methods=['POST'])
@tenant_required
def upload_multiple(scope: TenantScope):
    result = upload_service.upload_images(
        scope, request.files.getlist('images'))
    return api_success(
        result,
        message=f"{result['total_uploaded']} image(s) uploaded successfully",
    )


@bp.route('', methods=['GET'])
@tenant_required
def list_images(scope: TenantScope):
    return api_success(upload_service.list_images(
        scope, request.args.get('max_results', 50)))


@bp.route('/<path:public_id>', methods=['GET'])
@tenant_required
def image_info(scope: TenantScope, public_id):
    return api_success(upload_service.get_image_info(scope, public_id))


@bp.route('/<path:public_id>', methods=['DELETE'])
@tenant_required
def delete_image(scope: TenantScope, public_id):
    result = upload_service.delete_image(scope, public_id)
    return api_success(result, message='Image deleted successfully')

from flask import Blueprint, request
from tiva.middleware import tenant_required
from tiva.models import TenantScope
from tiva.services import analytics_service
from tiva.utils import api_success
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('analytics', __name__)


@bp.route('/overview', methods=['GET'])
@tenant_required
def overview(scope: TenantScope):
    return api_success(analytics_service.overview(
        scope, request.args.get('from'), request.args.get('to')))


@bp.route('/top-products', methods=['GET'])
@tenant_required
def top_products(scope: TenantScope):
    return api_success(analytics_service.top_products(
        scope,
        request.args.get('from'),
        request.args.get('to'),
        request.args.get('limit'),
    ))


@bp.route('/orders-by-day', methods=['GET'])
@tenant_required
def orders_by_day(scope: TenantScope):
    return api_success(analytics_service.orders_by_day(
        scope, request.args.get('days')))


@bp.route('/channel-stats', methods=['GET'])
@tenant_required
def channel_stats(scope: TenantScope):
    return api_success(analytics_service.channel_stats(
        scope, request.args.get('from'), request.args.get('to')))

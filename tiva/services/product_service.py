from flask import current_app
from tiva.extensions import db
from tiva.models import (
    Product,
    ProductStatus,
    TenantScope,
    enum_from_value,
)
from tiva.services import store_service
from tiva.services.errors import NotFoundError, ServiceError
from tiva.utils import page_params, paginate_query, parse_sort
from decimal import Decimal, InvalidOperation
from sqlalchemy import or_
import logging

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'createdAt': Product.created_at,
    'updatedAt': Product.updated_at,
    'name': Product.name,
    'price': Product.price,
    'stock': Product.stock,
    'status': Product.status,
}


def _parse_price(value):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ServiceError('Price must be a number')
    if not price.is_finite() or price < 0:
        raise ServiceError('Price must be zero or greater')
    return price.quantize(Decimal('0.01'))


def _parse_stock(value):
    try:
        stock = int(value)
    except (TypeError, ValueError):
        raise ServiceError('Stock must be an integer')
    if isinstance(value, float) and not value.is_integer():
        raise ServiceError('Stock must be an integer')
    if stock < 0:
        raise ServiceError('Stock must be zero or greater')
    return stock


def _parse_status(value):
    status = enum_from_value(ProductStatus, value)
    if status is None:
        raise ServiceError('Invalid product status')
    return status


def _parse_list(value, label):
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    if not isinstance(value, (list, tuple)):
        raise ServiceError(f'{label} must be a list')
    return list(value)


def _apply_fields(product, data, creating=False):
    if creating or 'name' in data:
        name = str(data.get('name') or '').strip()
        if not name:
            raise ServiceError('Product name is required')
        if len(name) > 200:
            raise ServiceError('Product name must be at most 200 characters')
        product.name = name
    if 'description' in data:
        description = str(data.get('description') or '').strip() or None
        if description and len(description) > 1000:
            raise ServiceError(
                'Description must be at most 1000 characters')
        product.description = description
    if creating or 'price' in data:
        if data.get('price') in (None, ''):
            raise ServiceError('Price is required')
        product.price = _parse_price(data.get('price'))
    if 'stock' in data:
        product.stock = _parse_stock(data.get('stock'))
    elif creating:
        product.stock = 0
    if 'status' in data:
        product.status = _parse_status(data.get('status'))

    # Model validators normalise these and raise ValueError on bad input.
    try:
        if 'tags' in data:
            product.tags = _parse_list(data.get('tags'), 'tags')
        if 'imageUrls' in data:
            product.image_urls = _parse_list(data.get('imageUrls'),
                                             'imageUrls')
    except ValueError as e:
        raise ServiceError(str(e))


def list_products(scope: TenantScope, args):
    page, limit = page_params(
        args, current_app.config['PRODUCTS_PER_PAGE'])
    query = Product.scoped(scope).filter(Product.is_active.is_(True))

    status = (args.get('status') or 'active').strip().lower()
    if status != 'all':
        query = query.filter(Product.status == _parse_status(status))

    q = (args.get('q') or '').strip()
    if q:
        pattern = f'%{q}%'
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.tags_text.ilike(pattern.lower()),
            )
        )

    query = query.order_by(
        parse_sort(args.get('sort'), SORT_FIELDS), Product.id.desc())
    return paginate_query(query, page, limit)


def get_product(scope: TenantScope, product_id):
    product = Product.get_scoped(scope, product_id)
    if product is None or not product.is_active:
        raise NotFoundError('Product not found')
    return product


def create_product(scope: TenantScope, data):
    product = Product(
        store_id=scope.store_id,
        created_by=scope.user_id,
        status=ProductStatus.ACTIVE,
        tags=[],
        image_urls=[],
    )
    _apply_fields(product, data, creating=True)
    db.session.add(product)
    db.session.flush()
    store_service.refresh_product_count(scope.store_id)
    db.session.commit()
    logger.info(
        f"Product {product.id} created in store {scope.store_id}")
    return product


def update_product(scope: TenantScope, product_id, data):
    product = get_product(scope, product_id)
    _apply_fields(product, data)
    db.session.commit()
    logger.info(f"Product {product.id} updated in store {scope.store_id}")
    return product


def archive_product(scope: TenantScope, product_id):
    product = get_product(scope, product_id)
    product.status = ProductStatus.ARCHIVED
    db.session.commit()
    return product


def delete_product(scope: TenantScope, product_id):
    product = get_product(scope, product_id)
    product.is_active = False
    db.session.flush()
    store_service.refresh_product_count(scope.store_id)
    db.session.commit()
    logger.info(f"Product {product.id} deleted in store {scope.store_id}")
    return product


def list_public_products(store, args):
    page, limit = page_params(args, current_app.config['CATALOG_PER_PAGE'])
    scope = TenantScope(store_id=store.id)
    query = Product.scoped(scope).filter(
        Product.is_active.is_(True),
        Product.status == ProductStatus.ACTIVE,
    )
    search = (args.get('search') or '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.tags_text.ilike(pattern.lower()),
            )
        )
    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    return paginate_query(query, page, limit)


def latest_active(scope: TenantScope, limit=5):
    return Product.scoped(scope).filter(
        Product.is_active.is_(True),
        Product.status == ProductStatus.ACTIVE,
    ).order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()

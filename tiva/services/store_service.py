from flask import current_app
from tiva.extensions import db
from tiva.models import (
    Currency,
    Product,
    Store,
    TenantScope,
    UserRole,
    default_store_settings,
    enum_from_value,
    PHONE_RE,
)
from tiva.services.errors import NotFoundError, ServiceError
from datetime import datetime
import logging
import re

logger = logging.getLogger(__name__)

# Fields a store owner may change; anything else in the payload is ignored.
UPDATABLE_FIELDS = {
    'name': 'name',
    'description': 'description',
    'logo': 'logo',
    'whatsappNumber': 'whatsapp_number',
    'smsNumber': 'sms_number',
    'currency': 'currency',
    'language': 'language',
    'settings': 'settings',
}

SETTINGS_SECTIONS = ('theme', 'contact', 'social')


def slugify(name):
    slug = re.sub(r'[^a-z0-9]+', '-', str(name or '').lower())
    slug = slug.strip('-')
    return slug or 'store'


def unique_catalog_id(name):
    base = slugify(name)
    candidate = base
    suffix = 2
    while Store.query.filter_by(catalog_id=candidate).first() is not None:
        candidate = f'{base}-{suffix}'
        suffix += 1
    return candidate


def create_store(owner, name, **fields):
    """Create a store owned by an already flushed ``owner``; caller commits."""
    name = str(name or '').strip()
    if not name:
        raise ServiceError('Store name is required')
    if len(name) > 100:
        raise ServiceError('Store name must be at most 100 characters')

    catalog_id = unique_catalog_id(name)
    store = Store(
        name=name,
        description=fields.get('description'),
        catalog_id=catalog_id,
        catalog_url=f'/catalog/{catalog_id}',
        currency=enum_from_value(
            Currency,
            fields.get('currency') or current_app.config['DEFAULT_CURRENCY'],
        ) or Currency.COP,
        language=fields.get('language')
        or current_app.config['DEFAULT_LANGUAGE'],
        settings=default_store_settings(),
        owner_id=owner.id,
    )
    db.session.add(store)
    db.session.flush()
    owner.store_id = store.id
    owner.role = UserRole.OWNER
    logger.info(f"Store {store.catalog_id} created for user {owner.id}")
    return store


def get_store(scope: TenantScope):
    store = db.session.get(Store, scope.store_id)
    if store is None:
        raise NotFoundError('Store not found')
    return store


def get_store_by_catalog(catalog_id):
    store = Store.query.filter_by(
        catalog_id=str(catalog_id or '').strip().lower(),
        is_active=True,
    ).first()
    if store is None:
        raise NotFoundError('Catalog not found')
    return store


def _merge_settings(current, incoming):
    if not isinstance(incoming, dict):
        raise ServiceError('settings must be an object')
    merged = default_store_settings()
    for section in SETTINGS_SECTIONS:
        merged[section].update((current or {}).get(section) or {})
        value = incoming.get(section)
        if value is None:
            continue
        if not isinstance(value, dict):
            raise ServiceError(f'settings.{section} must be an object')
        for key, item in value.items():
            if key in merged[section]:
                merged[section][key] = '' if item is None else str(item)
    return merged


def _clean_phone(label, value):
    value = str(value or '').strip()
    if value and not PHONE_RE.match(value):
        raise ServiceError(f'Invalid {label}')
    return value or None


def update_store(scope: TenantScope, data):
    store = get_store(scope)
    changed = []
    for key, attr in UPDATABLE_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if attr == 'name':
            value = str(value or '').strip()
            if not value:
                raise ServiceError('Store name is required')
            if len(value) > 100:
                raise ServiceError(
                    'Store name must be at most 100 characters')
        elif attr == 'description':
            value = str(value or '').strip() or None
            if value and len(value) > 500:
                raise ServiceError(
                    'Description must be at most 500 characters')
        elif attr == 'logo':
            value = str(value or '').strip() or None
        elif attr == 'whatsapp_number':
            value = _clean_phone('WhatsApp number', value)
        elif attr == 'sms_number':
            value = _clean_phone('SMS number', value)
        elif attr == 'currency':
            currency = enum_from_value(Currency, value)
            if currency is None:
                raise ServiceError('Invalid currency')
            value = currency
        elif attr == 'language':
            value = str(value or '').strip() or current_app.config[
                'DEFAULT_LANGUAGE']
        elif attr == 'settings':
            value = _merge_settings(store.settings, value)
        setattr(store, attr, value)
        changed.append(key)

    db.session.commit()
    logger.info(f"Store {store.id} updated fields={changed}")
    return store, changed


def catalog_link(store):
    base = current_app.config['FRONTEND_URL'].rstrip('/')
    return f'{base}{store.catalog_url}'


def refresh_product_count(store_id):
    """Recount live products; caller commits."""
    store = db.session.get(Store, store_id)
    if store is None:
        return
    store.total_products = Product.query.filter_by(
        store_id=store_id, is_active=True).count()
    store.analytics_updated_at = datetime.utcnow()


def record_view(store, viewer_scope=None):
    # The store's own staff browsing their catalog are not visitors.
    if viewer_scope is not None and viewer_scope.store_id == store.id:
        return False
    Store.query.filter_by(id=store.id).update(
        {
            Store.total_views: Store.total_views + 1,
            Store.analytics_updated_at: datetime.utcnow(),
        },
        synchronize_session=False,
    )
    db.session.commit()
    return True

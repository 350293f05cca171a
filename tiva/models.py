from tiva.extensions import db
from werkzeug.security import generate_password_hash, check_password_hash
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlalchemy.orm import validates
import enum
import re


EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]{2,}$')
PHONE_RE = re.compile(r'^\+?[\d\s\-()]+$')
IMAGE_URL_RE = re.compile(
    r'^https?://.+\.(jpg|jpeg|png|gif|webp)$', re.IGNORECASE)


class UserRole(enum.Enum):
    OWNER = 'owner'
    STAFF = 'staff'


class Currency(enum.Enum):
    COP = 'COP'
    USD = 'USD'
    EUR = 'EUR'


class ProductStatus(enum.Enum):
    ACTIVE = 'active'
    ARCHIVED = 'archived'
    DRAFT = 'draft'


class OrderStatus(enum.Enum):
    # Storefront orders start here until the merchant picks them up.
    PENDING = 'pending'
    CREATED = 'created'
    SENT = 'sent'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


# Statuses a merchant may set through the status endpoint.
ASSIGNABLE_ORDER_STATUSES = (
    OrderStatus.CREATED,
    OrderStatus.SENT,
    OrderStatus.CONFIRMED,
    OrderStatus.CANCELLED,
    OrderStatus.COMPLETED,
)


class OrderChannel(enum.Enum):
    WHATSAPP = 'whatsapp'
    SMS = 'sms'
    WEB = 'web'
    PHONE = 'phone'


def enum_from_value(enum_cls, value):
    """Look up an enum member by its wire value; None when unknown."""
    if isinstance(value, enum_cls):
        return value
    wanted = str(value or '').strip().lower()
    for member in enum_cls:
        if member.value.lower() == wanted:
            return member
    return None


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return float(value) if value is not None else 0.0


def default_store_settings():
    return {
        'theme': {
            'primaryColor': '#3B82F6',
            'secondaryColor': '#10B981',
            'logo': '',
        },
        'contact': {'phone': '', 'email': '', 'address': ''},
        'social': {'whatsapp': '', 'instagram': '', 'facebook': ''},
    }


@dataclass(frozen=True)
class TenantScope:
    """Tenant identity every product/order query must be bound to."""
    store_id: int
    user_id: Optional[int] = None
    role: Optional[UserRole] = None


class TenantScopedMixin:

    @classmethod
    def scoped(cls, scope: TenantScope):
        if scope is None or scope.store_id is None:
            raise ValueError(f'{cls.__name__} queries require a tenant scope')
        return cls.query.filter(cls.store_id == scope.store_id)

    @classmethod
    def get_scoped(cls, scope: TenantScope, record_id):
        try:
            record_id = int(record_id)
        except (TypeError, ValueError):
            return None
        return cls.scoped(scope).filter(cls.id == record_id).first()


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    role = db.Column(
        db.Enum(UserRole),
        nullable=False,
        default=UserRole.OWNER)
    store_id = db.Column(
        db.Integer,
        db.ForeignKey('stores.id', name='fk_users_store_id'),
        nullable=True,
        index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login_at = db.Column(db.DateTime, nullable=True)
    avatar = db.Column(db.String(500), nullable=True)
    reset_password_token = db.Column(db.String(128), nullable=True, index=True)
    reset_password_expires = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    store = db.relationship(
        'Store',
        foreign_keys=[store_id],
        post_update=True)

    @validates('email')
    def validate_email(self, key, value):
        value = (value or '').strip().lower()
        if not EMAIL_RE.match(value):
            raise ValueError('Invalid email')
        return value

    @validates('phone')
    def validate_phone(self, key, value):
        if value and not PHONE_RE.match(value):
            raise ValueError('Invalid phone number')
        return value or None

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password or '')

    def clear_reset_token(self):
        self.reset_password_token = None
        self.reset_password_expires = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'role': self.role.value,
            'storeId': self.store_id,
            'isActive': self.is_active,
            'lastLogin': _iso(self.last_login_at),
            'avatar': self.avatar,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.email}>'


class Store(db.Model):
    __tablename__ = 'stores'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    logo = db.Column(db.String(500), nullable=True)
    whatsapp_number = db.Column(db.String(30), nullable=True)
    sms_number = db.Column(db.String(30), nullable=True)
    currency = db.Column(
        db.Enum(Currency),
        nullable=False,
        default=Currency.COP)
    language = db.Column(db.String(10), nullable=False, default='es')
    settings = db.Column(db.JSON, nullable=False, default=default_store_settings)
    catalog_id = db.Column(
        db.String(120),
        unique=True,
        nullable=False,
        index=True)
    catalog_url = db.Column(db.String(200), unique=True, nullable=False)
    owner_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id', use_alter=True, name='fk_stores_owner_id'),
        nullable=False,
        index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Embedded analytics counters
    total_views = db.Column(db.Integer, nullable=False, default=0)
    total_products = db.Column(db.Integer, nullable=False, default=0)
    analytics_updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    owner = db.relationship('User', foreign_keys=[owner_id])

    def get_stats(self):
        return {
            'totalViews': self.total_views or 0,
            'totalProducts': self.total_products or 0,
            'isActive': self.is_active,
            'createdAt': _iso(self.created_at),
            'lastUpdated': _iso(self.analytics_updated_at),
        }

    def to_public_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'logo': self.logo,
            'whatsappNumber': self.whatsapp_number,
            'smsNumber': self.sms_number,
            'currency': self.currency.value,
            'language': self.language,
            'catalogId': self.catalog_id,
        }

    def to_dict(self):
        data = self.to_public_dict()
        data.update({
            'settings': self.settings or default_store_settings(),
            'catalogUrl': self.catalog_url,
            'ownerId': self.owner_id,
            'analytics': self.get_stats(),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        })
        return data

    def __repr__(self):
        return f'<Store {self.catalog_id}>'


class Product(TenantScopedMixin, db.Model):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(
        db.Integer,
        db.ForeignKey('stores.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    created_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.String(1000), nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    image_urls = db.Column(db.JSON, nullable=False, default=list)
    tags = db.Column(db.JSON, nullable=False, default=list)
    # Lower-cased copy of tags for search; JSON text escapes non-ASCII
    tags_text = db.Column(db.Text, nullable=False, default='')
    status = db.Column(
        db.Enum(ProductStatus),
        default=ProductStatus.ACTIVE,
        nullable=False)
    # Soft delete
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    store = db.relationship('Store', backref='products')
    creator = db.relationship('User', foreign_keys=[created_by])

    __table_args__ = (
        CheckConstraint('price >= 0', name='check_product_price_positive'),
        CheckConstraint('stock >= 0', name='check_product_stock_positive'),
        db.Index('idx_product_store_status', 'store_id', 'status'),
    )

    @validates('tags')
    def validate_tags(self, key, tags):
        seen = []
        for tag in tags or []:
            tag = str(tag).strip().lower()
            if not tag:
                continue
            if len(tag) > 50:
                raise ValueError('Each tag must be at most 50 characters')
            if tag not in seen:
                seen.append(tag)
        self.tags_text = ','.join(seen)
        return seen

    @validates('image_urls')
    def validate_image_urls(self, key, urls):
        urls = [str(u).strip() for u in (urls or []) if str(u).strip()]
        for url in urls:
            if not IMAGE_URL_RE.match(url):
                raise ValueError(f'Invalid image URL: {url}')
        return urls

    def to_dict(self):
        return {
            'id': self.id,
            'storeId': self.store_id,
            'name': self.name,
            'description': self.description,
            'price': _money(self.price),
            'stock': self.stock,
            'imageUrls': list(self.image_urls or []),
            'tags': list(self.tags or []),
            'status': self.status.value,
            'isActive': self.is_active,
            'createdBy': self.created_by,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def to_public_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': _money(self.price),
            'stock': self.stock,
            'imageUrls': list(self.image_urls or []),
            'tags': list(self.tags or []),
            'status': self.status.value,
        }

    def __repr__(self):
        return f'<Product {self.name}>'


class Order(TenantScopedMixin, db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(
        db.Integer,
        db.ForeignKey('stores.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    order_number = db.Column(db.String(20), nullable=False)

    # Customer snapshot
    customer_name = db.Column(db.String(100), nullable=False)
    customer_phone = db.Column(db.String(30), nullable=False, index=True)
    customer_email = db.Column(db.String(120), nullable=True)

    # Totals
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(
        db.Enum(Currency),
        nullable=False,
        default=Currency.COP)

    status = db.Column(
        db.Enum(OrderStatus),
        nullable=False,
        default=OrderStatus.CREATED)
    channel = db.Column(db.Enum(OrderChannel), nullable=False)
    whatsapp_link = db.Column(db.Text, nullable=True)
    sms_link = db.Column(db.Text, nullable=True)
    notes = db.Column(db.String(500), nullable=True)
    created_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    store = db.relationship('Store', backref='orders')
    creator = db.relationship('User', foreign_keys=[created_by])
    items = db.relationship(
        'OrderItem',
        backref='order',
        cascade='all, delete-orphan',
        order_by='OrderItem.id')

    __table_args__ = (
        UniqueConstraint(
            'store_id',
            'order_number',
            name='uq_order_store_number'),
        CheckConstraint('total >= 0', name='check_order_total_positive'),
        db.Index('idx_order_store_status', 'store_id', 'status'),
        db.Index('idx_order_store_channel', 'store_id', 'channel'),
    )

    def to_dict(self):
        creator = None
        if self.creator:
            creator = {
                'id': self.creator.id,
                'name': self.creator.name,
                'email': self.creator.email,
            }
        return {
            'id': self.id,
            'storeId': self.store_id,
            'orderNumber': self.order_number,
            'customer': {
                'name': self.customer_name,
                'phone': self.customer_phone,
                'email': self.customer_email,
            },
            'items': [item.to_dict() for item in self.items],
            'totals': {
                'subtotal': _money(self.subtotal),
                'shipping': _money(self.shipping),
                'tax': _money(self.tax),
                'total': _money(self.total),
                'currency': self.currency.value,
            },
            'status': self.status.value,
            'channel': self.channel.value,
            'whatsappLink': self.whatsapp_link,
            'smsLink': self.sms_link,
            'notes': self.notes,
            'createdBy': creator,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Order {self.order_number} store={self.store_id}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey('orders.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey('products.id'),
        nullable=False,
        index=True)
    product_name = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_order_quantity_positive'),
        CheckConstraint('price >= 0', name='check_order_item_price_positive'),
    )

    def to_dict(self):
        return {
            'productId': self.product_id,
            'productName': self.product_name,
            'price': _money(self.price),
            'quantity': self.quantity,
            'total': _money(self.total),
        }

    def __repr__(self):
        return (
            f"<OrderItem {self.id} order={self.order_id} "
            f"product={self.product_id}>"
        )

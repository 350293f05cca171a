from tiva import create_app
from tiva.extensions import db
from tiva.models import (
    Currency,
    Product,
    ProductStatus,
    Store,
    User,
    UserRole,
)
from tiva.services import store_service
from decimal import Decimal

app = create_app()

with app.app_context():
    db.create_all()

    # Demo store owner (if not exists)
    owner_email = "demo@tiva.store"
    owner = User.query.filter_by(email=owner_email).first()
    if not owner:
        owner = User(name="Demo Owner", email=owner_email,
                     role=UserRole.OWNER)
        owner.set_password("demo123")
        db.session.add(owner)
        db.session.flush()
        print(f"Created owner account: {owner_email} / demo123")

    store = Store.query.filter_by(catalog_id="demo-store").first()
    if not store:
        store = store_service.create_store(owner, "Demo Store")
        store.description = "Sample catalog to try Tiva Store"
        store.whatsapp_number = "+57 300 123 4567"
        store.sms_number = "+573001234567"
        store.currency = Currency.COP
        db.session.flush()
        print(f"Created store: {store.name} -> {store.catalog_url}")

    # Staff member of the demo store
    staff_email = "staff@tiva.store"
    if not User.query.filter_by(email=staff_email).first():
        staff = User(name="Demo Staff", email=staff_email,
                     role=UserRole.STAFF, store_id=store.id)
        staff.set_password("staff123")
        db.session.add(staff)
        print(f"Created staff account: {staff_email} / staff123")

    products_data = [
        {
            "name": "Arepa de choclo",
            "description": "Sweet corn arepa with fresh cheese",
            "price": Decimal("10000"),
            "stock": 5,
            "tags": ["food", "breakfast"],
        },
        {
            "name": "Cafe de origen 500g",
            "description": "Single origin ground coffee from Huila",
            "price": Decimal("32000"),
            "stock": 40,
            "tags": ["coffee", "gift"],
        },
        {
            "name": "Mochila wayuu",
            "description": "Handmade wayuu bag",
            "price": Decimal("150000"),
            "stock": 3,
            "tags": ["handmade", "bags"],
        },
        {
            "name": "Sombrero vueltiao",
            "description": "Traditional hat, 21 turns",
            "price": Decimal("85000"),
            "stock": 0,
            "tags": ["handmade"],
            "status": ProductStatus.DRAFT,
        },
    ]

    for data in products_data:
        existing = Product.query.filter_by(
            store_id=store.id, name=data["name"]).first()
        if existing:
            continue
        product = Product(
            store_id=store.id,
            created_by=owner.id,
            name=data["name"],
            description=data["description"],
            price=data["price"],
            stock=data["stock"],
            tags=data["tags"],
            image_urls=[],
            status=data.get("status", ProductStatus.ACTIVE),
        )
        db.session.add(product)
        print(f"Created product: {data['name']}")

    db.session.flush()
    store_service.refresh_product_count(store.id)
    db.session.commit()
    print("Demo data ready. Catalog: /catalog/demo-store")

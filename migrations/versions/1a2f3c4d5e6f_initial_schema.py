"""initial schema: users, stores, products, orders

Revision ID: 1a2f3c4d5e6f
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "1a2f3c4d5e6f"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLE = sa.Enum("OWNER", "STAFF", name="userrole")
CURRENCY = sa.Enum("COP", "USD", "EUR", name="currency")
PRODUCT_STATUS = sa.Enum("ACTIVE", "ARCHIVED", "DRAFT", name="productstatus")
ORDER_STATUS = sa.Enum(
    "PENDING",
    "CREATED",
    "SENT",
    "CONFIRMED",
    "CANCELLED",
    "COMPLETED",
    name="orderstatus",
)
ORDER_CHANNEL = sa.Enum("WHATSAPP", "SMS", "WEB", "PHONE", name="orderchannel")


def upgrade():
    # users.store_id and stores.owner_id reference each other; the
    # users -> stores key is added once both tables exist.
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("avatar", sa.String(length=500), nullable=True),
        sa.Column("reset_password_token", sa.String(length=128),
                  nullable=True),
        sa.Column("reset_password_expires", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_email", ["email"], unique=True)
        batch_op.create_index("ix_users_store_id", ["store_id"])
        batch_op.create_index(
            "ix_users_reset_password_token", ["reset_password_token"])

    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("logo", sa.String(length=500), nullable=True),
        sa.Column("whatsapp_number", sa.String(length=30), nullable=True),
        sa.Column("sms_number", sa.String(length=30), nullable=True),
        sa.Column("currency", CURRENCY, nullable=False),
        sa.Column("language", sa.String(length=10), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("catalog_id", sa.String(length=120), nullable=False),
        sa.Column("catalog_url", sa.String(length=200), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("total_views", sa.Integer(), nullable=False),
        sa.Column("total_products", sa.Integer(), nullable=False),
        sa.Column("analytics_updated_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["users.id"], name="fk_stores_owner_id"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("catalog_url"),
    )
    with op.batch_alter_table("stores", schema=None) as batch_op:
        batch_op.create_index(
            "ix_stores_catalog_id", ["catalog_id"], unique=True)
        batch_op.create_index("ix_stores_owner_id", ["owner_id"])

    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_foreign_key(
            "fk_users_store_id", "stores", ["store_id"], ["id"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("price", sa.Numeric(precision=12, scale=2),
                  nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("tags_text", sa.Text(), nullable=False),
        sa.Column("status", PRODUCT_STATUS, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "price >= 0", name="check_product_price_positive"),
        sa.CheckConstraint(
            "stock >= 0", name="check_product_stock_positive"),
        sa.ForeignKeyConstraint(
            ["store_id"], ["stores.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_store_id", ["store_id"])
        batch_op.create_index("ix_products_name", ["name"])
        batch_op.create_index("ix_products_created_at", ["created_at"])
        batch_op.create_index(
            "idx_product_store_status", ["store_id", "status"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(length=20), nullable=False),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_phone", sa.String(length=30), nullable=False),
        sa.Column("customer_email", sa.String(length=120), nullable=True),
        sa.Column("subtotal", sa.Numeric(precision=12, scale=2),
                  nullable=False),
        sa.Column("shipping", sa.Numeric(precision=12, scale=2),
                  nullable=False),
        sa.Column("tax", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total", sa.Numeric(precision=12, scale=2),
                  nullable=False),
        sa.Column("currency", CURRENCY, nullable=False),
        sa.Column("status", ORDER_STATUS, nullable=False),
        sa.Column("channel", ORDER_CHANNEL, nullable=False),
        sa.Column("whatsapp_link", sa.Text(), nullable=True),
        sa.Column("sms_link", sa.Text(), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("total >= 0", name="check_order_total_positive"),
        sa.ForeignKeyConstraint(
            ["store_id"], ["stores.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "store_id", "order_number", name="uq_order_store_number"),
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_store_id", ["store_id"])
        batch_op.create_index("ix_orders_customer_phone", ["customer_phone"])
        batch_op.create_index("ix_orders_created_at", ["created_at"])
        batch_op.create_index(
            "idx_order_store_status", ["store_id", "status"])
        batch_op.create_index(
            "idx_order_store_channel", ["store_id", "channel"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2),
                  nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total", sa.Numeric(precision=12, scale=2),
                  nullable=False),
        sa.CheckConstraint(
            "quantity > 0", name="check_order_quantity_positive"),
        sa.CheckConstraint(
            "price >= 0", name="check_order_item_price_positive"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index("ix_order_items_order_id", ["order_id"])
        batch_op.create_index("ix_order_items_product_id", ["product_id"])


def downgrade():
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("products")
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.drop_constraint("fk_users_store_id", type_="foreignkey")
    op.drop_table("stores")
    op.drop_table("users")

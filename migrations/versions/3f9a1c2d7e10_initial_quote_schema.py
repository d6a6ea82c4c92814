"""initial_quote_schema

Revision ID: 3f9a1c2d7e10
Revises:
Create Date: 2026-10-17 09:30:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "quote_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("order_id", sa.String(100), nullable=False),
        sa.Column("vendor_id", sa.String(100), nullable=True),
        sa.Column("vendor_name", sa.String(100), nullable=True),
        sa.Column("vendor_email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("token_expires_at", sa.DateTime(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('pending','submitted','approved','accepted','rejected')",
            name="chk_quote_request_status",
        ),
    )
    op.create_index("idx_quote_requests_order", "quote_requests", ["order_id"])
    op.create_index("idx_quote_requests_vendor", "quote_requests", ["vendor_id"])
    op.create_index("idx_quote_requests_status", "quote_requests", ["status"])
    op.create_index("idx_quote_requests_created", "quote_requests", ["created_at"])

    op.create_table(
        "quote_request_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "request_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("quote_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("product_id", sa.String(100), nullable=False),
        sa.Column("variant_id", sa.String(100), nullable=True),
        sa.Column("product_name", sa.String(200), nullable=True),
        sa.Column("variant_name", sa.String(100), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("requested_qty", sa.Integer(), nullable=False),
        sa.Column("vendor_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("vendor_remark", sa.String(500), nullable=True),
        sa.CheckConstraint("requested_qty >= 1", name="chk_quote_item_qty"),
        sa.CheckConstraint(
            "vendor_price IS NULL OR vendor_price >= 0", name="chk_quote_item_price"
        ),
    )
    op.execute(
        "CREATE UNIQUE INDEX uq_quote_item_product_variant "
        "ON quote_request_items (request_id, product_id, coalesce(variant_id, ''))"
    )

    op.create_table(
        "vendor_quotes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("item_id", sa.String(100), nullable=False),
        sa.Column("product_name", sa.String(200), nullable=True),
        sa.Column("product_image", sa.Text(), nullable=True),
        sa.Column("vendor_name", sa.String(100), nullable=False),
        sa.Column("vendor_email", sa.String(255), nullable=False),
        sa.Column("vendor_phone", sa.String(30), nullable=True),
        sa.Column("quoted_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("remarks", sa.String(500), nullable=True),
        sa.Column("admin_notes", sa.String(1000), nullable=True),
        sa.Column("rejection_reason", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("source", sa.String(50), nullable=False, server_default="vendor-portal"),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_modified_at", sa.DateTime(), nullable=True),
        sa.Column("last_modified_by", sa.String(100), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending','reviewed','accepted','rejected')",
            name="chk_vendor_quote_status",
        ),
        sa.CheckConstraint("quoted_price >= 0", name="chk_vendor_quote_price"),
    )
    op.create_index("idx_vendor_quotes_item", "vendor_quotes", ["item_id", "submitted_at"])
    op.create_index("idx_vendor_quotes_ip", "vendor_quotes", ["ip_address", "submitted_at"])
    op.create_index("idx_vendor_quotes_email_item", "vendor_quotes", ["vendor_email", "item_id"])
    op.create_index("idx_vendor_quotes_status", "vendor_quotes", ["status"])

    # Storefront-owned; created here so a standalone deployment has it
    op.create_table(
        "basket_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("product_image", sa.Text(), nullable=True),
        sa.Column("variant_name", sa.String(100), nullable=True, server_default="Standard"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("member_id", sa.String(100), nullable=True),
        sa.Column("member_note", sa.String(500), nullable=True),
        sa.Column("member_message", sa.String(1000), nullable=True),
        sa.Column("status", sa.String(20), nullable=True, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_basket_items_member", "basket_items", ["member_id", "created_at"])
    op.create_index("idx_basket_items_status", "basket_items", ["status", "created_at"])


def downgrade() -> None:
    op.drop_table("basket_items")
    op.drop_table("vendor_quotes")
    op.execute("DROP INDEX IF EXISTS uq_quote_item_product_variant")
    op.drop_table("quote_request_items")
    op.drop_table("quote_requests")

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    DateTime,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotedesk.database import Base

QUOTE_REQUEST_STATUSES = ("pending", "submitted", "approved", "accepted", "rejected")

# Largest value the Numeric(12, 2) price columns can hold
MAX_PRICE = Decimal("9999999999.99")


class QuoteRequest(Base):
    __tablename__ = "quote_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[str] = mapped_column(String(100), nullable=False)
    vendor_id: Mapped[Optional[str]] = mapped_column(String(100))
    vendor_name: Mapped[Optional[str]] = mapped_column(String(100))
    vendor_email: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="pending")
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    token_expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    items: Mapped[List["QuoteRequestItem"]] = relationship(
        back_populates="request",
        order_by="QuoteRequestItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','submitted','approved','accepted','rejected')",
            name="chk_quote_request_status",
        ),
        Index("idx_quote_requests_order", "order_id"),
        Index("idx_quote_requests_vendor", "vendor_id"),
        Index("idx_quote_requests_status", "status"),
        Index("idx_quote_requests_created", "created_at"),
    )


class QuoteRequestItem(Base):
    __tablename__ = "quote_request_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("quote_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_id: Mapped[str] = mapped_column(String(100), nullable=False)
    variant_id: Mapped[Optional[str]] = mapped_column(String(100))
    product_name: Mapped[Optional[str]] = mapped_column(String(200))
    variant_name: Mapped[Optional[str]] = mapped_column(String(100))
    image: Mapped[Optional[str]] = mapped_column(Text)
    requested_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    vendor_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    vendor_remark: Mapped[Optional[str]] = mapped_column(String(500))

    request: Mapped["QuoteRequest"] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("requested_qty >= 1", name="chk_quote_item_qty"),
        CheckConstraint(
            "vendor_price IS NULL OR vendor_price >= 0", name="chk_quote_item_price"
        ),
    )

    @property
    def item_key(self) -> str:
        return make_item_key(self.product_id, self.variant_id)


def make_item_key(product_id: str, variant_id: Optional[str]) -> str:
    """Composite key identifying a line item within one request."""
    return f"{product_id}::{variant_id or ''}"


# variant_id is nullable, so uniqueness is enforced on its coalesced value
Index(
    "uq_quote_item_product_variant",
    QuoteRequestItem.request_id,
    QuoteRequestItem.product_id,
    func.coalesce(QuoteRequestItem.variant_id, ""),
    unique=True,
)

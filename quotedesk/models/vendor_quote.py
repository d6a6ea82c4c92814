import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Numeric,
    DateTime,
    Text,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from quotedesk.database import Base

LEGACY_QUOTE_STATUSES = ("pending", "reviewed", "accepted", "rejected")

# Display-only surcharge applied to legacy quoted prices
GST_RATE = Decimal("0.18")


class LegacyVendorQuote(Base):
    """Single-item quote submitted straight from the public vendor form."""

    __tablename__ = "vendor_quotes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    item_id: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[Optional[str]] = mapped_column(String(200))
    product_image: Mapped[Optional[str]] = mapped_column(Text)
    vendor_name: Mapped[str] = mapped_column(String(100), nullable=False)
    vendor_email: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_phone: Mapped[Optional[str]] = mapped_column(String(30))
    quoted_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(String(500))
    admin_notes: Mapped[Optional[str]] = mapped_column(String(1000))
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), default="pending")
    source: Mapped[str] = mapped_column(String(50), default="vendor-portal")
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    last_modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_modified_by: Mapped[Optional[str]] = mapped_column(String(100))

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','reviewed','accepted','rejected')",
            name="chk_vendor_quote_status",
        ),
        CheckConstraint("quoted_price >= 0", name="chk_vendor_quote_price"),
        Index("idx_vendor_quotes_item", "item_id", "submitted_at"),
        Index("idx_vendor_quotes_ip", "ip_address", "submitted_at"),
        Index("idx_vendor_quotes_email_item", "vendor_email", "item_id"),
        Index("idx_vendor_quotes_status", "status"),
    )

    @property
    def price_with_gst(self) -> Decimal:
        return (Decimal(self.quoted_price) * (1 + GST_RATE)).quantize(Decimal("0.01"))

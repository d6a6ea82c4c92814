import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from quotedesk.database import Base


class BasketItem(Base):
    """Member basket line. Owned by the storefront; read-only here."""

    __tablename__ = "basket_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    product_image: Mapped[Optional[str]] = mapped_column(Text)
    variant_name: Mapped[str] = mapped_column(String(100), default="Standard")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    member_id: Mapped[Optional[str]] = mapped_column(String(100))
    member_note: Mapped[Optional[str]] = mapped_column(String(500))
    member_message: Mapped[Optional[str]] = mapped_column(String(1000))
    status: Mapped[str] = mapped_column(String(20), default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("idx_basket_items_member", "member_id", "created_at"),
        Index("idx_basket_items_status", "status", "created_at"),
    )

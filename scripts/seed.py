"""
Seed script for local development: basket items, one open multi-item quote
request and a couple of legacy quotes. Prints the vendor link token and an
admin bearer token.
Run from the repo root: python -m scripts.seed
"""
import asyncio
import sys
import os
import uuid
from datetime import datetime
from decimal import Decimal

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from quotedesk.database import AsyncSessionLocal, engine
from quotedesk.models.basket_item import BasketItem
from quotedesk.models.vendor_quote import LegacyVendorQuote
from quotedesk.schemas.quote_request import QuoteRequestItemCreate
from quotedesk.services.auth_service import create_access_token
from quotedesk.services.quote_request_service import VendorInfo, create_quote_request

# ---------- Fixed UUIDs ----------

BASKET_CHAIR_ID = uuid.UUID("c0000000-0000-0000-0000-000000000001")
BASKET_LAMP_ID = uuid.UUID("c0000000-0000-0000-0000-000000000002")
ADMIN_USER_ID = "a0000000-0000-0000-0000-000000000001"


async def seed():
    async with AsyncSessionLocal() as db:
        existing = await db.execute(select(BasketItem).where(BasketItem.id == BASKET_CHAIR_ID))
        if existing.scalar_one_or_none():
            print("Seed data already exists. Skipping.")
            return

        db.add_all([
            BasketItem(
                id=BASKET_CHAIR_ID,
                product_name="Oak dining chair",
                variant_name="Natural",
                quantity=12,
                member_id="member-001",
                member_note="Delivery before month end",
            ),
            BasketItem(
                id=BASKET_LAMP_ID,
                product_name="Brass desk lamp",
                quantity=4,
                member_id="member-002",
            ),
        ])

        request = await create_quote_request(
            db,
            order_id="ORD-1001",
            vendor=VendorInfo(
                vendor_id="vendor-alpha",
                vendor_name="Alpha Furnishings",
                vendor_email="quotes@alpha.example",
            ),
            items=[
                QuoteRequestItemCreate(
                    product_id=str(BASKET_CHAIR_ID),
                    variant_id="natural",
                    product_name="Oak dining chair",
                    variant_name="Natural",
                    requested_qty=12,
                ),
                QuoteRequestItemCreate(
                    product_id=str(BASKET_LAMP_ID),
                    product_name="Brass desk lamp",
                    requested_qty=4,
                ),
            ],
            token_expiry_minutes=60 * 24 * 7,
        )

        now = datetime.utcnow()
        for vendor, price in (("Beta Lighting", "38.00"), ("Gamma Supplies", "41.50")):
            db.add(LegacyVendorQuote(
                item_id=str(BASKET_LAMP_ID),
                product_name="Brass desk lamp",
                vendor_name=vendor,
                vendor_email=f"sales@{vendor.split()[0].lower()}.example",
                quoted_price=Decimal(price),
                status="pending",
                ip_address="127.0.0.1",
                submitted_at=now,
            ))

        await db.commit()

        print("Seed data inserted successfully!")
        print("  Basket items: 2")
        print("  Legacy quotes: 2")
        print(f"  Vendor link token: {request.token}")
        print(f"  Admin bearer token: {create_access_token(ADMIN_USER_ID, role='admin')}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())

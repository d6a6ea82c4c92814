# quotedesk/services/basket_service.py
"""
Read-only access to the storefront's basket items.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.models.basket_item import BasketItem


def _as_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


async def get_basket_item(session: AsyncSession, item_id: str) -> Optional[BasketItem]:
    """
    Look up an active basket item by id.

    Ids that are not UUIDs cannot match and return None without querying.
    The lookup runs in a savepoint so a failure here leaves the caller's
    transaction usable.
    """
    parsed = _as_uuid(item_id)
    if parsed is None:
        return None
    async with session.begin_nested():
        result = await session.execute(
            select(BasketItem).where(
                BasketItem.id == parsed,
                BasketItem.deleted_at == None,  # noqa: E711
            )
        )
        return result.scalar_one_or_none()

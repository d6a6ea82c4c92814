"""Central model registry. Import every model so Alembic autogenerate sees them."""

from quotedesk.database import Base  # noqa: F401

from quotedesk.models.quote_request import QuoteRequest, QuoteRequestItem  # noqa: F401
from quotedesk.models.vendor_quote import LegacyVendorQuote  # noqa: F401
from quotedesk.models.basket_item import BasketItem  # noqa: F401

from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

from quotedesk.schemas.common import PaginationMeta

VENDOR_NAME_PATTERN = r"^[a-zA-Z0-9\s\-._&()]*$"
VENDOR_PHONE_PATTERN = (
    r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$"
)


class LegacyQuoteCreate(BaseModel):
    item_id: str = Field(..., min_length=5, max_length=100)
    vendor_name: str = Field(..., min_length=2, max_length=100, pattern=VENDOR_NAME_PATTERN)
    vendor_email: EmailStr
    vendor_phone: Optional[str] = Field(None, pattern=VENDOR_PHONE_PATTERN)
    quoted_price: float = Field(..., ge=0, le=9_999_999_999.99)
    remarks: Optional[str] = Field(None, max_length=500)
    product_name: Optional[str] = None
    product_image: Optional[str] = None
    terms_accepted: Optional[bool] = None


class LegacyQuoteStatusUpdate(BaseModel):
    status: str
    admin_notes: Optional[str] = Field(None, max_length=1000)
    rejection_reason: Optional[str] = Field(None, max_length=500)


class LegacyQuoteNotesUpdate(BaseModel):
    admin_notes: str = Field(..., max_length=1000)


class LegacyQuoteBulkStatusUpdate(BaseModel):
    quote_ids: List[str] = Field(..., min_length=1)
    status: str


class LegacyQuoteResponse(BaseModel):
    id: str
    item_id: str
    product_name: Optional[str] = None
    product_image: Optional[str] = None
    vendor_name: str
    vendor_email: str
    vendor_phone: Optional[str] = None
    quoted_price: float
    price_with_gst: float
    remarks: Optional[str] = None
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    status: str
    source: Optional[str] = None
    submitted_at: str
    last_modified_at: Optional[str] = None
    last_modified_by: Optional[str] = None

    model_config = {"from_attributes": True}


class ItemQuoteStats(BaseModel):
    count: int
    lowest_price: Optional[float] = None
    average_price: Optional[float] = None


class ItemQuotesResponse(BaseModel):
    item_id: str
    quotes: List[LegacyQuoteResponse] = []
    stats: ItemQuoteStats


class StatusPriceStats(BaseModel):
    status: str
    count: int
    avg_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class LegacyQuoteListResponse(BaseModel):
    data: List[LegacyQuoteResponse] = []
    pagination: PaginationMeta
    statistics: List[StatusPriceStats] = []


class OverallQuoteStats(BaseModel):
    total: int
    avg_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    pending: int = 0
    reviewed: int = 0
    accepted: int = 0
    rejected: int = 0


class TopVendorStats(BaseModel):
    vendor_name: str
    quote_count: int
    avg_price: Optional[float] = None
    min_price: Optional[float] = None


class LegacyQuoteStatistics(BaseModel):
    overall: Optional[OverallQuoteStats] = None
    top_vendors: List[TopVendorStats] = []


class ProductInfoResponse(BaseModel):
    id: str
    product_name: str
    product_image: Optional[str] = None
    variant_name: str = "Standard"
    quantity: int
    member_note: str = ""
    member_message: str = ""
    created_at: Optional[str] = None


from typing import List, Literal, Optional
from pydantic import BaseModel


class VendorQuoteEntry(BaseModel):
    request_id: str
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_email: Optional[str] = None
    price: Optional[float] = None
    remark: Optional[str] = None
    status: str
    submitted_at: Optional[str] = None


class OrderProductQuotes(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    name: Optional[str] = None
    variant_name: Optional[str] = None
    image: Optional[str] = None
    quantity: int
    vendor_quotes: List[VendorQuoteEntry] = []


class OrderQuotesResponse(BaseModel):
    id: str
    order_id: str
    products: List[OrderProductQuotes] = []
    created_at: str


class QuoteProductLine(BaseModel):
    product_id: str
    product_name: Optional[str] = None
    product_image: Optional[str] = None
    variant_name: Optional[str] = None
    quantity: int
    vendor_price: Optional[float] = None
    total_price: Optional[float] = None
    vendor_remark: Optional[str] = None


class QuoteDetailResponse(BaseModel):
    id: str
    quote_type: Literal["multi", "single"]
    order_id: Optional[str] = None
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None
    status: str
    products: List[QuoteProductLine] = []
    total_amount: float
    total_amount_with_gst: Optional[float] = None
    remarks: Optional[str] = None
    admin_notes: Optional[str] = None
    submitted_at: Optional[str] = None
    created_at: Optional[str] = None

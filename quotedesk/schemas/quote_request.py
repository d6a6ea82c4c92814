from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field


class QuoteRequestItemCreate(BaseModel):
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    product_name: Optional[str] = None
    variant_name: Optional[str] = None
    image: Optional[str] = None
    requested_qty: Optional[int] = None


class QuoteRequestCreate(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=100)
    vendor_id: Optional[str] = Field(None, max_length=100)
    vendor_name: Optional[str] = None
    vendor_email: Optional[EmailStr] = None
    items: List[QuoteRequestItemCreate] = Field(default_factory=list)
    token_expiry_minutes: Optional[int] = Field(None, ge=1, le=60 * 24 * 30)


class SubmittedItem(BaseModel):
    # Kept lenient: the token gate runs before payload validation.
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    vendor_price: Optional[float] = None
    vendor_remark: Optional[str] = None


class QuoteSubmission(BaseModel):
    items: List[SubmittedItem] = Field(default_factory=list)


class QuoteRequestStatusUpdate(BaseModel):
    status: str


class QuoteRequestItemResponse(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    product_name: Optional[str] = None
    variant_name: Optional[str] = None
    image: Optional[str] = None
    requested_qty: int
    vendor_price: Optional[float] = None
    vendor_remark: Optional[str] = None

    model_config = {"from_attributes": True}


class QuoteRequestResponse(BaseModel):
    id: str
    order_id: str
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_email: Optional[str] = None
    items: List[QuoteRequestItemResponse] = []
    status: str
    token_expires_at: str
    submitted_at: Optional[str] = None
    total_amount: float = 0.0
    created_at: str
    updated_at: Optional[str] = None

    model_config = {"from_attributes": True}


class QuoteRequestCreated(BaseModel):
    request: QuoteRequestResponse
    token: str


class QuoteRequestStatistics(BaseModel):
    total: int
    by_status: dict[str, int]
    submitted_total_amount: float
    average_items_per_request: Optional[float] = None

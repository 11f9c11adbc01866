from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from storefront.utils.formatting_utils import FormattingUtils


class PaginationResponse(BaseModel):
    """Cursor pagination metadata for list responses"""
    limit: int = Field(description="Number of items requested")
    count: int = Field(description="Number of items returned")
    has_more: bool = Field(description="Whether there are more items available")
    next_cursor: Optional[int] = Field(default=None, description="Cursor for next page")
    next_offset: Optional[int] = Field(default=None, description="Offset for next page of a sorted listing")

    model_config = ConfigDict(json_schema_extra={
        "example": {"limit": 20, "count": 20, "has_more": True, "next_cursor": 145}
    })


class ErrorDetail(BaseModel):
    """Individual error detail"""
    field: Optional[str] = Field(default=None, description="Field that caused the error")
    message: str = Field(description="Error message")
    code: Optional[str] = Field(default=None, description="Error code")


class ErrorResponse(BaseModel):
    """Standard error response format"""
    success: bool = Field(default=False, description="Always false for errors")
    error: Dict[str, Any] = Field(description="Error information")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "success": False,
            "error": {
                "code": "BUSINESS_RULE",
                "message": "Cart is not ready for checkout",
                "details": [
                    {
                        "field": "MBP-16-SLV-512",
                        "message": "Only 0 of MacBook Pro 16 (Silver / 512GB) available",
                        "code": "INSUFFICIENT_STOCK"
                    }
                ]
            },
            "timestamp": "2026-01-03T10:30:00Z"
        }
    })


class MoneyField(BaseModel):
    """Standardized money representation"""
    cents: int = Field(description="Amount in cents")
    currency: str = Field(default="USD", description="Currency code")

    @property
    def dollars(self) -> Decimal:
        """Convert cents to dollars"""
        return Decimal(self.cents) / 100

    @field_validator('cents')
    @classmethod
    def validate_cents(cls, v):
        if v < 0:
            raise ValueError('Amount cannot be negative')
        return v

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        if len(v) != 3:
            raise ValueError('Currency must be 3-character code')
        return v.upper()

    @computed_field
    @property
    def formatted(self) -> str:
        return FormattingUtils.format_money(self.cents, self.currency)

    @classmethod
    def from_cents(cls, cents: int, currency: str = "USD") -> "MoneyField":
        return cls(cents=cents, currency=currency)

    model_config = ConfigDict(json_schema_extra={
        "example": {"cents": 1299, "currency": "USD", "formatted": "$12.99"}
    })

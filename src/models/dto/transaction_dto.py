"""
Data Transfer Objects for the transaction API.
"""
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionResponse(BaseModel):
    """Response schema for a normalized transaction."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_id: str
    csv_upload_id: str
    row_number: int
    title: str
    artist: str
    isrc: str
    upc: str
    label: str
    service_type: str
    territory: str
    transaction_type: str
    quantity: int
    currency: str
    revenue: Decimal
    revenue_usd: Decimal
    transaction_date: datetime
    notes: str
    raw_data: dict
    created_at: datetime


class TransactionListResponse(BaseModel):
    """Response schema for a page of transactions."""
    transactions: list[TransactionResponse]
    count: int
    next_token: Optional[str] = None


_DATE_ONLY = re.compile(r'^\d{4}-\d{2}-\d{2}$')


class TransactionFilter(BaseModel):
    """Query filters for transaction listing."""
    artist: Optional[str] = Field(default=None, description="Case-insensitive substring match")
    title: Optional[str] = Field(default=None, description="Case-insensitive substring match")
    service_type: Optional[str] = Field(default=None, description="Exact service/platform name")
    territory: Optional[str] = Field(default=None, description="Exact territory")
    start_date: Optional[datetime] = Field(default=None, description="Inclusive lower bound on transaction date")
    end_date: Optional[datetime] = Field(
        default=None,
        description="Inclusive upper bound on transaction date; a bare date covers that whole day"
    )

    @field_validator('end_date', mode='before')
    @classmethod
    def include_whole_end_day(cls, v: Any) -> Any:
        if isinstance(v, str) and _DATE_ONLY.match(v.strip()):
            try:
                v = date.fromisoformat(v.strip())
            except ValueError:
                return v
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.max, tzinfo=timezone.utc)
        return v

    @field_validator('start_date', 'end_date')
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

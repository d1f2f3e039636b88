"""
Domain model for a normalized royalty Transaction.
One Transaction is produced for each successfully persisted CSV row.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional


class Transaction:
    """Canonical transaction record derived from one input row."""

    def __init__(
        self,
        csv_upload_id: str,
        row_number: int,
        transaction_id: str,
        title: str = "",
        artist: str = "",
        isrc: str = "",
        upc: str = "",
        label: str = "",
        service_type: str = "",
        territory: str = "",
        transaction_type: str = "stream",
        quantity: int = 0,
        currency: str = "USD",
        revenue: Decimal = Decimal("0"),
        revenue_usd: Decimal = Decimal("0"),
        transaction_date: Optional[datetime] = None,
        notes: str = "",
        raw_data: Optional[Dict[str, object]] = None,
        id: Optional[str] = None,
        created_at: Optional[datetime] = None
    ):
        self.id = id or str(uuid.uuid4())
        self.csv_upload_id = csv_upload_id
        self.row_number = row_number
        self.transaction_id = transaction_id
        self.title = title
        self.artist = artist
        self.isrc = isrc
        self.upc = upc
        self.label = label
        self.service_type = service_type
        self.territory = territory
        self.transaction_type = transaction_type
        self.quantity = quantity
        self.currency = currency
        self.revenue = revenue
        self.revenue_usd = revenue_usd
        self.transaction_date = transaction_date or datetime.now(timezone.utc)
        self.notes = notes
        self.raw_data = raw_data or {}
        self.created_at = created_at or datetime.now(timezone.utc)

    def __repr__(self):
        return (
            f"Transaction(transaction_id={self.transaction_id}, title={self.title}, "
            f"artist={self.artist}, revenue_usd={self.revenue_usd})"
        )

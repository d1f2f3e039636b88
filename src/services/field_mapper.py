"""
Field Mapper for partner royalty reports.
Maps one raw CSV row, whose column names vary by distributor, to a canonical
Transaction using ordered lists of accepted header names per field.
"""
import enum
import re
from datetime import datetime, timezone
from decimal import Decimal, DecimalException, Inexact, InvalidOperation, Rounded
from typing import Dict, Mapping, Optional, Tuple
from boto3.dynamodb.types import DYNAMODB_CONTEXT
from src.core.exceptions import FieldCoercionException
from src.models.transaction_model import Transaction


class CoercionPolicy(str, enum.Enum):
    """
    How malformed numeric and date values are handled.

    PERMISSIVE degrades a bad value to its default (0 or the ingestion time)
    and never fails the row. STRICT raises FieldCoercionException instead.
    """
    PERMISSIVE = "permissive"
    STRICT = "strict"


# First present, non-empty column wins.
FIELD_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    'title': (
        'Title', 'Track Name', 'Release Title', 'Release', 'Song Title',
        'Child Asset Title/Name', 'Parent Asset Title/Name',
    ),
    'artist': ('Artist', 'Artist Name', 'Primary Artist'),
    'isrc': ('ISRC', 'isrc', 'International Standard Recording Code', 'Child Asset Identifier'),
    'upc': ('UPC', 'upc', 'Universal Product Code', 'Parent Asset Identifier'),
    'service_type': ('Service', 'Platform', 'DSP', 'Store', 'Partner'),
    'territory': ('Country', 'Territory', 'Region'),
    'transaction_type': ('Type', 'Transaction Type', 'Channel'),
    'quantity': ('Quantity', 'Streams', 'Units', 'Plays', 'Count'),
    'currency': ('Currency',),
    'revenue': ('Gross Revenue in USD', 'Revenue', 'Earnings', 'Amount'),
    'revenue_usd': (
        'Amount Due in USD', 'Net Revenue in USD', 'Revenue (USD)',
        'Earnings (USD)', 'USD Amount', 'Amount',
    ),
    'label': ('Label', 'Label Name'),
    'transaction_date': ('Transaction Month', 'Date', 'Transaction Date'),
    'notes': ('Notes',),
}

TEXT_DEFAULTS = {
    'transaction_type': 'stream',
    'currency': 'USD',
}

# Tried in order after ISO-8601.
DATE_FORMATS = (
    '%Y-%m',
    '%Y/%m/%d',
    '%Y/%m',
    '%m/%d/%Y',
    '%m/%d/%y',
    '%m/%Y',
    '%d.%m.%Y',
    '%Y%m%d',
    '%Y%m',
    '%b %Y',
    '%B %Y',
    '%b-%Y',
    '%b-%y',
    '%d-%b-%Y',
    '%d %b %Y',
    '%d %B %Y',
    '%b %d, %Y',
    '%B %d, %Y',
)

_INTEGER_PREFIX = re.compile(r'^[+-]?\d+')
_DECIMAL_PREFIX = re.compile(r'^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')
_CURRENCY_SYMBOLS = '$€£¥'

# Numbers must fit a DynamoDB number: 38 significant digits, exponent within the
# store's range. Longer amounts are rounded; out-of-range values are malformed.
MAX_NUMBER_DIGITS = 38
_NUMBER_CONTEXT = DYNAMODB_CONTEXT.copy()
_NUMBER_CONTEXT.traps[Inexact] = False
_NUMBER_CONTEXT.traps[Rounded] = False


def first_value(row: Mapping[str, object], candidates: Tuple[str, ...]) -> Optional[str]:
    """Return the stripped value of the first candidate column that is present and non-empty."""
    for column in candidates:
        value = row.get(column)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _numeric_text(value: str) -> str:
    text = value.replace(',', '').strip()
    negative = text.startswith('-')
    if negative:
        text = text[1:].lstrip()
    text = text.lstrip(_CURRENCY_SYMBOLS).strip()
    return f"-{text}" if negative else text


def parse_quantity(value: Optional[str], policy: CoercionPolicy = CoercionPolicy.PERMISSIVE) -> int:
    """
    Parse an integer count, reading the leading integer of the value.
    "1,234" -> 1234, "12 plays" -> 12, "N/A" -> 0 (PERMISSIVE).
    Counts longer than MAX_NUMBER_DIGITS cannot be stored and are treated as malformed.
    """
    if value is None:
        return 0
    match = _INTEGER_PREFIX.match(_numeric_text(value))
    if match:
        text = match.group()
        digits = text.lstrip('+-').lstrip('0') or '0'
        if len(digits) <= MAX_NUMBER_DIGITS:
            return -int(digits) if text.startswith('-') else int(digits)
        if policy == CoercionPolicy.STRICT:
            raise FieldCoercionException(f"quantity is out of range: {value}")
        return 0
    if policy == CoercionPolicy.STRICT:
        raise FieldCoercionException(f"quantity must be a number, got: {value}")
    return 0


def _fit_number(amount: Decimal) -> Optional[Decimal]:
    if amount.is_zero():
        return Decimal('0')
    try:
        return _NUMBER_CONTEXT.plus(amount)
    except DecimalException:
        return None


def parse_amount(value: Optional[str], field: str = 'amount',
                 policy: CoercionPolicy = CoercionPolicy.PERMISSIVE) -> Decimal:
    """
    Parse a monetary amount, reading the leading decimal number of the value.
    "$1,234.50" -> 1234.50, "0.0042 USD" -> 0.0042, "" -> 0.
    Amounts are rounded to MAX_NUMBER_DIGITS significant digits; "1e400" is out of range.
    """
    if value is None:
        return Decimal('0')
    match = _DECIMAL_PREFIX.match(_numeric_text(value))
    if match:
        try:
            amount = Decimal(match.group())
        except InvalidOperation:
            amount = None
        if amount is not None and amount.is_finite():
            fitted = _fit_number(amount)
            if fitted is not None:
                return fitted
            if policy == CoercionPolicy.STRICT:
                raise FieldCoercionException(f"{field} is out of range: {value}")
            return Decimal('0')
    if policy == CoercionPolicy.STRICT:
        raise FieldCoercionException(f"{field} must be a number, got: {value}")
    return Decimal('0')


def parse_date(value: Optional[str], default: datetime,
               policy: CoercionPolicy = CoercionPolicy.PERMISSIVE) -> datetime:
    """
    Parse a transaction date leniently.
    Missing values and (under PERMISSIVE) unparseable ones return `default`.
    Results without a timezone are taken as UTC.
    """
    if value is None:
        return default

    parsed = None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        for date_format in DATE_FORMATS:
            try:
                parsed = datetime.strptime(value, date_format)
                break
            except ValueError:
                continue

    if parsed is None:
        if policy == CoercionPolicy.STRICT:
            raise FieldCoercionException(f"transaction_date is not a recognised date: {value}")
        return default

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_transaction_id(csv_upload_id: str, row_number: int) -> str:
    return f"TRANS-{csv_upload_id}-{row_number}"


def map_row(
    row: Mapping[str, object],
    csv_upload_id: str,
    row_number: int,
    ingested_at: datetime,
    policy: CoercionPolicy = CoercionPolicy.PERMISSIVE
) -> Transaction:
    """
    Map one raw CSV row to a canonical Transaction.

    Args:
        row: Column name to raw value, as read from the file
        csv_upload_id: Owning upload id
        row_number: 1-based data row number
        ingested_at: Processing time, used when the date is missing or unparseable
        policy: Coercion policy for numeric and date fields

    Returns:
        Transaction (not yet persisted)

    Raises:
        FieldCoercionException: Only under CoercionPolicy.STRICT
    """
    def text(field: str) -> str:
        return first_value(row, FIELD_CANDIDATES[field]) or TEXT_DEFAULTS.get(field, '')

    def value(field: str) -> Optional[str]:
        return first_value(row, FIELD_CANDIDATES[field])

    return Transaction(
        csv_upload_id=csv_upload_id,
        row_number=row_number,
        transaction_id=build_transaction_id(csv_upload_id, row_number),
        title=text('title'),
        artist=text('artist'),
        isrc=text('isrc'),
        upc=text('upc'),
        label=text('label'),
        service_type=text('service_type'),
        territory=text('territory'),
        transaction_type=text('transaction_type'),
        quantity=parse_quantity(value('quantity'), policy),
        currency=text('currency'),
        revenue=parse_amount(value('revenue'), 'revenue', policy),
        revenue_usd=parse_amount(value('revenue_usd'), 'revenue_usd', policy),
        transaction_date=parse_date(value('transaction_date'), ingested_at, policy),
        notes=text('notes'),
        raw_data=dict(row)
    )

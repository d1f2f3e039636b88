"""
Helpers shared by the DynamoDB repositories:
timestamp encoding, pagination tokens and error classification.
"""
import base64
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from botocore.exceptions import ClientError
from src.core.exceptions import ValidationException


def format_timestamp(value: datetime) -> str:
    """
    Encode a datetime as a fixed-width UTC ISO-8601 string.
    Fixed width keeps lexicographic order equal to chronological order,
    which the created_at sort keys and date range filters rely on.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='microseconds')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Decode a stored timestamp; naive values are read as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def encode_token(last_key: dict) -> str:
    """Encode a DynamoDB key as an opaque base64 pagination token."""
    plain = {
        key: int(value) if isinstance(value, Decimal) else value
        for key, value in last_key.items()
    }
    return base64.b64encode(json.dumps(plain).encode()).decode()


def decode_token(next_token: str) -> dict:
    """
    Decode a pagination token produced by encode_token.

    Raises:
        ValidationException: If the token is malformed
    """
    try:
        last_key = json.loads(base64.b64decode(next_token))
    except Exception:
        raise ValidationException("Invalid pagination token")
    if not isinstance(last_key, dict):
        raise ValidationException("Invalid pagination token")
    return last_key


def is_conditional_check_failure(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'

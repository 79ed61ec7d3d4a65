import math
import re
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import urlparse

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_datetime(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            return timezone.make_aware(value, timezone.get_current_timezone())
        return timezone.localtime(value)
    if hasattr(value, "timestamp"):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.get_current_timezone())
    return None


def parse_when(value) -> Optional[datetime]:
    """Aware datetime from a stored timestamp or an ISO date/datetime string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime) or hasattr(value, "timestamp"):
        return normalize_datetime(value)
    if isinstance(value, date):
        return normalize_datetime(datetime(value.year, value.month, value.day))
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            day = parse_date(value)
            if day is None:
                return None
            parsed = datetime(day.year, day.month, day.day)
        return normalize_datetime(parsed)
    return None


def format_timestamp(ts):
    if ts is None:
        return None
    if hasattr(ts, "isoformat"):
        return ts.isoformat()
    if hasattr(ts, "timestamp"):
        return datetime.fromtimestamp(ts.timestamp()).isoformat()
    return str(ts)


def serialize(value: Any) -> Any:
    """Firestore data with timestamps turned into ISO strings."""
    if isinstance(value, dict):
        return {key: serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    if isinstance(value, (datetime, date)):
        return format_timestamp(value)
    return value


def to_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN and infinity parse as floats but are never valid amounts
    return number if math.isfinite(number) else None


def is_valid_email(value) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value))


def is_http_url(value) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def clean(value):
    return value.strip() if isinstance(value, str) else value


def display_name(user: Optional[dict], default: str = "") -> str:
    if not user:
        return default
    return user.get("displayName") or user.get("email") or default


def app_url(path: str = "") -> str:
    return f"{settings.APP_URL.rstrip('/')}/{path.lstrip('/')}"


def long_date(value) -> str:
    when = parse_when(value)
    if when is None:
        return "Unknown"
    return when.strftime("%A, %B %d, %Y").replace(" 0", " ")

"""
Helper utilities
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import math
import re

from sqlalchemy import String, cast

from storefront.exceptions import ValidationError

_TAG_RE = re.compile(r"<[^>]*>")


def calculate_date_range(days: int = 30) -> tuple[datetime, datetime]:
    """Calculate date range for analysis"""
    end_date = datetime.utcnow()
    start_date = end_date - timedelta(days=days)
    return start_date, end_date


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers"""
    try:
        return numerator / denominator if denominator != 0 else default
    except (TypeError, ZeroDivisionError):
        return default


def paginate(page: int, limit: int) -> tuple[int, int, int]:
    """Clamp page/limit and return (page, limit, offset)."""
    page = max(int(page or 1), 1)
    limit = max(int(limit or 10), 1)
    return page, limit, (page - 1) * limit


def pagination_meta(total: int, page: int, limit: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def slugify(text: str) -> str:
    """Lowercase, drop anything but a-z/0-9/space/hyphen, collapse runs into single hyphens."""
    slug = re.sub(r"[^a-z0-9 -]", "", (text or "").lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def strip_tags(html: str) -> str:
    return _TAG_RE.sub("", html or "")


def reading_time_minutes(content: str, words_per_minute: int = 200) -> int:
    words = [w for w in strip_tags(content).split() if w]
    return max(1, math.ceil(len(words) / words_per_minute))


def make_excerpt(content: str, length: int = 150) -> str:
    return strip_tags(content)[:length] + "..."


def normalize_phone(value: Optional[str], field: str = "phone") -> str:
    """
    Reduce a phone number to its 10 trailing digits.

    "+91 98765-43210" -> "9876543210". Fewer than 10 digits is rejected.
    """
    digits = re.sub(r"\D", "", value or "")
    if len(digits) < 10:
        raise ValidationError("Phone number must contain at least 10 digits", field=field)
    return digits[-10:]


def normalize_pincode(value: Optional[str], field: str = "pincode") -> str:
    """Pincode must be exactly 6 digits once separators are removed."""
    digits = re.sub(r"\D", "", str(value or ""))
    if len(digits) != 6:
        raise ValidationError("Pincode must be exactly 6 digits", field=field)
    return digits


def json_list_contains(column, value: str):
    """
    Filter clause matching rows whose JSON list column contains `value`.

    Works on the serialized text so it behaves the same on SQLite and Postgres.
    """
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return cast(column, String).like(f'%"{escaped}"%', escape="\\")


def round_money(value: Optional[float]) -> float:
    return round(float(value or 0), 2)


def group_sum(rows: List[Dict], key: str, value_key: str) -> Dict[Any, float]:
    totals: Dict[Any, float] = {}
    for row in rows:
        totals[row[key]] = totals.get(row[key], 0.0) + (row[value_key] or 0)
    return totals

# formatting.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

import zoneinfo

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .charges import money2

DateLike = Union[datetime, date, str, None]


# ---------- money ----------

def _group_indian(digits: str) -> str:
    """'1234567' -> '12,34,567' (last three, then pairs)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_amount(value) -> str:
    """Indian-grouped number with exactly two decimals: 123456.5 -> '1,23,456.50'."""
    q = money2(value)
    sign = "-" if q < 0 else ""
    whole, frac = f"{abs(q):.2f}".split(".")
    return f"{sign}{_group_indian(whole)}.{frac}"


def money(value) -> str:
    """Bill currency string. Built-in PDF fonts have no rupee glyph, so 'Rs.'."""
    return f"Rs. {format_amount(value)}"


# ---------- dates ----------

def _coerce_dt(value: DateLike) -> Optional[Union[datetime, date]]:
    if value is None or value == "":
        return None
    if isinstance(value, (datetime, date)):
        return value
    s = str(value).strip()
    try:
        return parse_datetime(s) or parse_date(s)
    except ValueError:
        return None


def _bill_tz():
    name = (getattr(settings, "FRONTDESK", {}) or {}).get("TIME_ZONE")
    return zoneinfo.ZoneInfo(name) if name else None


def _local(dt: datetime) -> datetime:
    if timezone.is_aware(dt):
        return timezone.localtime(dt, _bill_tz())
    return dt


def format_date(value: DateLike, empty: str = "") -> str:
    """'05 Mar 2024'"""
    v = _coerce_dt(value)
    if v is None:
        return empty
    if isinstance(v, datetime):
        v = _local(v)
    return v.strftime("%d %b %Y")


def format_datetime(value: DateLike, empty: str = "") -> str:
    """'05 Mar 2024, 02:30 pm'"""
    v = _coerce_dt(value)
    if v is None:
        return empty
    if not isinstance(v, datetime):
        return v.strftime("%d %b %Y")
    v = _local(v)
    return f"{v:%d %b %Y}, {v:%I:%M} {v:%p}".replace("AM", "am").replace("PM", "pm")


# ---------- identity documents ----------

def mask_id_number(raw: Optional[str], id_type: Optional[str] = None) -> str:
    """
    Redact a guest ID number for the police verification export.

    Aadhaar (by type, or any 12 digit value) keeps the first and last four:
        "123456789012" -> "1234 XXXX XXXX 9012"
    anything else of 4+ characters keeps two on each side:
        "AB1234567890" -> "ABXXXXXXXX90"
    shorter values are fully hidden; missing values read "N/A".
    """
    if raw is None:
        return "N/A"
    s = str(raw)
    if not s:
        return "N/A"
    n = len(s)
    if (str(id_type or "").upper() == "AADHAAR" or (n == 12 and s.isdigit())) and n >= 8:
        return f"{s[:4]} XXXX XXXX {s[-4:]}"
    if n >= 4:
        return s[:2] + "X" * (n - 4) + s[-2:]
    return "XXXX"

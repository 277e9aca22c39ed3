"""Display helpers used to build booking notification payloads."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from typing import Any, Mapping, Optional, Union

import pytz

from app.core.config import settings
from app.core.constants import ADDRESS_NOT_SPECIFIED_LABEL, NOT_AVAILABLE_LABEL

# Zero-decimal currencies: stored amounts are already whole units
_ZERO_DECIMAL = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)
# Stored in cents but displayed without decimals
_WHOLE_UNIT_DISPLAY = frozenset({"cop"})

DateLike = Union[datetime, str, None]


def _parse(value: DateLike) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _localize(value: datetime, tz_name: Optional[str]) -> datetime:
    return value.astimezone(pytz.timezone(tz_name or settings.platform_timezone))


def format_scheduled_date(value: DateLike, tz_name: Optional[str] = None) -> str:
    """``M/D/YYYY`` in the platform timezone, ``TBD`` when unknown."""
    parsed = _parse(value)
    if parsed is None:
        return NOT_AVAILABLE_LABEL
    local = _localize(parsed, tz_name)
    return f"{local.month}/{local.day}/{local.year}"


def format_scheduled_time(value: DateLike, tz_name: Optional[str] = None) -> str:
    """``H:MM AM`` in the platform timezone, ``TBD`` when unknown."""
    parsed = _parse(value)
    if parsed is None:
        return NOT_AVAILABLE_LABEL
    local = _localize(parsed, tz_name)
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"


def format_duration(minutes: Optional[int]) -> str:
    if not minutes:
        return NOT_AVAILABLE_LABEL
    return f"{int(minutes)} minutes"


def format_address(address: Any) -> str:
    if address is None or address == "":
        return ADDRESS_NOT_SPECIFIED_LABEL
    if isinstance(address, str):
        return address
    if isinstance(address, Mapping):
        formatted = address.get("formatted")
        if formatted:
            return str(formatted)
        return json.dumps(dict(address), ensure_ascii=False)
    return str(address)


def format_amount(amount: Optional[int], currency: Optional[str]) -> Optional[str]:
    """
    Human amount for minor units, e.g. ``5000000, "cop"`` -> ``"$50,000 COP"``.

    Returns None for missing or zero amounts. Currency defaults to the
    platform currency.
    """
    if not amount:
        return None
    code = (currency or settings.platform_currency).lower()
    if code in _ZERO_DECIMAL:
        return f"${int(amount):,} {code.upper()}"
    major = int(amount) / 100
    if code in _WHOLE_UNIT_DISPLAY:
        return f"${major:,.0f} {code.upper()}"
    return f"${major:,.2f} {code.upper()}"

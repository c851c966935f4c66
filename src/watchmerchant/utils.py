"""Utility functions for watchmerchant."""

import re
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")

_SIBILANT_PLURAL = re.compile(r"([sxz]|[cs]h)es$")


def utc_now() -> datetime:
    """Return the current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    """Render a datetime as ISO 8601 with a trailing Z."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing Z."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_id() -> str:
    """Generate a new entity ID."""
    return str(uuid.uuid4())


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number or string to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Any) -> Decimal:
    """Round a monetary amount to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_json(value: Decimal) -> float:
    """Render a Decimal amount as a JSON number."""
    return float(value)


def search_variants(term: str) -> set[str]:
    """
    Expand a search term with its naive English singular.

    - "watches" -> {"watches", "watch"}
    - "accessories" -> {"accessories", "accessory"}
    - "straps" -> {"straps", "strap"}
    - "glass" -> {"glass"}
    """
    needle = term.lower()
    variants = {needle}

    if _SIBILANT_PLURAL.search(needle):
        variants.add(needle[:-2])
    elif needle.endswith("ies"):
        variants.add(needle[:-3] + "y")
    elif needle.endswith("s") and not needle.endswith("ss"):
        variants.add(needle[:-1])

    return {v for v in variants if v}


def slugify(value: str) -> str:
    """Lowercase and hyphenate whitespace: "Dive Watch" -> "dive-watch"."""
    return re.sub(r"\s+", "-", value.strip().lower())

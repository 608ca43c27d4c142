"""Field normalizer - coerce loosely typed CSV/JSON/scraped values into canonical types.

Every parser here is total: malformed input degrades to None / False / []
so a noisy feed loses a field rather than the whole record.
"""

import json
import re
from typing import Any, Mapping, Optional

from rentsync.models.listing import AMENITY_FLAGS, HEALTH_FLAGS

TRUTHY_STRINGS = frozenset({"true", "yes", "1", "y", "on"})

_CURRENCY_CHARS = re.compile(r"[$,]")
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# Canonical attribute -> accepted raw keys, canonical camelCase name first
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "external_id": ("externalId", "external_id"),
    "source": ("source",),
    "url": ("url",),
    "title": ("title",),
    "address": ("address",),
    "neighborhood": ("neighborhood",),
    "borough": ("borough",),
    "description": ("description",),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lng", "lon"),
    "price": ("price",),
    "broker_fee": ("brokerFee", "broker_fee"),
    "security_deposit": ("securityDeposit", "security_deposit"),
    "is_no_fee": ("isNoFee", "noFee", "no_fee"),
    "bedrooms": ("bedrooms",),
    "bathrooms": ("bathrooms",),
    "sqft": ("sqft",),
    "floor": ("floor",),
    "total_floors": ("totalFloors", "total_floors"),
    "is_doorman": ("isDoorman", "doorman"),
    "has_concierge": ("hasConcierge", "concierge"),
    "has_ac": ("hasAC", "ac", "air_conditioning"),
    "has_dishwasher": ("hasDishwasher", "dishwasher"),
    "has_elevator": ("hasElevator", "elevator"),
    "has_laundry_unit": ("hasLaundryUnit", "laundry_unit"),
    "has_laundry_building": ("hasLaundryBuilding", "laundry_building"),
    "is_cat_friendly": ("isCatFriendly", "cat_friendly", "pets_allowed"),
    "has_asbestos": ("hasAsbestos", "asbestos"),
    "has_lead_paint": ("hasLeadPaint", "lead_paint"),
    "has_bedbugs": ("hasBedbugs", "bedbugs"),
    "has_mold": ("hasMold", "mold"),
    "available_from": ("availableFrom", "available_from"),
    "available_to": ("availableTo", "available_to"),
    "contact_name": ("contactName", "contact_name"),
    "contact_phone": ("contactPhone", "contact_phone"),
    "contact_email": ("contactEmail", "contact_email"),
    "images": ("images",),
    "features": ("features",),
}

BOOLEAN_FIELDS = ("is_no_fee",) + AMENITY_FLAGS + HEALTH_FLAGS
OPTIONAL_NUMBER_FIELDS = ("broker_fee", "security_deposit", "sqft", "latitude", "longitude")
ARRAY_FIELDS = ("images", "features")
TEXT_FIELDS = (
    "external_id", "url", "title", "address", "neighborhood", "borough", "description",
    "floor", "total_floors", "contact_name", "contact_phone", "contact_email",
)


def parse_number(value: Any) -> Optional[float]:
    """Parse a number from numeric types or strings like "$3,000"."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        cleaned = _CURRENCY_CHARS.sub("", value).strip()
        match = _LEADING_FLOAT.match(cleaned)
        if not match:
            return None
        try:
            return float(match.group(0))
        except ValueError:
            return None
    return None


def parse_boolean(value: Any) -> bool:
    """Parse a boolean from bools, numbers and yes/no style strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def parse_array(value: Any) -> list[str]:
    """Parse a list from a list, a JSON array string or a comma-separated string."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return [part.strip() for part in value.split(",") if part.strip()]
        return parsed if isinstance(parsed, list) else []
    return []


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _first_present(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in raw and not _blank(raw[key]):
            return raw[key]
    return None


def normalize_listing_fields(raw: Mapping[str, Any]) -> dict[str, Any]:
    """
    Map a raw record onto canonical attribute names and coerce field types.

    The result is still unvalidated; unknown keys are dropped.
    """
    values = {field: _first_present(raw, keys) for field, keys in FIELD_ALIASES.items()}
    normalized: dict[str, Any] = {}

    for field in TEXT_FIELDS:
        value = values[field]
        if value is not None:
            normalized[field] = value.strip() if isinstance(value, str) else str(value)

    source = values["source"]
    if source is not None:
        normalized["source"] = source.strip().lower() if isinstance(source, str) else source

    # Left as-is when unparseable so the validator reports it
    price = values["price"]
    if price is not None:
        parsed_price = parse_number(price)
        normalized["price"] = parsed_price if parsed_price is not None else price

    normalized["bedrooms"] = parse_number(values["bedrooms"]) or 0
    normalized["bathrooms"] = parse_number(values["bathrooms"]) or 1

    for field in OPTIONAL_NUMBER_FIELDS:
        normalized[field] = parse_number(values[field]) if values[field] is not None else None

    for field in BOOLEAN_FIELDS:
        normalized[field] = any(parse_boolean(raw.get(key)) for key in FIELD_ALIASES[field])

    for field in ("available_from", "available_to"):
        normalized[field] = values[field]

    for field in ARRAY_FIELDS:
        normalized[field] = parse_array(values[field])

    return normalized

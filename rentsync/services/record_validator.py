"""Record validator - enforce the canonical listing schema on normalized records."""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional
from datetime import date
from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from rentsync.models.import_result import RecordResult
from rentsync.models.listing import ListingRecord, ListingSource, coerce_date
from rentsync.services.field_normalizer import FIELD_ALIASES, normalize_listing_fields
from rentsync.utils.errors import ValidationFailed

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MONEY_FIELDS = ("price", "broker_fee", "security_deposit")

_uri_adapter = TypeAdapter(AnyUrl)


def _check_uri(value: str) -> str:
    try:
        _uri_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid uri")
    return value


class ListingCandidate(BaseModel):
    """Listing schema at the import boundary; money is in dollars here."""
    model_config = ConfigDict(extra="ignore")

    external_id: str = Field(..., min_length=1)
    source: ListingSource
    url: str
    title: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    neighborhood: Optional[str] = None
    borough: str = "Manhattan"
    description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90, allow_inf_nan=False)
    longitude: Optional[float] = Field(None, ge=-180, le=180, allow_inf_nan=False)

    price: float = Field(..., ge=0, allow_inf_nan=False)
    broker_fee: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    security_deposit: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    is_no_fee: bool = False

    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=1, ge=1)
    sqft: Optional[int] = Field(None, ge=0)
    floor: Optional[str] = None
    total_floors: Optional[str] = None

    is_doorman: bool = False
    has_concierge: bool = False
    has_ac: bool = False
    has_dishwasher: bool = False
    has_elevator: bool = False
    has_laundry_unit: bool = False
    has_laundry_building: bool = False
    is_cat_friendly: bool = False

    has_asbestos: bool = False
    has_lead_paint: bool = False
    has_bedbugs: bool = False
    has_mold: bool = False

    available_from: Optional[date] = None
    available_to: Optional[date] = None

    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None

    images: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)

    @field_validator("url")
    @classmethod
    def _url_is_uri(cls, value: str) -> str:
        return _check_uri(value)

    @field_validator("images")
    @classmethod
    def _images_are_uris(cls, value: list[str]) -> list[str]:
        for index, item in enumerate(value):
            try:
                _check_uri(item)
            except ValueError:
                raise ValueError(f"item {index} must be a valid uri")
        return value

    @field_validator("contact_email")
    @classmethod
    def _email_format(cls, value: Optional[str]) -> Optional[str]:
        if value and not EMAIL_PATTERN.match(value):
            raise ValueError("must be a valid email")
        return value

    @field_validator("available_from", "available_to", mode="before")
    @classmethod
    def _accept_datetimes(cls, value: Any) -> Any:
        return coerce_date(value)


def to_cents(dollars: Optional[float]) -> Optional[int]:
    """Convert a dollar amount to integer cents, rounding half up."""
    if dollars is None:
        return None
    return int((Decimal(str(dollars)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _field_label(loc: tuple) -> str:
    if not loc:
        return "record"
    name = str(loc[0])
    label = FIELD_ALIASES.get(name, (name,))[0]
    for part in loc[1:]:
        label += f"[{part}]" if isinstance(part, int) else f".{part}"
    return label


def _violations(error: ValidationError) -> list[str]:
    violations = []
    for detail in error.errors():
        message = detail["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        violations.append(f"{_field_label(detail['loc'])}: {message}")
    return violations


def validate_listing(candidate: Mapping[str, Any]) -> ListingRecord:
    """
    Validate a normalized record and promote it to a ListingRecord.

    Raises ValidationFailed listing every violation. Money is converted to
    cents only after the dollar values pass validation.
    """
    try:
        checked = ListingCandidate.model_validate(dict(candidate))
    except ValidationError as e:
        raise ValidationFailed(_violations(e))

    data = checked.model_dump()
    for field in MONEY_FIELDS:
        try:
            data[field] = to_cents(data[field])
        except ArithmeticError:
            raise ValidationFailed([f"{_field_label((field,))}: amount is out of range"])
    return ListingRecord(**data)


def validate_raw_listing(raw: Any) -> RecordResult:
    """Normalize and validate one raw record, returning the outcome as data."""
    if not isinstance(raw, Mapping):
        return RecordResult.failure("Validation failed: record must be an object")
    try:
        return RecordResult.success(validate_listing(normalize_listing_fields(raw)))
    except ValidationFailed as e:
        return RecordResult.failure(str(e))

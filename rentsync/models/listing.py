"""Listing models - canonical import record and its persisted counterpart."""

from enum import Enum
from typing import Any, Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ListingSource(str, Enum):
    """External listing sites."""
    STREETEASY = "streeteasy"
    ZILLOW = "zillow"
    APARTMENTS = "apartments"
    REDFIN = "redfin"
    TRULIA = "trulia"
    OTHER = "other"


AMENITY_FLAGS = (
    "is_doorman",
    "has_concierge",
    "has_ac",
    "has_dishwasher",
    "has_elevator",
    "has_laundry_unit",
    "has_laundry_building",
    "is_cat_friendly",
)

HEALTH_FLAGS = (
    "has_asbestos",
    "has_lead_paint",
    "has_bedbugs",
    "has_mold",
)


def coerce_date(value: Any) -> Any:
    """Accept ISO datetime strings and datetimes where a calendar date is expected."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if len(text) > 10:
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            except ValueError:
                return text
        return text
    return value


class ListingFields(BaseModel):
    """Fields shared by the canonical record and the stored apartment row."""

    external_id: str = Field(..., description="Stable identifier on the source site")
    source: ListingSource = Field(..., description="Source site")
    url: str = Field(..., description="Listing URL on the source site")
    title: str = Field(..., description="Listing title")
    address: str = Field(..., description="Street address")
    neighborhood: Optional[str] = None
    borough: str = Field(default="Manhattan")
    description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    # Money is stored in integer cents
    price: int = Field(..., ge=0, description="Monthly rent in cents")
    broker_fee: Optional[int] = Field(None, ge=0, description="Broker fee in cents")
    security_deposit: Optional[int] = Field(None, ge=0, description="Security deposit in cents")
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

    @field_validator("available_from", "available_to", mode="before")
    @classmethod
    def _accept_datetimes(cls, value: Any) -> Any:
        return coerce_date(value)


class ListingRecord(ListingFields):
    """Canonical listing, produced only by the record validator."""
    model_config = ConfigDict(frozen=True)

    def to_row(self) -> dict:
        """Render the apartments table columns for this listing."""
        return self.model_dump(mode="json")


class PersistedApartment(ListingFields):
    """Stored apartment row with lifecycle fields."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Apartment ID (text)")
    # Stored rows are trusted; bounds are enforced on the way in
    price: int = Field(..., description="Monthly rent in cents")
    bathrooms: int = Field(default=1)
    is_active: bool = True
    is_archived: bool = False
    last_scraped: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("images", "features", mode="before")
    @classmethod
    def _null_lists(cls, value: Any) -> Any:
        return value if value is not None else []

    @field_validator("borough", mode="before")
    @classmethod
    def _null_borough(cls, value: Any) -> Any:
        return value if value is not None else "Manhattan"

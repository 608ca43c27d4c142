"""Tests for the record validator."""

import pytest
from datetime import date
from rentsync.models.listing import ListingSource
from rentsync.services.record_validator import to_cents, validate_listing, validate_raw_listing
from rentsync.utils.errors import ValidationFailed
from tests.utils.factories import create_raw_listing


@pytest.mark.unit
@pytest.mark.parametrize("dollars", [0, 0.01, 1, 19.99, 2500, 2500.5, 3199.995, 12345.67])
def test_price_round_trips_through_cents(dollars):
    """Stored cents equal round(P * 100) and redisplay is within one cent."""
    record = validate_raw_listing(create_raw_listing("rt-1", price=str(dollars))).record
    assert record.price == to_cents(dollars)
    assert abs(record.price / 100 - dollars) <= 0.01


@pytest.mark.unit
def test_to_cents_rounds_half_up():
    """Half cents round up rather than to even."""
    assert to_cents(10.005) == 1001
    assert to_cents(2500) == 250000
    assert to_cents(None) is None


@pytest.mark.unit
def test_validate_raw_listing_success():
    """A clean raw record becomes a canonical ListingRecord."""
    outcome = validate_raw_listing(create_raw_listing(
        "se-100",
        price="$3,000",
        brokerFee="4500",
        bedrooms="2",
        isDoorman="yes",
        availableFrom="2024-12-01T00:00:00Z",
        images='["https://img.example.com/1.jpg"]',
        contactEmail="agent@example.com",
    ))

    assert outcome.ok
    record = outcome.record
    assert record.external_id == "se-100"
    assert record.source == ListingSource.STREETEASY
    assert record.price == 300000
    assert record.broker_fee == 450000
    assert record.bedrooms == 2
    assert record.is_doorman is True
    assert record.available_from == date(2024, 12, 1)
    assert record.images == ["https://img.example.com/1.jpg"]
    assert record.borough == "Manhattan"


@pytest.mark.unit
def test_missing_required_fields_reports_every_violation():
    """All violations are listed, using the external field names."""
    outcome = validate_raw_listing({"source": "craigslist", "price": "-5"})

    assert not outcome.ok
    assert outcome.error.startswith("Validation failed: ")
    for field in ("externalId", "source", "url", "title", "address", "price"):
        assert field in outcome.error


@pytest.mark.unit
def test_invalid_url_and_email_are_rejected():
    """URL and contact email formats are checked."""
    with pytest.raises(ValidationFailed) as exc_info:
        validate_listing({
            "external_id": "se-1",
            "source": "zillow",
            "url": "not a url",
            "title": "Nice place",
            "address": "1 Main St",
            "price": 2000,
            "contact_email": "nobody",
        })

    violations = exc_info.value.violations
    assert "url: must be a valid uri" in violations
    assert "contactEmail: must be a valid email" in violations


@pytest.mark.unit
def test_non_object_record_is_rejected():
    """Scalars and lists in a JSON array fail as records, not as the batch."""
    outcome = validate_raw_listing(["not", "a", "record"])
    assert not outcome.ok
    assert outcome.error == "Validation failed: record must be an object"


@pytest.mark.unit
def test_record_is_immutable():
    """Canonical records cannot be mutated after validation."""
    record = validate_raw_listing(create_raw_listing("se-2")).record
    with pytest.raises(Exception):
        record.price = 1


@pytest.mark.unit
@pytest.mark.parametrize("field,value", [
    ("price", "1e999"),
    ("price", float("inf")),
    ("price", float("nan")),
    ("brokerFee", "1e999"),
    ("securityDeposit", float("inf")),
])
def test_non_finite_money_is_a_record_error(field, value):
    outcome = validate_raw_listing(create_raw_listing("se-inf", **{field: value}))

    assert not outcome.ok
    assert field in outcome.error


@pytest.mark.unit
def test_amount_too_large_for_cents_is_a_record_error():
    """Finite amounts that cannot be represented in cents fail the record."""
    with pytest.raises(ValidationFailed) as exc_info:
        validate_listing({
            "external_id": "se-1",
            "source": "zillow",
            "url": "https://example.com/1",
            "title": "Nice place",
            "address": "1 Main St",
            "price": 1e300,
        })

    assert exc_info.value.violations == ["price: amount is out of range"]

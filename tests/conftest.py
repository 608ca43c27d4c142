"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime, timedelta, timezone
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "")
os.environ.setdefault("STALE_GRACE_DAYS", "7")

from tests.utils.fakes import FakeSender, InMemoryStore
from tests.utils.factories import create_raw_listing, listings_to_csv

FROZEN_NOW = datetime(2024, 12, 9, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def sender():
    """SMS sender that records instead of delivering."""
    return FakeSender()


@pytest.fixture
def frozen_now():
    """Freeze time at FROZEN_NOW for stale-window tests."""
    with freeze_time(FROZEN_NOW) as frozen_time:
        yield frozen_time


@pytest.fixture
def days_ago():
    """Build aware timestamps relative to FROZEN_NOW."""
    def _days_ago(days: float) -> datetime:
        return FROZEN_NOW - timedelta(days=days)
    return _days_ago


@pytest.fixture
def two_row_csv():
    """One no-fee listing and one broker-fee listing."""
    return listings_to_csv([
        create_raw_listing("test-1", price="2500", isNoFee="true", bedrooms="1", neighborhood="Chelsea"),
        create_raw_listing("test-2", price="3200", isNoFee="false", bedrooms="2", neighborhood="Tribeca"),
    ])


@pytest.fixture
def verified_recipient_row():
    return {
        "id": "user-1",
        "phone_number": "(212) 555-0100",
        "is_verified": True,
        "alert_prefs": {"enableSMS": True, "noFeeAlerts": True},
    }

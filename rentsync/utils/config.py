"""Pipeline configuration with environment variable support."""

import os
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else None


class PipelineConfig:
    """Import and reconciliation settings."""

    # Days a listing may go unseen before a run may deactivate it
    STALE_GRACE_DAYS = int(os.environ.get("STALE_GRACE_DAYS", "7"))
    IMPORT_MAX_FILE_BYTES = int(os.environ.get("IMPORT_MAX_FILE_BYTES", str(5 * 1024 * 1024)))
    IMPORT_ALLOWED_EXTENSIONS = (".csv", ".json")
    SYNC_RECORD_TIMEOUT_SECONDS = _optional_float("SYNC_RECORD_TIMEOUT_SECONDS")
    NOTIFY_SEND_TIMEOUT_SECONDS = _optional_float("NOTIFY_SEND_TIMEOUT_SECONDS")
    ALERT_PREVIEW_LIMIT = int(os.environ.get("ALERT_PREVIEW_LIMIT", "3"))
    DEFAULT_BOROUGH = os.environ.get("DEFAULT_BOROUGH", "Manhattan")


class TwilioConfig:
    """Twilio SMS credentials."""

    ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID", "")
    AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN", "")
    PHONE_NUMBER = os.environ.get("TWILIO_PHONE_NUMBER", "")
    API_BASE_URL = os.environ.get("TWILIO_API_BASE_URL", "https://api.twilio.com/2010-04-01")

    @classmethod
    def is_configured(cls) -> bool:
        return bool(cls.ACCOUNT_SID and cls.AUTH_TOKEN and cls.PHONE_NUMBER)

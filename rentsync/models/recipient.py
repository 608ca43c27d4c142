"""Alert recipient model - users subscribed to SMS listing alerts."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AlertPreferences(BaseModel):
    """Per-user alert switches; a missing switch counts as enabled."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    enable_sms: Optional[bool] = Field(None, alias="enableSMS")
    no_fee_alerts: Optional[bool] = Field(None, alias="noFeeAlerts")
    daily_digest: Optional[bool] = Field(None, alias="dailyDigest")

    def allows(self, preference_key: str) -> bool:
        """True unless the preference was explicitly switched off."""
        if preference_key in type(self).model_fields:
            value = getattr(self, preference_key)
        else:
            value = (self.model_extra or {}).get(preference_key)
        return value is not False


class Recipient(BaseModel):
    """User who can receive SMS alerts."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="User ID (text)")
    phone_number: str = Field(..., description="Phone number")
    is_verified: bool = False
    alert_prefs: AlertPreferences = Field(default_factory=AlertPreferences)

    @field_validator("alert_prefs", mode="before")
    @classmethod
    def _null_prefs(cls, value: Any) -> Any:
        return value if value is not None else {}

    def wants(self, preference_key: str) -> bool:
        """Verified, SMS enabled and the given alert category not opted out."""
        return (
            self.is_verified
            and self.alert_prefs.allows("enable_sms")
            and self.alert_prefs.allows(preference_key)
        )

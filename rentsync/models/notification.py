"""Notification models."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NotificationStatus(str, Enum):
    """Delivery status."""
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class Notification(BaseModel):
    """Delivery outcome for one recipient."""
    user_id: str = Field(..., description="Recipient user ID")
    type: str = Field(default="sms", description="Channel: sms, email, push")
    title: str
    message: str
    payload: dict[str, Any] = Field(default_factory=dict)
    status: NotificationStatus = NotificationStatus.PENDING
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None


class DispatchResult(BaseModel):
    """What one dispatch call did."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    qualifying_apartments: list[str] = Field(default_factory=list)
    recipients: int = 0
    sent: int = 0
    failed: int = 0
    message: Optional[str] = None

"""Notification dispatcher - SMS alerts for newly created listings."""

import asyncio
from typing import Callable, Optional, Sequence
from pydantic import BaseModel, ConfigDict

from rentsync.models.listing import PersistedApartment
from rentsync.models.notification import DispatchResult, Notification, NotificationStatus
from rentsync.models.recipient import Recipient
from rentsync.services.sms_client import MessageSender, validate_phone_number
from rentsync.services.stores import utc_now
from rentsync.utils.config import PipelineConfig
from rentsync.utils.logging import (
    get_correlation_id,
    get_structured_logger,
    mask_phone_number,
    sanitize_message_text,
)

logger = get_structured_logger(__name__)


class AlertPolicy(BaseModel):
    """Which new listings trigger an alert and how the alert reads."""
    model_config = ConfigDict(frozen=True)

    name: str
    preference_key: str
    title: str
    headline: str
    payload_key: str
    qualifies: Callable[[PersistedApartment], bool]


NO_FEE_POLICY = AlertPolicy(
    name="no_fee",
    preference_key="no_fee_alerts",
    title="New No-Fee Apartments Alert",
    headline="🏠 NEW NO-FEE APARTMENTS",
    payload_key="noFeeApartments",
    qualifies=lambda apartment: apartment.is_no_fee,
)


def describe_listing(apartment: PersistedApartment) -> str:
    rooms = "Studio" if apartment.bedrooms == 0 else f"{apartment.bedrooms}BR"
    area = apartment.neighborhood or apartment.borough or PipelineConfig.DEFAULT_BOROUGH
    dollars = int(apartment.price / 100 + 0.5)
    return f"{rooms} in {area} - ${dollars}"


def compose_alert_message(
    apartments: Sequence[PersistedApartment],
    policy: AlertPolicy = NO_FEE_POLICY,
    preview_limit: int = PipelineConfig.ALERT_PREVIEW_LIMIT,
) -> str:
    """Alert text listing the first few apartments plus an overflow count."""
    summary = ", ".join(describe_listing(a) for a in apartments[:preview_limit])
    overflow = len(apartments) - preview_limit
    more = f" and {overflow} more" if overflow > 0 else ""
    return f"{policy.headline}: {summary}{more}. Check your dashboard for details!"


class NotificationDispatcher:
    """Alerts subscribed recipients once per run about qualifying new listings."""

    def __init__(
        self,
        store,
        sender: MessageSender,
        policy: AlertPolicy = NO_FEE_POLICY,
        send_timeout: Optional[float] = PipelineConfig.NOTIFY_SEND_TIMEOUT_SECONDS,
    ):
        # store provides get_by_ids, verified_recipients and record_notification
        self.store = store
        self.sender = sender
        self.policy = policy
        self.send_timeout = send_timeout

    async def dispatch(self, new_apartment_ids: Sequence[str], session_id: str) -> DispatchResult:
        """
        Send the alert for one reconciliation run.

        Returns early, persisting nothing, when there are no new IDs, no
        qualifying listings among them, or nobody eligible to receive them.
        Each recipient is isolated: a failed send is recorded on that
        recipient's notification and the loop moves on.
        """
        correlation_id = get_correlation_id()

        if not new_apartment_ids:
            logger.debug("No new apartments, skipping notifications", session_id=session_id)
            return DispatchResult()

        qualifying = await self._qualifying_apartments(new_apartment_ids)
        if not qualifying:
            logger.info(
                "No qualifying apartments for alert",
                correlation_id=correlation_id,
                session_id=session_id,
                policy=self.policy.name,
                new_count=len(new_apartment_ids)
            )
            return DispatchResult()

        qualifying_ids = [a.id for a in qualifying]
        recipients = await self._eligible_recipients()
        if not recipients:
            logger.info(
                "No eligible recipients for alert",
                correlation_id=correlation_id,
                session_id=session_id,
                policy=self.policy.name
            )
            return DispatchResult(qualifying_apartments=qualifying_ids)

        message = compose_alert_message(qualifying, self.policy)
        payload = {
            "reportId": session_id,
            self.policy.payload_key: qualifying_ids,
            "count": len(qualifying_ids),
        }
        result = DispatchResult(
            qualifying_apartments=qualifying_ids,
            recipients=len(recipients),
            message=message
        )

        logger.info(
            "Dispatching alerts",
            correlation_id=correlation_id,
            session_id=session_id,
            policy=self.policy.name,
            apartment_count=len(qualifying_ids),
            recipient_count=len(recipients),
            message_preview=sanitize_message_text(message, max_length=160)
        )

        for recipient in recipients:
            delivered = await self._notify(recipient, message, payload)
            if delivered:
                result.sent += 1
            else:
                result.failed += 1

        logger.info(
            "Alerts dispatched",
            correlation_id=correlation_id,
            session_id=session_id,
            policy=self.policy.name,
            sent=result.sent,
            failed=result.failed
        )
        return result

    async def _qualifying_apartments(self, new_apartment_ids: Sequence[str]) -> list[PersistedApartment]:
        order = {apartment_id: i for i, apartment_id in enumerate(new_apartment_ids)}
        apartments = await self.store.get_by_ids(list(order))
        qualifying = [a for a in apartments if a.is_active and self.policy.qualifies(a)]
        # Keep run order so the message is stable for the same input
        return sorted(qualifying, key=lambda a: order.get(a.id, len(order)))

    async def _eligible_recipients(self) -> list[Recipient]:
        recipients = await self.store.verified_recipients()
        return [r for r in recipients if r.wants(self.policy.preference_key)]

    async def _send(self, recipient: Recipient, message: str) -> Optional[str]:
        """Returns an error message, or None when delivered."""
        if not validate_phone_number(recipient.phone_number):
            return "Invalid phone number"
        try:
            delivered = await asyncio.wait_for(
                self.sender.send(recipient.phone_number, message),
                timeout=self.send_timeout
            )
        except asyncio.TimeoutError:
            return f"SMS delivery timed out after {self.send_timeout}s"
        except Exception as e:
            return str(e) or type(e).__name__
        return None if delivered else "SMS delivery failed"

    async def _notify(self, recipient: Recipient, message: str, payload: dict) -> bool:
        error = await self._send(recipient, message)
        delivered = error is None

        if not delivered:
            logger.warning(
                "Alert delivery failed",
                user_id=recipient.id,
                to=mask_phone_number(recipient.phone_number),
                error=error
            )

        notification = Notification(
            user_id=recipient.id,
            type="sms",
            title=self.policy.title,
            message=message,
            payload=payload,
            status=NotificationStatus.SENT if delivered else NotificationStatus.FAILED,
            sent_at=utc_now() if delivered else None,
            error_message=error
        )
        try:
            await self.store.record_notification(notification)
        except Exception as e:
            logger.error(
                "Failed to record notification",
                user_id=recipient.id,
                error=str(e),
                exc_info=True
            )
        return delivered

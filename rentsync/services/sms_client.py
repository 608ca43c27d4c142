"""SMS delivery through the Twilio Messages REST API."""

import re
from typing import Optional, Protocol

import httpx

from rentsync.utils.config import TwilioConfig
from rentsync.utils.logging import get_structured_logger, mask_phone_number

logger = get_structured_logger(__name__)

US_E164_PATTERN = re.compile(r"^\+1[0-9]{10}$")

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0


class MessageSender(Protocol):
    """Anything that can deliver a text message to a phone number."""

    async def send(self, to: str, body: str) -> bool:
        """Deliver `body` to `to`; True when the provider accepted it."""
        ...


def format_phone_number(phone_number: str) -> str:
    """Normalize a US number to E.164; anything else is returned unchanged."""
    digits = re.sub(r"\D", "", phone_number or "")

    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"

    return phone_number


def validate_phone_number(phone_number: str) -> bool:
    return bool(US_E164_PATTERN.match(format_phone_number(phone_number)))


def _message_sid(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("sid") if isinstance(body, dict) else None


class TwilioSmsSender:
    """MessageSender backed by Twilio."""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        base_url: Optional[str] = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self.account_sid = account_sid if account_sid is not None else TwilioConfig.ACCOUNT_SID
        self.auth_token = auth_token if auth_token is not None else TwilioConfig.AUTH_TOKEN
        self.from_number = from_number if from_number is not None else TwilioConfig.PHONE_NUMBER
        self.base_url = (base_url or TwilioConfig.API_BASE_URL).rstrip("/")
        self.http_timeout = http_timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"

    async def send(self, to: str, body: str) -> bool:
        """
        Send one SMS.

        Never raises for provider problems: an unconfigured sender or a
        rejected request is logged and reported as False.
        """
        if not self.is_configured:
            logger.warning("Twilio not configured, SMS not sent", to=mask_phone_number(to))
            return False

        to_number = format_phone_number(to)
        try:
            async with httpx.AsyncClient(timeout=self.http_timeout) as client:
                response = await client.post(
                    self.messages_url,
                    auth=(self.account_sid, self.auth_token),
                    data={"To": to_number, "From": self.from_number, "Body": body},
                )
                response.raise_for_status()
                message_sid = _message_sid(response)
        except httpx.HTTPError as e:
            logger.error(
                "Failed to send SMS",
                to=mask_phone_number(to_number),
                error=str(e),
                error_type=type(e).__name__
            )
            return False

        logger.info(
            "SMS sent successfully",
            to=mask_phone_number(to_number),
            message_sid=message_sid
        )
        return True

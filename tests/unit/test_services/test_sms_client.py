"""Tests for Twilio SMS delivery."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from rentsync.services.sms_client import TwilioSmsSender, format_phone_number, validate_phone_number


@pytest.mark.unit
@pytest.mark.parametrize("raw,expected", [
    ("2125550100", "+12125550100"),
    ("(212) 555-0100", "+12125550100"),
    ("1-212-555-0100", "+12125550100"),
    ("+12125550100", "+12125550100"),
    ("+44 20 7946 0958", "+44 20 7946 0958"),
])
def test_format_phone_number(raw, expected):
    assert format_phone_number(raw) == expected


@pytest.mark.unit
def test_validate_phone_number():
    assert validate_phone_number("212.555.0100")
    assert not validate_phone_number("555-0100")
    assert not validate_phone_number("+44 20 7946 0958")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unconfigured_sender_returns_false():
    """Without credentials nothing is sent and the caller sees a failure."""
    sender = TwilioSmsSender(account_sid="", auth_token="", from_number="")

    with patch("rentsync.services.sms_client.httpx.AsyncClient") as mock_client_class:
        assert await sender.send("2125550100", "hello") is False
        mock_client_class.assert_not_called()


def _mock_http_client(response=None, error=None):
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=error)
    client_cm = MagicMock()
    client_cm.__aenter__ = AsyncMock(return_value=client)
    client_cm.__aexit__ = AsyncMock(return_value=False)
    return client, client_cm


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_posts_to_messages_endpoint():
    sender = TwilioSmsSender(account_sid="AC123", auth_token="secret", from_number="+15550001111")
    response = MagicMock()
    response.json.return_value = {"sid": "SM1"}
    client, client_cm = _mock_http_client(response=response)

    with patch("rentsync.services.sms_client.httpx.AsyncClient", return_value=client_cm):
        assert await sender.send("(212) 555-0100", "hello") is True

    url = client.post.call_args[0][0]
    kwargs = client.post.call_args[1]
    assert url == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
    assert kwargs["auth"] == ("AC123", "secret")
    assert kwargs["data"] == {"To": "+12125550100", "From": "+15550001111", "Body": "hello"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_provider_error_returns_false():
    """HTTP errors are reported as a failed delivery, not raised."""
    sender = TwilioSmsSender(account_sid="AC123", auth_token="secret", from_number="+15550001111")
    _, client_cm = _mock_http_client(error=httpx.ConnectError("connection refused"))

    with patch("rentsync.services.sms_client.httpx.AsyncClient", return_value=client_cm):
        assert await sender.send("2125550100", "hello") is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_json_success_body_still_counts_as_sent():
    """An accepted message is delivered even when the body cannot be parsed."""
    sender = TwilioSmsSender(account_sid="AC123", auth_token="secret", from_number="+15550001111")
    response = MagicMock()
    response.json.side_effect = ValueError("Expecting value")
    _, client_cm = _mock_http_client(response=response)

    with patch("rentsync.services.sms_client.httpx.AsyncClient", return_value=client_cm):
        assert await sender.send("2125550100", "hello") is True

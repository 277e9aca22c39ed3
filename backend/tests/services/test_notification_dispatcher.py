"""
Notification fan-out: concurrent delivery, failures isolated and never raised.
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.services.notification_dispatcher import (
    ConsoleNotificationChannel,
    Notification,
    NotificationDispatcher,
    NotificationEvent,
    ResendEmailChannel,
    build_notification_dispatcher,
)


def _channel(name: str, side_effect=None) -> AsyncMock:
    channel = AsyncMock()
    channel.name = name
    channel.deliver.side_effect = side_effect
    return channel


def _notification(recipient: str = "user_1", email: str | None = "user@example.com") -> Notification:
    return Notification(
        event=NotificationEvent.BOOKING_CONFIRMED,
        recipient_id=recipient,
        recipient_email=email,
        payload={"booking_id": "01ABC", "amount": "$600 COP"},
    )


class TestDispatch:
    @pytest.mark.asyncio
    async def test_every_notification_goes_to_every_channel(self):
        first, second = _channel("a"), _channel("b")
        dispatcher = NotificationDispatcher([first, second])

        await dispatcher.dispatch([_notification("u1"), _notification("u2")])

        assert first.deliver.await_count == 2
        assert second.deliver.await_count == 2

    @pytest.mark.asyncio
    async def test_failing_channel_does_not_stop_the_others(self):
        broken = _channel("broken", side_effect=RuntimeError("smtp down"))
        healthy = _channel("healthy")
        dispatcher = NotificationDispatcher([broken, healthy])

        await dispatcher.dispatch([_notification()])

        healthy.deliver.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_dispatcher_sends_nothing(self):
        channel = _channel("a")
        dispatcher = NotificationDispatcher([channel], enabled=False)

        await dispatcher.dispatch([_notification()])

        channel.deliver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_wraps_a_single_notification(self):
        channel = _channel("a")
        dispatcher = NotificationDispatcher([channel])

        await dispatcher.send(
            NotificationEvent.SERVICE_STARTED,
            {"booking_id": "01ABC"},
            recipient_id="u1",
            recipient_email=None,
        )

        sent = channel.deliver.await_args.args[0]
        assert sent.event == NotificationEvent.SERVICE_STARTED
        assert sent.recipient_id == "u1"


class TestChannels:
    @pytest.mark.asyncio
    async def test_console_channel_logs(self, caplog):
        caplog.set_level("INFO")

        await ConsoleNotificationChannel().deliver(_notification())

        assert "booking_confirmed -> user_1" in caplog.text

    @pytest.mark.asyncio
    async def test_email_channel_sends_through_resend(self):
        with patch("resend.Emails.send") as send:
            channel = ResendEmailChannel("re_test", "Casaora <test@casaora.com>")
            await channel.deliver(_notification())

        params = send.call_args.args[0]
        assert params["to"] == "user@example.com"
        assert params["from"] == "Casaora <test@casaora.com>"
        assert params["subject"] == "Casaora: Your booking is confirmed"
        assert "$600 COP" in params["html"]

    @pytest.mark.asyncio
    async def test_email_channel_skips_recipients_without_email(self):
        with patch("resend.Emails.send") as send:
            await ResendEmailChannel("re_test").deliver(_notification(email=None))

        send.assert_not_called()

    def test_email_channel_requires_key(self):
        with pytest.raises(ValueError):
            ResendEmailChannel("")

    def test_email_body_is_escaped(self):
        notification = Notification(
            event=NotificationEvent.BOOKING_DECLINED,
            recipient_id="u1",
            payload={"reason": "<script>"},
        )

        body = ResendEmailChannel._render(notification)

        assert "<script>" not in body
        assert "&lt;script&gt;" in body


def test_builder_uses_console_without_resend_key(monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "resend_api_key", None)

    dispatcher = build_notification_dispatcher()

    assert [channel.name for channel in dispatcher.channels] == ["console"]

# backend/app/services/notification_dispatcher.py
"""
Booking notification fan-out.

Notifications are sent after the booking transition has committed. Delivery
is best-effort: every recipient is notified concurrently, and a failing
channel is logged and counted but never reaches the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import html
import logging
from typing import Any, Dict, Optional, Protocol, Sequence

import resend

from ..core.config import settings
from ..core.constants import BRAND_NAME
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class NotificationEvent(str, Enum):
    NEW_BOOKING = "new_booking"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_DECLINED = "booking_declined"
    BOOKING_CANCELED = "booking_canceled"
    SERVICE_STARTED = "service_started"
    SERVICE_COMPLETED = "service_completed"
    TIME_EXTENDED = "time_extended"


EMAIL_SUBJECTS: Dict[NotificationEvent, str] = {
    NotificationEvent.NEW_BOOKING: "You have a new booking request",
    NotificationEvent.BOOKING_CONFIRMED: "Your booking is confirmed",
    NotificationEvent.BOOKING_DECLINED: "Your booking was declined",
    NotificationEvent.BOOKING_CANCELED: "A booking was canceled",
    NotificationEvent.SERVICE_STARTED: "Your professional has arrived",
    NotificationEvent.SERVICE_COMPLETED: "Service completed",
    NotificationEvent.TIME_EXTENDED: "Your service time was extended",
}


@dataclass(frozen=True)
class Notification:
    event: NotificationEvent
    recipient_id: str
    recipient_email: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class NotificationChannel(Protocol):
    name: str

    async def deliver(self, notification: Notification) -> None: ...


class ConsoleNotificationChannel:
    """Logs notifications; the default channel outside production."""

    name = "console"

    async def deliver(self, notification: Notification) -> None:
        logger.info(
            f"[notification] {notification.event.value} -> {notification.recipient_id}",
            extra={"event": notification.event.value, "payload": notification.payload},
        )


class ResendEmailChannel:
    """Sends notifications as transactional email through Resend."""

    name = "email"

    def __init__(self, api_key: str, from_email: Optional[str] = None):
        if not api_key:
            raise ValueError("Resend API key must be provided")
        resend.api_key = api_key
        self.from_email = from_email or settings.from_email

    async def deliver(self, notification: Notification) -> None:
        if not notification.recipient_email:
            logger.debug(
                "No email on file, skipping email notification",
                extra={"event": notification.event.value, "recipient_id": notification.recipient_id},
            )
            return
        params = {
            "from": self.from_email,
            "to": notification.recipient_email,
            "subject": f"{BRAND_NAME}: {EMAIL_SUBJECTS[notification.event]}",
            "html": self._render(notification),
        }
        await asyncio.to_thread(resend.Emails.send, params)

    @staticmethod
    def _render(notification: Notification) -> str:
        rows = "".join(
            f"<tr><td>{html.escape(str(key).replace('_', ' ').title())}</td>"
            f"<td>{html.escape(str(value))}</td></tr>"
            for key, value in notification.payload.items()
            if value is not None
        )
        return f"<h2>{html.escape(EMAIL_SUBJECTS[notification.event])}</h2><table>{rows}</table>"


class NotificationDispatcher:
    """Concurrent, failure-isolated delivery across the configured channels."""

    def __init__(self, channels: Sequence[NotificationChannel], *, enabled: bool = True):
        self.channels = list(channels)
        self.enabled = enabled

    async def send(
        self,
        event: NotificationEvent,
        payload: Dict[str, Any],
        *,
        recipient_id: str,
        recipient_email: Optional[str] = None,
    ) -> None:
        await self.dispatch(
            [
                Notification(
                    event=event,
                    recipient_id=recipient_id,
                    recipient_email=recipient_email,
                    payload=payload,
                )
            ]
        )

    async def dispatch(self, notifications: Sequence[Notification]) -> None:
        """Deliver every notification on every channel; never raises."""
        if not self.enabled or not notifications:
            return

        jobs = [
            (notification, channel)
            for notification in notifications
            for channel in self.channels
        ]
        results = await asyncio.gather(
            *(channel.deliver(notification) for notification, channel in jobs),
            return_exceptions=True,
        )
        for (notification, channel), result in zip(jobs, results):
            if isinstance(result, BaseException):
                prometheus_metrics.record_notification_outcome(notification.event.value, "failed")
                logger.warning(
                    f"Notification {notification.event.value} via {channel.name} failed: {result}",
                    extra={
                        "event": notification.event.value,
                        "channel": channel.name,
                        "recipient_id": notification.recipient_id,
                    },
                )
            else:
                prometheus_metrics.record_notification_outcome(notification.event.value, "sent")


def build_notification_dispatcher() -> NotificationDispatcher:
    """Dispatcher wired from settings: Resend when an API key is set, console otherwise."""
    channels: list[NotificationChannel] = [ConsoleNotificationChannel()]
    if settings.resend_api_key:
        channels.append(ResendEmailChannel(settings.resend_api_key, settings.from_email))
    return NotificationDispatcher(channels, enabled=settings.notifications_enabled)

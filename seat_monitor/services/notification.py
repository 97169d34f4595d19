"""
Alert delivery for newly available seats.
WhatsApp via Twilio when configured, otherwise the process log.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from seat_monitor.models.schemas import NotificationResult

logger = logging.getLogger(__name__)


def availability_message(label: str) -> str:
    return f"Seats available for {label}."


class Notifier(ABC):
    """Presents one alert per detected seat opening."""

    @abstractmethod
    async def send_alert(self, title: str, message: str) -> list[NotificationResult]:
        ...


class LogNotifier(Notifier):
    """Fallback notifier writing alerts to the process log."""

    async def send_alert(self, title: str, message: str) -> list[NotificationResult]:
        logger.warning(f"ALERT [{title}] {message}")
        return [NotificationResult(success=True, recipient="log")]


class TwilioNotifier(Notifier):
    """Notifier sending WhatsApp messages via Twilio."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        recipients: list[str],
        client: Optional[Client] = None,
    ):
        """
        Initialize notification service.

        Args:
            account_sid: Twilio Account SID
            auth_token: Twilio Auth Token
            from_number: WhatsApp number to send messages from
            recipients: WhatsApp numbers to alert
            client: Preconfigured Twilio client
        """
        self.client = client or Client(account_sid, auth_token)
        self.from_number = _whatsapp_address(from_number)
        self.recipients = recipients
        logger.info(
            f"WhatsApp notification service initialized "
            f"({len(recipients)} recipients)"
        )

    async def send_message(
        self,
        to_number: str,
        message: str,
        max_retries: int = 3,
    ) -> NotificationResult:
        """
        Send WhatsApp message asynchronously with retry logic.

        Args:
            to_number: Recipient WhatsApp number
            message: Message content
            max_retries: Maximum number of retry attempts

        Returns:
            NotificationResult with delivery status
        """
        whatsapp_to = _whatsapp_address(to_number)
        error = "Max retries exceeded"

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(
                    f"Sending WhatsApp message to {to_number} "
                    f"(attempt {attempt}/{max_retries})"
                )

                # Twilio SDK is synchronous
                loop = asyncio.get_running_loop()
                twilio_message = await loop.run_in_executor(
                    None,
                    lambda: self.client.messages.create(
                        to=whatsapp_to,
                        from_=self.from_number,
                        body=message,
                    ),
                )

                logger.info(
                    f"WhatsApp message sent successfully to {to_number} "
                    f"(SID: {twilio_message.sid})"
                )

                return NotificationResult(
                    success=True,
                    message_sid=twilio_message.sid,
                    recipient=to_number,
                )

            except TwilioRestException as e:
                logger.error(
                    f"Twilio error sending to {to_number} "
                    f"(attempt {attempt}): {e.msg}"
                )
                error = f"Twilio error: {e.msg}"

            except Exception as e:
                logger.error(
                    f"Unexpected error sending to {to_number} "
                    f"(attempt {attempt}): {e}"
                )
                error = f"Unexpected error: {str(e)}"

            if attempt < max_retries:
                # Exponential backoff
                wait_time = 2**attempt
                logger.info(f"Retrying in {wait_time} seconds...")
                await asyncio.sleep(wait_time)

        return NotificationResult(
            success=False,
            recipient=to_number,
            error=error,
            sent_at=datetime.now(timezone.utc),
        )

    async def send_alert(self, title: str, message: str) -> list[NotificationResult]:
        body = f"{title}\n{message}"

        # Send to all recipients concurrently
        tasks = [self.send_message(recipient, body) for recipient in self.recipients]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        notification_results = []
        for recipient, result in zip(self.recipients, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to send to {recipient}: {result}")
                notification_results.append(
                    NotificationResult(
                        success=False,
                        recipient=recipient,
                        error=str(result),
                    )
                )
            else:
                notification_results.append(result)

        successful = sum(1 for r in notification_results if r.success)
        logger.info(
            f"Alert sent: {successful}/{len(self.recipients)} successful deliveries"
        )
        return notification_results


def _whatsapp_address(number: str) -> str:
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"

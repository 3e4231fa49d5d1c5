"""
Telegram bot integration for sending reminders.

Posts formatted reminder messages to a Telegram chat.
"""

from typing import Optional
import requests
import structlog

from config import Settings, settings as default_settings
from models.order import Order, total_confirmed, remaining_quantity
from exceptions import ReminderDispatchError

logger = structlog.get_logger(__name__)

TELEGRAM_API = "https://api.telegram.org"


def format_reminder_message(order: Order) -> str:
    """
    Format a reminder as a Telegram Markdown message.

    Args:
        order: Order to remind about

    Returns:
        Formatted message string
    """
    unit = order.unit.value
    lines = [
        "⏰ *Order not fully confirmed*",
        "",
        f"Client: `{order.final_client}`",
        f"Article: `{order.technology}`",
        f"Delivery: {order.delivery_date.isoformat()}",
        "",
        f"Ordered: {order.ordered_quantity} {unit}",
        f"Confirmed: {total_confirmed(order)} {unit}",
        f"Remaining: {remaining_quantity(order)} {unit}",
    ]
    return "\n".join(lines)


class TelegramReminderDispatcher:
    """Send reminders to a Telegram chat."""

    channel = "telegram"

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def send_message(self, message: str, parse_mode: str = "Markdown") -> bool:
        """
        Send message to Telegram.

        Returns:
            True if sent successfully, False if Telegram is not configured

        Raises:
            ReminderDispatchError: If send fails
        """
        if not self.config.telegram_configured:
            logger.warning("telegram_not_configured_skipping_send")
            return False

        url = f"{TELEGRAM_API}/bot{self.config.telegram_bot_token}/sendMessage"

        payload = {
            "chat_id": self.config.telegram_chat_id,
            "text": message,
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
        }

        try:
            logger.info("sending_telegram_message", chat_id=self.config.telegram_chat_id)

            response = requests.post(url, json=payload, timeout=10)
            response.raise_for_status()

            result = response.json()

            if not result.get("ok"):
                error_msg = result.get("description", "Unknown error")
                logger.error("telegram_api_error", error=error_msg)
                raise ReminderDispatchError("telegram", f"Telegram API error: {error_msg}")

            logger.info("telegram_message_sent", message_id=result.get("result", {}).get("message_id"))
            return True

        except requests.exceptions.RequestException as e:
            logger.error("telegram_request_failed", error=str(e))
            raise ReminderDispatchError("telegram", f"Failed to send Telegram message: {e}") from e

    def send_reminder(self, order: Order) -> bool:
        """Send one reminder for an order."""
        return self.send_message(format_reminder_message(order))

"""
SMTP integration for reminder emails.

Sends a plain-text reminder for an order that is due soon and not yet
fully confirmed.
"""

import smtplib
from email.message import EmailMessage
from typing import Optional
import structlog

from config import Settings, settings as default_settings
from models.order import Order, total_confirmed
from exceptions import ReminderDispatchError

logger = structlog.get_logger(__name__)

REMINDER_SUBJECT = "Order confirmation reminder"


def format_reminder_email(order: Order) -> str:
    """
    Build the reminder body.

    Args:
        order: Order to remind about

    Returns:
        Message text
    """
    unit = order.unit.value
    return "\n".join([
        "Hello,",
        "",
        f"Your order due on {order.delivery_date.strftime('%d/%m/%Y')} "
        "is still not fully confirmed.",
        "",
        f"Ordered quantity: {order.ordered_quantity} {unit}",
        f"Confirmed quantity: {total_confirmed(order)} {unit}",
        "",
        "Please contact us as soon as possible to validate the delivery.",
        "",
        "Regards,",
        "The team",
    ])


class EmailReminderDispatcher:
    """Send reminders over SMTP."""

    channel = "email"

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def build_message(self, order: Order) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = REMINDER_SUBJECT
        message["From"] = self.config.smtp_sender
        message["To"] = self.config.reminder_recipient
        message.set_content(format_reminder_email(order))
        return message

    def send_reminder(self, order: Order) -> bool:
        """
        Send one reminder email.

        Returns:
            True if sent, False if SMTP is not configured

        Raises:
            ReminderDispatchError: If the SMTP exchange fails
        """
        if not self.config.smtp_configured:
            logger.warning("smtp_not_configured_skipping_send", order_id=order.id)
            return False

        message = self.build_message(order)

        try:
            logger.info(
                "sending_reminder_email",
                order_id=order.id,
                to=self.config.reminder_recipient
            )

            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=10) as smtp:
                if self.config.smtp_use_tls:
                    smtp.starttls()
                if self.config.smtp_username and self.config.smtp_password:
                    smtp.login(self.config.smtp_username, self.config.smtp_password)
                smtp.send_message(message)

            logger.info("reminder_email_sent", order_id=order.id)
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error("reminder_email_failed", order_id=order.id, error=str(e))
            raise ReminderDispatchError(
                "email",
                f"Failed to send reminder email: {e}",
                details={"order_id": order.id}
            ) from e

"""
Transactional and newsletter email through Resend.

Sending never raises: a failed email is logged and reported as False so the
order or subscription that triggered it still succeeds.
"""
import asyncio
from html import escape
from urllib.parse import quote
from typing import Optional, Iterable

import resend
import structlog

from sphire.core.config import settings

logger = structlog.get_logger()

BRAND = "Sphire Premium"


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _layout(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto;">
    <div style="background: #111; color: #fff; padding: 24px; text-align: center;">
      <h1 style="margin: 0;">{escape(title)}</h1>
    </div>
    <div style="padding: 24px;">{body}</div>
    <div style="padding: 16px; text-align: center; font-size: 12px; color: #888;">
      <p><strong>{BRAND}</strong></p>
    </div>
  </body>
</html>"""


class EmailService:
    """Builds store emails and hands them to Resend."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_address: Optional[str] = None,
        admin_email: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_address = from_address or settings.EMAIL_FROM_ADDRESS
        self.admin_email = admin_email or settings.ADMIN_NOTIFICATION_EMAIL
        if self.api_key:
            resend.api_key = self.api_key

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _send(self, to, subject: str, html: str) -> Optional[str]:
        """
        Send one message.

        Args:
            to: Recipient address or list of addresses
            subject: Subject line
            html: Rendered body

        Returns:
            Resend message id, or None when sending was skipped or failed
        """
        if not self.enabled:
            logger.info("email_skipped", reason="no_api_key", subject=subject)
            return None

        params = {
            "from": self.from_address,
            "to": to,
            "subject": subject,
            "html": html,
        }
        try:
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            logger.error("email_send_failed", subject=subject, error=str(e))
            return None

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info("email_sent", subject=subject, message_id=message_id)
        return message_id

    @staticmethod
    def _items_table(order) -> str:
        rows = "".join(
            f"<tr><td>{escape(item.name)}</td><td>{item.quantity}</td>"
            f"<td>{_money(item.price)}</td><td>{_money(item.subtotal)}</td></tr>"
            for item in order.items
        )
        return (
            '<table width="100%" cellpadding="6" style="border-collapse: collapse;">'
            "<tr><th align='left'>Item</th><th>Qty</th><th>Price</th><th>Total</th></tr>"
            f"{rows}</table>"
            f"<p>Subtotal: {_money(order.subtotal)}<br>"
            f"Shipping: {_money(order.shipping_cost)}<br>"
            f"Tax: {_money(order.tax)}<br>"
            f"<strong>Total: {_money(order.total)}</strong></p>"
        )

    @staticmethod
    def _address_block(address: dict) -> str:
        parts = [address.get(k) for k in ("street", "city", "state", "zip_code", "country")]
        return "<p>" + escape(", ".join(p for p in parts if p)) + "</p>"

    async def send_order_confirmation(self, order, customer_email: str, customer_name: str) -> bool:
        """Confirmation sent to the customer right after checkout."""
        body = (
            f"<p>Hi {escape(customer_name)},</p>"
            f"<p>Thank you for your order <strong>{order.order_number}</strong>. "
            "We will let you know when it ships. Payment is collected on delivery.</p>"
            f"{self._items_table(order)}"
            "<h3>Shipping to</h3>"
            f"{self._address_block(order.shipping_address)}"
        )
        message_id = await self._send(
            customer_email,
            f"Order Confirmation - {order.order_number}",
            _layout("Thank you for your order!", body),
        )
        return message_id is not None

    async def send_admin_order_notification(self, order, customer_email: str, customer_name: str) -> bool:
        """New-order alert for the store admin."""
        body = (
            f"<p>A new order <strong>{order.order_number}</strong> was placed by "
            f"{escape(customer_name)} ({escape(customer_email)}).</p>"
            f"{self._items_table(order)}"
            f"{self._address_block(order.shipping_address)}"
        )
        message_id = await self._send(
            self.admin_email,
            f"New Order Alert - {order.order_number}",
            _layout("New order received", body),
        )
        return message_id is not None

    async def send_order_status_update(self, order, customer_email: str, customer_name: str) -> bool:
        status = order.order_status.value
        tracking = (
            f"<p>Tracking number: <strong>{escape(order.tracking_number)}</strong></p>"
            if order.tracking_number else ""
        )
        body = (
            f"<p>Hi {escape(customer_name)},</p>"
            f"<p>Your order <strong>{order.order_number}</strong> is now "
            f"<strong>{status}</strong>.</p>{tracking}"
        )
        message_id = await self._send(
            customer_email,
            f"Order {order.order_number} is {status}",
            _layout("Order update", body),
        )
        return message_id is not None

    async def send_newsletter_welcome(self, email: str) -> bool:
        unsubscribe_url = f"{settings.STOREFRONT_URL}/newsletter/unsubscribe?email={quote(email, safe='@')}"
        body = (
            f"<p>Welcome to the {BRAND} newsletter!</p>"
            "<p>You will be the first to hear about new arrivals, exclusive offers and beauty tips.</p>"
            f'<p style="font-size: 12px;"><a href="{unsubscribe_url}">Unsubscribe</a></p>'
        )
        message_id = await self._send(
            email,
            f"Welcome to {BRAND} Newsletter!",
            _layout(f"Welcome to {BRAND}!", body),
        )
        return message_id is not None

    async def send_newsletter(self, recipients: Iterable[str], subject: str, content: str) -> int:
        """
        Send a broadcast to every recipient individually.

        Returns:
            Number of messages Resend accepted
        """
        html = _layout(subject, content)
        sent = 0
        for email in recipients:
            if await self._send(email, subject, html) is not None:
                sent += 1
        logger.info("newsletter_broadcast_finished", subject=subject, sent=sent)
        return sent


email_service = EmailService()


def get_email_service() -> EmailService:
    """Dependency for getting the email service."""
    return email_service

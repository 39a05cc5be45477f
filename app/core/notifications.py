# app/core/notifications.py
"""
Best-effort order notifications.

Channels:
  1. Customer email (SMTP, see email_client).
  2. Admin push notification via ntfy.sh.
  3. WhatsApp deep link for the admin, logged for manual follow-up.

Routers schedule `NotificationDispatcher.notify` as a FastAPI background
task. `notify` never raises: every failure is logged and dropped, so a
broken mail server cannot fail an order write that has already committed.
"""

import logging
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote

import requests
from fastapi import BackgroundTasks, Depends

from app.core.email_client import SmtpMailer
from app.core.config import Settings, get_settings
from app.models.order import Order

logger = logging.getLogger(__name__)

ORDER_PLACED = "order_placed"
ORDER_CONFIRMED = "order_confirmed"
ORDER_STATUS_CHANGED = "order_status_changed"
ORDER_CANCELLED = "order_cancelled"


@dataclass
class OrderNotice:
    """Detached snapshot of the order fields notifications need."""

    order_number: str
    status: str
    customer_name: str
    customer_phone: str
    customer_email: str | None
    total: float
    items_count: int
    shipping_address: str
    carrier: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    note: str | None = None

    @classmethod
    def from_order(
        cls,
        order: Order,
        items_count: int,
        customer_email: str | None = None,
        note: str | None = None,
    ) -> "OrderNotice":
        return cls(
            order_number=order.order_number,
            status=order.status,
            customer_name=order.shipping_name,
            customer_phone=order.shipping_phone,
            customer_email=order.shipping_email or customer_email,
            total=order.total,
            items_count=items_count,
            shipping_address=(
                f"{order.shipping_address}, {order.shipping_city}, "
                f"{order.shipping_state} - {order.shipping_pincode}"
            ),
            carrier=order.carrier,
            tracking_number=order.tracking_number,
            tracking_url=order.tracking_url,
            note=note,
        )


NotifyFn = Callable[[str, OrderNotice], None]


def format_inr(amount: float) -> str:
    return f"₹{amount:,.2f}"


def generate_order_whatsapp_link(admin_number: str, notice: OrderNotice) -> str:
    """
    Build a wa.me link carrying a pre-filled new-order message.
    """
    message = (
        "🎁 *New Order Received!*\n\n"
        f"📋 *Order #{notice.order_number}*\n\n"
        f"👤 *Customer:* {notice.customer_name}\n"
        f"📞 *Phone:* {notice.customer_phone}\n"
        f"📦 *Items:* {notice.items_count} item(s)\n"
        f"💰 *Total:* {format_inr(notice.total)}\n\n"
        f"📍 *Shipping:*\n{notice.shipping_address}\n\n"
        "---\nCheck admin panel for full details."
    )
    return f"https://wa.me/{admin_number}?text={quote(message)}"


def _customer_email(event: str, notice: OrderNotice) -> tuple[str, str]:
    """
    Return (subject, text body) of the customer email for an event.
    """
    greeting = f"Hi {notice.customer_name},\n\n"

    if event == ORDER_PLACED:
        return (
            f"Order {notice.order_number} received",
            greeting
            + f"Thank you for your order {notice.order_number}.\n"
            + f"Total: {format_inr(notice.total)} for {notice.items_count} item(s).\n",
        )

    if event == ORDER_CONFIRMED:
        return (
            f"Payment received for order {notice.order_number}",
            greeting
            + f"We have received your payment for order {notice.order_number}. "
            + "It is now confirmed.\n",
        )

    if event == ORDER_CANCELLED or notice.status == "cancelled":
        body = greeting + f"Your order {notice.order_number} has been cancelled.\n"
        if notice.note:
            body += f"Reason: {notice.note}\n"
        return (f"Order {notice.order_number} cancelled", body)

    if notice.status == "shipped":
        body = greeting + f"Your order {notice.order_number} is on its way.\n"
        if notice.carrier:
            body += f"Carrier: {notice.carrier}\n"
        if notice.tracking_number:
            body += f"Tracking number: {notice.tracking_number}\n"
        if notice.tracking_url:
            body += f"Track it here: {notice.tracking_url}\n"
        return (f"Order {notice.order_number} shipped", body)

    if notice.status == "delivered":
        return (
            f"Order {notice.order_number} delivered",
            greeting + f"Your order {notice.order_number} has been delivered.\n",
        )

    return (
        f"Order {notice.order_number} update",
        greeting
        + (notice.note or f"Your order has been {notice.status}")
        + "\n",
    )


class NotificationDispatcher:
    """
    Sends order notifications over every configured channel.
    """

    def __init__(self, settings: Settings, mailer: SmtpMailer | None = None):
        self.settings = settings
        self.mailer = mailer or SmtpMailer(settings)

    def notify(self, event: str, notice: OrderNotice) -> None:
        if not self.settings.NOTIFICATIONS_ENABLED:
            return

        try:
            if event == ORDER_PLACED:
                self._push_admin(notice)
                logger.info(
                    "WhatsApp link for %s: %s",
                    notice.order_number,
                    generate_order_whatsapp_link(self.settings.ADMIN_WHATSAPP, notice),
                )

            self._email_customer(event, notice)
        except Exception:
            logger.exception("Notification %s failed for %s", event, notice.order_number)

    def _email_customer(self, event: str, notice: OrderNotice) -> None:
        if not notice.customer_email or not self.mailer.configured:
            return

        subject, body = _customer_email(event, notice)

        try:
            self.mailer.send(
                to_email=notice.customer_email,
                subject=f"[{self.settings.COMPANY_NAME}] {subject}",
                text_body=body,
            )
            logger.info("Order email sent for %s (%s)", notice.order_number, event)
        except Exception:
            logger.exception("Failed to send order email for %s", notice.order_number)

    def _push_admin(self, notice: OrderNotice) -> None:
        if not self.settings.NTFY_TOPIC:
            return

        message = (
            f"Order #{notice.order_number}\n"
            f"Customer: {notice.customer_name}\n"
            f"Phone: {notice.customer_phone}\n"
            f"Total: {format_inr(notice.total)}\n"
            f"Items: {notice.items_count}"
        )
        try:
            requests.post(
                f"{self.settings.NTFY_BASE_URL}/{self.settings.NTFY_TOPIC}",
                data=message.encode("utf-8"),
                headers={
                    "Title": "New Order!",
                    "Priority": "urgent",
                    "Tags": "shopping_cart,rupee",
                },
                timeout=self.settings.NOTIFY_TIMEOUT_SECONDS,
            )
        except requests.RequestException:
            logger.exception("Failed to send push notification for %s", notice.order_number)


def get_notifier() -> NotificationDispatcher:
    """FastAPI dependency returning the notification dispatcher."""
    return NotificationDispatcher(get_settings())


def get_order_notify(
    background_tasks: BackgroundTasks,
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> NotifyFn:
    """
    FastAPI dependency returning a callable that queues a notification
    to run after the response has been sent.
    """

    def schedule(event: str, notice: OrderNotice) -> None:
        background_tasks.add_task(notifier.notify, event, notice)

    return schedule

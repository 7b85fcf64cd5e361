# grocery/emailer.py
from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import List, Optional, Sequence, Tuple

import structlog

from .config import settings
from .models import Order, User
from .ordering.cart import build_summary

logger = structlog.get_logger(__name__)


def build_order_email(order: Order, customer: Optional[User]) -> Tuple[str, str]:
    cur = settings.currency
    summary, total = build_summary(list(order.items), order.delivery_fee, currency=cur)
    subject = f"New Order #{order.id} - {total:.2f} {cur}"

    name = (customer.display_name or customer.username) if customer else ""
    phone = (customer.phone or "") if customer else ""
    address = ", ".join(x for x in (order.zone_name, order.street, order.building) if x)
    body = (
        f"Order ID: {order.id}\n"
        f"Customer: {name} ({phone})\n"
        f"Address: {address}\n"
        + (f"Details: {order.address_details}\n" if order.address_details else "")
        + f"Payment: {order.payment_method}\n\n"
        + summary
    )
    return subject, body


def send_order_email(to_emails: Sequence[str], subject: str, body: str) -> None:
    msg = EmailMessage()
    msg["From"] = settings.mail_from
    msg["To"] = ", ".join(to_emails)
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
        smtp.starttls()
        if settings.smtp_user:
            smtp.login(settings.smtp_user, settings.smtp_pass)
        smtp.send_message(msg)


def notify_order_created(order: Order, customer: Optional[User], recipients: Optional[List[str]] = None) -> None:
    """Fire-and-forget: runs after the response is sent and never raises."""
    order_id = order.id
    to = recipients if recipients is not None else settings.cashier_emails
    if not to:
        logger.info("order_email_skipped", order_id=order_id, reason="no recipients configured")
        return

    try:
        subject, body = build_order_email(order, customer)
        send_order_email(to, subject, body)
    except Exception:
        logger.exception("order_email_failed", order_id=order_id)
        return

    logger.info("order_email_sent", order_id=order_id, recipients=len(to))

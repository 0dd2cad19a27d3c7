"""E-mail delivery over SMTP."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict

from ..config import settings
from ..metrics import SIDE_EFFECT_FAILURES_TOTAL

logger = logging.getLogger(__name__)


def send_email(recipient: str, subject: str, body: str) -> bool:
    """Send a plain-text e-mail if SMTP settings are provided."""
    if not recipient or not settings.SMTP_SERVER:
        logger.info("Skipping e-mail '%s': no recipient or SMTP server", subject)
        return False
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_SENDER or settings.SMTP_USERNAME or "noreply@example.com"
    msg["To"] = recipient
    msg.set_content(body)
    try:
        with smtplib.SMTP(settings.SMTP_SERVER, int(settings.SMTP_PORT or 25)) as smtp:
            if settings.SMTP_USERNAME:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
            smtp.send_message(msg)
        logger.info("E-mail '%s' sent to %s", subject, recipient)
        return True
    except (smtplib.SMTPException, OSError) as exc:
        SIDE_EFFECT_FAILURES_TOTAL.labels(kind="email").inc()
        logger.error("E-mail '%s' to %s failed: %s", subject, recipient, exc)
        return False


def send_invite_email(email: str, full_name: str, invite_link: str) -> bool:
    """Send the one-time link a new user follows to choose a password."""
    if not settings.ENABLE_INVITE_EMAILS:
        return False
    body = (
        f"Hi {full_name},\n\n"
        f"An account has been created for you with {email}.\n"
        "Choose your password here:\n\n"
        f"    {invite_link}\n\n"
        f"The link works once and expires after {settings.INVITE_TOKEN_MAX_AGE_DAYS} days.\n"
    )
    return send_email(email, "You have been invited", body)


def send_purchase_order_email(order: Dict[str, Any]) -> bool:
    """E-mail a sent purchase order to the supplier's order address."""
    supplier = order.get("supplier") or {}
    lines = [
        f"{line.get('item_name') or line['product_variant_id']}: "
        f"{line['quantity_ordered']:g} x {line['unit_price']:.2f}"
        for line in order.get("lines", [])
    ]
    body = "\n".join(
        [
            f"Purchase order {order['order_number']}",
            f"Order date: {order['order_date']}",
            f"Expected delivery: {order.get('expected_delivery') or '-'}",
            "",
            *lines,
            "",
            f"Subtotal: {order['subtotal']:.2f}",
            f"VAT: {order['tax']:.2f}",
            f"Total: {order['total']:.2f}",
        ]
    )
    return send_email(
        supplier.get("order_email"), f"Purchase order {order['order_number']}", body
    )

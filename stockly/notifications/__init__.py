"""
Outbound notifications: e-mail over SMTP and the team messaging channel.

Every sender here is best-effort: failures are logged and reported as
``False`` instead of being raised.
"""

from .mail import send_email, send_invite_email, send_purchase_order_email
from .messaging import MessagingClient, ensure_user_channel

__all__ = [
    "send_email",
    "send_invite_email",
    "send_purchase_order_email",
    "MessagingClient",
    "ensure_user_channel",
]

"""
Client for the team messaging service.

New users get a personal channel so shift and task notices can reach them.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from ..config import settings
from ..metrics import SIDE_EFFECT_FAILURES_TOTAL

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


@dataclass
class MessagingConfig:
    api_url: str
    token: str
    timeout: int = DEFAULT_TIMEOUT


class MessagingClient:
    """Thin wrapper around the messaging HTTP API."""

    def __init__(self, config: MessagingConfig):
        self.config = config
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "Content-Type": "application/json",
        }

    def upsert_user(self, user_id: int, full_name: str, email: str) -> bool:
        payload = {"id": str(user_id), "name": full_name, "email": email}
        try:
            response = requests.post(
                f"{self.config.api_url.rstrip('/')}/users",
                headers=self._headers,
                json=payload,
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout:
            logger.error("Timeout while creating messaging user %s", user_id)
            return False
        except requests.exceptions.RequestException as exc:
            logger.error("Messaging connection error for user %s: %s", user_id, exc)
            return False

        if response.status_code in (200, 201):
            logger.debug("Messaging user %s ready", user_id)
            return True
        logger.error(
            "Messaging API returned %s for user %s: %s",
            response.status_code,
            user_id,
            response.text,
        )
        return False


def get_messaging_client() -> Optional[MessagingClient]:
    if not settings.MESSAGING_API_URL or not settings.MESSAGING_API_TOKEN:
        return None
    return MessagingClient(
        MessagingConfig(
            api_url=settings.MESSAGING_API_URL, token=settings.MESSAGING_API_TOKEN
        )
    )


def ensure_user_channel(user_id: int, full_name: str, email: str) -> bool:
    """Create or refresh the user's messaging identity; ``False`` on any failure."""
    client = get_messaging_client()
    if client is None:
        logger.info("Messaging not configured; skipping channel for user %s", user_id)
        return False
    if client.upsert_user(user_id, full_name, email):
        return True
    SIDE_EFFECT_FAILURES_TOTAL.labels(kind="messaging").inc()
    return False

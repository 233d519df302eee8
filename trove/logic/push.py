"""Browser push payloads and subscription registration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel, model_validator

from trove.rpc.client import RpcClient, RpcError

logger = logging.getLogger(__name__)

DEFAULT_ICON = "/icon.png"
DEFAULT_BADGE = "/badge.png"
DEFAULT_URL = "/"


class PushData(BaseModel):
    url: str | None = None


class PushPayload(BaseModel):
    title: str
    body: str = ""
    icon: str | None = None
    badge: str | None = None
    data: PushData | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_url(cls, values):
        # Older senders put the url at the top level.
        if isinstance(values, dict) and "url" in values and not values.get("data"):
            values = {**values, "data": {"url": values["url"]}}
        return values


@dataclass(slots=True)
class Notification:
    title: str
    body: str
    icon: str
    badge: str
    url: str | None


def parse_push(payload: str | bytes | dict) -> Notification:
    if isinstance(payload, dict):
        parsed = PushPayload.model_validate(payload)
    else:
        parsed = PushPayload.model_validate_json(payload)
    return Notification(
        title=parsed.title,
        body=parsed.body,
        icon=parsed.icon or DEFAULT_ICON,
        badge=parsed.badge or DEFAULT_BADGE,
        url=parsed.data.url if parsed.data else None,
    )


def click_target(notification: Notification) -> str:
    return notification.url or DEFAULT_URL


async def register_push_subscription(client: RpcClient, endpoint: str, auth: str = "", p256dh: str = "") -> bool:
    try:
        await client.insert("push_subscriptions", {"endpoint": endpoint, "auth": auth, "p256dh": p256dh})
    except RpcError as exc:
        logger.error("Error subscribing to push notifications: %s", exc)
        return False
    return True

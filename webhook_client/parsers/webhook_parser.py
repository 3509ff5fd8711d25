"""Parse webhook URLs into their id and token."""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from ..config import WEBHOOK_URL
from ..exceptions import WebhookUrlError

_PATH_PATTERN = re.compile(
    r"^/api(?:/v\d+)?/webhooks/(?P<id>\d+)/(?P<token>[A-Za-z0-9_.\-]+)/?$"
)
_PAIR_PATTERN = re.compile(r"^(?P<id>\d+)/(?P<token>[A-Za-z0-9_.\-]+)$")


@dataclass(frozen=True)
class WebhookTarget:
    """The webhook a client delivers to."""

    id: int
    token: str
    url: str

    def __str__(self) -> str:
        return f"webhook {self.id}"


def build_webhook_url(webhook_id: int, token: str) -> str:
    """Build the execute URL for a webhook id and token."""
    if webhook_id < 0:
        raise WebhookUrlError(f"Webhook id must not be negative, got: {webhook_id}")
    token = token.strip()
    if not token:
        raise WebhookUrlError("Webhook token cannot be empty.")
    return WEBHOOK_URL.format(id=webhook_id, token=token)


def parse_webhook_url(url: str) -> WebhookTarget:
    """Parse a webhook URL or an ``id/token`` pair, or raise WebhookUrlError."""
    url = url.strip()

    if not url:
        raise WebhookUrlError("Webhook URL cannot be empty.")

    if "://" in url:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise WebhookUrlError(f"Invalid webhook URL: {url}")
        match = _PATH_PATTERN.match(parsed.path)
        if not match:
            raise WebhookUrlError(f"Not a webhook URL: {url}")
        # Keep the caller's host and API version
        return WebhookTarget(
            id=int(match.group("id")),
            token=match.group("token"),
            url=f"{parsed.scheme}://{parsed.netloc}{parsed.path.rstrip('/')}",
        )

    match = _PAIR_PATTERN.match(url)
    if match:
        webhook_id = int(match.group("id"))
        token = match.group("token")
        return WebhookTarget(
            id=webhook_id, token=token, url=build_webhook_url(webhook_id, token)
        )

    raise WebhookUrlError(f"Invalid webhook format: {url}")

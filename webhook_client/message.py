"""Encode plain text messages into webhook request bodies."""

import json
from typing import Optional

from .config import MAX_CONTENT_LENGTH
from .exceptions import MessageError


def build_content_body(
    content: str,
    username: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> bytes:
    """
    Build a JSON webhook body for a text message.

    Args:
        content: The message text. Surrounding whitespace is stripped.
        username: Optional name to post as instead of the webhook's default.
        avatar_url: Optional avatar to post with.

    Returns:
        The UTF-8 encoded JSON body.

    Raises:
        MessageError: If the content is empty or too long.
    """
    if content is None:
        raise MessageError("Content cannot be None.")
    content = content.strip()
    if not content:
        raise MessageError("Cannot send an empty message.")
    if len(content) > MAX_CONTENT_LENGTH:
        raise MessageError(
            f"Content may not exceed {MAX_CONTENT_LENGTH} characters, "
            f"got: {len(content)}"
        )

    payload = {"content": content}
    if username:
        payload["username"] = username
    if avatar_url:
        payload["avatar_url"] = avatar_url
    return json.dumps(payload).encode("utf-8")

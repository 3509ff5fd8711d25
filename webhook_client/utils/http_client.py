"""aiohttp plumbing for talking to a webhook."""

import logging
from typing import Dict, Optional, Tuple

import aiohttp
from aiohttp_socks import ProxyConnector
from multidict import CIMultiDictProxy

from ..config import DEFAULT_TIMEOUT, USER_AGENT


async def get_aiohttp_session(
    timeout: float = DEFAULT_TIMEOUT, proxy: Optional[str] = None
) -> aiohttp.ClientSession:
    """
    Returns a new aiohttp ClientSession for webhook deliveries.

    Args:
        timeout: Total timeout of one exchange in seconds.
        proxy: Optional proxy URL (http, socks4 or socks5) to route through.
    """
    connector = None
    if proxy:
        connector = ProxyConnector.from_url(proxy)
        logging.debug(f"Routing webhook requests through proxy {proxy}")
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout),
    )


def build_headers(content_type: str) -> Dict[str, str]:
    """Headers sent with every webhook request."""
    return {
        "Accept-Encoding": "gzip",
        "User-Agent": USER_AGENT,
        "Content-Type": content_type,
    }


async def post_body(
    session: aiohttp.ClientSession, url: str, body: bytes, content_type: str
) -> Tuple[int, CIMultiDictProxy, bytes]:
    """
    POST a body to the webhook and read the whole response.

    aiohttp decodes a gzip or deflate Content-Encoding on read, so the
    returned body is always plain bytes.

    Returns:
        The status code, response headers and response body.

    Raises:
        aiohttp.ClientError, asyncio.TimeoutError: If the exchange fails.
    """
    async with session.post(
        url, data=body, headers=build_headers(content_type)
    ) as response:
        payload = await response.read()
        return response.status, response.headers, payload

"""Unit tests for the aiohttp helpers."""

import pytest
from aiohttp_socks import ProxyConnector

from webhook_client.config import USER_AGENT
from webhook_client.utils.http_client import build_headers, get_aiohttp_session, post_body


def test_build_headers():
    assert build_headers("multipart/form-data") == {
        "Accept-Encoding": "gzip",
        "User-Agent": USER_AGENT,
        "Content-Type": "multipart/form-data",
    }


@pytest.mark.asyncio
async def test_session_without_proxy():
    session = await get_aiohttp_session(timeout=3)
    try:
        assert session.timeout.total == 3
        assert not isinstance(session.connector, ProxyConnector)
    finally:
        await session.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "proxy", ["socks5://127.0.0.1:1080", "socks4://127.0.0.1:1080", "http://127.0.0.1:3128"]
)
async def test_session_with_proxy(proxy):
    session = await get_aiohttp_session(proxy=proxy)
    try:
        assert isinstance(session.connector, ProxyConnector)
    finally:
        await session.close()


@pytest.mark.asyncio
async def test_post_body_reads_whole_response(webhook_server):
    webhook_server.respond(
        200,
        headers={"X-RateLimit-Remaining": "1", "X-RateLimit-Limit": "5"},
        body=b'{"id": "1"}',
        compress=True,
    )
    session = await get_aiohttp_session()
    try:
        status, headers, body = await post_body(
            session, webhook_server.url, b'{"content": "hi"}', "application/json"
        )
    finally:
        await session.close()

    assert status == 200
    assert headers["x-ratelimit-remaining"] == "1"
    assert body == b'{"id": "1"}'
    assert webhook_server.bodies == [b'{"content": "hi"}']

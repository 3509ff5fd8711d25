"""Pytest configuration for the test suite."""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer


def pytest_configure(config):
    """
    Configures pytest and adds a custom marker for integration tests.

    Integration tests talk to a real webhook server running on localhost
    and wait out real rate limit windows, so they take a few seconds.

    To run only integration tests:
        pytest -m integration

    To skip integration tests:
        pytest -m "not integration"
    """
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


@dataclass
class Received:
    """A request the fake webhook received."""

    at: float  # time.monotonic()
    body: bytes
    headers: Dict[str, str]


@dataclass
class ScriptedResponse:
    status: int = 200
    headers: Optional[Dict[str, str]] = None
    body: bytes = b""
    compress: bool = False
    delay: float = 0.0  # seconds to wait before answering


class FakeWebhook:
    """Webhook endpoint that answers with scripted responses, in order.

    Once the script runs out every request gets a 200 with plenty of uses
    left in the bucket.
    """

    def __init__(self):
        self.url: str = ""
        self.received: List[Received] = []
        self._script: Deque[ScriptedResponse] = deque()

    def respond(self, status: int = 200, headers: Optional[Dict[str, str]] = None,
                body: bytes = b"", compress: bool = False,
                delay: float = 0.0) -> None:
        self._script.append(ScriptedResponse(status, headers, body, compress, delay))

    @property
    def bodies(self) -> List[bytes]:
        return [r.body for r in self.received]

    async def wait_for(self, count: int, timeout: float = 5.0) -> None:
        """Wait until at least ``count`` requests have arrived."""
        deadline = time.monotonic() + timeout
        while len(self.received) < count:
            if time.monotonic() > deadline:
                raise AssertionError(
                    f"Expected {count} requests, got {len(self.received)}"
                )
            await asyncio.sleep(0.01)

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.read()
        self.received.append(Received(time.monotonic(), body, dict(request.headers)))
        if self._script:
            scripted = self._script.popleft()
        else:
            scripted = ScriptedResponse(
                headers={"X-RateLimit-Remaining": "4", "X-RateLimit-Limit": "5"}
            )
        if scripted.delay:
            await asyncio.sleep(scripted.delay)
        response = web.Response(
            status=scripted.status, body=scripted.body, headers=scripted.headers
        )
        if scripted.compress:
            response.enable_compression(web.ContentCoding.gzip)
        return response


@pytest_asyncio.fixture
async def webhook_server():
    """A FakeWebhook served on localhost."""
    fake = FakeWebhook()
    app = web.Application()
    app.router.add_post("/api/webhooks/{id}/{token}", fake.handle)
    server = TestServer(app)
    await server.start_server()
    fake.url = str(server.make_url("/api/webhooks/123/token"))
    yield fake
    await server.close()

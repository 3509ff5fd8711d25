"""Ordered, rate limit aware delivery of messages to a single webhook."""

import asyncio
import concurrent.futures
import logging
import threading
import time
from typing import Callable, Optional

import aiohttp
from aiohttp import ClientSession

from .config import DEFAULT_CONTENT_TYPE, DEFAULT_TIMEOUT, RATE_LIMIT_CODE
from .delivery_queue import DeliveryQueue
from .exceptions import ClientClosedError, HttpError, TransportError
from .message import build_content_body
from .models import DrainState, PendingRequest
from .parsers.webhook_parser import build_webhook_url, parse_webhook_url
from .utils.http_client import get_aiohttp_session, post_body
from .utils.rate_limiter import RateLimitBucket


class WebhookClient:
    """Deliver request bodies to one webhook, one at a time, in order.

    Every submitted body is queued and gets an asyncio future back. A single
    drain loop sends the queue head, reads the rate limit headers of the
    response and resolves the head's future. When the server answers 429,
    or the bucket says no uses are left, the loop hands control back to the
    event loop and is re-entered from a timer once the window has passed.
    """

    def __init__(
        self,
        url: str,
        session: Optional[ClientSession] = None,
        timeout: float = DEFAULT_TIMEOUT,
        proxy: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initializes the client.

        Args:
            url: The webhook URL, or an ``id/token`` pair.
            session: Optional aiohttp session to send with. When omitted the
                client creates its own on first use and closes it in close().
            timeout: Request timeout in seconds for a session the client creates.
            proxy: Optional proxy URL for a session the client creates.
            loop: Event loop to deliver on. Defaults to the loop running the
                first submit().
            clock: Wall clock used by the rate limit bucket.
        """
        self._target = parse_webhook_url(url)
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._proxy = proxy
        self._loop = loop
        self._bucket = RateLimitBucket(clock)
        self._queue = DeliveryQueue()
        self._state = DrainState.IDLE
        self._state_lock = threading.Lock()
        self._closed = False
        self._drain_task: Optional[asyncio.Task] = None
        self._backoff_handle: Optional[asyncio.TimerHandle] = None

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "WebhookClient":
        """Create a client from a webhook URL or an ``id/token`` pair."""
        return cls(url, **kwargs)

    @classmethod
    def with_id(cls, webhook_id: int, token: str, **kwargs) -> "WebhookClient":
        """Create a client from a webhook id and token."""
        return cls(build_webhook_url(webhook_id, token), **kwargs)

    @property
    def id(self) -> int:
        return self._target.id

    @property
    def url(self) -> str:
        return self._target.url

    @property
    def bucket(self) -> RateLimitBucket:
        return self._bucket

    @property
    def state(self) -> DrainState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of messages queued and not yet resolved."""
        return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "WebhookClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __del__(self):
        if not getattr(self, "_closed", True):
            logging.warning("Detected unclosed WebhookClient! Did you forget to close it?")

    def send(
        self,
        content: str,
        username: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> asyncio.Future:
        """Queue a plain text message. See build_content_body()."""
        return self.submit(build_content_body(content, username, avatar_url))

    def submit(
        self, body: bytes, content_type: str = DEFAULT_CONTENT_TYPE
    ) -> asyncio.Future:
        """
        Queue a request body for delivery.

        Must be called from the client's event loop; other threads use
        submit_threadsafe().

        Returns:
            A future that resolves to None once the webhook accepted the body,
            or fails with HttpError or TransportError.

        Raises:
            ClientClosedError: If the client has been closed.
        """
        self._check_shutdown()
        loop = self._bind_loop()
        request = PendingRequest(
            body=body, future=loop.create_future(), content_type=content_type
        )
        self._queue.enqueue(request)
        if self._transition(DrainState.IDLE, DrainState.DRAINING):
            # A fresh bucket or an elapsed window gives a delay <= 0
            self._schedule_drain(self._bucket.retry_after())
        return request.future

    def submit_threadsafe(
        self, body: bytes, content_type: str = DEFAULT_CONTENT_TYPE
    ) -> concurrent.futures.Future:
        """
        Queue a request body from a thread other than the client's loop.

        Cancelling the returned future cancels the queued message.
        """
        self._check_shutdown()
        if self._loop is None:
            raise RuntimeError(
                "Client is not bound to an event loop; pass loop= or submit() from it first"
            )
        return asyncio.run_coroutine_threadsafe(
            self._submit_and_wait(body, content_type), self._loop
        )

    async def close(self) -> None:
        """
        Stop accepting messages and release the client.

        A message whose exchange is already running is allowed to finish.
        Messages still waiting in the queue fail with ClientClosedError.
        """
        if self._closed:
            return
        self._closed = True

        if self._backoff_handle is not None:
            self._backoff_handle.cancel()
            self._backoff_handle = None

        task = self._drain_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            await task

        dropped = 0
        for request in self._queue.drain_all():
            if request.fail(ClientClosedError("Client was closed before the message was sent")):
                dropped += 1
        if dropped:
            logging.warning(f"Discarded {dropped} unsent messages for {self._target}")

        with self._state_lock:
            self._state = DrainState.IDLE

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _check_shutdown(self) -> None:
        if self._closed:
            raise ClientClosedError("Cannot send to closed client!")

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is None:
            if running is None:
                raise RuntimeError("submit() must be called from a running event loop")
            self._loop = running
        elif running is not self._loop:
            raise RuntimeError(
                "submit() called outside the client's event loop; use submit_threadsafe()"
            )
        return self._loop

    async def _submit_and_wait(self, body: bytes, content_type: str) -> None:
        await self.submit(body, content_type)

    def _transition(self, expected: DrainState, new: DrainState) -> bool:
        """Compare-and-set the drain state."""
        with self._state_lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    def _schedule_drain(self, delay: float) -> None:
        if self._closed:
            return
        if delay > 0:
            logging.debug(f"Pausing deliveries to {self._target} for {delay:.3f}s")
            self._backoff_handle = self._loop.call_later(delay, self._resume)
        else:
            self._drain_task = self._loop.create_task(self._drain())

    def _resume(self) -> None:
        self._backoff_handle = None
        if self._closed:
            return
        # The window may have moved while we were waiting
        self._schedule_drain(self._bucket.retry_after())

    async def _get_session(self) -> ClientSession:
        if self._session is None:
            self._session = await get_aiohttp_session(self._timeout, self._proxy)
        return self._session

    async def _drain(self) -> None:
        while not self._closed:
            request = self._queue.peek()
            if request is None:
                break
            if request.cancelled:
                self._queue.remove_head()
                logging.debug(f"Skipping cancelled message for {self._target}")
                continue
            try:
                keep_going = await self._deliver(request)
            except Exception as e:
                logging.exception(f"Unexpected error while sending a webhook message: {e}")
                if self._queue.peek() is request:
                    self._queue.remove_head()
                request.fail(e)
                continue
            if not keep_going:
                # Paused, a timer re-enters the loop and the state stays DRAINING
                return
        self._transition(DrainState.DRAINING, DrainState.IDLE)

    async def _deliver(self, request: PendingRequest) -> bool:
        """Send the queue head. Returns False if the loop has to pause."""
        session = await self._get_session()
        try:
            status, headers, payload = await post_body(
                session, self.url, request.body, request.content_type
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logging.error(f"There was some error while sending a webhook message: {e!r}")
            self._queue.remove_head()
            error = TransportError(f"Could not deliver message to {self._target}: {e!r}")
            error.__cause__ = e
            request.fail(error)
            return True

        self._bucket.update(status, headers, payload)

        if status == RATE_LIMIT_CODE:
            delay = self._bucket.retry_after()
            logging.warning(f"Rate limited by {self._target}, retrying in {delay:.3f}s")
            self._schedule_drain(delay)
            return False

        self._queue.remove_head()
        if not 200 <= status < 300:
            error = HttpError(status, payload.decode("utf-8", errors="replace"))
            logging.error(f"Sending a webhook message failed with non-OK http response: {error}")
            request.fail(error)
            return True

        request.resolve()
        if self._bucket.is_rate_limit():
            self._schedule_drain(self._bucket.retry_after())
            return False
        return True

"""Rate limit tracking for a single webhook endpoint."""

import json
import logging
import sys
import threading
import time
from email.utils import parsedate_to_datetime
from typing import Callable, Mapping, Optional

from multidict import CIMultiDict

from ..config import (
    HEADER_DATE,
    HEADER_LIMIT,
    HEADER_REMAINING,
    HEADER_RESET,
    HEADER_RETRY_AFTER,
    RATE_LIMIT_CODE,
)
from ..models import BucketState

# Uses left before the first response tells us the real numbers
UNBOUNDED: int = sys.maxsize


class RateLimitBucket:
    """Rate limit window reported by the server for one endpoint.

    The bucket never counts requests itself. Remaining uses, limit and reset
    time are whatever the last response said, and an elapsed window is only
    noticed the next time the bucket is read.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the bucket.

        Args:
            clock: Wall clock in seconds. Must agree with the server's epoch
                timestamps, so a monotonic clock will not do.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self.reset_time: float = 0.0
        self.remaining_uses: int = UNBOUNDED
        self.limit: int = UNBOUNDED

    def retry_after(self) -> float:
        """Seconds until the current window ends. Negative once it has ended."""
        with self._lock:
            return self._retry_after()

    def refresh_if_elapsed(self) -> None:
        """Restore the full limit if the current window has ended."""
        with self._lock:
            self._refresh_if_elapsed()

    def is_rate_limit(self) -> bool:
        """True if no uses are left in the current window."""
        with self._lock:
            self._refresh_if_elapsed()
            return self.remaining_uses <= 0

    def snapshot(self) -> BucketState:
        with self._lock:
            self._refresh_if_elapsed()
            return BucketState(
                remaining=self.remaining_uses,
                limit=self.limit,
                retry_after=self._retry_after(),
            )

    def update(
        self, status: int, headers: Mapping[str, str], body: Optional[bytes] = b""
    ) -> None:
        """
        Update the bucket from a webhook response.

        Never raises: a response that cannot be parsed is logged and the
        bucket keeps its previous state.

        Args:
            status: HTTP status code of the response.
            headers: Response headers. Looked up case-insensitively.
            body: Raw (already decompressed) response body.
        """
        try:
            with self._lock:
                self._update(status, CIMultiDict(headers), body or b"")
        except Exception as e:
            logging.error(f"Could not read rate limit from http response: {e!r}")

    def _retry_after(self) -> float:
        return self.reset_time - self._clock()

    def _refresh_if_elapsed(self) -> None:
        if self._retry_after() <= 0:
            self.remaining_uses = self.limit

    def _update(self, status: int, headers: CIMultiDict, body: bytes) -> None:
        now = self._clock()
        if status == RATE_LIMIT_CODE:
            self.reset_time = now + self._parse_retry_delay(headers, body)
            return

        if not 200 <= status < 300:
            logging.debug(
                f"Failed to update bucket due to unsuccessful response "
                f"with code {status} and body:\n{body.decode(errors='replace')}"
            )
            return

        remaining = max(0, int(headers[HEADER_REMAINING]))
        limit = int(headers[HEADER_LIMIT])
        reset_time = None
        date = headers.get(HEADER_DATE)
        reset = headers.get(HEADER_RESET)
        if date is not None and reset is not None:
            # Measure the window against the server's Date header so local
            # clock skew does not shift it.
            server_now = parsedate_to_datetime(date).timestamp()
            reset_time = now + (float(reset) - server_now)

        self.remaining_uses = remaining
        self.limit = limit
        if reset_time is not None:
            self.reset_time = reset_time

    @staticmethod
    def _parse_retry_delay(headers: CIMultiDict, body: bytes) -> float:
        """Seconds to wait after a 429, from Retry-After or the JSON body."""
        retry_after = headers.get(HEADER_RETRY_AFTER)
        if retry_after is not None:
            return float(retry_after)
        # The body reports milliseconds
        return float(json.loads(body)["retry_after"]) / 1000.0

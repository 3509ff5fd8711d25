import asyncio
from dataclasses import dataclass
from enum import Enum

from .config import DEFAULT_CONTENT_TYPE


class DrainState(Enum):
    """Whether a drain loop is scheduled or running for a client."""

    IDLE = "idle"
    DRAINING = "draining"


@dataclass
class PendingRequest:
    """A queued webhook body and the future its sender is waiting on."""

    body: bytes
    future: asyncio.Future
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def cancelled(self) -> bool:
        return self.future.cancelled()

    def resolve(self) -> bool:
        """Mark the request delivered. Returns False if it was already done."""
        if self.future.done():
            return False
        self.future.set_result(None)
        return True

    def fail(self, error: BaseException) -> bool:
        """Fail the request with ``error``. Returns False if it was already done."""
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True


@dataclass
class BucketState:
    """Point-in-time view of a rate limit bucket."""

    remaining: int
    limit: int
    retry_after: float  # in seconds, negative once the window has elapsed

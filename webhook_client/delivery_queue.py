"""FIFO of requests waiting to be delivered to a webhook."""

from collections import deque
from typing import Deque, List, Optional

from .models import PendingRequest


class DeliveryQueue:
    """Unbounded FIFO whose head stays queued until it has been handled.

    Not thread-safe. The client only touches it from its event loop;
    other threads reach it through WebhookClient.submit_threadsafe().
    """

    def __init__(self):
        self._items: Deque[PendingRequest] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def enqueue(self, request: PendingRequest) -> None:
        self._items.append(request)

    def peek(self) -> Optional[PendingRequest]:
        """Return the head without removing it, or None if the queue is empty."""
        try:
            return self._items[0]
        except IndexError:
            return None

    def remove_head(self) -> PendingRequest:
        """Remove and return the head. Raises IndexError if the queue is empty."""
        return self._items.popleft()

    def drain_all(self) -> List[PendingRequest]:
        """Remove and return every queued request in order."""
        drained: List[PendingRequest] = []
        while self._items:
            drained.append(self._items.popleft())
        return drained

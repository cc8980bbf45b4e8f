"""Bounded FIFO of snapshots whose remote save failed or was deferred.

Only the head item is ever retried. After a failure it stays at the head
with its retry count bumped and its timestamp reset, so the next attempt
waits ``min(base * 2**retry_count, cap)`` seconds. Once ``max_attempts``
is reached the item is dropped.
"""

import logging
import time
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable

from timeline_engine.exceptions import TimelineError
from timeline_engine.schemas.persistence import SaveQueueItem

logger = logging.getLogger(__name__)

Sender = Callable[[SaveQueueItem], Awaitable[None]]


class RetryOutcome(str, Enum):
    EMPTY = "empty"
    NOT_DUE = "not_due"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    EXHAUSTED = "exhausted"
    # Item left the queue while its send was in flight (a newer save won)
    SUPERSEDED = "superseded"


class RetryQueue:
    def __init__(
        self,
        *,
        base_delay: float = 5.0,
        max_delay: float = 60.0,
        max_attempts: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self._clock = clock
        self._items: deque[SaveQueueItem] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def enqueue(
        self, project_id: str, snapshot: dict[str, Any], revision: int | None = None
    ) -> SaveQueueItem:
        item = SaveQueueItem(
            project_id=project_id,
            snapshot=snapshot,
            queued_at=self._clock(),
            revision=revision,
        )
        self._items.append(item)
        logger.info(f"Added to retry queue ({len(self._items)} items)")
        return item

    def peek(self) -> SaveQueueItem | None:
        return self._items[0] if self._items else None

    def discard_project(self, project_id: str) -> int:
        """Drop queued snapshots of a project superseded by a newer successful save."""
        kept = deque(item for item in self._items if item.project_id != project_id)
        dropped = len(self._items) - len(kept)
        self._items = kept
        if dropped:
            logger.info(f"Dropped {dropped} superseded snapshot(s) for project {project_id}")
        return dropped

    def _contains(self, item: SaveQueueItem) -> bool:
        return any(queued is item for queued in self._items)

    def _remove(self, item: SaveQueueItem) -> None:
        # The queue may have changed while the send was in flight; match by identity
        self._items = deque(queued for queued in self._items if queued is not item)

    def drain(self) -> list[SaveQueueItem]:
        """Remove and return every queued item."""
        items = list(self._items)
        self._items.clear()
        return items

    def backoff_delay(self, retry_count: int) -> float:
        return min(self.base_delay * 2**retry_count, self.max_delay)

    def is_due(self, item: SaveQueueItem) -> bool:
        return self._clock() - item.queued_at >= self.backoff_delay(item.retry_count)

    async def process_head(self, send: Sender, *, ignore_backoff: bool = False) -> RetryOutcome:
        """Retry the head item once if its backoff has elapsed.

        Args:
            send: Coroutine performing the remote upsert; raises on failure
            ignore_backoff: Retry now regardless of backoff (connectivity returned)
        """
        item = self.peek()
        if item is None:
            return RetryOutcome.EMPTY
        if not ignore_backoff and not self.is_due(item):
            return RetryOutcome.NOT_DUE

        logger.info(f"Retrying save for project {item.project_id} (attempt {item.retry_count + 1})")
        try:
            await send(item)
        except TimelineError as e:
            if not self._contains(item):
                logger.info(f"Retry for project {item.project_id} failed but was superseded")
                return RetryOutcome.SUPERSEDED
            item.retry_count += 1
            item.queued_at = self._clock()
            item.last_error = e.message
            logger.warning(f"Retry failed for project {item.project_id}: {e.message}")

            if item.retry_count >= self.max_attempts:
                self._remove(item)
                logger.error(f"Max retries reached for project {item.project_id}, giving up")
                return RetryOutcome.EXHAUSTED
            return RetryOutcome.FAILED

        self._remove(item)
        logger.info(f"Retry successful ({len(self._items)} remaining)")
        return RetryOutcome.SUCCEEDED

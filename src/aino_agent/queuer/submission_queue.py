"""Submission queue between producer threads and the dispatch loop.

This module provides the multi-producer, single-consumer channel that is the
only point of contact between the threads submitting transactions and the
background dispatch loop. The queue is unbounded; it never rejects a
transaction except after it has been closed.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from ..core.errors import AgentClosedError
from ..core.transaction import Transaction


class MessageType(str, Enum):
    """Kinds of messages carried by the submission queue."""

    ENQUEUE = "enqueue"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class QueueMessage:
    """A control message for the dispatch loop."""

    message_type: MessageType
    transaction: Optional[Transaction] = None

    @classmethod
    def enqueue(cls, transaction: Transaction) -> "QueueMessage":
        return cls(MessageType.ENQUEUE, transaction)

    @classmethod
    def shutdown(cls) -> "QueueMessage":
        return cls(MessageType.SHUTDOWN)


class SubmissionQueue:
    """Thread-safe unbounded FIFO queue of :class:`QueueMessage`."""

    def __init__(self):
        self._queue: deque[QueueMessage] = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._closed = False

        # Statistics
        self._total_enqueued = 0
        self._total_taken = 0

    def put(self, transaction: Transaction) -> None:
        """Add a transaction to the queue.

        Args:
            transaction: Transaction to enqueue

        Raises:
            AgentClosedError: If the queue has been closed
        """
        with self._lock:
            if self._closed:
                raise AgentClosedError("Agent is closed, transaction was not accepted")

            self._queue.append(QueueMessage.enqueue(transaction))
            self._total_enqueued += 1
            self._not_empty.notify()

    def request_shutdown(self) -> None:
        """Push a shutdown message and close the queue to new transactions.

        Everything submitted before this call is ahead of the shutdown
        message, so the consumer sees it before shutting down.

        Raises:
            AgentClosedError: If the queue has already been closed
        """
        with self._lock:
            if self._closed:
                raise AgentClosedError("Shutdown has already been requested")

            self._queue.append(QueueMessage.shutdown())
            self._closed = True
            self._not_empty.notify_all()

        logger.debug("Shutdown requested on submission queue")

    def close(self) -> None:
        """Close the queue without a shutdown message."""
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()

    def take_available(self, timeout: Optional[float] = None) -> list[QueueMessage]:
        """Remove and return every message currently in the queue.

        Blocks until at least one message is available, the queue is closed,
        or ``timeout`` seconds pass. An empty list means there was nothing to
        do this tick.

        Args:
            timeout: Maximum time to wait for a message (``None`` waits forever)

        Returns:
            Messages in arrival order (may be empty)
        """
        with self._lock:
            if not self._queue and not self._closed:
                self._not_empty.wait(timeout)

            messages = list(self._queue)
            self._queue.clear()
            self._total_taken += len(messages)

        return messages

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def is_drained(self) -> bool:
        """Check if the queue is closed and holds no more messages."""
        with self._lock:
            return self._closed and not self._queue

    def size(self) -> int:
        """Return the current queue size."""
        with self._lock:
            return len(self._queue)

    def get_stats(self) -> dict:
        """Get queue statistics."""
        with self._lock:
            return {
                "current_size": len(self._queue),
                "total_enqueued": self._total_enqueued,
                "total_taken": self._total_taken,
                "closed": self._closed,
            }

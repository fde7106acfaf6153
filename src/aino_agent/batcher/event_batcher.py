"""Dispatch loop for collecting transactions into batches and sending them.

This module provides the batching logic of the agent. A single background
loop drains the submission queue into a pending buffer and flushes it as
batches of at most ``MAX_BATCH_SIZE`` transactions, either when the send
interval has elapsed or as soon as the buffer outgrows one batch. On
shutdown the loop flushes everything that is left before it exits.
"""

from __future__ import annotations

import time
from collections import deque
from concurrent.futures import Future
from enum import Enum
from typing import Any, Deque, Dict, Optional, Protocol, Tuple

from loguru import logger

from ..core.transaction import Transaction, TransactionBatch
from ..queuer import MessageType, SubmissionQueue

MAX_BATCH_SIZE = 500


class BatchSender(Protocol):
    """Protocol for transmitting one batch to the API."""

    def send_batch(self, batch: TransactionBatch) -> Tuple[bool, str]:
        """Send a batch. Returns (success, error_message)."""
        ...


class LoopState(str, Enum):
    """States of the dispatch loop."""

    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


def can_send_batch(elapsed_ms: float, send_interval_ms: float, buffer_len: int, max_batch_size: int = MAX_BATCH_SIZE) -> bool:
    """Decide whether the pending buffer should be flushed now.

    An empty buffer is never flushed. Otherwise flush when the send interval
    has elapsed, or early when the buffer holds more than one batch.
    """
    return buffer_len > 0 and (elapsed_ms >= send_interval_ms or buffer_len > max_batch_size)


def create_batch(buffer: Deque[Transaction], max_batch_size: int = MAX_BATCH_SIZE) -> TransactionBatch:
    """Remove up to ``max_batch_size`` of the oldest transactions from the buffer.

    Args:
        buffer: Pending transactions, oldest first
        max_batch_size: Maximum transactions per batch

    Returns:
        Batch with the removed transactions in arrival order (may be empty)
    """
    batch_size = min(max_batch_size, len(buffer))
    return TransactionBatch(transactions=[buffer.popleft() for _ in range(batch_size)])


class DispatchLoop:
    """Background worker that owns the pending buffer and sends batches."""

    def __init__(
        self,
        queue: SubmissionQueue,
        sender: BatchSender,
        send_interval_ms: float,
        max_batch_size: int = MAX_BATCH_SIZE,
        poll_interval: float = 0.01,
    ):
        """Initialize the dispatch loop.

        Args:
            queue: Submission queue to drain
            sender: Transport used to send each batch
            send_interval_ms: Maximum time between flushes of a non-empty buffer
            max_batch_size: Maximum transactions per batch
            poll_interval: Longest idle wait on the queue, in seconds
        """
        self.queue = queue
        self.sender = sender
        self.send_interval_ms = send_interval_ms
        self.max_batch_size = max_batch_size
        self.poll_interval = poll_interval

        # Completed with the final stats once the buffer has been drained
        self.completion: Future = Future()

        self._buffer: Deque[Transaction] = deque()
        self._state = LoopState.RUNNING
        self._interval_start = time.monotonic()

        # Statistics
        self._total_received = 0
        self._total_batches_sent = 0
        self._total_batches_failed = 0
        self._total_transactions_sent = 0
        self._total_transactions_dropped = 0

    @property
    def state(self) -> LoopState:
        return self._state

    def run(self) -> None:
        """Run the loop until shutdown. Meant to be the target of a thread."""
        logger.debug("Started dispatch loop")
        self._interval_start = time.monotonic()

        try:
            while self._state is LoopState.RUNNING:
                self._listen_messages()

                if self._state is LoopState.RUNNING and can_send_batch(self._elapsed_ms(), self.send_interval_ms, len(self._buffer), self.max_batch_size):
                    self._flush()

            self._drain()

        except Exception as e:
            logger.exception(f"Dispatch loop failed with {len(self._buffer)} transactions buffered")
            self._state = LoopState.STOPPED
            self.completion.set_exception(e)
            return

        self._state = LoopState.STOPPED
        stats = self.get_stats()
        logger.info(f"Stopped dispatch loop. Stats - Received: {stats['total_received']}, Batches sent: {stats['total_batches_sent']}, Batches failed: {stats['total_batches_failed']}")
        self.completion.set_result(stats)

    def get_stats(self) -> Dict[str, Any]:
        """Get dispatch loop statistics."""
        return {
            "state": self._state.value,
            "buffer_size": len(self._buffer),
            "total_received": self._total_received,
            "total_batches_sent": self._total_batches_sent,
            "total_batches_failed": self._total_batches_failed,
            "total_transactions_sent": self._total_transactions_sent,
            "total_transactions_dropped": self._total_transactions_dropped,
            "config": {
                "send_interval_ms": self.send_interval_ms,
                "max_batch_size": self.max_batch_size,
            },
        }

    def _listen_messages(self) -> None:
        """Move every available message from the queue into the buffer."""
        messages = self.queue.take_available(timeout=self._wait_timeout())

        for message in messages:
            if message.message_type is MessageType.SHUTDOWN:
                logger.info(f"Shutdown requested, draining {len(self._buffer)} buffered transactions")
                self._state = LoopState.DRAINING
                return

            self._buffer.append(message.transaction)
            self._total_received += 1

        if not messages and self.queue.is_drained():
            logger.warning(f"Submission queue closed, draining {len(self._buffer)} buffered transactions")
            self._state = LoopState.DRAINING

    def _wait_timeout(self) -> float:
        """How long to wait for new messages before re-checking the flush policy."""
        if not self._buffer:
            return self.poll_interval

        remaining_ms = self.send_interval_ms - self._elapsed_ms()
        return max(0.0, min(self.poll_interval, remaining_ms / 1000.0))

    def _elapsed_ms(self) -> float:
        return (time.monotonic() - self._interval_start) * 1000.0

    def _flush(self) -> None:
        """Build and send one batch, restarting the send interval."""
        batch = create_batch(self._buffer, self.max_batch_size)
        self._interval_start = time.monotonic()
        self._send(batch)

    def _drain(self) -> None:
        """Flush the buffer unconditionally until it is empty."""
        while self._buffer:
            self._flush()

        logger.debug("Pending buffer drained")

    def _send(self, batch: TransactionBatch) -> None:
        """Send a batch. A failed batch is logged and dropped."""
        if batch.size() == 0:
            return

        try:
            success, error_msg = self.sender.send_batch(batch)
        except Exception as e:
            success, error_msg = False, f"Unexpected error: {e}"

        if success:
            self._total_batches_sent += 1
            self._total_transactions_sent += batch.size()
            logger.debug(f"Sent batch {batch.batch_id} with {batch.size()} transactions")
        else:
            # TODO: requeue or dead-letter failed batches instead of dropping them
            self._total_batches_failed += 1
            self._total_transactions_dropped += batch.size()
            logger.error(f"Failed to send batch {batch.batch_id}, dropped {batch.size()} transactions: {error_msg}")

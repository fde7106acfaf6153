"""Aino.io agent coordinating the transaction flow.

This module ties the agent together:
Producers → SubmissionQueue → DispatchLoop → HTTPSender → Aino.io API

An :class:`AinoAgent` is owned by the caller. It can be started once and
stopped once; stopping blocks until every submitted transaction has been
handed to the sender.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, Dict, Optional

from loguru import logger

from ..batcher import BatchSender, DispatchLoop
from ..config import AgentConfig
from ..core.errors import AgentClosedError, AgentNotStartedError, AlreadyStartedError, AlreadyStoppedError, SignalLostError, StopTimeoutError
from ..core.transaction import Transaction
from ..queuer import SubmissionQueue
from ..sender import HTTPSender

_COMPLETION_CHECK_INTERVAL = 0.5


class AgentState(str, Enum):
    """Lifecycle states of the agent."""

    CREATED = "created"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"


class AinoAgent:
    """Background agent that batches transactions and sends them to Aino.io."""

    def __init__(self, config: AgentConfig, sender: Optional[BatchSender] = None):
        """Initialize the agent.

        Transactions may be submitted before :meth:`start`; they wait in the
        queue until the dispatch loop runs.

        Args:
            config: Agent configuration
            sender: Transport for batches (defaults to an HTTP sender built from config)
        """
        self.config = config
        self.sender = sender if sender is not None else HTTPSender(config.get_sender_config())

        self.queue = SubmissionQueue()
        self.loop = DispatchLoop(
            queue=self.queue,
            sender=self.sender,
            send_interval_ms=config.send_interval,
            max_batch_size=config.max_batch_size,
            poll_interval=config.poll_interval,
        )

        self._state = AgentState.CREATED
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is AgentState.STARTED

    def start(self) -> None:
        """Start the dispatch loop in a background thread. Returns immediately.

        Raises:
            AlreadyStartedError: If the agent has been started before
        """
        with self._lock:
            if self._state is not AgentState.CREATED:
                raise AlreadyStartedError(f"Agent already started (state: {self._state.value})")

            self._thread = threading.Thread(target=self.loop.run, name="aino-dispatch", daemon=True)
            self._thread.start()
            self._state = AgentState.STARTED

        logger.info(f"Started Aino.io agent - API: {self.config.url}, send interval: {self.config.send_interval}ms")

    def submit(self, transaction: Transaction) -> None:
        """Add a transaction to the queue to be sent later.

        Args:
            transaction: Transaction to send

        Raises:
            AgentClosedError: If the agent has been stopped
        """
        self.queue.put(transaction)

    # Alias matching the Aino.io agents for other languages
    add_transaction = submit

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the agent, blocking until all buffered transactions are sent.

        Args:
            timeout: Maximum seconds to wait for the drain (``None`` waits forever)

        Raises:
            AgentNotStartedError: If the agent was never started
            AlreadyStoppedError: If the agent has already stopped
            SignalLostError: If the dispatch loop died before finishing the drain
            StopTimeoutError: If ``timeout`` expired; the drain continues
        """
        with self._lock:
            if self._state is AgentState.CREATED:
                raise AgentNotStartedError("Agent has not been started")
            if self._state is AgentState.STOPPED:
                raise AlreadyStoppedError("Agent already stopped")

            if self._state is AgentState.STARTED:
                logger.info(f"Stopping Aino.io agent with {self.queue.size()} queued messages...")
                try:
                    self.queue.request_shutdown()
                except AgentClosedError:
                    # Queue was closed under us; the loop treats that as shutdown too
                    logger.warning("Submission queue already closed")
                self._state = AgentState.STOPPING

        # Lock is released before blocking on the drain
        try:
            stats = self._wait_for_completion(timeout)
        except StopTimeoutError:
            raise
        except Exception as e:
            with self._lock:
                self._state = AgentState.STOPPED
            if isinstance(e, SignalLostError):
                raise
            raise SignalLostError(f"Dispatch loop exited without draining: {e}") from e

        with self._lock:
            self._state = AgentState.STOPPED

        logger.info(f"Aino.io agent stopped. Sent {stats['total_transactions_sent']} transactions, dropped {stats['total_transactions_dropped']}")

    def _wait_for_completion(self, timeout: Optional[float]) -> Dict[str, Any]:
        """Wait for the dispatch loop to confirm the drain, watching that its thread is alive."""
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            wait = _COMPLETION_CHECK_INTERVAL if deadline is None else max(0.0, min(_COMPLETION_CHECK_INTERVAL, deadline - time.monotonic()))
            try:
                return self.loop.completion.result(timeout=wait)
            except FutureTimeoutError:
                pass

            if not self._thread.is_alive() and not self.loop.completion.done():
                raise SignalLostError("Dispatch thread exited without signalling completion")
            if deadline is not None and time.monotonic() >= deadline:
                raise StopTimeoutError(f"Dispatch loop did not finish within {timeout}s")

    def get_stats(self) -> Dict[str, Any]:
        """Get agent statistics."""
        stats = {
            "agent": {"state": self._state.value, "api_url": self.config.url},
            "queue": self.queue.get_stats(),
            "loop": self.loop.get_stats(),
        }

        if isinstance(self.sender, HTTPSender):
            stats["sender"] = self.sender.get_stats()

        return stats

    def __enter__(self) -> "AinoAgent":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._state in (AgentState.STARTED, AgentState.STOPPING):
            self.stop()


def create_agent(config: AgentConfig, sender: Optional[BatchSender] = None) -> AinoAgent:
    """Create an agent after checking the configuration.

    Args:
        config: Agent configuration
        sender: Optional transport override

    Returns:
        Agent ready to be started
    """
    is_valid, errors = config.validate_settings()
    if not is_valid:
        logger.warning(f"Agent configuration has problems: {', '.join(errors)}")

    return AinoAgent(config, sender=sender)

from __future__ import annotations

import os
import signal
import sys
import threading
from types import FrameType
from typing import TYPE_CHECKING, Optional

from loguru import logger

from ..errors import AlreadyStoppedError, SignalLostError, StopTimeoutError

if TYPE_CHECKING:
    from ...orchestrator import AinoAgent


class SignalHandler:
    """Drain an Aino.io agent when the process is asked to exit.

    The signal handler itself only records the request. The thread that owns
    the agent calls :meth:`drain` once it sees :attr:`shutdown_requested`, so
    ``agent.stop()`` never runs inside a signal handler.
    """

    #: Exit signals we *always* hook
    _BASE_SIGNALS = [signal.SIGINT, signal.SIGTERM]
    if hasattr(signal, "SIGHUP"):
        _BASE_SIGNALS.append(signal.SIGHUP)

    #: Windows-specific mapping (Ctrl-Break, log-off, shutdown)
    if os.name == "nt" and hasattr(signal, "SIGBREAK"):
        _BASE_SIGNALS.append(signal.SIGBREAK)  # type: ignore[arg-type]

    def __init__(self, agent: AinoAgent, stop_timeout: Optional[float] = None) -> None:
        self.agent = agent
        self.stop_timeout = stop_timeout
        self.shutdown_requested = threading.Event()
        self.received_signal: str | None = None
        self._install_handlers()

    def _install_handlers(self) -> None:
        for sig in self._BASE_SIGNALS:
            try:
                signal.signal(sig, self._handle_exit)  # type: ignore[arg-type]
            except (ValueError, OSError):  # not allowed in threads / rare OSes
                logger.warning(f"Could not hook signal {sig}")

    def _handle_exit(self, signum: int, frame: FrameType | None) -> None:  # noqa: ANN001
        signal_name = signal.Signals(signum).name

        if self.shutdown_requested.is_set():
            logger.warning(f"Received {signal_name} again, exiting without waiting for the drain")
            sys.exit(1)

        logger.info(f"Received {signal_name}, draining Aino.io agent…")
        self.received_signal = signal_name
        self.shutdown_requested.set()

    def is_signal_received(self) -> bool:
        return self.shutdown_requested.is_set()

    def drain(self) -> bool:
        """Stop the agent, waiting at most ``stop_timeout`` seconds for the buffer to empty.

        Returns:
            True if every accepted transaction was handed to the sender
        """
        try:
            self.agent.stop(self.stop_timeout)
        except AlreadyStoppedError:
            logger.debug("Aino.io agent already stopped")
        except StopTimeoutError as e:
            logger.error(f"Aino.io agent did not drain in time: {e}")
            return False
        except SignalLostError as e:
            logger.error(f"Aino.io agent lost its dispatch loop: {e}")
            return False

        return True

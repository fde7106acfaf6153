"""Exception hierarchy for the Aino.io agent."""

from __future__ import annotations


class AinoError(Exception):
    """Base error for the Aino.io agent."""


class ConfigError(AinoError):
    """Configuration could not be loaded or is invalid."""


class SubmitError(AinoError):
    """A transaction could not be submitted."""


class AgentClosedError(SubmitError):
    """The agent no longer accepts transactions."""


class StartError(AinoError):
    """The agent could not be started."""


class AlreadyStartedError(StartError):
    """``start()`` was called on an agent that has already been started."""


class StopError(AinoError):
    """The agent could not be stopped cleanly."""


class AlreadyStoppedError(StopError):
    """``stop()`` was called on an agent that has already stopped."""


class AgentNotStartedError(StopError):
    """``stop()`` was called before ``start()``."""


class SignalLostError(StopError):
    """The dispatch loop exited without confirming that the buffer was drained."""


class StopTimeoutError(StopError):
    """The dispatch loop did not finish draining within the caller's timeout."""

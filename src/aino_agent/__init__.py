"""Aino.io agent - batches transactions between applications and sends them to Aino.io.

Aino.io is an analytics and monitoring tool for integrated enterprise
applications. This agent stores data about transactions between applications
to the Aino.io platform using the Aino.io Data API (version 2.0).
"""

from ._version import __version__
from .config import AgentConfig, load_config, setup_logging
from .core import (
    AgentClosedError,
    AgentNotStartedError,
    AinoError,
    AlreadyStartedError,
    AlreadyStoppedError,
    ConfigError,
    SignalLostError,
    Status,
    StopTimeoutError,
    Transaction,
    TransactionId,
    TransactionMetadata,
)
from .orchestrator import AinoAgent, create_agent

__all__ = [
    "__version__",
    "AinoAgent",
    "create_agent",
    "AgentConfig",
    "load_config",
    "setup_logging",
    "Transaction",
    "TransactionId",
    "TransactionMetadata",
    "Status",
    "AinoError",
    "ConfigError",
    "AgentClosedError",
    "AlreadyStartedError",
    "AlreadyStoppedError",
    "AgentNotStartedError",
    "SignalLostError",
    "StopTimeoutError",
]

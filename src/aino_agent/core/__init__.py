"""Core Aino.io agent components - transaction models and errors."""

from .errors import (
    AgentClosedError,
    AgentNotStartedError,
    AinoError,
    AlreadyStartedError,
    AlreadyStoppedError,
    ConfigError,
    SignalLostError,
    StartError,
    StopError,
    StopTimeoutError,
    SubmitError,
)
from .transaction import Status, Transaction, TransactionBatch, TransactionId, TransactionMetadata, current_millis

__all__ = [
    # Transaction models
    "Transaction",
    "TransactionBatch",
    "TransactionId",
    "TransactionMetadata",
    "Status",
    "current_millis",
    # Errors
    "AinoError",
    "ConfigError",
    "SubmitError",
    "AgentClosedError",
    "StartError",
    "AlreadyStartedError",
    "StopError",
    "AlreadyStoppedError",
    "AgentNotStartedError",
    "SignalLostError",
    "StopTimeoutError",
]

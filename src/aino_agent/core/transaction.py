"""Transaction models for the Aino.io agent.

A transaction is a log entry for a single interaction between two
applications. These models define the record that flows through the agent:
Producer → Queue → Dispatch Loop → Batch → Sender → API
"""

from __future__ import annotations

import json
import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def current_millis() -> int:
    """Return the current time as milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class Status(str, Enum):
    """Outcome of a transaction."""

    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"  # Rarely used

    def __str__(self) -> str:
        return self.value


class _WireModel(BaseModel):
    """Base for models serialized with lower-camel-case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire format, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def __str__(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True, exclude_none=True)


class TransactionId(_WireModel):
    """Container for IDs of a single type."""

    id_type: str
    values: List[str] = Field(default_factory=list)


class TransactionMetadata(_WireModel):
    """A name/value pair for generic metadata."""

    name: str
    value: str


class Transaction(_WireModel):
    """A log entry for a single transaction between two applications.

    The model is frozen once constructed. The optional ``ids`` and
    ``metadata`` lists only grow through :meth:`add_id` and
    :meth:`add_metadata`.
    """

    model_config = ConfigDict(frozen=True)

    from_: str = Field(alias="from")
    to: str
    operation: str
    status: Status
    timestamp: int = Field(ge=0, description="Milliseconds since the epoch")
    flow_id: str
    integration_segment: str

    payload_type: Optional[str] = None
    message: Optional[str] = None
    ids: List[TransactionId] = Field(default_factory=list)
    metadata: List[TransactionMetadata] = Field(default_factory=list)

    @classmethod
    def create(
        cls,
        from_app: str,
        to_app: str,
        operation: str,
        status: Status,
        integration_segment: str,
        timestamp: Optional[int] = None,
        flow_id: Optional[str] = None,
        **optional: Any,
    ) -> "Transaction":
        """Construct a transaction, filling in the timestamp and flow ID if missing.

        Args:
            from_app: Name of the originating application
            to_app: Name of the target application
            operation: Operation of the transaction
            status: Outcome of the transaction
            integration_segment: Integration segment of the transaction
            timestamp: Milliseconds since the epoch (defaults to now)
            flow_id: ID of the logical flow (defaults to a random UUID)
            **optional: ``message`` and ``payload_type``

        Returns:
            New transaction
        """
        return cls(
            from_=from_app,
            to=to_app,
            operation=operation,
            status=status,
            timestamp=current_millis() if timestamp is None else timestamp,
            flow_id=flow_id or str(uuid.uuid4()),
            integration_segment=integration_segment,
            **optional,
        )

    def add_id(self, transaction_id: TransactionId) -> "Transaction":
        """Attach an ID group to the transaction."""
        self.ids.append(transaction_id)
        return self

    def add_metadata(self, metadata: TransactionMetadata) -> "Transaction":
        """Attach a metadata pair to the transaction."""
        self.metadata.append(metadata)
        return self

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        # Empty lists are absent fields on the wire
        for key in ("ids", "metadata"):
            if not data.get(key):
                data.pop(key, None)
        return data

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


class TransactionBatch(BaseModel):
    """A batch of transactions sent in one request to the Aino.io API."""

    transactions: List[Transaction] = Field(default_factory=list)
    batch_id: str = Field(default_factory=lambda: f"batch_{uuid.uuid4().hex[:12]}", exclude=True)

    def size(self) -> int:
        """Return the number of transactions in this batch."""
        return len(self.transactions)

    def to_dict(self) -> Dict[str, Any]:
        """Convert batch to dictionary for the API payload."""
        return {"transactions": [transaction.to_dict() for transaction in self.transactions]}

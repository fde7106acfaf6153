"""Shared fixtures for the Aino.io agent tests."""

from __future__ import annotations

import json
import signal
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest
from loguru import logger

from aino_agent.config import AgentConfig
from aino_agent.core.transaction import Status, Transaction, TransactionBatch


def make_transaction(index: int = 0, flow_id: str = "flow_id", status: Status = Status.SUCCESS) -> Transaction:
    """Create a transaction whose timestamp identifies it."""
    return Transaction(
        from_="from",
        to="to",
        operation="operation",
        status=status,
        timestamp=index,
        flow_id=flow_id,
        integration_segment="integration_segment",
    )


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.005) -> bool:
    """Poll ``predicate`` until it returns true or ``timeout`` passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class RecordingSender:
    """Batch sender that records every batch instead of sending it."""

    def __init__(self, fail: bool = False, delay: float = 0.0, release: threading.Event | None = None):
        self.fail = fail
        self.delay = delay
        self.release = release
        self.batches: list[list[Transaction]] = []
        self._lock = threading.Lock()

    def send_batch(self, batch: TransactionBatch) -> tuple[bool, str]:
        if self.release is not None:
            self.release.wait()
        if self.delay:
            time.sleep(self.delay)

        with self._lock:
            self.batches.append(list(batch.transactions))

        if self.fail:
            return False, "HTTP error: 503 Service Unavailable"
        return True, ""

    @property
    def sizes(self) -> list[int]:
        with self._lock:
            return [len(batch) for batch in self.batches]

    @property
    def transactions(self) -> list[Transaction]:
        with self._lock:
            return [transaction for batch in self.batches for transaction in batch]


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def agent_config() -> AgentConfig:
    return AgentConfig(url="http://localhost/rest/v2/transaction", api_key="test-key", send_interval=60_000, poll_interval=0.01)


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{level} | {message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def restore_signals():
    """Restore process signal handlers replaced during the test."""
    signums = [signal.SIGINT, signal.SIGTERM] + ([signal.SIGHUP] if hasattr(signal, "SIGHUP") else [])
    saved = {signum: signal.getsignal(signum) for signum in signums}
    yield
    for signum, handler in saved.items():
        signal.signal(signum, handler)


class _IngestHandler(BaseHTTPRequestHandler):
    """Request handler standing in for the Aino.io transaction endpoint."""

    def do_POST(self):  # noqa: N802
        length = int(self.headers.get("Content-Length", 0))
        body = json.loads(self.rfile.read(length).decode("utf-8"))

        server = self.server
        with server.lock:
            server.requests.append(
                {
                    "path": self.path,
                    "authorization": self.headers.get("Authorization"),
                    "content_type": self.headers.get("Content-Type"),
                    "user_agent": self.headers.get("User-Agent"),
                    "body": body,
                }
            )
            status = server.statuses.pop(0) if server.statuses else 200

        if server.delay:
            time.sleep(server.delay)

        payload = json.dumps({"batch": "accepted"}).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):  # noqa: A002
        pass


@pytest.fixture
def ingest_server():
    """Run a local HTTP server that records posted batches."""
    server = HTTPServer(("127.0.0.1", 0), _IngestHandler)
    server.lock = threading.Lock()
    server.requests = []
    server.statuses = []
    server.delay = 0.0
    server.url = f"http://127.0.0.1:{server.server_address[1]}/rest/v2/transaction"

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield server

    server.shutdown()
    server.server_close()
    thread.join(timeout=5.0)

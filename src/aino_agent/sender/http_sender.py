"""HTTP sender for transmitting transaction batches to the Aino.io API.

This module provides HTTP/HTTPS transport for sending batched transactions
to the Aino.io Data API with API key authentication and error handling.
Failed batches are dropped by default; retrying with exponential backoff can
be enabled with ``max_retries``.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from loguru import logger

from .._version import __version__
from ..core.transaction import TransactionBatch

DEFAULT_API_URL = "https://data.aino.io/rest/v2/transaction"
USER_AGENT = f"aino-agent/{__version__}"


@dataclass
class SenderConfig:
    """Configuration for the HTTP sender."""

    url: str = DEFAULT_API_URL  # Transaction endpoint of the Aino.io API
    api_key: str = ""  # API key from the API Access tab of the application

    # HTTP settings
    timeout_seconds: float = 30.0  # Request timeout
    max_retries: int = 0  # Retry attempts after a failed send (0 = log and drop)
    retry_backoff_base: float = 1.0  # Base backoff delay
    retry_backoff_max: float = 60.0  # Maximum backoff delay


class HTTPSender:
    """HTTP sender for transmitting transaction batches."""

    def __init__(self, config: Optional[SenderConfig] = None):
        """Initialize the HTTP sender.

        Args:
            config: Sender configuration
        """
        self.config = config or SenderConfig()

        # Statistics
        self._total_batches_sent = 0
        self._total_batches_failed = 0
        self._total_transactions_sent = 0
        self._total_send_time = 0.0
        self._last_successful_send: Optional[datetime] = None
        self._last_error: Optional[str] = None

    def send_batch(self, batch: TransactionBatch) -> Tuple[bool, str]:
        """Send a batch of transactions to the API.

        Args:
            batch: Transaction batch to send

        Returns:
            Tuple of (success, error_message)
        """
        if batch.size() == 0:
            return True, ""

        start_time = time.monotonic()
        success, error_msg = self._send_with_retries(batch.to_dict())

        send_time = time.monotonic() - start_time
        self._total_send_time += send_time

        if success:
            self._total_batches_sent += 1
            self._total_transactions_sent += batch.size()
            self._last_successful_send = datetime.now()
            self._last_error = None

            logger.info(f"Successfully sent batch {batch.batch_id} with {batch.size()} transactions in {send_time:.2f}s")
        else:
            self._total_batches_failed += 1
            self._last_error = error_msg

        return success, error_msg

    def get_stats(self) -> Dict[str, Any]:
        """Get sender statistics.

        Returns:
            Dictionary with sender statistics
        """
        attempts = max(1, self._total_batches_sent + self._total_batches_failed)

        return {
            "total_batches_sent": self._total_batches_sent,
            "total_batches_failed": self._total_batches_failed,
            "total_transactions_sent": self._total_transactions_sent,
            "success_rate": self._total_batches_sent / attempts,
            "average_send_time_seconds": self._total_send_time / attempts,
            "last_successful_send": self._last_successful_send.isoformat() if self._last_successful_send else None,
            "last_error": self._last_error,
        }

    def _send_with_retries(self, payload: Dict[str, Any]) -> Tuple[bool, str]:
        """Send payload, retrying with backoff if retries are enabled.

        Args:
            payload: JSON payload to send

        Returns:
            Tuple of (success, error_message)
        """
        last_error = ""

        for attempt in range(self.config.max_retries + 1):
            success, error_msg, status = self._send_request(payload)
            if success:
                return True, ""

            last_error = error_msg

            # Don't retry on client errors (4xx)
            if status is not None and 400 <= status < 500:
                break

            if attempt < self.config.max_retries:
                delay = min(self.config.retry_backoff_base * (2**attempt), self.config.retry_backoff_max)
                logger.warning(f"Send attempt {attempt + 1} failed: {error_msg}. Retrying in {delay:.1f}s...")
                time.sleep(delay)

        if self.config.max_retries == 0:
            return False, last_error

        return False, f"Failed after {attempt + 1} attempts: {last_error}"

    def _send_request(self, payload: Dict[str, Any]) -> Tuple[bool, str, Optional[int]]:
        """Send a single HTTP request.

        Args:
            payload: JSON payload to send

        Returns:
            Tuple of (success, error_message, http_status)
        """
        try:
            req = Request(
                self.config.url,
                data=json.dumps(payload).encode("utf-8"),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"apikey {self.config.api_key}",
                    "User-Agent": USER_AGENT,
                },
                method="POST",
            )

            with urlopen(req, timeout=self.config.timeout_seconds) as response:
                if 200 <= response.status < 300:
                    response.read()
                    logger.debug(f"Successful response: {response.status}")
                    return True, "", response.status

                return False, f"HTTP {response.status}: {response.reason}", response.status

        except HTTPError as e:
            error_msg = f"HTTP error: {e.code} {e.reason}"
            if e.code == 401:
                error_msg += " (invalid API key)"
            return False, error_msg, e.code

        except URLError as e:
            return False, f"Network error: {e.reason}", None

        except Exception as e:
            return False, f"Request error: {e}", None


def create_default_sender(url: str, api_key: str, timeout_seconds: float = 30.0) -> HTTPSender:
    """Create an HTTP sender with default configuration.

    Args:
        url: Transaction endpoint of the Aino.io API
        api_key: API key for authentication
        timeout_seconds: Request timeout

    Returns:
        Configured HTTP sender
    """
    return HTTPSender(SenderConfig(url=url, api_key=api_key, timeout_seconds=timeout_seconds))

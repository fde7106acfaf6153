"""HTTP transport module for sending transaction batches."""

from .http_sender import DEFAULT_API_URL, HTTPSender, SenderConfig, create_default_sender

__all__ = ["HTTPSender", "SenderConfig", "DEFAULT_API_URL", "create_default_sender"]

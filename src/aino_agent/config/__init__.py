"""Configuration module for the Aino.io agent."""

from .logger_config import LogSettings, setup_logging
from .settings import AgentConfig, load_config

__all__ = ["AgentConfig", "load_config", "LogSettings", "setup_logging"]

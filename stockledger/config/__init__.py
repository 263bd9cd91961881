"""Configuration module."""

from stockledger.config.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from stockledger.config.settings import (
    APISettings,
    LedgerSettings,
    Settings,
    StorageSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "APISettings",
    "LedgerSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "reset_settings",
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
    "get_logger",
]

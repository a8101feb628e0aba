"""
Core infrastructure for the fleet-operations ledger.

This module provides:
- Config: Business rules and environment settings
- Logging: structlog processor setup
"""

from .config import ConfigManager, EnvironmentSettings, LedgerRules, get_config
from .logging import configure_logging

__all__ = [
    "ConfigManager",
    "EnvironmentSettings",
    "LedgerRules",
    "configure_logging",
    "get_config",
]

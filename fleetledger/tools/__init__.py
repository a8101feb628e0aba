"""
External collaborators for fleet operations.

This module provides integrations with:
- FMCSA operating-authority lookup
- Carrier/driver notification delivery
"""

from .fmcsa import (
    FmcsaClient,
    FmcsaVerificationError,
    VerificationCollaborator,
    VerificationResult,
    map_authority_status,
)
from .notifications import LoggingNotifier, Notification, NotificationDispatcher, Notifier

__all__ = [
    "FmcsaClient",
    "FmcsaVerificationError",
    "LoggingNotifier",
    "Notification",
    "NotificationDispatcher",
    "Notifier",
    "VerificationCollaborator",
    "VerificationResult",
    "map_authority_status",
]

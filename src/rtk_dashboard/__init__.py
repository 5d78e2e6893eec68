# rtk-dashboard - New Tab Dashboard Secret Store
#
# Keeps issue-tracker credentials encrypted at rest in the dashboard's
# key-value storage, with in-place migration of legacy plaintext values.

__version__ = "0.3.0"
__author__ = "Relax The Kax Team"
__description__ = "Encrypted credential store for the new tab dashboard"

from .core import (
    EventSeverity,
    EventType,
    get_audit_logger,
    get_settings,
)
from .exceptions import (
    CryptographicFailure,
    FailSafePolicy,
    RtkDashboardError,
    StorageFailure,
    ValidationError,
)

__all__ = [
    "__version__",
    "CryptographicFailure",
    "EventSeverity",
    "EventType",
    "FailSafePolicy",
    "RtkDashboardError",
    "StorageFailure",
    "ValidationError",
    "get_audit_logger",
    "get_settings",
]

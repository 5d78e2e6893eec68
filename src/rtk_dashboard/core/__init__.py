# Core Module - Shared Utilities
#
# Core module provides shared functionality across rtk-dashboard modules:
# - Audit logging
# - Configuration
# - SQLite session helper

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    set_audit_logger,
)
from .config import (
    Settings,
    get_settings,
    load_settings,
    set_settings,
)

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "set_audit_logger",
    # Configuration
    "Settings",
    "get_settings",
    "load_settings",
    "set_settings",
]

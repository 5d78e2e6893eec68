"""
Secret store exception classes
"""

from enum import Enum
from typing import Optional


class RtkDashboardError(Exception):
    """Base exception for secret store operations"""
    pass


class ValidationError(RtkDashboardError):
    """Raised when a structural field fails its format rules.

    The message is user-facing and must never contain secret values.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class CryptographicFailure(RtkDashboardError):
    """Raised when key derivation or AEAD encryption/decryption fails"""
    pass


class StorageFailure(RtkDashboardError):
    """Raised when the underlying key-value store fails"""
    pass


class FailSafePolicy(str, Enum):
    """What CredentialStore.load/clear do when storage or crypto fails.

    EMPTY_RECORD: degrade to "not configured" (the settings UI default).
    RAISE: propagate the failure to the caller.
    """
    EMPTY_RECORD = "empty_record"
    RAISE = "raise"

# Vault Module - Local Encrypted Secret Store
#
# Installation identity + local salt -> PBKDF2 -> AES-256-GCM key
# Credential fields encrypted one by one before they reach synced storage
# Legacy plaintext values are detected on read and passed through

from .credential_store import (
    TOKEN_PLACEHOLDER,
    CredentialRecord,
    CredentialStore,
    SaveResult,
    is_valid_jira_domain,
    mask_token,
)
from .encryption import CipherCodec, looks_encrypted
from .identity import IdentityProvider, StaticIdentityProvider
from .key_derivation import SALT_STORAGE_KEY, KeyDerivation
from .status_preferences import (
    STATUS_OPTIONS,
    StatusOption,
    StatusPreferenceSet,
    StatusPreferenceStore,
)

__all__ = [
    "CipherCodec",
    "CredentialRecord",
    "CredentialStore",
    "IdentityProvider",
    "KeyDerivation",
    "SALT_STORAGE_KEY",
    "STATUS_OPTIONS",
    "SaveResult",
    "StaticIdentityProvider",
    "StatusOption",
    "StatusPreferenceSet",
    "StatusPreferenceStore",
    "TOKEN_PLACEHOLDER",
    "is_valid_jira_domain",
    "looks_encrypted",
    "mask_token",
]

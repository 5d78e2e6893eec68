# Vault - Credential Store
#
# Public facade used by the settings UI. Validates the structural fields,
# encrypts each sensitive field independently, and on read decides per
# field whether the stored value is an EncryptedBlob or legacy plaintext.
#
# Stored shape (sync scope):
#   jira_email  - EncryptedBlob | legacy plaintext
#   jira_token  - EncryptedBlob | legacy plaintext
#   jira_domain - plaintext, protocol stripped

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger
from ..exceptions import (
    CryptographicFailure,
    FailSafePolicy,
    StorageFailure,
    ValidationError,
)
from ..storage.kv_store import KeyValueStore
from .encryption import CipherCodec, looks_encrypted

logger = logging.getLogger(__name__)

EMAIL_KEY = "jira_email"
TOKEN_KEY = "jira_token"
DOMAIN_KEY = "jira_domain"
CREDENTIAL_KEYS = (EMAIL_KEY, TOKEN_KEY, DOMAIN_KEY)
SENSITIVE_KEYS = (EMAIL_KEY, TOKEN_KEY)

# What the settings form shows in place of a saved token
TOKEN_PLACEHOLDER = "•" * 16

INVALID_DOMAIN_MESSAGE = "Invalid Jira domain. Use format: company.atlassian.net"
MISSING_FIELDS_MESSAGE = "Please fill in email and domain"
MISSING_TOKEN_MESSAGE = "Please enter your API token"

_PROTOCOL_RE = re.compile(r"^https?://", re.IGNORECASE)
_DOMAIN_PATTERNS = (
    re.compile(r"^[\w-]+\.atlassian\.net$", re.ASCII),
    re.compile(r"^[\w-]+\.atlassian\.com$", re.ASCII),
    re.compile(r"^[\w-]+\.jira\.com$", re.ASCII),
)


def clean_domain(domain: str) -> str:
    """Strip a leading http:// or https:// from a tracker domain."""
    return _PROTOCOL_RE.sub("", domain.strip())


def is_valid_jira_domain(domain: str) -> bool:
    """Accepts company.atlassian.net, company.atlassian.com and company.jira.com."""
    if not domain:
        return False
    candidate = clean_domain(domain).lower()
    return any(pattern.match(candidate) for pattern in _DOMAIN_PATTERNS)


def mask_token(token: str) -> str:
    """Display value for a saved token (never the token itself)."""
    return TOKEN_PLACEHOLDER if token else ""


@dataclass(frozen=True)
class CredentialRecord:
    """Plaintext issue-tracker credentials handed to the rest of the app."""
    email: str = field(default="", repr=False)
    api_token: str = field(default="", repr=False)
    domain: str = ""

    @classmethod
    def empty(cls) -> "CredentialRecord":
        return cls()

    def is_complete(self) -> bool:
        return bool(self.email and self.api_token and self.domain)


@dataclass(frozen=True)
class SaveResult:
    success: bool
    error: Optional[ValidationError] = None

    @property
    def message(self) -> str:
        return self.error.message if self.error else ""


class CredentialStore:
    """
    Saves and loads the issue-tracker credential set.

    States:
    - Unconfigured -> Configured on first successful save()
    - Configured -> Unconfigured on clear(), or when load() cannot decrypt
    - Configured -> Configured on an overwriting save()
    """

    def __init__(
        self,
        sync_store: KeyValueStore,
        codec: CipherCodec,
        policy: FailSafePolicy = FailSafePolicy.EMPTY_RECORD,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.sync_store = sync_store
        self.codec = codec
        self.policy = policy
        self._audit_logger = audit_logger

    @property
    def audit(self) -> AuditLogger:
        return self._audit_logger or get_audit_logger()

    # ── Validation ──────────────────────────────────────────────────

    @staticmethod
    def validate(record: CredentialRecord) -> str:
        """
        Check structural fields before any storage or crypto work.

        Returns:
            The cleaned domain to persist.

        Raises:
            ValidationError: With a user-facing message.
        """
        if not record.email or not record.domain:
            missing = "email" if not record.email else "domain"
            raise ValidationError(MISSING_FIELDS_MESSAGE, field=missing)
        if not is_valid_jira_domain(record.domain):
            raise ValidationError(INVALID_DOMAIN_MESSAGE, field="domain")
        return clean_domain(record.domain)

    async def _resolve_token(self, token: str) -> str:
        # Placeholder or blank means "keep the token already saved"
        if token and token != TOKEN_PLACEHOLDER:
            return token
        existing = await self.load()
        if not existing.api_token:
            raise ValidationError(MISSING_TOKEN_MESSAGE, field="api_token")
        return existing.api_token

    # ── Public API ──────────────────────────────────────────────────

    async def save(self, record: CredentialRecord) -> SaveResult:
        """
        Validate, encrypt and persist a credential record.

        Returns:
            SaveResult(success=False, error=ValidationError) when a field is
            rejected; nothing is written in that case.

        Raises:
            StorageFailure: If the key-value store rejects the write.
            CryptographicFailure: If encryption fails.
        """
        try:
            domain = self.validate(record)
            token = await self._resolve_token(record.api_token)
        except ValidationError as e:
            logger.info("Rejected credential save: %s", e.message)
            self.audit.log_credential_event(
                EventType.CREDENTIALS_REJECTED,
                "save rejected by validation",
                details={"field": e.field},
                severity=EventSeverity.WARNING,
            )
            return SaveResult(success=False, error=e)

        encrypted_email = await self.codec.encrypt(record.email)
        encrypted_token = await self.codec.encrypt(token)

        try:
            await self.sync_store.set({
                EMAIL_KEY: encrypted_email,
                TOKEN_KEY: encrypted_token,
                DOMAIN_KEY: domain,
            })
        except StorageFailure:
            self.audit.log_credential_event(
                EventType.STORAGE_ERROR,
                "credential save failed in storage",
                details={"domain": domain},
                severity=EventSeverity.ERROR,
            )
            raise

        self.audit.log_credential_event(
            EventType.CREDENTIALS_SAVED,
            "credentials saved",
            details={"domain": domain, "fields": list(CREDENTIAL_KEYS)},
        )
        return SaveResult(success=True)

    async def _read_raw(self) -> Dict[str, str]:
        result = await self.sync_store.get(list(CREDENTIAL_KEYS))
        raw = {}
        for key in CREDENTIAL_KEYS:
            value = result.get(key)
            raw[key] = value if isinstance(value, str) else ""
        return raw

    async def _reveal(self, value: str) -> str:
        if value and looks_encrypted(value):
            return await self.codec.decrypt(value)
        # Legacy plaintext from before encryption was introduced
        return value

    async def load(self) -> CredentialRecord:
        """
        Read and decrypt the credential set.

        Under FailSafePolicy.EMPTY_RECORD any storage or decryption failure
        returns an all-empty record: partial credentials are treated as not
        configured.
        """
        try:
            raw = await self._read_raw()
            return CredentialRecord(
                email=await self._reveal(raw[EMAIL_KEY]),
                api_token=await self._reveal(raw[TOKEN_KEY]),
                domain=raw[DOMAIN_KEY],
            )
        except (CryptographicFailure, StorageFailure) as e:
            if self.policy is FailSafePolicy.RAISE:
                raise
            logger.warning(
                "Stored credentials unreadable, treating as not configured: %s",
                type(e).__name__,
            )
            self.audit.log_credential_event(
                EventType.CREDENTIALS_LOAD_FAILED,
                "stored credentials could not be read",
                details={"error": type(e).__name__},
                severity=EventSeverity.WARNING,
            )
            return CredentialRecord.empty()

    async def has(self) -> bool:
        """True iff email, token and domain are all present after load()."""
        return (await self.load()).is_complete()

    async def clear(self) -> None:
        """Remove the credential set. The installation salt is untouched."""
        try:
            await self.sync_store.remove(list(CREDENTIAL_KEYS))
        except StorageFailure as e:
            if self.policy is FailSafePolicy.RAISE:
                raise
            logger.warning("Failed to clear credentials: %s", e)
            return
        self.audit.log_credential_event(EventType.CREDENTIALS_CLEARED, "credentials cleared")

    async def migrate(self) -> bool:
        """
        Re-encrypt sensitive fields still stored as legacy plaintext.

        Returns:
            True if any field was rewritten.
        """
        try:
            raw = await self._read_raw()
        except StorageFailure as e:
            if self.policy is FailSafePolicy.RAISE:
                raise
            logger.warning("Credential migration skipped: %s", e)
            return False

        legacy = [key for key in SENSITIVE_KEYS if raw[key] and not looks_encrypted(raw[key])]
        if not legacy:
            return False

        updates = {key: await self.codec.encrypt(raw[key]) for key in legacy}
        await self.sync_store.set(updates)

        self.audit.log_credential_event(
            EventType.CREDENTIALS_MIGRATED,
            "legacy plaintext fields encrypted",
            details={"fields": legacy},
        )
        return True

# Vault - Key Derivation
#
# Installation identity + installation salt -> AES-256 key (PBKDF2)
#
# The salt is generated once per installation and kept in the local
# (non-synced) scope. The derived key lives only in the caller's stack
# frame: it is recomputed on every request and never cached.

import asyncio
import logging
import os
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger
from ..exceptions import CryptographicFailure
from ..storage.kv_store import KeyValueStore
from .identity import IdentityProvider

logger = logging.getLogger(__name__)

SALT_STORAGE_KEY = "rtk_user_salt"


class KeyDerivation:
    """
    Derives the per-installation encryption key.

    Flow:
    1. Read the installation salt from the local scope (create it on first use)
    2. Key material = UTF-8(identity) || salt
    3. PBKDF2-HMAC-SHA256(material, salt, 100k iterations) -> 32-byte key
    """

    PBKDF2_ITERATIONS = 100_000
    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 32  # 256-bit salt

    def __init__(
        self,
        local_store: KeyValueStore,
        identity_provider: IdentityProvider,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            local_store: Non-synced key-value scope that owns the salt.
            identity_provider: Source of the installation identity string.
            audit_logger: Defaults to the global audit logger.
        """
        self.local_store = local_store
        self.identity_provider = identity_provider
        self._audit_logger = audit_logger

    @property
    def audit(self) -> AuditLogger:
        return self._audit_logger or get_audit_logger()

    @classmethod
    def _decode_salt(cls, stored) -> Optional[bytes]:
        # Stored as a list of byte values
        if not isinstance(stored, list) or len(stored) != cls.SALT_LENGTH:
            return None
        try:
            return bytes(stored)
        except (TypeError, ValueError):
            return None

    async def get_or_create_salt(self) -> bytes:
        """
        Return the installation salt, generating and persisting it if absent.

        Two concurrent first calls may both generate a salt; the last write
        wins and a key derived from the losing salt stops decrypting.
        """
        result = await self.local_store.get([SALT_STORAGE_KEY])
        stored = result.get(SALT_STORAGE_KEY)

        if stored is not None:
            salt = self._decode_salt(stored)
            if salt is not None:
                return salt
            logger.warning("Stored installation salt is malformed; generating a new one")

        salt = os.urandom(self.SALT_LENGTH)
        await self.local_store.set({SALT_STORAGE_KEY: list(salt)})

        self.audit.log_event(
            event_type=EventType.SALT_CREATED,
            severity=EventSeverity.INFO if stored is None else EventSeverity.WARNING,
            message="Installation salt created",
            details={"replaced_malformed": stored is not None},
        )
        return salt

    @classmethod
    def _pbkdf2(cls, material: bytes, salt: bytes, iterations: int) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=cls.KEY_LENGTH,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(material)

    async def derive_key(self, identity: Optional[str] = None) -> bytes:
        """
        Derive the AES-256-GCM key for this installation.

        Args:
            identity: Installation identity; defaults to the provider's value.

        Returns:
            256-bit encryption key

        Raises:
            CryptographicFailure: If the KDF primitive fails.
        """
        if identity is None:
            identity = self.identity_provider.installation_id()
        salt = await self.get_or_create_salt()
        material = identity.encode("utf-8") + salt

        try:
            # PBKDF2 is CPU-bound; keep it off the event loop
            return await asyncio.to_thread(
                self._pbkdf2, material, salt, self.PBKDF2_ITERATIONS
            )
        except (UnsupportedAlgorithm, ValueError, TypeError) as e:
            raise CryptographicFailure("Key derivation failed") from e

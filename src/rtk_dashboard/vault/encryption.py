# Vault - Cipher Codec
#
# Plaintext field -> AES-256-GCM -> base64(nonce || ciphertext || tag)
# Each encryption uses a fresh random nonce under the derived key.

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import CryptographicFailure
from .key_derivation import KeyDerivation


NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)


def _b64decode(value: str) -> bytes:
    # Missing trailing padding is tolerated, anything outside the alphabet is not
    padded = value + "=" * (-len(value) % 4)
    return base64.b64decode(padded.encode("ascii"), validate=True)


def looks_encrypted(value: str) -> bool:
    """
    Guess whether a stored field is an EncryptedBlob or legacy plaintext.

    A value counts as encrypted when it is base64 (trailing padding
    optional) that decodes to more than NONCE_LENGTH bytes.

    Known limitation: plaintext that happens to be valid base64 decoding to
    more than 12 bytes (e.g. a 20+ character alphanumeric API token, with or
    without padding) is classified as encrypted and will then fail to
    decrypt.
    """
    if not value:
        return False
    try:
        decoded = _b64decode(value)
    except (binascii.Error, ValueError):
        # ValueError covers non-ASCII input
        return False
    return len(decoded) > NONCE_LENGTH


class CipherCodec:
    """
    Encrypts/decrypts credential fields for storage.

    Wire format (EncryptedBlob):
        base64( nonce[12] || AES-GCM ciphertext || tag[16] )
    """

    NONCE_LENGTH = NONCE_LENGTH
    MIN_BLOB_LENGTH = NONCE_LENGTH + 1

    looks_encrypted = staticmethod(looks_encrypted)

    def __init__(self, key_derivation: KeyDerivation):
        self.key_derivation = key_derivation

    async def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            plaintext: Field value to protect

        Returns:
            EncryptedBlob text. Two calls with the same plaintext never
            return the same value.
        """
        key = await self.key_derivation.derive_key()

        # Generate random nonce (must be unique per encryption)
        nonce = os.urandom(NONCE_LENGTH)
        try:
            ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, OverflowError) as e:
            raise CryptographicFailure("Encryption failed") from e

        return base64.b64encode(nonce + ciphertext).decode("ascii")

    async def decrypt(self, blob: str) -> str:
        """
        Decrypt an EncryptedBlob.

        Raises:
            CryptographicFailure: If the blob is malformed or the tag does
                not authenticate (corruption, or the salt was reset).
        """
        try:
            combined = _b64decode(blob)
        except (binascii.Error, ValueError) as e:
            raise CryptographicFailure("Encrypted value is not valid base64") from e

        if len(combined) < self.MIN_BLOB_LENGTH:
            raise CryptographicFailure("Encrypted value is too short")

        nonce, ciphertext = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
        key = await self.key_derivation.derive_key()

        try:
            plaintext_bytes = AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise CryptographicFailure("Decryption failed: authentication tag mismatch") from e

        try:
            return plaintext_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptographicFailure("Decrypted value is not valid UTF-8") from e

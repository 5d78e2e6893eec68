"""Tests for CipherCodec and the looks_encrypted classifier.

Covers:
  - Round-trip and probabilistic encryption
  - EncryptedBlob wire format: base64(nonce || ciphertext || tag)
  - Tamper detection and key mismatch surface as CryptographicFailure
  - The documented looks_encrypted false positive
"""

import base64

import pytest

from rtk_dashboard.exceptions import CryptographicFailure
from rtk_dashboard.vault import SALT_STORAGE_KEY, CipherCodec, KeyDerivation, looks_encrypted


def _flip_bit(blob: str, bit_index: int) -> str:
    raw = bytearray(base64.b64decode(blob))
    raw[bit_index // 8] ^= 1 << (bit_index % 8)
    return base64.b64encode(bytes(raw)).decode("ascii")


class TestRoundTrip:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("plaintext", [
        "a",
        "user@example.com",
        "ATATT3xFfGF0-token-with-dashes_and_underscores",
        "ünïcødé ✓ 日本語",
        "x" * 5000,
    ])
    async def test_decrypt_inverts_encrypt(self, codec, plaintext):
        blob = await codec.encrypt(plaintext)
        assert await codec.decrypt(blob) == plaintext

    @pytest.mark.asyncio
    async def test_ciphertext_is_not_deterministic(self, codec):
        first = await codec.encrypt("same secret")
        second = await codec.encrypt("same secret")

        assert first != second
        assert base64.b64decode(first)[:12] != base64.b64decode(second)[:12]

    @pytest.mark.asyncio
    async def test_blob_layout(self, codec):
        blob = await codec.encrypt("hello")
        raw = base64.b64decode(blob, validate=True)

        # 12-byte nonce + 5-byte ciphertext + 16-byte GCM tag
        assert len(raw) == 12 + 5 + 16

    @pytest.mark.asyncio
    async def test_plaintext_not_visible_in_blob(self, codec):
        blob = await codec.encrypt("supersecrettoken")
        assert "supersecrettoken" not in blob
        assert b"supersecrettoken" not in base64.b64decode(blob)

    @pytest.mark.asyncio
    async def test_new_derivation_instance_decrypts(self, codec, storage, identity):
        blob = await codec.encrypt("persisted value")

        fresh = CipherCodec(KeyDerivation(storage.local, identity))
        assert await fresh.decrypt(blob) == "persisted value"


class TestDecryptFailures:

    @pytest.mark.asyncio
    async def test_every_byte_tamper_detected(self, codec):
        blob = await codec.encrypt("tamper target")
        total_bits = len(base64.b64decode(blob)) * 8

        # One bit per byte, rotating through bit positions
        for byte_index in range(total_bits // 8):
            tampered = _flip_bit(blob, byte_index * 8 + byte_index % 8)
            with pytest.raises(CryptographicFailure):
                await codec.decrypt(tampered)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bit_index", [0, 95, 96, 100, -1])
    async def test_nonce_ciphertext_and_tag_bits(self, codec, bit_index):
        blob = await codec.encrypt("tamper target")
        total_bits = len(base64.b64decode(blob)) * 8
        with pytest.raises(CryptographicFailure):
            await codec.decrypt(_flip_bit(blob, bit_index % total_bits))

    @pytest.mark.asyncio
    async def test_reset_salt_fails_decrypt(self, codec, storage):
        blob = await codec.encrypt("before reset")
        await storage.local.remove(SALT_STORAGE_KEY)

        with pytest.raises(CryptographicFailure):
            await codec.decrypt(blob)

    @pytest.mark.asyncio
    async def test_other_identity_fails_decrypt(self, codec, storage):
        from rtk_dashboard.vault import StaticIdentityProvider

        blob = await codec.encrypt("bound to identity")
        other = CipherCodec(KeyDerivation(storage.local, StaticIdentityProvider("other-install")))

        with pytest.raises(CryptographicFailure):
            await other.decrypt(blob)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blob", [
        "not base64!",
        base64.b64encode(b"\x00" * 12).decode(),
        base64.b64encode(b"\x00" * 28).decode(),
        "",
    ])
    async def test_malformed_blob(self, codec, blob):
        with pytest.raises(CryptographicFailure):
            await codec.decrypt(blob)

    @pytest.mark.asyncio
    async def test_failure_message_has_no_plaintext(self, codec, storage):
        blob = await codec.encrypt("hunter2-secret")
        await storage.local.remove(SALT_STORAGE_KEY)

        with pytest.raises(CryptographicFailure) as exc_info:
            await codec.decrypt(blob)
        assert "hunter2" not in str(exc_info.value)


class TestLooksEncrypted:

    @pytest.mark.asyncio
    async def test_real_blob_is_encrypted(self, codec):
        assert looks_encrypted(await codec.encrypt("x")) is True

    @pytest.mark.parametrize("value", [
        "",
        "user@example.com",
        "acme.atlassian.net",
        "token-with-dashes",
        "ünïcødé",
    ])
    def test_plaintext_is_not_encrypted(self, value):
        assert looks_encrypted(value) is False

    def test_twelve_decoded_bytes_is_not_encrypted(self):
        # Exactly a nonce and nothing else
        assert looks_encrypted(base64.b64encode(b"\x01" * 12).decode()) is False

    def test_thirteen_decoded_bytes_is_encrypted(self):
        assert looks_encrypted(base64.b64encode(b"\x01" * 13).decode()) is True

    @pytest.mark.asyncio
    async def test_known_false_positive(self, codec):
        # A plaintext token that happens to be valid base64 of > 12 bytes
        legacy_token = "abcdefghijklmnopqrstuvwx"
        assert len(base64.b64decode(legacy_token)) == 18

        assert looks_encrypted(legacy_token) is True
        with pytest.raises(CryptographicFailure):
            await codec.decrypt(legacy_token)

    def test_unpadded_base64_is_classified_like_padded(self):
        # 22 alphanumeric chars decode to 16 bytes once padded
        legacy_token = "abcdefghijklmnopqrstuv"
        assert len(base64.b64decode(legacy_token + "==")) == 16

        assert looks_encrypted(legacy_token) is True
        assert looks_encrypted(legacy_token + "==") is True

    def test_exposed_on_codec(self):
        assert CipherCodec.looks_encrypted("user@example.com") is False

"""
Shared pytest fixtures for the rtk-dashboard test suite.

Autouse fixtures below isolate tests from live application data:
  - Audit logger -> temp directory (prevents test events in the real audit log)
  - Settings     -> temp data directory with a fixed installation id
  - PBKDF2       -> reduced iteration count so each derivation is fast
"""

import pytest

from rtk_dashboard.core.audit_log import AuditLogger, set_audit_logger
from rtk_dashboard.core.config import Settings, set_settings
from rtk_dashboard.exceptions import StorageFailure
from rtk_dashboard.storage import ExtensionStorage, InMemoryKeyValueStore
from rtk_dashboard.vault import (
    CipherCodec,
    CredentialStore,
    KeyDerivation,
    StaticIdentityProvider,
)

TEST_INSTALLATION_ID = "test-installation-id"


@pytest.fixture
def _audit_log_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("audit_logs")


@pytest.fixture(autouse=True)
def _isolate_audit_logger(_audit_log_dir):
    """Point the global AuditLogger at a temp directory for every test."""
    audit = AuditLogger(log_dir=_audit_log_dir)
    set_audit_logger(audit)

    yield audit

    audit.close()
    set_audit_logger(None)


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path, _audit_log_dir):
    settings = Settings(
        data_dir=tmp_path / "data",
        installation_id=TEST_INSTALLATION_ID,
        audit_log_dir=_audit_log_dir,
    )
    set_settings(settings)

    yield settings

    set_settings(None)


@pytest.fixture(autouse=True)
def _fast_pbkdf2(monkeypatch):
    """100k iterations per derivation makes bit-flip sweeps slow; tests that
    pin the production value restore it explicitly."""
    monkeypatch.setattr(KeyDerivation, "PBKDF2_ITERATIONS", 1_000)


class FailingKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose operations can be switched to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_get = False
        self.fail_set = False
        self.fail_remove = False

    async def get(self, keys):
        if self.fail_get:
            raise StorageFailure("quota exceeded")
        return await super().get(keys)

    async def set(self, items):
        if self.fail_set:
            raise StorageFailure("quota exceeded")
        await super().set(items)

    async def remove(self, keys):
        if self.fail_remove:
            raise StorageFailure("transport closed")
        await super().remove(keys)


@pytest.fixture
def storage():
    return ExtensionStorage(sync=FailingKeyValueStore(), local=InMemoryKeyValueStore())


@pytest.fixture
def identity():
    return StaticIdentityProvider(TEST_INSTALLATION_ID)


@pytest.fixture
def key_derivation(storage, identity):
    return KeyDerivation(storage.local, identity)


@pytest.fixture
def codec(key_derivation):
    return CipherCodec(key_derivation)


@pytest.fixture
def credential_store(storage, codec):
    return CredentialStore(storage.sync, codec)

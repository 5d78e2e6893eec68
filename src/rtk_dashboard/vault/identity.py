# Vault - Installation Identity
#
# A stable string identifying this installation. Used only as
# key-derivation input; never persisted by the vault.

from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityProvider(Protocol):
    def installation_id(self) -> str:
        ...


class StaticIdentityProvider:
    """Fixed identity, usually Settings.installation_id."""

    def __init__(self, identity: str):
        if not identity:
            raise ValueError("installation identity must be non-empty")
        self._identity = identity

    def installation_id(self) -> str:
        return self._identity

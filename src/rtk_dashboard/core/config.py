# Core Module - Runtime Configuration
#
# Settings come from environment variables, optionally seeded from a .env
# file in the working directory. Nothing secret is configured here: the
# installation identity is key-derivation input, not a key.

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

DEFAULT_INSTALLATION_ID = "relax-the-kax-extension"


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings.

    Attributes:
        data_dir: Directory holding the key-value databases.
        installation_id: Stable identity string for this installation.
        audit_log_dir: Directory for daily audit log files.
        log_level: Level name for the package loggers.
    """
    data_dir: Path
    installation_id: str
    audit_log_dir: Path
    log_level: str = "INFO"

    @property
    def sync_db_path(self) -> Path:
        return self.data_dir / "storage_sync.db"

    @property
    def local_db_path(self) -> Path:
        return self.data_dir / "storage_local.db"

    @property
    def level(self) -> int:
        level = getattr(logging, self.log_level.upper(), None)
        return level if isinstance(level, int) else logging.INFO


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build Settings from the environment.

    Variables:
        RTK_DATA_DIR         default: ./data
        RTK_INSTALLATION_ID  default: relax-the-kax-extension
        RTK_AUDIT_LOG_DIR    default: <data_dir>/audit_logs
        RTK_LOG_LEVEL        default: INFO

    A .env file never overrides variables already present in the process
    environment.
    """
    load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True), override=False)

    data_dir = Path(os.environ.get("RTK_DATA_DIR", "data"))
    audit_dir = os.environ.get("RTK_AUDIT_LOG_DIR")

    return Settings(
        data_dir=data_dir,
        installation_id=os.environ.get("RTK_INSTALLATION_ID") or DEFAULT_INSTALLATION_ID,
        audit_log_dir=Path(audit_dir) if audit_dir else data_dir / "audit_logs",
        log_level=os.environ.get("RTK_LOG_LEVEL", "INFO"),
    )


# ── Singleton ────────────────────────────────────────────────────────

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(instance: Optional[Settings]) -> None:
    """Replace the singleton (for testing)."""
    global _settings
    _settings = instance

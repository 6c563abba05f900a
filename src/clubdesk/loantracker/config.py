"""Configuration management for loantracker.

Loads process configuration from environment variables and provides defaults.
Business thresholds (grace days, penalties, ...) are not part of this; they
live in the store and are passed around as ``ThresholdConfig`` snapshots.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Logging
    log_level: str

    # Identity recorded on configuration writes
    actor: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "CLUBDESK_DB_PATH",
            str(Path.home() / ".clubdesk" / "clubdesk.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            log_level=os.environ.get("CLUBDESK_LOG_LEVEL", "INFO").upper(),
            actor=os.environ.get("CLUBDESK_ACTOR", "system"),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.log_level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            errors.append(f"Unknown log level: {self.log_level}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None

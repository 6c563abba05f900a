"""Manager for the system variables document."""

from typing import Any, Optional

from loguru import logger

from ..db.store import SERVER_TIMESTAMP, DocumentStore
from ..exceptions import ConfigValidationError, StoreError
from .schemas import SYSTEM_VARIABLES_METADATA, ThresholdConfig, ValidationResult
from .validators import validate_threshold_config

CONFIG_COLLECTION = "configuration"
GLOBAL_DOCUMENT_ID = "global"


class SettingsManager:
    """Loads and saves ``ThresholdConfig`` snapshots.

    Nothing is cached here: every ``load`` returns a fresh snapshot that the
    caller passes explicitly to the services that need it.
    """

    def __init__(self, store: DocumentStore, actor: str = "system"):
        """Initialize settings manager.

        Args:
            store: Document store holding the configuration document
            actor: Name recorded as ``updated_by`` on writes
        """
        self.store = store
        self.actor = actor

    def _stored_variables(self) -> dict[str, Any]:
        doc = self.store.get_by_id(CONFIG_COLLECTION, GLOBAL_DOCUMENT_ID)
        if not doc or not isinstance(doc.get("variables"), dict):
            return {}
        return {k: v for k, v in doc["variables"].items() if k in SYSTEM_VARIABLES_METADATA}

    def load(self) -> ThresholdConfig:
        """Load the current snapshot, stored values over the defaults.

        Falls back to the defaults when the store cannot be read.
        """
        try:
            stored = self._stored_variables()
        except StoreError as e:
            logger.error(f"Could not load system variables, using defaults: {e}")
            return ThresholdConfig()
        return ThresholdConfig(**{**ThresholdConfig().model_dump(), **stored})

    def validate(self, changes: dict[str, Any], base: Optional[ThresholdConfig] = None) -> ValidationResult:
        """Validate ``changes`` merged over ``base`` (or the stored snapshot)."""
        current = base or self.load()
        return validate_threshold_config({**current.model_dump(), **changes})

    def update(self, changes: dict[str, Any]) -> ThresholdConfig:
        """Apply a partial update and persist it.

        Args:
            changes: Variable name to new value

        Returns:
            The new snapshot

        Raises:
            ConfigValidationError: The merged configuration is invalid
        """
        current = self.load()
        merged = {**current.model_dump(), **changes}
        result = validate_threshold_config(merged)
        if not result.is_valid:
            raise ConfigValidationError(result.errors, result.warnings)
        for warning in result.warnings:
            logger.warning(f"System variables: {warning}")

        snapshot = ThresholdConfig(**merged)
        self._save(snapshot)
        logger.info(f"System variables updated by {self.actor}: {sorted(changes)}")
        return snapshot

    def reset_to_defaults(self) -> ThresholdConfig:
        """Overwrite the stored variables with the defaults."""
        snapshot = ThresholdConfig()
        self._save(snapshot)
        logger.info(f"System variables reset to defaults by {self.actor}")
        return snapshot

    def _save(self, snapshot: ThresholdConfig) -> None:
        self.store.set_document(
            CONFIG_COLLECTION,
            GLOBAL_DOCUMENT_ID,
            {
                "variables": snapshot.model_dump(),
                "last_updated": SERVER_TIMESTAMP,
                "updated_by": self.actor,
            },
        )

"""
Store selection filters and batch run reporting.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from storesync.constants import ANY_STORES
from storesync.errors import ConfigurationError


def normalize_timestamp(value: datetime) -> datetime:
    """
    Normalize a timestamp to the canonical stored form.

    Stores keep naive UTC timestamps at second precision
    (``YYYY-mm-dd HH:MM:SS``), so aware values are converted to UTC first.
    """
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.replace(microsecond=0)


class StoreSelection(BaseModel):
    """
    Filters narrowing the set of installed stores a batch run visits.

    Attributes:
        store_ids: Explicit allow-list, or None for any store.
        updated_at_min: Inclusive lower bound on ``updated_at``.
    """

    model_config = ConfigDict(frozen=True)

    store_ids: frozenset[int] | None = None
    updated_at_min: datetime | None = None

    @field_validator("store_ids", mode="before")
    @classmethod
    def parse_store_ids(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            if value.strip().lower() in ("", ANY_STORES):
                return None
            return frozenset(int(part) for part in value.split(",") if part.strip())
        if isinstance(value, Iterable):
            ids = frozenset(int(part) for part in value)
            return ids or None
        return value

    @field_validator("updated_at_min", mode="before")
    @classmethod
    def parse_updated_at_min(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            return datetime.fromisoformat(value)
        return value

    @field_validator("updated_at_min")
    @classmethod
    def canonical_updated_at_min(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return normalize_timestamp(value)

    @classmethod
    def from_options(
        cls,
        store_ids: str | Iterable[int] | None = ANY_STORES,
        updated_at_min: str | datetime | None = None,
    ) -> "StoreSelection":
        """
        Build a selection from console-style options.

        Raises:
            ConfigurationError: If an option cannot be parsed.
        """
        try:
            return cls(store_ids=store_ids, updated_at_min=updated_at_min)
        except (ValidationError, ValueError) as exc:
            raise ConfigurationError(f"Invalid store selection: {exc}") from exc


@dataclass
class BatchReport:
    """Counters accumulated over one batch dispatcher run."""

    chunks: int = 0
    dispatched: int = 0
    completed: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0

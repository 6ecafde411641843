from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

UNKNOWN_STRING = "unknown"
UNKNOWN_INTEGER = -1


@dataclass(slots=True)
class MediaRecord:
    id: int
    uri: Optional[str] = None
    title: Optional[str] = None
    album: Optional[str] = None
    artist: Optional[str] = None
    duration: Optional[int] = None
    artwork: Optional[bytes] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "uri": self.uri,
            "title": self.title,
            "album": self.album,
            "artist": self.artist,
            "duration": self.duration,
            "artwork_bytes": len(self.artwork) if self.artwork else None,
        }


@dataclass(slots=True)
class RawMetadata:
    """Values as reported by the extraction session, before normalization."""

    title: Optional[str] = None
    album: Optional[str] = None
    artist: Optional[str] = None
    duration: Optional[str] = None
    artwork: Optional[bytes] = None


@dataclass(frozen=True)
class Batch:
    ids: tuple[int, ...]
    active_index: Optional[int] = None

    def __post_init__(self) -> None:
        ids = tuple(self.ids)
        for media_id in ids:
            if isinstance(media_id, bool) or not isinstance(media_id, int):
                raise TypeError(f"media ids must be integers, got {media_id!r}")
        if self.active_index is not None and not isinstance(self.active_index, int):
            raise TypeError(f"active index must be an integer or None, got {self.active_index!r}")
        object.__setattr__(self, "ids", ids)

    def __len__(self) -> int:
        return len(self.ids)


class OutcomeStatus(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    index: int
    media_id: int
    status: OutcomeStatus
    reason: Optional[str] = None
    rows: int = 0


class BatchStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class BatchReport:
    status: BatchStatus = BatchStatus.IDLE
    outcomes: List[ItemOutcome] = field(default_factory=list)
    error: Optional[str] = None
    notified: bool = False
    cancelled: bool = False

    def _with_status(self, status: OutcomeStatus) -> List[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is status]

    @property
    def written(self) -> List[ItemOutcome]:
        return self._with_status(OutcomeStatus.WRITTEN)

    @property
    def skipped(self) -> List[ItemOutcome]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> List[ItemOutcome]:
        return self._with_status(OutcomeStatus.FAILED)


class ExtractionFailure(Exception):
    """Raised when a single source cannot be read; the batch keeps running."""

    def __init__(self, locator: str, reason: str) -> None:
        super().__init__(f"{locator}: {reason}")
        self.locator = locator
        self.reason = reason


class StoreError(Exception):
    """Raised when the record store rejects a single write."""


class StoreUnavailableError(StoreError):
    """Raised when the record store cannot be reached at all."""

"""Data models for audited files, cleanup candidates and remediation results."""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from ..common.logging import get_logger

logger = get_logger(__name__)


class FileOrigin(str, Enum):
    """Where a file record came from."""

    LIVE = "live"
    DEMO = "demo"


@dataclass(frozen=True)
class FileRecord:
    """A storage object as seen by a file source."""

    file_id: str
    name: str
    size: Optional[int]  # None means the source did not report a size
    mime_type: str
    modified_time: datetime
    md5: Optional[str] = None
    web_view_link: Optional[str] = None
    thumbnail_link: Optional[str] = None
    origin: FileOrigin = FileOrigin.LIVE

    def __post_init__(self) -> None:
        if self.size is not None and self.size < 0:
            raise ValueError(f"File size cannot be negative: {self.size}")

    @property
    def is_demo(self) -> bool:
        return self.origin is FileOrigin.DEMO


class CleanupCategory(str, Enum):
    """Why a file is a cleanup candidate."""

    DUPLICATE = "duplicate"
    OLD = "old"
    LARGE = "large"

    @classmethod
    def parse(cls, value: str) -> "CleanupCategory":
        """Normalize a free-form category label.

        Raises:
            ValueError: If the label does not map to a known category
        """
        key = str(value).strip().lower()
        if key in _CATEGORY_ALIASES:
            return _CATEGORY_ALIASES[key]
        raise ValueError(f"Unknown cleanup category: {value!r}")


_CATEGORY_ALIASES = {
    "duplicate": CleanupCategory.DUPLICATE,
    "duplicates": CleanupCategory.DUPLICATE,
    "dup": CleanupCategory.DUPLICATE,
    "redundant": CleanupCategory.DUPLICATE,
    "old": CleanupCategory.OLD,
    "stale": CleanupCategory.OLD,
    "outdated": CleanupCategory.OLD,
    "large": CleanupCategory.LARGE,
    "oversized": CleanupCategory.LARGE,
    "big": CleanupCategory.LARGE,
}


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score into [0, 1]."""
    if math.isnan(value):
        raise ValueError("Confidence cannot be NaN")
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class CleanupCandidate:
    """A classifier's recommendation about one file."""

    file_id: str
    category: CleanupCategory
    reason: str
    confidence: float


@dataclass(frozen=True)
class Analysis:
    """Classifier output: candidates plus a human-readable summary."""

    candidates: list[CleanupCandidate]
    summary: str


def reconcile_candidates(
    files: Sequence[FileRecord],
    candidates: Iterable[CleanupCandidate],
) -> list[CleanupCandidate]:
    """Make classifier output safe to review.

    Drops candidates that reference unknown files, keeps only the first
    candidate per file id and clamps confidence into [0, 1]. Input order is
    preserved.

    Args:
        files: Files the candidates must refer to
        candidates: Raw candidates from the classifier

    Returns:
        Reviewable candidates
    """
    known_ids = {f.file_id for f in files}
    seen: set[str] = set()
    result = []

    for candidate in candidates:
        if candidate.file_id not in known_ids:
            logger.warning(f"Dropping orphaned candidate: {candidate.file_id}")
            continue
        if candidate.file_id in seen:
            logger.warning(f"Dropping duplicate candidate for {candidate.file_id}")
            continue

        try:
            confidence = clamp_confidence(float(candidate.confidence))
        except (TypeError, ValueError):
            logger.warning(f"Dropping candidate with invalid confidence: {candidate.file_id}")
            continue

        if confidence != candidate.confidence:
            candidate = replace(candidate, confidence=confidence)

        seen.add(candidate.file_id)
        result.append(candidate)

    return result


class TrashFailureReason(str, Enum):
    """Why trashing a single file failed."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    TRANSIENT = "transient"
    UNAUTHORIZED = "unauthorized"
    ALREADY_REMOVED = "already_removed"


@dataclass(frozen=True)
class TrashFailure:
    """Recorded failure for one file."""

    reason: TrashFailureReason
    message: str


@dataclass(frozen=True)
class RemediationResult:
    """Outcome of one batch purge."""

    attempted: int
    succeeded: frozenset[str]
    failed: Mapping[str, TrashFailure]
    cancelled: tuple[str, ...] = ()

    @property
    def all_failed(self) -> bool:
        """True if something was attempted and nothing succeeded."""
        return self.attempted > 0 and not self.succeeded

    def summary(self) -> str:
        text = f"Trashed {len(self.succeeded)}/{self.attempted} files"
        if self.failed:
            text += f", {len(self.failed)} failed"
        if self.cancelled:
            text += f", {len(self.cancelled)} not attempted"
        return text


class ErrorKind(str, Enum):
    """Categories of errors surfaced by an audit session."""

    PRECONDITION = "precondition"
    SOURCE_UNAVAILABLE = "source_unavailable"
    CLASSIFICATION = "classification"
    AUTHORIZATION = "authorization"
    REMEDIATION_ITEM = "remediation_item"


@dataclass(frozen=True)
class AuditError:
    """Structured error kept on the session for the UI to present."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class AuditStats:
    """Byte totals for the current session.

    Files of unknown size are counted separately and never summed as zero.
    """

    total_bytes: int = 0
    unknown_size_files: int = 0
    candidate_bytes: int = 0
    unknown_size_candidates: int = 0
    selected_bytes: int = 0
    unknown_size_selected: int = 0

    @classmethod
    def compute(
        cls,
        files: Sequence[FileRecord],
        candidate_ids: Iterable[str],
        selected_ids: Iterable[str],
    ) -> "AuditStats":
        by_id = {f.file_id: f for f in files}

        def totals(ids: Iterable[str]) -> tuple[int, int]:
            known = 0
            unknown = 0
            for file_id in ids:
                record = by_id.get(file_id)
                if record is None:
                    continue
                if record.size is None:
                    unknown += 1
                else:
                    known += record.size
            return known, unknown

        total, unknown_total = totals(by_id)
        candidate, unknown_candidate = totals(candidate_ids)
        selected, unknown_selected = totals(selected_ids)

        return cls(
            total_bytes=total,
            unknown_size_files=unknown_total,
            candidate_bytes=candidate,
            unknown_size_candidates=unknown_candidate,
            selected_bytes=selected,
            unknown_size_selected=unknown_selected,
        )

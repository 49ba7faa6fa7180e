"""Shared pytest fixtures."""

from datetime import datetime, timezone
from typing import Optional, Sequence
from unittest.mock import Mock

import pytest

from drive_purge.audit.models import (
    Analysis,
    CleanupCandidate,
    CleanupCategory,
    FileOrigin,
    FileRecord,
    TrashFailureReason,
)
from drive_purge.classifier.base import Classifier
from drive_purge.common.exceptions import ClassificationError, RemediationItemError
from drive_purge.config.settings import reset_settings
from drive_purge.sources.base import FileSource


def make_file(
    file_id: str,
    size: Optional[int] = 1024,
    origin: FileOrigin = FileOrigin.LIVE,
    name: Optional[str] = None,
) -> FileRecord:
    return FileRecord(
        file_id=file_id,
        name=name or f"{file_id}.txt",
        size=size,
        mime_type="text/plain",
        modified_time=datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        origin=origin,
    )


def make_candidate(
    file_id: str,
    confidence: float = 0.9,
    category: CleanupCategory = CleanupCategory.DUPLICATE,
) -> CleanupCandidate:
    return CleanupCandidate(
        file_id=file_id,
        category=category,
        reason=f"{category.value} file",
        confidence=confidence,
    )


class FakeSource(FileSource):
    """In-memory file source that records trash calls."""

    name = "fake"

    def __init__(
        self,
        files: Sequence[FileRecord] = (),
        failures: Optional[dict[str, TrashFailureReason]] = None,
        list_error: Optional[Exception] = None,
    ) -> None:
        self.files = list(files)
        self.failures = failures or {}
        self.list_error = list_error
        self.trashed: list[str] = []
        self.list_calls = 0

    def list_files(self) -> list[FileRecord]:
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.files)

    def trash_file(self, file_id: str) -> None:
        self.trashed.append(file_id)
        if file_id in self.failures:
            raise RemediationItemError(file_id, self.failures[file_id], f"cannot trash {file_id}")


class FakeClassifier(Classifier):
    """Classifier returning canned candidates."""

    def __init__(
        self,
        candidates: Sequence[CleanupCandidate] = (),
        summary: str = "Found some clutter.",
        error: Optional[Exception] = None,
    ) -> None:
        self.candidates = list(candidates)
        self.summary = summary
        self.error = error
        self.calls: list[list[FileRecord]] = []

    def classify(self, files: Sequence[FileRecord]) -> Analysis:
        self.calls.append(list(files))
        if self.error:
            raise self.error
        return Analysis(candidates=list(self.candidates), summary=self.summary)


@pytest.fixture
def sample_files() -> list[FileRecord]:
    """Three live files, one of unknown size."""
    return [make_file("a", 1000), make_file("b", 2000), make_file("c", None)]


@pytest.fixture
def sample_candidates() -> list[CleanupCandidate]:
    """Candidates for the sample files around the 0.8 threshold."""
    return [
        make_candidate("a", 0.95),
        make_candidate("b", 0.8, CleanupCategory.OLD),
        make_candidate("c", 0.85, CleanupCategory.LARGE),
    ]


@pytest.fixture
def failing_classifier() -> FakeClassifier:
    return FakeClassifier(error=ClassificationError("model unavailable"))


@pytest.fixture
def mock_drive_service() -> Mock:
    """Create a mock Drive API service."""
    service = Mock()
    files_resource = Mock()
    service.files.return_value = files_resource
    return service


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at a temporary data directory."""
    monkeypatch.setenv("DRIVE_PURGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DRIVE_PURGE_GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("DRIVE_PURGE_GEMINI_MODEL", raising=False)
    reset_settings()
    yield tmp_path / "data"
    reset_settings()

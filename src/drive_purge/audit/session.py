"""Audit session state machine: scan, analyze, review, remediate."""

from enum import Enum
from threading import Event
from typing import Callable, Optional

from ..actions.remediation import ProgressFunc, RemediationEngine
from ..classifier.base import Classifier
from ..common.constants import DEFAULT_CONFIDENCE_THRESHOLD
from ..common.exceptions import (
    AuthenticationError,
    ClassificationError,
    PreconditionError,
    SourceUnavailableError,
)
from ..common.logging import get_logger
from ..sources.base import FileSource
from ..sources.demo import DemoFileSource
from .models import (
    AuditError,
    AuditStats,
    CleanupCandidate,
    ErrorKind,
    FileRecord,
    RemediationResult,
    TrashFailureReason,
    reconcile_candidates,
)
from .selection import SelectionSet

logger = get_logger(__name__)


class AuditPhase(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    REVIEWING = "reviewing"
    REMEDIATING = "remediating"
    COMPLETED = "completed"
    FAILED = "failed"


READY_MESSAGE = "Ready to audit your storage."

ChangeCallback = Callable[["AuditSession"], None]


class AuditSession:
    """Owns the file set, candidates and selection of one audit.

    Operations are phase-gated: calling one in the wrong phase raises
    PreconditionError and changes nothing. Collaborator failures never
    escape; they are recorded on ``last_error`` instead. The session is
    meant to be driven from a single thread; only ``cancel_remediation``
    may be called from another one.
    """

    def __init__(
        self,
        source: FileSource,
        classifier: Classifier,
        engine_factory: Callable[[], RemediationEngine] = RemediationEngine,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        on_change: Optional[ChangeCallback] = None,
    ) -> None:
        """Initialize audit session.

        Args:
            source: Where files are listed from and trashed
            classifier: Produces cleanup candidates
            engine_factory: Builds the remediation engine (a fresh one per reset)
            confidence_threshold: Candidates strictly above this are pre-selected
            on_change: Called after every phase or status message change
        """
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be between 0 and 1")

        self._source = source
        self._classifier = classifier
        self._engine_factory = engine_factory
        self._threshold = confidence_threshold
        self._on_change = on_change
        self._init_state()

    def _init_state(self) -> None:
        self._engine = self._engine_factory()
        self._active_source = self._source
        self._phase = AuditPhase.IDLE
        self._files: list[FileRecord] = []
        self._candidates: list[CleanupCandidate] = []
        self._selection = SelectionSet()
        self._status_message = READY_MESSAGE
        self._analysis_summary = ""
        self._removed: list[tuple[FileRecord, CleanupCandidate]] = []
        self._last_error: Optional[AuditError] = None
        self._last_result: Optional[RemediationResult] = None

    # Observed state

    @property
    def phase(self) -> AuditPhase:
        return self._phase

    @property
    def files(self) -> tuple[FileRecord, ...]:
        return tuple(self._files)

    @property
    def candidates(self) -> tuple[CleanupCandidate, ...]:
        return tuple(self._candidates)

    @property
    def selection(self) -> tuple[str, ...]:
        return self._selection.snapshot()

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def analysis_summary(self) -> str:
        """Summary produced by the classifier for the current scan."""
        return self._analysis_summary

    @property
    def removed(self) -> tuple[tuple[FileRecord, CleanupCandidate], ...]:
        """Files trashed by this session, with the candidate that flagged them."""
        return tuple(self._removed)

    @property
    def last_error(self) -> Optional[AuditError]:
        return self._last_error

    @property
    def last_result(self) -> Optional[RemediationResult]:
        return self._last_result

    @property
    def confidence_threshold(self) -> float:
        return self._threshold

    @property
    def is_demo(self) -> bool:
        return isinstance(self._active_source, DemoFileSource)

    def is_selected(self, file_id: str) -> bool:
        return file_id in self._selection

    def file(self, file_id: str) -> Optional[FileRecord]:
        for record in self._files:
            if record.file_id == file_id:
                return record
        return None

    def stats(self) -> AuditStats:
        return AuditStats.compute(
            self._files,
            [c.file_id for c in self._candidates],
            self._selection.snapshot(),
        )

    # Transitions

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self)

    def _set_phase(self, phase: AuditPhase, message: Optional[str] = None) -> None:
        old_phase = self._phase
        self._phase = phase
        if message is not None:
            self._status_message = message
        if old_phase != phase:
            logger.info(f"Audit phase: {old_phase.value} -> {phase.value}")
        self._notify()

    def _set_status(self, message: str) -> None:
        self._status_message = message
        self._notify()

    def _require(self, action: str, *phases: AuditPhase) -> None:
        if self._phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise PreconditionError(
                f"Cannot {action} while {self._phase.value} (allowed: {allowed})"
            )

    def _fail(self, kind: ErrorKind, message: str) -> None:
        logger.error(f"Audit failed ({kind.value}): {message}")
        self._files = []
        self._candidates = []
        self._selection = SelectionSet()
        self._last_error = AuditError(kind, message)
        self._set_phase(AuditPhase.FAILED, message)

    def start_scan(self) -> bool:
        """List files from the configured source and analyze them.

        Returns:
            True if the session reached REVIEWING

        Raises:
            PreconditionError: Unless IDLE or FAILED
        """
        return self._run(self._source)

    def start_demo(self) -> bool:
        """Like start_scan, but with the built-in demo files."""
        return self._run(DemoFileSource())

    def _run(self, source: FileSource) -> bool:
        self._require("start a scan", AuditPhase.IDLE, AuditPhase.FAILED)

        self._files = []
        self._candidates = []
        self._selection = SelectionSet()
        self._last_error = None
        self._last_result = None
        self._analysis_summary = ""
        self._removed = []
        self._active_source = source
        self._set_phase(AuditPhase.SCANNING, "Indexing file metadata...")

        try:
            listed = source.list_files()
        except AuthenticationError as e:
            self._fail(ErrorKind.AUTHORIZATION, str(e))
            return False
        except SourceUnavailableError as e:
            self._fail(ErrorKind.SOURCE_UNAVAILABLE, str(e))
            return False
        except Exception as e:
            self._fail(ErrorKind.SOURCE_UNAVAILABLE, f"Listing files failed: {e}")
            return False

        files: dict[str, FileRecord] = {}
        for record in listed:
            if record.file_id in files:
                logger.warning(f"Source listed {record.file_id} twice, keeping the first")
                continue
            files[record.file_id] = record
        self._files = list(files.values())

        self._set_phase(
            AuditPhase.ANALYZING,
            f"Analyzing {len(self._files)} files for redundancies and storage bloat...",
        )
        return self._analyze()

    def _analyze(self) -> bool:
        try:
            analysis = self._classifier.classify(list(self._files))
        except AuthenticationError as e:
            self._fail(ErrorKind.AUTHORIZATION, str(e))
            return False
        except ClassificationError as e:
            self._fail(ErrorKind.CLASSIFICATION, str(e))
            return False
        except Exception as e:
            self._fail(ErrorKind.CLASSIFICATION, f"Classification failed: {e}")
            return False

        self._candidates = reconcile_candidates(self._files, analysis.candidates)
        self._selection = SelectionSet.auto_select(self._candidates, self._threshold)
        logger.info(
            f"{len(self._candidates)} candidates, {len(self._selection)} pre-selected "
            f"(threshold {self._threshold})"
        )

        summary = analysis.summary or f"Found {len(self._candidates)} cleanup candidates."
        self._analysis_summary = summary
        self._set_phase(AuditPhase.REVIEWING, summary)
        return True

    def toggle_selection(self, file_id: str) -> bool:
        """Flip selection of a candidate. Unknown ids are ignored.

        Returns:
            True if the id is selected afterwards
        """
        self._require("change the selection", AuditPhase.REVIEWING)
        selected = self._selection.toggle(file_id)
        self._notify()
        return selected

    def select_all(self) -> None:
        self._require("change the selection", AuditPhase.REVIEWING)
        self._selection.select_all()
        self._notify()

    def clear_selection(self) -> None:
        self._require("change the selection", AuditPhase.REVIEWING)
        self._selection.clear()
        self._notify()

    def remediate(
        self,
        progress: Optional[ProgressFunc] = None,
        cancel: Optional[Event] = None,
    ) -> RemediationResult:
        """Trash the selected files.

        Succeeded files leave files, candidates and selection. Failed or
        cancelled files stay, still selected, so they can be retried after
        ``resume_review``.

        Args:
            progress: Optional callback receiving (file_id, succeeded)
            cancel: Optional event that stops the purge when set, including
                before it has started

        Raises:
            PreconditionError: Unless REVIEWING with a non-empty selection
        """
        self._require("remediate", AuditPhase.REVIEWING)
        if not self._selection:
            raise PreconditionError("Cannot remediate with an empty selection")

        by_id = {f.file_id: f for f in self._files}
        snapshot = [by_id[file_id] for file_id in self._selection.snapshot()]
        total = len(snapshot)
        done = 0

        def on_progress(file_id: str, succeeded: bool) -> None:
            nonlocal done
            done += 1
            self._set_status(f"Moved {done}/{total} files to the trash...")
            if progress:
                progress(file_id, succeeded)

        self._last_error = None
        self._set_phase(AuditPhase.REMEDIATING, f"Moving {total} files to the trash...")

        try:
            result = self._engine.execute(
                snapshot, self._active_source.trash_file, on_progress, cancel
            )
        except Exception:
            self._set_phase(AuditPhase.REVIEWING)
            raise

        self._removed.extend(
            (by_id[c.file_id], c) for c in self._candidates if c.file_id in result.succeeded
        )
        self._files = [f for f in self._files if f.file_id not in result.succeeded]
        self._candidates = [c for c in self._candidates if c.file_id not in result.succeeded]
        for file_id in result.succeeded:
            self._selection.discard(file_id)
        self._last_result = result

        reasons = {failure.reason for failure in result.failed.values()}
        if TrashFailureReason.UNAUTHORIZED in reasons:
            self._last_error = AuditError(
                ErrorKind.AUTHORIZATION,
                "Drive authorization was lost during the purge. Please log in again.",
            )
        elif result.failed:
            self._last_error = AuditError(
                ErrorKind.REMEDIATION_ITEM,
                f"{len(result.failed)} of {result.attempted} files could not be trashed",
            )

        self._set_phase(AuditPhase.COMPLETED, result.summary())
        return result

    def cancel_remediation(self) -> bool:
        """Ask a running purge to stop submitting files.

        Returns:
            True if a purge was in flight and will stop
        """
        if self._phase != AuditPhase.REMEDIATING:
            return False
        return self._engine.cancel()

    def resume_review(self) -> None:
        """Return to REVIEWING after a purge to retry what is left.

        Raises:
            PreconditionError: Unless COMPLETED with candidates remaining
        """
        self._require("resume review", AuditPhase.COMPLETED)
        if not self._candidates:
            raise PreconditionError("No candidates left to review")
        self._set_phase(
            AuditPhase.REVIEWING,
            f"{len(self._candidates)} candidates remain, {len(self._selection)} selected.",
        )

    def reset(self) -> None:
        """Discard everything and return to IDLE."""
        old_phase = self._phase
        self._init_state()
        logger.info(f"Audit reset from {old_phase.value}")
        self._notify()

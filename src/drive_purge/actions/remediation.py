"""Batch trash execution with per-file failure isolation."""

from concurrent.futures import (
    ALL_COMPLETED,
    FIRST_COMPLETED,
    Future,
    ThreadPoolExecutor,
    wait,
)
from threading import Event, Lock
from typing import Callable, Optional, Sequence

from ..audit.models import (
    FileRecord,
    RemediationResult,
    TrashFailure,
    TrashFailureReason,
)
from ..common.exceptions import AuthenticationError, RemediationItemError
from ..common.logging import get_logger

logger = get_logger(__name__)

TrashFunc = Callable[[str], None]
ProgressFunc = Callable[[str, bool], None]


class RemediationEngine:
    """Trashes a snapshot of files, one independent attempt per file.

    A failure for one file never aborts, skips or rolls back another. The
    engine never retries; callers inspect ``RemediationResult.failed`` and
    decide. Files purged by an earlier run on the same engine are reported as
    ``ALREADY_REMOVED`` instead of being sent again.
    """

    def __init__(self, max_workers: int = 1) -> None:
        """Initialize remediation engine.

        Args:
            max_workers: Concurrent trash calls (1 runs sequentially)
        """
        self.max_workers = max(1, max_workers)
        self._purged: set[str] = set()
        self._purged_lock = Lock()
        # Cancel event of the run in flight, None while idle
        self._run_cancel: Optional[Event] = None
        self._run_lock = Lock()

    def cancel(self) -> bool:
        """Stop submitting new files. In-flight calls finish and are recorded.

        Only the run in flight is affected; a request while idle is ignored.

        Returns:
            True if a run was in flight
        """
        with self._run_lock:
            cancel = self._run_cancel
        if cancel is None:
            logger.debug("Ignoring cancellation, no remediation in flight")
            return False
        cancel.set()
        logger.info("Remediation cancellation requested")
        return True

    @property
    def cancel_requested(self) -> bool:
        with self._run_lock:
            return self._run_cancel is not None and self._run_cancel.is_set()

    def execute(
        self,
        files: Sequence[FileRecord],
        trash: TrashFunc,
        progress: Optional[ProgressFunc] = None,
        cancel: Optional[Event] = None,
    ) -> RemediationResult:
        """Trash every file in the snapshot.

        Args:
            files: Ordered snapshot of files to trash
            trash: Callable that trashes one file id, raising
                RemediationItemError on failure
            progress: Optional callback receiving (file_id, succeeded)
            cancel: Caller-owned event for this run; setting it, even before
                the run starts, stops submission of further files

        Returns:
            Result populated after every submitted file has finished
        """
        # Same id twice in one snapshot is submitted once
        ordered: list[FileRecord] = []
        seen: set[str] = set()
        for file in files:
            if file.file_id not in seen:
                seen.add(file.file_id)
                ordered.append(file)

        outcomes: dict[str, Optional[TrashFailure]] = {}
        cancelled: list[str] = []

        def record(file_id: str, failure: Optional[TrashFailure]) -> None:
            outcomes[file_id] = failure
            if progress:
                progress(file_id, failure is None)

        if cancel is None:
            cancel = Event()
        with self._run_lock:
            self._run_cancel = cancel

        try:
            if self.max_workers == 1:
                for index, file in enumerate(ordered):
                    if cancel.is_set():
                        cancelled.extend(f.file_id for f in ordered[index:])
                        break
                    record(file.file_id, self._purge_one(file, trash))
            else:
                cancelled = self._execute_parallel(ordered, trash, record, cancel)
        finally:
            with self._run_lock:
                self._run_cancel = None

        succeeded = frozenset(i for i, failure in outcomes.items() if failure is None)
        failed = {i: failure for i, failure in outcomes.items() if failure is not None}

        result = RemediationResult(
            attempted=len(outcomes),
            succeeded=succeeded,
            failed=failed,
            cancelled=tuple(cancelled),
        )
        logger.info(result.summary())
        return result

    def _execute_parallel(
        self,
        ordered: list[FileRecord],
        trash: TrashFunc,
        record: Callable[[str, Optional[TrashFailure]], None],
        cancel: Event,
    ) -> list[str]:
        """Run trash calls on a thread pool, at most max_workers in flight.

        Submission is throttled so cancellation stops files that were not
        yet handed to a worker.

        Returns:
            Ids that were never submitted
        """
        pending: dict[Future, str] = {}
        cancelled: list[str] = []

        def drain(block_until_slot: bool) -> None:
            if not pending:
                return
            done, _ = wait(
                list(pending),
                return_when=FIRST_COMPLETED if block_until_slot else ALL_COMPLETED,
            )
            for future in done:
                record(pending.pop(future), future.result())

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for index, file in enumerate(ordered):
                if len(pending) >= self.max_workers:
                    drain(block_until_slot=True)
                if cancel.is_set():
                    cancelled.extend(f.file_id for f in ordered[index:])
                    break
                pending[pool.submit(self._purge_one, file, trash)] = file.file_id

            while pending:
                drain(block_until_slot=False)

        return cancelled

    def _purge_one(self, file: FileRecord, trash: TrashFunc) -> Optional[TrashFailure]:
        """Attempt one file. Returns None on success."""
        with self._purged_lock:
            already = file.file_id in self._purged

        if already:
            logger.warning(f"File already trashed in an earlier run: {file.file_id}")
            return TrashFailure(
                TrashFailureReason.ALREADY_REMOVED,
                "File was already trashed",
            )

        if file.is_demo:
            logger.info(f"[DEMO] Simulated trash of {file.name} ({file.file_id})")
        else:
            try:
                trash(file.file_id)
            except RemediationItemError as e:
                logger.error(f"Failed to trash {file.file_id}: {e}")
                return TrashFailure(e.reason, str(e))
            except AuthenticationError as e:
                logger.error(f"Not authorized to trash {file.file_id}: {e}")
                return TrashFailure(TrashFailureReason.UNAUTHORIZED, str(e))
            except Exception as e:
                logger.error(f"Unexpected error trashing {file.file_id}: {e}")
                return TrashFailure(TrashFailureReason.TRANSIENT, str(e))

        with self._purged_lock:
            self._purged.add(file.file_id)
        return None

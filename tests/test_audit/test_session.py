"""Tests for the audit session state machine."""

import threading

import pytest

from conftest import FakeClassifier, FakeSource, make_candidate, make_file
from drive_purge.actions.remediation import RemediationEngine
from drive_purge.audit.models import (
    CleanupCategory,
    ErrorKind,
    TrashFailureReason,
)
from drive_purge.audit.session import AuditPhase, AuditSession
from drive_purge.common.exceptions import (
    AuthenticationError,
    ClassificationError,
    PreconditionError,
    SourceUnavailableError,
)


def reviewing_session(files, candidates, **source_kwargs) -> tuple[AuditSession, FakeSource]:
    source = FakeSource(files, **source_kwargs)
    session = AuditSession(source, FakeClassifier(candidates))
    assert session.start_scan() is True
    return session, source


def assert_fresh(session: AuditSession) -> None:
    assert session.phase is AuditPhase.IDLE
    assert session.files == ()
    assert session.candidates == ()
    assert session.selection == ()
    assert session.last_error is None
    assert session.last_result is None
    assert session.analysis_summary == ""
    assert session.removed == ()


def test_new_session_is_idle(sample_files) -> None:
    """Test new session is idle."""
    session = AuditSession(FakeSource(sample_files), FakeClassifier())
    assert_fresh(session)


def test_threshold_must_be_a_probability() -> None:
    """Test threshold must be a probability."""
    with pytest.raises(ValueError):
        AuditSession(FakeSource(), FakeClassifier(), confidence_threshold=1.5)


def test_scan_reaches_reviewing_with_preselection(sample_files, sample_candidates) -> None:
    """Test scan reaches reviewing with preselection."""
    session, _ = reviewing_session(sample_files, sample_candidates)

    assert session.phase is AuditPhase.REVIEWING
    assert len(session.files) == 3
    assert [c.file_id for c in session.candidates] == ["a", "b", "c"]
    # 0.8 is exactly the threshold and is not pre-selected
    assert session.selection == ("a", "c")
    assert session.status_message == "Found some clutter."


def test_scan_passes_through_analyzing(sample_files, sample_candidates) -> None:
    """Test scan passes through analyzing."""
    phases = []
    session = AuditSession(
        FakeSource(sample_files),
        FakeClassifier(sample_candidates),
        on_change=lambda s: phases.append(s.phase),
    )

    session.start_scan()

    assert phases[:3] == [AuditPhase.SCANNING, AuditPhase.ANALYZING, AuditPhase.REVIEWING]


def test_custom_threshold(sample_files, sample_candidates) -> None:
    """Test custom threshold."""
    session = AuditSession(
        FakeSource(sample_files),
        FakeClassifier(sample_candidates),
        confidence_threshold=0.7,
    )
    session.start_scan()

    assert session.selection == ("a", "b", "c")


def test_orphans_and_duplicates_are_not_reviewable(sample_files) -> None:
    """Test orphans and duplicates are not reviewable."""
    candidates = [
        make_candidate("a", 0.9),
        make_candidate("ghost", 0.99),
        make_candidate("a", 0.1, CleanupCategory.OLD),
    ]
    session, _ = reviewing_session(sample_files, candidates)

    file_ids = {f.file_id for f in session.files}
    assert [c.file_id for c in session.candidates] == ["a"]
    assert all(c.file_id in file_ids for c in session.candidates)
    assert session.candidates[0].category is CleanupCategory.DUPLICATE
    assert "ghost" not in session.selection


def test_empty_summary_gets_default_message(sample_files) -> None:
    """Test empty summary gets default message."""
    source = FakeSource(sample_files)
    session = AuditSession(source, FakeClassifier([make_candidate("a")], summary=""))
    session.start_scan()

    assert session.status_message == "Found 1 cleanup candidates."


def test_start_scan_rejected_while_reviewing(sample_files, sample_candidates) -> None:
    """Test start scan rejected while reviewing."""
    session, source = reviewing_session(sample_files, sample_candidates)

    with pytest.raises(PreconditionError):
        session.start_scan()

    assert session.phase is AuditPhase.REVIEWING
    assert source.list_calls == 1


def test_source_failure_moves_to_failed() -> None:
    """Test source failure moves to failed."""
    source = FakeSource(list_error=SourceUnavailableError("drive down"))
    classifier = FakeClassifier()
    session = AuditSession(source, classifier)

    assert session.start_scan() is False

    assert session.phase is AuditPhase.FAILED
    assert session.last_error.kind is ErrorKind.SOURCE_UNAVAILABLE
    assert session.last_error.message == "drive down"
    assert session.files == ()
    assert classifier.calls == []


def test_unexpected_source_error_is_converted() -> None:
    """Test unexpected source error is converted."""
    session = AuditSession(FakeSource(list_error=RuntimeError("socket closed")), FakeClassifier())

    session.start_scan()

    assert session.last_error.kind is ErrorKind.SOURCE_UNAVAILABLE
    assert "socket closed" in session.last_error.message


def test_authentication_failure_is_reported_distinctly() -> None:
    """Test authentication failure is reported distinctly."""
    session = AuditSession(FakeSource(list_error=AuthenticationError("token revoked")), FakeClassifier())

    session.start_scan()

    assert session.phase is AuditPhase.FAILED
    assert session.last_error.kind is ErrorKind.AUTHORIZATION


def test_classifier_failure_discards_files(sample_files, failing_classifier) -> None:
    """Test classifier failure discards files."""
    source = FakeSource(sample_files)
    session = AuditSession(source, failing_classifier)

    assert session.start_scan() is False

    assert session.phase is AuditPhase.FAILED
    assert session.last_error.kind is ErrorKind.CLASSIFICATION
    assert session.files == ()
    assert session.candidates == ()
    assert session.selection == ()


def test_scan_can_be_retried_after_failure(sample_files, sample_candidates) -> None:
    """Test scan can be retried after failure."""
    classifier = FakeClassifier(sample_candidates, error=ClassificationError("timeout"))
    session = AuditSession(FakeSource(sample_files), classifier)
    session.start_scan()
    assert session.phase is AuditPhase.FAILED

    classifier.error = None
    assert session.start_scan() is True

    assert session.phase is AuditPhase.REVIEWING
    assert session.last_error is None


def test_selection_changes_only_while_reviewing(sample_files) -> None:
    """Test selection changes only while reviewing."""
    session = AuditSession(FakeSource(sample_files), FakeClassifier())

    with pytest.raises(PreconditionError):
        session.toggle_selection("a")
    with pytest.raises(PreconditionError):
        session.select_all()
    with pytest.raises(PreconditionError):
        session.clear_selection()


def test_toggle_select_all_and_clear(sample_files, sample_candidates) -> None:
    """Test toggle select all and clear."""
    session, _ = reviewing_session(sample_files, sample_candidates)

    assert session.toggle_selection("b") is True
    assert session.selection == ("a", "b", "c")
    session.toggle_selection("unknown")
    assert session.selection == ("a", "b", "c")

    session.clear_selection()
    assert session.selection == ()

    session.select_all()
    assert session.selection == ("a", "b", "c")


def test_toggle_twice_is_identity(sample_files, sample_candidates) -> None:
    """Test toggle twice is identity."""
    session, _ = reviewing_session(sample_files, sample_candidates)
    before = session.selection

    session.toggle_selection("a")
    session.toggle_selection("a")

    assert session.selection == before


def test_remediate_with_empty_selection_is_rejected(sample_files, sample_candidates) -> None:
    """Test remediate with empty selection is rejected."""
    session, source = reviewing_session(sample_files, sample_candidates)
    session.clear_selection()

    with pytest.raises(PreconditionError):
        session.remediate()

    assert session.phase is AuditPhase.REVIEWING
    assert source.trashed == []


def test_remediate_rejected_outside_reviewing(sample_files) -> None:
    """Test remediate rejected outside reviewing."""
    session = AuditSession(FakeSource(sample_files), FakeClassifier())

    with pytest.raises(PreconditionError):
        session.remediate()


def test_remediation_isolates_failures() -> None:
    """Test remediation isolates failures."""
    files = [make_file("a"), make_file("b"), make_file("c")]
    candidates = [make_candidate("a"), make_candidate("b"), make_candidate("c")]
    session, source = reviewing_session(
        files, candidates, failures={"b": TrashFailureReason.FORBIDDEN}
    )

    result = session.remediate()

    assert source.trashed == ["a", "b", "c"]
    assert result.succeeded == {"a", "c"}
    assert set(result.failed) == {"b"}
    assert result.failed["b"].reason is TrashFailureReason.FORBIDDEN
    assert session.phase is AuditPhase.COMPLETED
    assert [f.file_id for f in session.files] == ["b"]
    assert [c.file_id for c in session.candidates] == ["b"]
    assert session.selection == ("b",)
    assert session.last_result is result
    assert session.last_error.kind is ErrorKind.REMEDIATION_ITEM


def test_unselected_candidates_are_untouched(sample_files, sample_candidates) -> None:
    """Test unselected candidates are untouched."""
    session, source = reviewing_session(sample_files, sample_candidates)

    session.remediate()

    assert source.trashed == ["a", "c"]
    assert [f.file_id for f in session.files] == ["b"]
    assert [c.file_id for c in session.candidates] == ["b"]
    assert session.selection == ()


def test_all_failures_still_complete() -> None:
    """Test all failures still complete."""
    files = [make_file("a"), make_file("b")]
    session, _ = reviewing_session(
        files,
        [make_candidate("a"), make_candidate("b")],
        failures={"a": TrashFailureReason.NOT_FOUND, "b": TrashFailureReason.TRANSIENT},
    )

    result = session.remediate()

    assert result.all_failed
    assert session.phase is AuditPhase.COMPLETED
    assert session.selection == ("a", "b")


def test_unauthorized_trash_surfaces_authorization_error() -> None:
    """Test unauthorized trash surfaces authorization error."""
    session, _ = reviewing_session(
        [make_file("a")],
        [make_candidate("a")],
        failures={"a": TrashFailureReason.UNAUTHORIZED},
    )

    session.remediate()

    assert session.phase is AuditPhase.COMPLETED
    assert session.last_error.kind is ErrorKind.AUTHORIZATION


def test_resume_review_allows_retry_of_failures() -> None:
    """Test resume review allows retry of failures."""
    source = FakeSource(
        [make_file("a"), make_file("b")],
        failures={"b": TrashFailureReason.TRANSIENT},
    )
    session = AuditSession(source, FakeClassifier([make_candidate("a"), make_candidate("b")]))
    session.start_scan()
    session.remediate()

    source.failures.clear()
    session.resume_review()
    assert session.phase is AuditPhase.REVIEWING
    result = session.remediate()

    assert result.succeeded == {"b"}
    assert session.files == ()
    assert source.trashed == ["a", "b", "b"]


def test_resume_review_requires_remaining_candidates(sample_files) -> None:
    """Test resume review requires remaining candidates."""
    session, _ = reviewing_session(sample_files, [make_candidate("a")])
    session.remediate()

    with pytest.raises(PreconditionError):
        session.resume_review()


def test_completed_is_terminal_for_scans(sample_files, sample_candidates) -> None:
    """Test completed is terminal for scans."""
    session, _ = reviewing_session(sample_files, sample_candidates)
    session.remediate()

    with pytest.raises(PreconditionError):
        session.start_scan()


def test_status_updates_during_remediation(sample_files, sample_candidates) -> None:
    """Test status updates during remediation."""
    messages = []
    session = AuditSession(
        FakeSource(sample_files),
        FakeClassifier(sample_candidates),
        on_change=lambda s: messages.append((s.phase, s.status_message)),
    )
    session.start_scan()
    progress = []

    session.remediate(progress=lambda file_id, ok: progress.append((file_id, ok)))

    assert progress == [("a", True), ("c", True)]
    assert (AuditPhase.REMEDIATING, "Moved 2/2 files to the trash...") in messages
    assert messages[-1] == (AuditPhase.COMPLETED, "Trashed 2/2 files")


def test_cancel_after_purge_does_not_carry_over() -> None:
    """Test cancel after purge does not carry over."""
    session = None

    class LateCancelEngine(RemediationEngine):
        def execute(self, files, trash, progress=None, cancel=None):
            result = super().execute(files, trash, progress, cancel)
            # The run is over but the session has not left REMEDIATING yet
            session.cancel_remediation()
            return result

    source = FakeSource(
        [make_file("a"), make_file("b")],
        failures={"b": TrashFailureReason.TRANSIENT},
    )
    session = AuditSession(
        source,
        FakeClassifier([make_candidate("a"), make_candidate("b")]),
        engine_factory=LateCancelEngine,
    )
    session.start_scan()
    session.remediate()

    source.failures.clear()
    session.resume_review()
    result = session.remediate()

    assert result.cancelled == ()
    assert result.succeeded == {"b"}


def test_cancel_requested_before_purge_starts(sample_files, sample_candidates) -> None:
    """Test cancel requested before purge starts."""
    session, source = reviewing_session(sample_files, sample_candidates)
    cancel = threading.Event()
    cancel.set()

    result = session.remediate(cancel=cancel)

    assert source.trashed == []
    assert result.cancelled == ("a", "c")
    assert session.phase is AuditPhase.COMPLETED
    assert session.selection == ("a", "c")


def test_cancel_outside_a_purge_is_ignored(sample_files, sample_candidates) -> None:
    """Test cancel outside a purge is ignored."""
    session, source = reviewing_session(sample_files, sample_candidates)

    assert session.cancel_remediation() is False
    result = session.remediate()

    assert result.cancelled == ()
    assert source.trashed == ["a", "c"]


def test_purge_keeps_classifier_summary_and_trashed_files(
    sample_files, sample_candidates
) -> None:
    """Test purge keeps classifier summary and trashed files."""
    session, _ = reviewing_session(sample_files, sample_candidates)

    session.remediate()

    assert session.status_message == "Trashed 2/2 files"
    assert session.analysis_summary == "Found some clutter."
    assert [(f.file_id, c.category) for f, c in session.removed] == [
        ("a", CleanupCategory.DUPLICATE),
        ("c", CleanupCategory.LARGE),
    ]

def test_engine_failure_restores_reviewing(sample_files, sample_candidates) -> None:
    """Test engine failure restores reviewing."""
    class BrokenEngine(RemediationEngine):
        def execute(self, files, trash, progress=None, cancel=None):
            raise RuntimeError("bug")

    session = AuditSession(
        FakeSource(sample_files),
        FakeClassifier(sample_candidates),
        engine_factory=BrokenEngine,
    )
    session.start_scan()

    with pytest.raises(RuntimeError):
        session.remediate()

    assert session.phase is AuditPhase.REVIEWING
    assert session.selection == ("a", "c")


def test_demo_scenario() -> None:
    """Test demo scenario."""
    classifier = FakeClassifier(
        [make_candidate("m1", 0.9, CleanupCategory.DUPLICATE)],
        summary="One duplicate report.",
    )
    live_source = FakeSource()
    session = AuditSession(live_source, classifier)

    assert session.start_demo() is True
    assert session.is_demo

    assert [c.file_id for c in session.candidates] == ["m1"]
    assert session.selection == ("m1",)
    m1, m2 = session.file("m1"), session.file("m2")
    assert (m1.name, m1.size, m1.mime_type, m1.modified_time) == (
        m2.name, m2.size, m2.mime_type, m2.modified_time,
    )

    result = session.remediate()

    assert result.succeeded == {"m1"}
    assert session.phase is AuditPhase.COMPLETED
    assert "m1" not in {f.file_id for f in session.files}
    assert "m2" in {f.file_id for f in session.files}
    assert live_source.trashed == []
    assert live_source.list_calls == 0


def test_duplicate_listed_ids_are_collapsed() -> None:
    """Test duplicate listed ids are collapsed."""
    source = FakeSource([make_file("a", 10), make_file("a", 20)])
    session = AuditSession(source, FakeClassifier())

    session.start_scan()

    assert [(f.file_id, f.size) for f in session.files] == [("a", 10)]


def test_stats_reflect_selection(sample_files, sample_candidates) -> None:
    """Test stats reflect selection."""
    session, _ = reviewing_session(sample_files, sample_candidates)

    stats = session.stats()

    assert stats.total_bytes == 3000
    assert stats.candidate_bytes == 3000
    assert stats.unknown_size_candidates == 1
    assert stats.selected_bytes == 1000
    assert stats.unknown_size_selected == 1


@pytest.mark.parametrize("stage", ["reviewing", "completed", "failed"])
def test_reset_restores_fresh_state(stage, sample_files, sample_candidates) -> None:
    """Test reset restores fresh state."""
    if stage == "failed":
        session = AuditSession(
            FakeSource(list_error=SourceUnavailableError("down")), FakeClassifier()
        )
        session.start_scan()
    else:
        session, _ = reviewing_session(sample_files, sample_candidates)
        if stage == "completed":
            session.remediate()

    session.reset()

    assert_fresh(session)
    assert session.status_message == AuditSession(FakeSource(), FakeClassifier()).status_message
    assert not session.is_demo


def test_reset_allows_demo_ids_to_be_purged_again() -> None:
    """Test reset allows demo ids to be purged again."""
    session = AuditSession(FakeSource(), FakeClassifier([make_candidate("m1")]))
    session.start_demo()
    session.remediate()

    session.reset()
    session.start_demo()
    result = session.remediate()

    assert result.succeeded == {"m1"}

"""CSV and JSON export of audit findings."""

import csv
import json
from pathlib import Path
from typing import Any

from ..audit.models import CleanupCandidate, FileRecord
from ..audit.session import AuditSession
from ..common.logging import get_logger

logger = get_logger(__name__)


class ReportExporter:
    """Exports the candidates of an audit session, with their outcome."""

    def rows(self, session: AuditSession) -> list[dict[str, Any]]:
        """One row per candidate still under review, then one per trashed file.

        Size is left empty when the source did not report one.
        """
        result = session.last_result
        rows = []

        for candidate in session.candidates:
            file = session.file(candidate.file_id)
            if file is None:
                continue

            status = "selected" if session.is_selected(file.file_id) else "kept"
            if result and file.file_id in result.failed:
                status = f"failed: {result.failed[file.file_id].reason.value}"
            rows.append(self._row(file, candidate, status))

        for file, candidate in session.removed:
            rows.append(self._row(file, candidate, "trashed"))

        return rows

    def _row(self, file: FileRecord, candidate: CleanupCandidate, status: str) -> dict[str, Any]:
        return {
            "file_id": file.file_id,
            "name": file.name,
            "size": file.size,
            "mime_type": file.mime_type,
            "modified_time": file.modified_time.isoformat(),
            "category": candidate.category.value,
            "confidence": round(candidate.confidence, 3),
            "reason": candidate.reason,
            "status": status,
            "web_view_link": file.web_view_link,
        }

    def export_csv(self, session: AuditSession, output_path: Path) -> None:
        """Export findings to CSV.

        Args:
            session: Session in REVIEWING or COMPLETED phase
            output_path: Output file path
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        rows = self.rows(session)
        fieldnames = [
            "file_id",
            "name",
            "size",
            "mime_type",
            "modified_time",
            "category",
            "confidence",
            "reason",
            "status",
            "web_view_link",
        ]

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for row in rows:
                writer.writerow({k: "" if v is None else v for k, v in row.items()})

        logger.info(f"Exported {len(rows)} candidates to CSV: {output_path}")

    def export_json(self, session: AuditSession, output_path: Path) -> None:
        """Export findings, totals and the last purge result to JSON.

        Args:
            session: Session in REVIEWING or COMPLETED phase
            output_path: Output file path
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        stats = session.stats()
        result = session.last_result

        data: dict[str, Any] = {
            "phase": session.phase.value,
            "summary": session.analysis_summary,
            "confidence_threshold": session.confidence_threshold,
            "total_files": len(session.files),
            "total_candidates": len(session.candidates),
            "total_trashed": len(session.removed),
            "candidate_bytes": stats.candidate_bytes,
            "unknown_size_candidates": stats.unknown_size_candidates,
            "candidates": self.rows(session),
            "remediation": None,
        }

        if result is not None:
            data["remediation"] = {
                "attempted": result.attempted,
                "succeeded": sorted(result.succeeded),
                "failed": {
                    file_id: {"reason": failure.reason.value, "message": failure.message}
                    for file_id, failure in result.failed.items()
                },
                "cancelled": list(result.cancelled),
            }

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(data['candidates'])} candidates to JSON: {output_path}")

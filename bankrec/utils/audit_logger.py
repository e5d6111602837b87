"""
Audit trail of one statement line.

Entries are kept in order and mirrored to structlog. The trail can be read
back as the line's reconciliation outcome and exported as a JSON report.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..config import get_settings
from ..models import AuditAction, AuditEntry

logger = structlog.get_logger()


class AuditLogger:
    """Decisions taken on a single statement line, oldest first."""

    def __init__(self, statement_line_id: str):
        self.statement_line_id = statement_line_id
        self.entries: List[AuditEntry] = []
        self.settings = get_settings()

    def log(self, entry: AuditEntry) -> None:
        if entry.statement_line_id is None:
            entry.statement_line_id = self.statement_line_id
        self.entries.append(entry)

        emit = logger.info if entry.success else logger.warning
        emit(
            entry.message,
            action=entry.action.value,
            statement_line_id=entry.statement_line_id,
            transaction_ids=entry.transaction_ids,
            reconciliation_id=entry.reconciliation_id,
        )

    def log_many(self, entries: List[AuditEntry]) -> None:
        for entry in entries:
            self.log(entry)

    def of_action(self, action: AuditAction) -> List[AuditEntry]:
        return [e for e in self.entries if e.action == action]

    def _last(self, action: AuditAction) -> Optional[AuditEntry]:
        matching = self.of_action(action)
        return matching[-1] if matching else None

    def outcome(self) -> Dict[str, Any]:
        """
        Where the statement line stands according to its trail.

        state is "committed" once a reconciliation went through, "rejected"
        if every attempt so far failed, and "open" before any attempt.
        """
        committed = self._last(AuditAction.RECONCILIATION_COMMITTED)
        rejections = self.of_action(AuditAction.RECONCILIATION_REJECTED)

        if committed is not None:
            state = "committed"
        elif rejections:
            state = "rejected"
        else:
            state = "open"

        outcome: Dict[str, Any] = {
            "statement_line_id": self.statement_line_id,
            "state": state,
            "rejections": [e.details.get("error") for e in rejections],
        }
        if committed is None:
            return outcome

        gap_fill = self._last(AuditAction.GAP_FILL_CREATED)
        open_difference = self._last(AuditAction.UNBALANCED_ACCEPTED)
        outcome.update({
            "reconciliation_id": committed.reconciliation_id,
            "status": committed.details.get("status"),
            "transaction_ids": committed.transaction_ids,
            "gap_fill_cents": gap_fill.details["amount_cents"] if gap_fill else 0,
            "open_difference_cents": (
                open_difference.details["open_difference_cents"] if open_difference else 0
            ),
        })
        return outcome

    def export_to_file(self, output_path: Optional[Path] = None) -> Path:
        """Write outcome and entries as JSON, by default under reports_dir."""
        if output_path is None:
            output_path = self.settings.reports_dir / f"reconciliation_{self.statement_line_id}.json"
        output_path.parent.mkdir(parents=True, exist_ok=True)

        report = {
            "exported_at": datetime.utcnow().isoformat(),
            "outcome": self.outcome(),
            "entries": [e.to_dict() for e in self.entries],
        }
        output_path.write_text(
            json.dumps(report, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )

        logger.info("Audit trail exported", statement_line_id=self.statement_line_id, path=str(output_path))
        return output_path

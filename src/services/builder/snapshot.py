"""Unsaved-changes detection for report drafts.

A snapshot is a JSON fingerprint of only the fields that end up persisted:
SQL text, visualization config, widget name and source statement id. Run
results, errors and loading state never participate.
"""

import json

from src.services.builder.draft import ReportDraft
from src.services.viz.models import dump_visualization_config


def snapshot(draft: ReportDraft) -> str:
    """Serialize the persistence-relevant fields of ``draft`` in a fixed order."""
    payload = {
        "sql_text": draft.sql_text,
        "visualization": dump_visualization_config(draft.config),
        "name": draft.name,
        "statement_id": draft.source.statement_id if draft.source else None,
    }
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def has_unsaved_changes(current: str, saved: str | None) -> bool:
    """Without a baseline (pristine new draft) nothing counts as unsaved."""
    if saved is None:
        return False
    return current != saved


class SnapshotComparator:
    """Holds the last-saved baseline for one draft."""

    def __init__(self) -> None:
        self.baseline: str | None = None

    def mark_saved(self, draft: ReportDraft) -> None:
        self.baseline = snapshot(draft)

    def accept(self, fingerprint: str) -> None:
        """Take a snapshot captured earlier (at save time) as the baseline."""
        self.baseline = fingerprint

    def clear(self) -> None:
        self.baseline = None

    def is_dirty(self, draft: ReportDraft) -> bool:
        return has_unsaved_changes(snapshot(draft), self.baseline)

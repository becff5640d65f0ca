"""Guided report builder."""

from src.services.builder.draft import ReportDraft, SqlSource
from src.services.builder.machine import GuidedBuilder
from src.services.builder.session_store import BuilderSession, BuilderSessionStore
from src.services.builder.snapshot import SnapshotComparator, has_unsaved_changes, snapshot

__all__ = [
    "BuilderSession",
    "BuilderSessionStore",
    "GuidedBuilder",
    "ReportDraft",
    "SnapshotComparator",
    "SqlSource",
    "has_unsaved_changes",
    "snapshot",
]

"""Corpus-wide migration: discovery, per-document processing, reporting."""

from notelift.migration.models import (
    FailedReference,
    FileChange,
    FileMigrationResult,
    MigrationReport,
    PlaceholderRepairReport,
    ReplacedReference,
)
from notelift.migration.orchestrator import MigrationOrchestrator, ProgressCallback, run_migration
from notelift.migration.scanner import DEFAULT_IGNORE, discover_documents

__all__ = [
    "DEFAULT_IGNORE",
    "FailedReference",
    "FileChange",
    "FileMigrationResult",
    "MigrationOrchestrator",
    "MigrationReport",
    "PlaceholderRepairReport",
    "ProgressCallback",
    "ReplacedReference",
    "discover_documents",
    "run_migration",
]

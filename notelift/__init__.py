"""notelift — move the local images of a Markdown corpus to a remote image store."""

__version__ = "0.1.0"

from notelift.config import NoteliftConfig, load_config
from notelift.migration import MigrationOrchestrator, MigrationReport, run_migration

__all__ = [
    "MigrationOrchestrator",
    "MigrationReport",
    "NoteliftConfig",
    "__version__",
    "load_config",
    "run_migration",
]

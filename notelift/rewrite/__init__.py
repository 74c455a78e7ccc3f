from notelift.rewrite.engine import RewriteEngine, success_form
from notelift.rewrite.models import OutcomeStatus, ReferenceOutcome, RewriteResult

__all__ = [
    "OutcomeStatus",
    "ReferenceOutcome",
    "RewriteEngine",
    "RewriteResult",
    "success_form",
]

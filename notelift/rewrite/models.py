from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from notelift.references.models import ImageReference


class OutcomeStatus(str, Enum):
    REPLACED = "replaced"
    RESOLVABLE = "resolvable"  # dry run: would be uploaded and replaced
    UNRESOLVED = "unresolved"
    FAILED = "failed"


class ReferenceOutcome(BaseModel):
    """What happened to one extracted reference."""

    reference: ImageReference
    status: OutcomeStatus
    resolved_path: str | None = None
    fingerprint: str | None = None
    remote_url: str | None = None
    reason: str | None = None


class RewriteResult(BaseModel):
    content: str
    outcomes: list[ReferenceOutcome] = Field(default_factory=list)
    groups_replaced: int = 0

    @property
    def changed(self) -> bool:
        return self.groups_replaced > 0

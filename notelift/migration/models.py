"""Pydantic models for migration results and reports."""

from __future__ import annotations

from pydantic import BaseModel, Field

from notelift.references.models import ImageReference, ResolvedImage
from notelift.uploader.models import UploadRecord


class ReplacedReference(BaseModel):
    reference: ImageReference
    remote_url: str


class FailedReference(BaseModel):
    reference: ImageReference
    reason: str


class FileChange(BaseModel):
    """A rewritten document, as handed to the commit/sync collaborator."""

    path: str
    content: str


class FileMigrationResult(BaseModel):
    file_path: str
    references_found: int = 0
    replaced: list[ReplacedReference] = Field(default_factory=list)
    resolvable: list[ResolvedImage] = Field(default_factory=list)
    unresolved: list[ImageReference] = Field(default_factory=list)
    failed_uploads: list[FailedReference] = Field(default_factory=list)
    placeholders: list[str] = Field(default_factory=list)
    placeholders_repaired: int = 0
    updated_content: str | None = None
    written: bool = False
    error: str | None = None

    @property
    def modified(self) -> bool:
        """True when the document was (or, in a dry run, would be) rewritten."""
        return self.written or bool(self.resolvable)


class MigrationReport(BaseModel):
    """Aggregate over one run.

    In a dry run ``files_modified`` counts the documents that *would* be
    rewritten and ``references_resolvable`` the references that would be
    uploaded; ``references_replaced`` stays zero.
    """

    directory: str
    dry_run: bool = False
    files_scanned: int = 0
    files_modified: int = 0
    file_errors: int = 0
    references_found: int = 0
    references_replaced: int = 0
    references_resolvable: int = 0
    references_failed: int = 0
    placeholders_found: int = 0
    uploads_performed: int = 0
    cache_hits: int = 0
    aborted: bool = False
    duration: float = 0.0
    files: list[FileMigrationResult] = Field(default_factory=list)
    uploads: list[UploadRecord] = Field(default_factory=list)

    def add(self, result: FileMigrationResult) -> None:
        """Fold one document's result into the totals."""
        self.files.append(result)
        self.files_scanned += 1
        self.references_found += result.references_found
        self.references_failed += len(result.unresolved) + len(result.failed_uploads)
        self.placeholders_found += len(result.placeholders)
        if result.error:
            self.file_errors += 1

        if result.modified:
            self.files_modified += 1

        if self.dry_run:
            self.references_resolvable += len(result.resolvable)
        elif result.written:
            self.references_replaced += len(result.replaced)
        else:
            # Uploaded, but the document could not be written back
            self.references_failed += len(result.replaced)

    @property
    def failed(self) -> bool:
        """True when the run as a whole failed (failure threshold tripped)."""
        return self.aborted

    def changes(self) -> list[FileChange]:
        """Documents rewritten on disk, with their new content."""
        return [
            FileChange(path=f.file_path, content=f.updated_content)
            for f in self.files
            if f.written and f.updated_content is not None
        ]


class PlaceholderRepairReport(BaseModel):
    directory: str
    dry_run: bool = False
    files_scanned: int = 0
    files_modified: int = 0
    links_repaired: int = 0
    repaired: dict[str, int] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)

"""MigrationOrchestrator — walks a corpus and migrates its local images.

For every document: extract references, resolve each to a file, upload the
distinct contents through the run's DedupUploader, rewrite the text and
write it back once. Failures are recorded against the document or the
reference and never stop the rest of the corpus.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path

from notelift.config.models import NoteliftConfig
from notelift.errors import (
    CorpusNotFoundError,
    FileReadError,
    FileWriteError,
    NoteliftError,
)
from notelift.migration.models import (
    FailedReference,
    FileMigrationResult,
    MigrationReport,
    PlaceholderRepairReport,
    ReplacedReference,
)
from notelift.migration.scanner import discover_documents
from notelift.references import ImageReference, PlaceholderRepair, ReferenceExtractor, ResolvedImage
from notelift.resolve import PathResolver
from notelift.rewrite import OutcomeStatus, ReferenceOutcome, RewriteEngine
from notelift.store import ImageStore, create_store
from notelift.uploader import DedupUploader, UploadRecord, compute_fingerprint

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[FileMigrationResult], None]


class MigrationOrchestrator:
    def __init__(
        self,
        config: NoteliftConfig | None = None,
        store: ImageStore | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        """
        Args:
            config: NoteliftConfig with scan/upload settings
            store: remote image store; may be None for dry runs
            progress: called once per finished document
        """
        self.config = config or NoteliftConfig()
        self.store = store
        self.progress = progress
        self.extractor = ReferenceExtractor(
            self.config.scan.image_extensions,
            placeholder_prefix=self.config.placeholder.prefix,
        )
        self.placeholders = PlaceholderRepair(self.config.placeholder)
        self.engine = RewriteEngine()

    # -- Public API ----------------------------------------------------------

    def discover(self, directory: str | Path) -> tuple[Path, list[Path]]:
        root = Path(directory)
        if not root.is_dir():
            raise CorpusNotFoundError(directory)
        root = root.resolve()
        docs = discover_documents(
            root,
            self.config.scan.document_extensions,
            self.config.scan.ignore_dirs,
        )
        logger.info("found %d document(s) under %s", len(docs), root)
        return root, docs

    async def run(
        self,
        directory: str | Path,
        dry_run: bool = False,
        uploader: DedupUploader | None = None,
    ) -> MigrationReport:
        """Migrate every document under *directory*.

        A fresh DedupUploader (and so a fresh upload cache) is created per
        run unless one is passed in. Raises CorpusNotFoundError when the
        directory itself is unusable; everything else lands in the report.
        """
        start = time.monotonic()
        root, docs = self.discover(directory)

        if uploader is None and not dry_run:
            if self.store is None:
                raise ValueError("An image store is required unless dry_run is set.")
            uploader = DedupUploader(self.store, self.config.upload)

        resolver = PathResolver(root, self.config.scan.attachments_dir)
        report = MigrationReport(directory=str(root), dry_run=dry_run)
        report_lock = asyncio.Lock()
        workers = asyncio.Semaphore(self.config.max_workers)

        async def _process(path: Path) -> None:
            async with workers:
                result = await self._process_document(path, resolver, uploader, dry_run)
            async with report_lock:
                report.add(result)
            if self.progress is not None:
                self.progress(result)

        await asyncio.gather(*(_process(p) for p in docs))

        report.files.sort(key=lambda f: f.file_path)
        if uploader is not None:
            report.uploads_performed = uploader.uploads_performed
            report.cache_hits = uploader.cache_hits
            report.aborted = uploader.aborted
            report.uploads = uploader.records()
        report.duration = time.monotonic() - start
        logger.info(
            "%s: %d scanned, %d modified, %d/%d references replaced, %d failed",
            "dry run" if dry_run else "migration",
            report.files_scanned,
            report.files_modified,
            report.references_replaced,
            report.references_found,
            report.references_failed,
        )
        return report

    def repair_placeholders(
        self, directory: str | Path, dry_run: bool = False
    ) -> PlaceholderRepairReport:
        """Restore placeholder links to wiki embeds across the corpus."""
        root, docs = self.discover(directory)
        report = PlaceholderRepairReport(directory=str(root), dry_run=dry_run)
        encoding = self.config.encoding

        for path in docs:
            rel = str(path.relative_to(root))
            report.files_scanned += 1
            try:
                text = path.read_bytes().decode(encoding)
                new_text, count = self.placeholders.repair(text)
                if count == 0:
                    continue
                if not dry_run:
                    path.write_bytes(new_text.encode(encoding))
            except (OSError, UnicodeError) as exc:
                report.errors[rel] = str(exc)
                logger.error("placeholder repair failed for %s: %s", rel, exc)
                continue
            report.files_modified += 1
            report.links_repaired += count
            report.repaired[rel] = count
            logger.info("%s %d placeholder link(s) in %s",
                        "would repair" if dry_run else "repaired", count, rel)

        return report

    # -- Internals -----------------------------------------------------------

    async def _process_document(
        self,
        path: Path,
        resolver: PathResolver,
        uploader: DedupUploader | None,
        dry_run: bool,
    ) -> FileMigrationResult:
        result = FileMigrationResult(file_path=str(path))
        encoding = self.config.encoding

        try:
            original = self._read(path)
        except FileReadError as exc:
            logger.error("%s", exc)
            result.error = str(exc)
            return result

        text = original
        if self.config.scan.repair_placeholders:
            text, result.placeholders_repaired = self.placeholders.repair(text)
        result.placeholders = self.placeholders.find(text)

        refs = self.extractor.extract(text)
        result.references_found = len(refs)
        if not refs:
            return result

        resolved = self._resolve_all(refs, path.parent, resolver)
        if dry_run:
            outcomes = self._dry_run_outcomes(resolved)
        else:
            outcomes = await self._upload_all(resolved, uploader)
        self._collect(result, outcomes)

        if dry_run or not result.replaced:
            return result

        rewritten = self.engine.rewrite(text, outcomes)
        if rewritten.content == original:
            return result
        result.updated_content = rewritten.content
        try:
            self._write(path, rewritten.content, encoding)
        except FileWriteError as exc:
            logger.error("%s", exc)
            result.error = str(exc)
            return result
        result.written = True
        logger.info("rewrote %s (%d reference(s) replaced)", path, len(result.replaced))
        return result

    def _read(self, path: Path) -> str:
        # Bytes in, bytes out: line endings and BOMs survive untouched
        try:
            return path.read_bytes().decode(self.config.encoding)
        except (OSError, UnicodeError) as e:
            raise FileReadError(path, e) from e

    @staticmethod
    def _write(path: Path, content: str, encoding: str) -> None:
        try:
            path.write_bytes(content.encode(encoding))
        except (OSError, UnicodeError) as e:
            raise FileWriteError(path, e) from e

    @staticmethod
    def _resolve_all(
        refs: list[ImageReference], doc_dir: Path, resolver: PathResolver
    ) -> list[ResolvedImage]:
        """Resolve every reference of one document before anything is uploaded."""
        by_token: dict[str, Path | None] = {}
        resolved = []
        for ref in refs:
            if ref.path_token not in by_token:
                by_token[ref.path_token] = resolver.resolve(ref.path_token, doc_dir)
            resolved.append(ResolvedImage(reference=ref, resolved_path=by_token[ref.path_token]))
        return resolved

    @staticmethod
    def _dry_run_outcomes(resolved: list[ResolvedImage]) -> list[ReferenceOutcome]:
        fingerprints: dict[Path, str | Exception] = {}
        outcomes = []
        for item in resolved:
            if not item.is_resolved:
                outcomes.append(ReferenceOutcome(
                    reference=item.reference,
                    status=OutcomeStatus.UNRESOLVED,
                    reason=f"no file found for {item.reference.path_token!r}",
                ))
                continue
            path = item.resolved_path
            if path not in fingerprints:
                try:
                    fingerprints[path] = compute_fingerprint(path)
                except OSError as e:
                    fingerprints[path] = e
            fp = fingerprints[path]
            if isinstance(fp, Exception):
                outcomes.append(ReferenceOutcome(
                    reference=item.reference,
                    status=OutcomeStatus.FAILED,
                    resolved_path=str(path),
                    reason=f"unreadable image: {fp}",
                ))
                continue
            outcomes.append(ReferenceOutcome(
                reference=item.reference,
                status=OutcomeStatus.RESOLVABLE,
                resolved_path=str(path),
                fingerprint=fp,
            ))
        return outcomes

    @staticmethod
    async def _upload_all(
        resolved: list[ResolvedImage], uploader: DedupUploader
    ) -> list[ReferenceOutcome]:
        paths = sorted({item.resolved_path for item in resolved if item.is_resolved})
        results = await asyncio.gather(
            *(uploader.get_or_upload(p) for p in paths), return_exceptions=True
        )
        by_path: dict[Path, UploadRecord | BaseException] = dict(zip(paths, results))

        outcomes = []
        for item in resolved:
            ref = item.reference
            if not item.is_resolved:
                outcomes.append(ReferenceOutcome(
                    reference=ref,
                    status=OutcomeStatus.UNRESOLVED,
                    reason=f"no file found for {ref.path_token!r}",
                ))
                continue
            upload = by_path[item.resolved_path]
            if isinstance(upload, UploadRecord):
                outcomes.append(ReferenceOutcome(
                    reference=ref,
                    status=OutcomeStatus.REPLACED,
                    resolved_path=str(item.resolved_path),
                    fingerprint=upload.fingerprint,
                    remote_url=upload.remote_url,
                ))
            elif isinstance(upload, (NoteliftError, OSError)):
                outcomes.append(ReferenceOutcome(
                    reference=ref,
                    status=OutcomeStatus.FAILED,
                    resolved_path=str(item.resolved_path),
                    reason=str(upload),
                ))
            else:
                raise upload
        return outcomes

    @staticmethod
    def _collect(result: FileMigrationResult, outcomes: list[ReferenceOutcome]) -> None:
        for o in outcomes:
            if o.status is OutcomeStatus.REPLACED:
                result.replaced.append(ReplacedReference(reference=o.reference, remote_url=o.remote_url))
            elif o.status is OutcomeStatus.RESOLVABLE:
                result.resolvable.append(ResolvedImage(
                    reference=o.reference,
                    resolved_path=Path(o.resolved_path),
                    fingerprint=o.fingerprint,
                ))
            elif o.status is OutcomeStatus.UNRESOLVED:
                result.unresolved.append(o.reference)
            else:
                result.failed_uploads.append(FailedReference(reference=o.reference, reason=o.reason or ""))


def run_migration(
    directory: str | Path,
    dry_run: bool = False,
    config: NoteliftConfig | None = None,
    store: ImageStore | None = None,
    progress: ProgressCallback | None = None,
) -> MigrationReport:
    """Synchronous entry point: migrate *directory* and return the report.

    Builds the configured image store when none is given (apply mode only).
    """
    config = config or NoteliftConfig()
    if store is None and not dry_run:
        store = create_store(config.store)
    orchestrator = MigrationOrchestrator(config, store, progress=progress)
    return asyncio.run(orchestrator.run(directory, dry_run=dry_run))

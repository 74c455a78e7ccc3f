"""DedupUploader — content-addressed upload cache shared by one migration run.

Each distinct file content (SHA-256 of its bytes) is uploaded at most once:

* a cached record answers immediately, with no network call;
* a request for content whose upload is already running awaits that same
  task instead of starting another (singleflight);
* otherwise a new upload starts, bounded by ``upload.max_concurrency``.

Failures are retried with exponential backoff when the store marks them
retryable, surface as ``UploadFailure`` and are never cached. With a
``failure_threshold`` configured, the uploader stops accepting new uploads
once the failure ratio reaches it; uploads already running still finish.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from notelift.config.models import UploadConfig
from notelift.errors import StoreError, UploadAborted, UploadFailure
from notelift.store.base import ImageStore
from notelift.uploader.models import UploadRecord

logger = logging.getLogger(__name__)

_CHUNK = 1 << 16


def compute_fingerprint(path: Path) -> str:
    """SHA-256 hex digest of a file's bytes."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


class DedupUploader:
    def __init__(
        self,
        store: ImageStore,
        config: UploadConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.config = config or UploadConfig()
        self._sleep = sleep
        self._records: dict[str, UploadRecord] = {}
        self._inflight: dict[str, asyncio.Task[UploadRecord]] = {}
        self._lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(self.config.max_concurrency)

        self.uploads_performed = 0
        self.cache_hits = 0
        self.finished = 0
        self.failed = 0
        self.aborted = False

    # -- Public API ----------------------------------------------------------

    async def get_or_upload(self, path: Path, fingerprint: str | None = None) -> UploadRecord:
        """Return the upload record for *path*'s content, uploading if needed.

        Raises UploadFailure when the upload fails and UploadAborted when the
        run's failure threshold has been reached.
        """
        fp = fingerprint or compute_fingerprint(path)

        async with self._lock:
            record = self._records.get(fp)
            if record is not None:
                self.cache_hits += 1
                return record
            task = self._inflight.get(fp)
            if task is None:
                if self.aborted:
                    raise UploadAborted(self.failed, self.finished)
                task = asyncio.create_task(self._upload(path, fp))
                self._inflight[fp] = task
            else:
                self.cache_hits += 1
                logger.debug("joining in-flight upload for %s", fp[:12])

        # Shielded so that a cancelled waiter never cancels the shared upload.
        return await asyncio.shield(task)

    def get_cached(self, fingerprint: str) -> UploadRecord | None:
        return self._records.get(fingerprint)

    def records(self) -> list[UploadRecord]:
        return list(self._records.values())

    @property
    def failure_ratio(self) -> float:
        return self.failed / self.finished if self.finished else 0.0

    # -- Internals -----------------------------------------------------------

    async def _upload(self, path: Path, fp: str) -> UploadRecord:
        # Whatever ends this task, later callers must not join it
        try:
            try:
                uploaded = await self._upload_with_retry(path, fp)
            except UploadFailure:
                async with self._lock:
                    self._finish(failed=True)
                raise

            record = UploadRecord(
                fingerprint=fp,
                image_id=uploaded.id,
                remote_url=uploaded.url,
                source_path=str(path),
            )
            async with self._lock:
                self._records[fp] = record
                self.uploads_performed += 1
                self._finish(failed=False)
        finally:
            self._inflight.pop(fp, None)
        logger.info("uploaded %s -> %s", path.name, record.remote_url)
        return record

    async def _upload_with_retry(self, path: Path, fp: str):
        try:
            data = path.read_bytes()
        except OSError as e:
            raise UploadFailure(fp, 0, e) from e

        attempts = self.config.max_retries + 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                async with self._semaphore:
                    return await self.store.upload(
                        data, path.name, metadata={"filename": path.name, "sha256": fp}
                    )
            except StoreError as e:
                last_error = e
                if not e.retryable or attempt == attempts:
                    break
                delay = self.config.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    "upload attempt %d/%d for %s failed: %s (retrying in %.1fs)",
                    attempt, attempts, path.name, e, delay,
                )
                await self._sleep(delay)
            except Exception as e:
                last_error = e
                break

        logger.error("upload of %s failed: %s", path.name, last_error)
        raise UploadFailure(fp, attempt, last_error) from last_error

    def _finish(self, failed: bool) -> None:
        """Record a finished upload and trip the abort threshold if needed.

        Callers hold ``self._lock``.
        """
        self.finished += 1
        if failed:
            self.failed += 1
        threshold = self.config.failure_threshold
        if (
            threshold is not None
            and not self.aborted
            and self.finished >= self.config.abort_min_attempts
            and self.failure_ratio >= threshold
        ):
            self.aborted = True
            logger.warning(
                "failure ratio %.0f%% reached threshold %.0f%%; no new uploads will start",
                self.failure_ratio * 100, threshold * 100,
            )

"""In-memory image store used by tests and by `store.provider: memory`."""

from __future__ import annotations

import asyncio
import hashlib

from notelift.errors import StoreError
from notelift.store.base import ImagePage, ImageStore, UploadedImage


class InMemoryImageStore(ImageStore):
    """Deterministic stand-in for a remote image store.

    Every call is recorded in ``uploads``. Failures can be scripted:
    ``fail_filenames`` always fail with a non-retryable error, and the first
    ``transient_failures`` calls fail with a retryable one.
    """

    name = "memory"

    def __init__(
        self,
        base_url: str = "https://images.example.test",
        delay: float = 0.0,
        fail_filenames: set[str] | None = None,
        transient_failures: int = 0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.delay = delay
        self.fail_filenames = set(fail_filenames or ())
        self.transient_failures = transient_failures
        self.uploads: list[tuple[str, bytes]] = []
        self.calls = 0
        self._images: dict[str, dict] = {}

    async def upload(
        self,
        data: bytes,
        filename: str,
        metadata: dict[str, str] | None = None,
    ) -> UploadedImage:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.transient_failures > 0:
            self.transient_failures -= 1
            raise StoreError(self.name, "upload", "simulated transient error", retryable=True)
        if filename in self.fail_filenames:
            raise StoreError(self.name, "upload", f"simulated rejection of {filename}")

        self.uploads.append((filename, data))
        image_id = f"{len(self.uploads):04d}-{hashlib.sha256(data).hexdigest()[:8]}"
        self._images[image_id] = {"id": image_id, "filename": filename, "meta": metadata or {}}
        return UploadedImage(id=image_id, url=f"{self.base_url}/{image_id}/public")

    async def list_images(self, page: int = 1, per_page: int = 50) -> ImagePage:
        items = list(self._images.values())
        start = (page - 1) * per_page
        return ImagePage(
            images=items[start:start + per_page],
            page=page,
            per_page=per_page,
            total_count=len(items),
        )

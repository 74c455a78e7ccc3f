"""Abstract remote image store interface for notelift."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class UploadedImage(BaseModel):
    """What the remote store hands back for one upload."""

    id: str
    url: str


class ImagePage(BaseModel):
    """One page of images already held by the store."""

    images: list[dict] = Field(default_factory=list)
    page: int = 1
    per_page: int = 50
    total_count: int = 0


class ImageStore(ABC):
    """Capability interface over a remote image store.

    The store is assumed to accept repeated uploads of identical bytes;
    deduplication is owned by the caller, not the store.
    """

    name: str = "store"

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        filename: str,
        metadata: dict[str, str] | None = None,
    ) -> UploadedImage:
        """Upload one image and return its id and delivery URL.

        Raises StoreError on failure; ``retryable`` is set for transient
        errors (timeouts, rate limits, server errors).
        """
        ...

    @abstractmethod
    async def list_images(self, page: int = 1, per_page: int = 50) -> ImagePage:
        """List images already in the store."""
        ...

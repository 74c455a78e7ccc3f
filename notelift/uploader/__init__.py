"""Deduplicating uploader shared across one migration run."""

from notelift.uploader.dedup import DedupUploader, compute_fingerprint
from notelift.uploader.models import UploadRecord

__all__ = ["DedupUploader", "UploadRecord", "compute_fingerprint"]

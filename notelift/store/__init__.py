"""Remote image stores for notelift."""

import os

from notelift.config.models import StoreConfig
from notelift.store.base import ImagePage, ImageStore, UploadedImage
from notelift.store.cloudflare import CloudflareImagesStore
from notelift.store.memory import InMemoryImageStore
from notelift.store.verify import UrlCheck, VerificationReport, verify_urls


def create_store(config: StoreConfig) -> ImageStore:
    """Create an image store from config.

    Resolves Cloudflare credentials from the environment variables named in
    config.cloudflare.
    """
    if config.provider == "memory":
        return InMemoryImageStore()
    if config.provider != "cloudflare":
        raise ValueError(
            f"Unsupported image store: {config.provider!r}. "
            "Supported: cloudflare, memory"
        )
    cf = config.cloudflare
    missing = [
        env for env in (cf.account_id_env, cf.account_hash_env, cf.api_token_env)
        if not os.environ.get(env)
    ]
    if missing:
        raise ValueError(
            f"Cloudflare Images credentials not found. Set: {', '.join(missing)}"
        )
    return CloudflareImagesStore(
        cf,
        account_id=os.environ[cf.account_id_env],
        account_hash=os.environ[cf.account_hash_env],
        api_token=os.environ[cf.api_token_env],
    )


__all__ = [
    "CloudflareImagesStore",
    "ImagePage",
    "ImageStore",
    "InMemoryImageStore",
    "UploadedImage",
    "UrlCheck",
    "VerificationReport",
    "create_store",
    "verify_urls",
]

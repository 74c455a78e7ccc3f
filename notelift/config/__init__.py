from .loader import load_config
from .models import (
    CloudflareImagesConfig,
    NoteliftConfig,
    PlaceholderConfig,
    ScanConfig,
    StoreConfig,
    UploadConfig,
)

__all__ = [
    "CloudflareImagesConfig",
    "NoteliftConfig",
    "PlaceholderConfig",
    "ScanConfig",
    "StoreConfig",
    "UploadConfig",
    "load_config",
]

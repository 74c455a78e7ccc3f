from pydantic import BaseModel, Field
from typing import Literal


class CloudflareImagesConfig(BaseModel):
    account_id_env: str = "CLOUDFLARE_IMAGES_ACCOUNT_ID"
    account_hash_env: str = "CLOUDFLARE_IMAGES_ACCOUNT_HASH"
    api_token_env: str = "CLOUDFLARE_IMAGES_API_TOKEN"
    api_base: str = "https://api.cloudflare.com/client/v4"
    delivery_base: str = "https://imagedelivery.net"
    variant: str = "public"
    require_signed_urls: bool = False
    timeout: float = Field(default=60.0, gt=0)


class StoreConfig(BaseModel):
    provider: Literal["cloudflare", "memory"] = "cloudflare"
    cloudflare: CloudflareImagesConfig = Field(default_factory=CloudflareImagesConfig)


class ScanConfig(BaseModel):
    document_extensions: list[str] = Field(default_factory=lambda: [".md", ".markdown"])
    ignore_dirs: list[str] = Field(default_factory=lambda: [
        ".git", "node_modules", ".obsidian", ".trash", "build", "dist", "__pycache__", ".venv"
    ])
    image_extensions: list[str] = Field(default_factory=lambda: [
        "jpg", "jpeg", "png", "gif", "bmp", "webp", "svg", "ico"
    ])
    attachments_dir: str = "attachments"
    repair_placeholders: bool = False


class UploadConfig(BaseModel):
    max_concurrency: int = Field(default=4, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    failure_threshold: float | None = Field(default=None, gt=0, le=1)
    abort_min_attempts: int = Field(default=5, gt=0)


class PlaceholderConfig(BaseModel):
    prefix: str = "https://imagedelivery.net/placeholder/"
    name_prefix: str = "obsidian-"


class NoteliftConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    placeholder: PlaceholderConfig = Field(default_factory=PlaceholderConfig)
    max_workers: int = Field(default=8, gt=0)
    encoding: str = "utf-8"
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"

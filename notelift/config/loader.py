"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import NoteliftConfig


def load_config(cli_path: str | None = None) -> NoteliftConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./notelift.yaml"),
        Path.home() / ".notelift" / "config.yaml",
    ]

    if cli_path and not Path(cli_path).exists():
        raise ValueError(f"Config file not found: {cli_path}")

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return NoteliftConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return NoteliftConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `notelift config init`
DEFAULT_CONFIG_TEMPLATE = """\
# notelift.yaml

# Remote image store
store:
  provider: "cloudflare"       # cloudflare | memory
  cloudflare:
    account_id_env: "CLOUDFLARE_IMAGES_ACCOUNT_ID"
    account_hash_env: "CLOUDFLARE_IMAGES_ACCOUNT_HASH"
    api_token_env: "CLOUDFLARE_IMAGES_API_TOKEN"
    variant: "public"
    require_signed_urls: false
    timeout: 60

# Corpus discovery and reference classification
scan:
  document_extensions: [".md", ".markdown"]
  ignore_dirs: [".git", "node_modules", ".obsidian", ".trash", "build", "dist", "__pycache__", ".venv"]
  image_extensions: [jpg, jpeg, png, gif, bmp, webp, svg, ico]
  attachments_dir: "attachments"
  repair_placeholders: false   # restore placeholder links before migrating

# Upload behaviour
upload:
  max_concurrency: 4
  max_retries: 3
  retry_delay: 1.0             # seconds, doubled on every retry
  # failure_threshold: 0.5     # abort new uploads once this failure ratio is hit
  abort_min_attempts: 5

# Placeholder links left behind by earlier broken runs
placeholder:
  prefix: "https://imagedelivery.net/placeholder/"
  name_prefix: "obsidian-"

max_workers: 8                 # documents processed concurrently
encoding: "utf-8"

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""

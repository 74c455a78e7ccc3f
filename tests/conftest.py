"""Shared test fixtures for notelift."""

from pathlib import Path

import pytest

from notelift.config.models import NoteliftConfig, StoreConfig, UploadConfig
from notelift.store.memory import InMemoryImageStore

# Not real images; the pipeline only ever looks at the bytes
PNG_A = b"\x89PNG\r\n\x1a\n" + b"image-a" * 8
PNG_B = b"\x89PNG\r\n\x1a\n" + b"image-b" * 8
PNG_C = b"\x89PNG\r\n\x1a\n" + b"image-c" * 8


def make_vault(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create a corpus under *root* from a {relative path: content} mapping."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_bytes(content.encode("utf-8"))
    return root


@pytest.fixture
def sample_config():
    return NoteliftConfig(
        store=StoreConfig(provider="memory"),
        upload=UploadConfig(retry_delay=0.0),
    )


@pytest.fixture
def memory_store():
    return InMemoryImageStore()


@pytest.fixture
def vault(tmp_path):
    """A small Obsidian-style vault exercising every reference syntax."""
    return make_vault(tmp_path / "vault", {
        "notes/a.md": (
            "# A\n\n"
            "![diagram](./img.png)\n"
            "Again: ![diagram](./img.png)\n"
            "![[shot.png]]\n"
            "Remote: ![x](https://imagedelivery.net/abc/public)\n"
        ),
        "notes/b.md": '<p><img src="../shared/copy.png" alt="copy" width="200"></p>\n',
        "notes/plain.md": "No images here.\n",
        "notes/img.png": PNG_A,
        "shared/copy.png": PNG_A,
        "attachments/shot.png": PNG_B,
        ".obsidian/workspace.md": "![hidden](./never.png)\n",
    })

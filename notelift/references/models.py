"""Pydantic models for image references found in documents."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class SyntaxKind(str, Enum):
    INLINE_MARKDOWN = "inline_markdown"
    WIKI_EMBED = "wiki_embed"
    HTML_IMG = "html_img"


class TokenClass(str, Enum):
    """How a path token was classified by the extractor."""

    LOCAL = "local"
    REMOTE = "remote"
    PLACEHOLDER = "placeholder"
    NOT_IMAGE = "not_image"


class ImageReference(BaseModel):
    """One image reference as it appears in a document.

    Two references are the same replacement group when their syntax kind
    and raw match text are equal; the remaining fields are derived from
    those two.
    """

    model_config = ConfigDict(frozen=True)

    syntax_kind: SyntaxKind
    raw_match: str
    path_token: str
    alt_text: str | None = None
    title: str | None = None
    offset: int = 0

    @property
    def key(self) -> tuple[SyntaxKind, str]:
        return (self.syntax_kind, self.raw_match)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageReference):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class ResolvedImage(BaseModel):
    """A reference paired with the file it points at, if one was found."""

    reference: ImageReference
    resolved_path: Path | None = None
    fingerprint: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_path is not None

"""Image reference extraction and classification."""

from notelift.references.extractor import (
    DEFAULT_IMAGE_EXTENSIONS,
    ReferenceExtractor,
    split_inline_target,
    split_wiki_target,
)
from notelift.references.models import ImageReference, ResolvedImage, SyntaxKind, TokenClass
from notelift.references.placeholders import PlaceholderRepair

__all__ = [
    "DEFAULT_IMAGE_EXTENSIONS",
    "ImageReference",
    "PlaceholderRepair",
    "ReferenceExtractor",
    "ResolvedImage",
    "SyntaxKind",
    "TokenClass",
    "split_inline_target",
    "split_wiki_target",
]

"""ReferenceExtractor — finds local image references in one document.

Three syntaxes are recognised, each with its own pattern:

* inline Markdown  ``![alt](path "title")``
* wiki embeds      ``![[path|alias]]``
* HTML elements    ``<img src="path">``

Their leading tokens (``![`` not followed by ``[``, ``![[`` and ``<img``)
never overlap, so every pattern runs once over the unmodified text and no
span can be claimed by two syntaxes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from notelift.references.models import ImageReference, SyntaxKind, TokenClass

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "bmp", "webp", "svg", "ico")

INLINE_RE = re.compile(r"!\[(?!\[)([^\]\n]*)\]\(((?:[^()\\\n]|\\.|\([^()\n]*\))+)\)")
WIKI_RE = re.compile(r"!\[\[([^\]\n]+)\]\]")
# One attribute character, or a whole quoted value (which may contain ">")
HTML_ATTR_CHUNK = r"(?:[^>\"']|\"[^\"]*\"|'[^']*')"
HTML_IMG_RE = re.compile(
    r"<img\b" + HTML_ATTR_CHUNK + r"*?(?<![\w-])src\s*=\s*([\"'])(.*?)\1" + HTML_ATTR_CHUNK + r"*>",
    re.IGNORECASE | re.DOTALL,
)
_HTML_ALT_RE = re.compile(r"(?<![\w-])alt\s*=\s*([\"'])(.*?)\1", re.IGNORECASE | re.DOTALL)
_TITLE_RE = re.compile(r"^\s+(?:\"(.*)\"|'(.*)'|\((.*)\))\s*$", re.DOTALL)

# "https://", "obsidian://", ... and inline data URIs
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def split_inline_target(raw: str) -> tuple[str, str | None]:
    """Split the inside of ``(...)`` into (path, title).

    ``<path with spaces.png> "t"`` -> ("path with spaces.png", "t")
    ``img.png 'caption'``          -> ("img.png", "caption")
    """
    s = raw.strip()
    if s.startswith("<") and ">" in s:
        end = s.find(">")
        path = s[1:end].strip()
        trailing = s[end + 1:]
    else:
        parts = s.split(None, 1)
        if not parts:
            return "", None
        path = parts[0]
        trailing = s[len(path):]
    if not trailing.strip():
        return path, None
    m = _TITLE_RE.match(trailing)
    if m is None:
        # Unquoted trailing text: treat the whole target as the path.
        return s, None
    title = next((g for g in m.groups() if g is not None), None)
    return path, title


def split_wiki_target(inside: str) -> tuple[str, str | None]:
    """Split ``path#anchor|alias`` into (path, alias)."""
    target, _, alias = inside.partition("|")
    target = target.split("#", 1)[0].strip()
    alias = alias.strip() or None
    return target, alias


class ReferenceExtractor:
    """Scans document text and returns its local image references in order."""

    def __init__(
        self,
        image_extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
        placeholder_prefix: str | None = None,
    ) -> None:
        self.image_extensions = frozenset(e.lower().lstrip(".") for e in image_extensions)
        self.placeholder_prefix = placeholder_prefix

    def classify(self, token: str) -> TokenClass:
        """Classify a path token.

        Remote wins over everything else: a token with an explicit scheme is
        never local, whatever its extension.
        """
        token = token.strip()
        if _SCHEME_RE.match(token) or token.lower().startswith("data:"):
            if self.placeholder_prefix and token.startswith(self.placeholder_prefix):
                return TokenClass.PLACEHOLDER
            return TokenClass.REMOTE
        if not self._has_image_extension(token):
            return TokenClass.NOT_IMAGE
        return TokenClass.LOCAL

    def extract(self, text: str) -> list[ImageReference]:
        refs = [
            *self._extract_inline(text),
            *self._extract_wiki(text),
            *self._extract_html(text),
        ]
        refs.sort(key=lambda r: r.offset)
        logger.debug("extracted %d local image reference(s)", len(refs))
        return refs

    # -- per-syntax scans -----------------------------------------------

    def _extract_inline(self, text: str) -> list[ImageReference]:
        found = []
        for m in INLINE_RE.finditer(text):
            path, title = split_inline_target(m.group(2))
            if self.classify(path) is not TokenClass.LOCAL:
                continue
            found.append(ImageReference(
                syntax_kind=SyntaxKind.INLINE_MARKDOWN,
                raw_match=m.group(0),
                path_token=path,
                alt_text=m.group(1),
                title=title,
                offset=m.start(),
            ))
        return found

    def _extract_wiki(self, text: str) -> list[ImageReference]:
        found = []
        for m in WIKI_RE.finditer(text):
            path, alias = split_wiki_target(m.group(1))
            if self.classify(path) is not TokenClass.LOCAL:
                continue
            found.append(ImageReference(
                syntax_kind=SyntaxKind.WIKI_EMBED,
                raw_match=m.group(0),
                path_token=path,
                alt_text=alias,
                offset=m.start(),
            ))
        return found

    def _extract_html(self, text: str) -> list[ImageReference]:
        found = []
        for m in HTML_IMG_RE.finditer(text):
            path = m.group(2).strip()
            if self.classify(path) is not TokenClass.LOCAL:
                continue
            alt = _HTML_ALT_RE.search(m.group(0))
            found.append(ImageReference(
                syntax_kind=SyntaxKind.HTML_IMG,
                raw_match=m.group(0),
                path_token=path,
                alt_text=alt.group(2) if alt else None,
                offset=m.start(),
            ))
        return found

    def _has_image_extension(self, token: str) -> bool:
        # Drop query strings and fragments before looking at the suffix
        bare = re.split(r"[?#]", token, maxsplit=1)[0]
        _, dot, ext = bare.rpartition(".")
        return bool(dot) and ext.lower() in self.image_extensions

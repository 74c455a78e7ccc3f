"""RewriteEngine — swaps migrated image references for their remote URLs."""

from __future__ import annotations

import re

from notelift.references.extractor import HTML_ATTR_CHUNK
from notelift.references.models import ImageReference, SyntaxKind
from notelift.rewrite.models import OutcomeStatus, ReferenceOutcome, RewriteResult

# The tag's own src attribute, never data-src or a "src=" inside another value
_SRC_ATTR_RE = re.compile(
    r"^(<img\b" + HTML_ATTR_CHUNK + r"*?(?<![\w-])src\s*=\s*)([\"'])(.*?)\2",
    re.IGNORECASE | re.DOTALL,
)

# Obsidian reads "![[img.png|300]]" and "![[img.png|300x200]]" as a size, not a caption,
# and takes the same size as "![|300](url)" on an external image
_WIKI_SIZE_RE = re.compile(r"^\d+(?:x\d+)?$")


def success_form(ref: ImageReference, url: str) -> str:
    """Render *ref* pointing at *url*, keeping the alt text its syntax carried."""
    if ref.syntax_kind is SyntaxKind.INLINE_MARKDOWN:
        title = ""
        if ref.title is not None:
            quote = "'" if '"' in ref.title else '"'
            title = f" {quote}{ref.title}{quote}"
        return f"![{ref.alt_text or ''}]({url}{title})"

    if ref.syntax_kind is SyntaxKind.WIKI_EMBED:
        alias = ref.alt_text or ""
        if _WIKI_SIZE_RE.match(alias):
            alias = f"|{alias}"
        return f"![{alias}]({url})"

    # HTML: keep every other attribute of the original tag
    return _SRC_ATTR_RE.sub(
        lambda m: f"{m.group(1)}{m.group(2)}{url}{m.group(2)}", ref.raw_match, count=1
    )


class RewriteEngine:
    def rewrite(self, text: str, outcomes: list[ReferenceOutcome]) -> RewriteResult:
        """Replace every successful reference group in *text*.

        A group is all occurrences of one raw match. Groups whose reference
        was unresolved or failed are left byte-for-byte as they were, as is
        everything outside the replaced spans.
        """
        replacements: dict[str, str] = {}
        for outcome in outcomes:
            if outcome.status is not OutcomeStatus.REPLACED or not outcome.remote_url:
                continue
            raw = outcome.reference.raw_match
            if raw not in replacements:
                replacements[raw] = success_form(outcome.reference, outcome.remote_url)

        content = text
        replaced = 0
        # Longest first, so a short match can never clip a longer one
        for raw in sorted(replacements, key=len, reverse=True):
            if raw in content:
                content = content.replace(raw, replacements[raw])
                replaced += 1

        return RewriteResult(content=content, outcomes=outcomes, groups_replaced=replaced)

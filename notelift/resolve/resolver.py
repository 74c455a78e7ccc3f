"""PathResolver — maps a reference's path token onto a file in the corpus."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

logger = logging.getLogger(__name__)


def _is_bare_filename(token: str) -> bool:
    return "/" not in token and "\\" not in token


class PathResolver:
    """Resolve path tokens relative to a document and its corpus root.

    Candidates are tried in order:

    1. the token relative to the document's directory (or to the corpus root
       when the token starts with ``/``, the vault-absolute form);
    2. for bare filenames only, ``<doc_dir>/<attachments_dir>/<name>`` and
       then ``<root>/<attachments_dir>/<name>``.

    A candidate that resolves outside the corpus root is rejected.
    """

    def __init__(self, root: str | Path, attachments_dir: str = "attachments") -> None:
        self.root = Path(root).resolve()
        self.attachments_dir = attachments_dir

    def candidates(self, token: str, doc_dir: str | Path) -> list[Path]:
        """Return candidate paths for *token* in resolution order."""
        decoded = unquote(token.strip())
        doc_dir = Path(doc_dir)
        if decoded.startswith("/"):
            # Vault-absolute: "/" is the corpus root, not the filesystem root
            first = self.root / PurePosixPath(decoded.lstrip("/"))
        else:
            first = doc_dir / decoded

        result = [first]
        if _is_bare_filename(decoded):
            result.append(doc_dir / self.attachments_dir / decoded)
            result.append(self.root / self.attachments_dir / decoded)
        return result

    def resolve(self, token: str, doc_dir: str | Path) -> Path | None:
        """Return the first existing candidate inside the root, or None."""
        for candidate in self.candidates(token, doc_dir):
            try:
                resolved = candidate.resolve()
            except (OSError, RuntimeError):
                continue
            if not resolved.is_relative_to(self.root):
                logger.debug("rejecting %s: outside corpus root", candidate)
                continue
            if resolved.is_file():
                return resolved
        logger.debug("unresolved image token %r (from %s)", token, doc_dir)
        return None

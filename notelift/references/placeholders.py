"""Placeholder links: remote-shaped URLs that never pointed at a real upload.

An earlier broken migration wrote links such as
``![](https://imagedelivery.net/placeholder/obsidian-photo.png)`` instead of
uploading the image. They look remote, so the extractor never treats them as
local; they are reported separately and can be restored to the wiki embed
they replaced (``![[photo.png]]``), after which a normal run migrates them.
"""

from __future__ import annotations

import re

from notelift.config.models import PlaceholderConfig


class PlaceholderRepair:
    def __init__(self, config: PlaceholderConfig | None = None) -> None:
        self.config = config or PlaceholderConfig()
        self._link_re = re.compile(
            r"!\[[^\]\n]*\]\("
            + re.escape(self.config.prefix)
            + re.escape(self.config.name_prefix)
            + r"([^)\s]+)\)"
        )

    def find(self, text: str) -> list[str]:
        """Return every placeholder link in *text*, in document order."""
        return [m.group(0) for m in self._link_re.finditer(text)]

    def repair(self, text: str) -> tuple[str, int]:
        """Rewrite placeholder links back to wiki embeds.

        Returns the new text and the number of links restored. Text with no
        placeholder links is returned unchanged.
        """
        new_text, count = self._link_re.subn(lambda m: f"![[{m.group(1)}]]", text)
        return new_text, count

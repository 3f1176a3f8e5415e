"""Attribution badge injection for free-tier deploys."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import replace

from zipship.models.archive import ArchiveEntry

logger = logging.getLogger(__name__)

BADGE_SNIPPET = """
<!-- Deployed with Zip-Ship -->
<div id="zipship-badge" style="position:fixed;bottom:12px;right:12px;z-index:9999;font-family:system-ui,sans-serif;font-size:12px;">
  <a href="https://zip-ship-revolution.com/?utm_source=user_site" target="_blank" rel="noopener"
     style="display:flex;align-items:center;gap:6px;padding:6px 12px;background:rgba(10,14,39,0.85);color:#00F0FF;text-decoration:none;border-radius:6px;border:1px solid rgba(0,240,255,0.3);backdrop-filter:blur(8px);transition:all 0.2s;">
    <span style="font-size:14px;">&#9889;</span>
    <span>Deployed with Zip-Ship</span>
  </a>
</div>
"""  # noqa: E501

_BODY_CLOSE = re.compile(r"</body>", re.IGNORECASE)


def inject_badge_into_html(content: str, snippet: str = BADGE_SNIPPET) -> str:
    """Insert *snippet* before the last ``</body>`` (any case), or append it."""
    matches = list(_BODY_CLOSE.finditer(content))
    if not matches:
        return content + snippet
    index = matches[-1].start()
    return content[:index] + snippet + content[index:]


def _is_html(entry: ArchiveEntry) -> bool:
    return not entry.is_binary and entry.path.lower().endswith(".html")


def inject_badge(entries: Sequence[ArchiveEntry]) -> list[ArchiveEntry]:
    """Return a copy of *entries* with the badge added to every HTML page.

    HTML files that are not valid UTF-8 are left byte-for-byte untouched.
    """
    result: list[ArchiveEntry] = []
    for entry in entries:
        if not _is_html(entry):
            result.append(entry)
            continue
        try:
            html = entry.content.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Skipping badge for non UTF-8 HTML file %s", entry.path)
            result.append(entry)
            continue
        badged = inject_badge_into_html(html)
        result.append(replace(entry, content=badged.encode("utf-8")))
    return result

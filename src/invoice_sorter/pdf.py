"""Best-effort PDF page counting over raw bytes."""

from __future__ import annotations

import re

_COUNT_RE = re.compile(rb"/Count\s+(\d+)")
_PAGE_RE = re.compile(rb"/Type\s*/Page\b")


def count_pages(data: bytes) -> int:
    """Estimate the number of pages in a PDF.

    Prefers the first positive ``/Count`` entry of the page tree, then the
    number of ``/Type /Page`` objects, and falls back to a single page.
    This is a heuristic, not a parser: compressed object streams hide both
    signals and yield 1.
    """
    match = _COUNT_RE.search(data)
    if match:
        count = int(match.group(1))
        if count > 0:
            return count

    pages = len(_PAGE_RE.findall(data))
    if pages:
        return pages

    return 1

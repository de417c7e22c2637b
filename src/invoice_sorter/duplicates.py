"""Duplicate detection across the root/year/month folder tree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from invoice_sorter.hashing import ContentHasher
    from invoice_sorter.store import BlobStore

logger = logging.getLogger(__name__)


class DuplicateIndex:
    """Answer whether content already lives somewhere in the invoice tree.

    Checks run cheapest first: a name lookup under the root, then hash
    scans of every month folder, each year folder and finally the root.
    """

    def __init__(self, store: BlobStore, hasher: ContentHasher) -> None:
        self.store = store
        self.hasher = hasher

    def exists_in_tree(self, root: Any, name: str, digest: str) -> bool:
        """Return True if ``name`` is under ``root`` or ``digest`` anywhere below."""
        if self.name_exists_in_folder(root, name):
            logger.debug("Name match for %s under root", name)
            return True

        for year_folder in self.store.list_subfolders(root):
            for month_folder in self.store.list_subfolders(year_folder):
                if self.exists_in_folder(month_folder, digest):
                    return True
            if self.exists_in_folder(year_folder, digest):
                return True

        return self.exists_in_folder(root, digest)

    def exists_in_folder(self, folder: Any, digest: str) -> bool:
        """Return True if any file directly in ``folder`` has content ``digest``.

        Unreadable files are skipped.
        """
        for stored in self.store.list_files(folder):
            try:
                if self.hasher.hash(stored) == digest:
                    logger.debug("Hash match: %s", stored.stable_id)
                    return True
            except Exception:
                logger.warning(
                    "Could not hash %s, skipping", stored.stable_id, exc_info=True
                )
        return False

    def name_exists_in_folder(self, folder: Any, name: str) -> bool:
        """Return True if a file named exactly ``name`` is directly in ``folder``."""
        return any(stored.name == name for stored in self.store.list_files(folder))

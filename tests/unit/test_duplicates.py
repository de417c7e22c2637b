"""Tests for invoice_sorter.duplicates."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest

from invoice_sorter.duplicates import DuplicateIndex
from invoice_sorter.hashing import ContentHasher, digest_bytes
from invoice_sorter.store import StoredFile

if TYPE_CHECKING:
    from pathlib import Path

    from invoice_sorter.store import LocalBlobStore


@pytest.fixture
def index(store: LocalBlobStore) -> DuplicateIndex:
    return DuplicateIndex(store, ContentHasher())


@pytest.fixture
def root(store: LocalBlobStore) -> Path:
    return store.get_or_create_folder(None, "Invoices")


def _place(
    store: LocalBlobStore, root: Path, parts: list[str], name: str, data: bytes
) -> None:
    folder = root
    for part in parts:
        folder = store.get_or_create_folder(folder, part)
    store.create_file(folder, name, data)


class TestExistsInTree:
    """Tests for DuplicateIndex.exists_in_tree."""

    def test_empty_tree(self, index: DuplicateIndex, root: Path) -> None:
        assert index.exists_in_tree(root, "a.pdf", digest_bytes(b"x")) is False

    @pytest.mark.parametrize(
        "parts",
        [["2024", "03"], ["2023", "12"], ["2024"], []],
        ids=["month", "other-month", "year", "root"],
    )
    def test_finds_hash_at_any_level(
        self,
        index: DuplicateIndex,
        store: LocalBlobStore,
        root: Path,
        parts: list[str],
    ) -> None:
        _place(store, root, parts, "[2024-03] original.pdf", b"invoice bytes")

        found = index.exists_in_tree(
            root, "renamed.pdf", digest_bytes(b"invoice bytes")
        )

        assert found is True

    def test_name_match_under_root_without_hashing(
        self, store: LocalBlobStore, root: Path
    ) -> None:
        store.create_file(root, "invoice.pdf", b"anything")
        hasher = MagicMock(spec=ContentHasher)
        index = DuplicateIndex(store, hasher)

        assert index.exists_in_tree(root, "invoice.pdf", "not-the-hash") is True
        hasher.hash.assert_not_called()

    def test_name_match_only_applies_to_root(
        self, index: DuplicateIndex, store: LocalBlobStore, root: Path
    ) -> None:
        _place(store, root, ["2024", "03"], "invoice.pdf", b"other bytes")

        assert index.exists_in_tree(root, "invoice.pdf", digest_bytes(b"new")) is False

    def test_no_match(
        self, index: DuplicateIndex, store: LocalBlobStore, root: Path
    ) -> None:
        _place(store, root, ["2024", "03"], "a.pdf", b"a")
        _place(store, root, ["2024"], "b.pdf", b"b")
        store.create_file(root, "c.pdf", b"c")

        assert index.exists_in_tree(root, "d.pdf", digest_bytes(b"d")) is False


class TestExistsInFolder:
    """Tests for DuplicateIndex.exists_in_folder."""

    def test_skips_unreadable_files(self) -> None:
        def broken() -> bytes:
            raise OSError("corrupt entry")

        store = MagicMock()
        store.list_files.return_value = [
            StoredFile("bad.pdf", "Invoices/bad.pdf", broken),
            StoredFile("good.pdf", "Invoices/good.pdf", lambda: b"target"),
        ]
        index = DuplicateIndex(store, ContentHasher())

        assert index.exists_in_folder("folder", digest_bytes(b"target")) is True

    def test_all_unreadable_is_false(self) -> None:
        def broken() -> bytes:
            raise OSError("corrupt entry")

        store = MagicMock()
        store.list_files.return_value = [StoredFile("bad.pdf", "bad", broken)]
        index = DuplicateIndex(store, ContentHasher())

        assert index.exists_in_folder("folder", digest_bytes(b"target")) is False

    def test_does_not_look_into_subfolders(
        self, index: DuplicateIndex, store: LocalBlobStore, root: Path
    ) -> None:
        _place(store, root, ["2024"], "a.pdf", b"nested")

        assert index.exists_in_folder(root, digest_bytes(b"nested")) is False


class TestNameExistsInFolder:
    """Tests for DuplicateIndex.name_exists_in_folder."""

    def test_exact_match(
        self, index: DuplicateIndex, store: LocalBlobStore, root: Path
    ) -> None:
        store.create_file(root, "[2024-03] a.pdf", b"x")

        assert index.name_exists_in_folder(root, "[2024-03] a.pdf") is True
        assert index.name_exists_in_folder(root, "a.pdf") is False

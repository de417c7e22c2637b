"""Tests for invoice_sorter.store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from invoice_sorter.store import LocalBlobStore

if TYPE_CHECKING:
    from pathlib import Path


class TestLocalBlobStore:
    """Tests for LocalBlobStore."""

    def test_get_or_create_root_folder(
        self, store: LocalBlobStore, store_base: Path
    ) -> None:
        root = store.get_or_create_folder(None, "Invoices")

        assert root == store_base / "Invoices"
        assert root.is_dir()

    def test_get_or_create_is_idempotent(self, store: LocalBlobStore) -> None:
        root = store.get_or_create_folder(None, "Invoices")
        (root / "existing.pdf").write_bytes(b"data")

        again = store.get_or_create_folder(None, "Invoices")

        assert again == root
        assert (again / "existing.pdf").read_bytes() == b"data"

    def test_nested_year_month_folders(
        self, store: LocalBlobStore, store_base: Path
    ) -> None:
        root = store.get_or_create_folder(None, "Invoices")
        year = store.get_or_create_folder(root, "2024")
        month = store.get_or_create_folder(year, "03")

        assert month == store_base / "Invoices" / "2024" / "03"
        assert month.is_dir()

    def test_create_file_returns_relative_stable_id(
        self, store: LocalBlobStore
    ) -> None:
        root = store.get_or_create_folder(None, "Invoices")
        year = store.get_or_create_folder(root, "2024")
        month = store.get_or_create_folder(year, "03")

        stable_id = store.create_file(month, "[2024-03] invoice123.pdf", b"pdf")

        assert stable_id == "Invoices/2024/03/[2024-03] invoice123.pdf"
        assert store.get_path(stable_id).read_bytes() == b"pdf"

    def test_create_file_refuses_to_overwrite(self, store: LocalBlobStore) -> None:
        root = store.get_or_create_folder(None, "Invoices")
        store.create_file(root, "a_b.pdf", b"first")

        with pytest.raises(FileExistsError):
            store.create_file(root, "a/b.pdf", b"second")

        assert (root / "a_b.pdf").read_bytes() == b"first"

    def test_normalise_name_matches_written_name(self, store: LocalBlobStore) -> None:
        root = store.get_or_create_folder(None, "Invoices")

        stable_id = store.create_file(root, "a\\b/c.pdf", b"data")

        assert stable_id == "Invoices/a_b_c.pdf"
        assert store.normalise_name("a\\b/c.pdf") == "a_b_c.pdf"
        assert store.normalise_name("plain name.pdf") == "plain name.pdf"

    def test_list_files_sorted_and_lazy(self, store: LocalBlobStore) -> None:
        root = store.get_or_create_folder(None, "Invoices")
        store.create_file(root, "b.pdf", b"second")
        store.create_file(root, "a.pdf", b"first")
        store.get_or_create_folder(root, "2024")

        files = store.list_files(root)

        assert [f.name for f in files] == ["a.pdf", "b.pdf"]
        assert [f.stable_id for f in files] == ["Invoices/a.pdf", "Invoices/b.pdf"]
        assert files[0].read_bytes() == b"first"

    def test_list_subfolders_excludes_files(self, store: LocalBlobStore) -> None:
        root = store.get_or_create_folder(None, "Invoices")
        store.create_file(root, "loose.pdf", b"data")
        store.get_or_create_folder(root, "2025")
        store.get_or_create_folder(root, "2024")

        subfolders = store.list_subfolders(root)

        assert [f.name for f in subfolders] == ["2024", "2025"]

    def test_empty_folder(self, store: LocalBlobStore) -> None:
        root = store.get_or_create_folder(None, "Invoices")
        assert store.list_files(root) == []
        assert store.list_subfolders(root) == []

    def test_name_with_separator_stays_in_folder(
        self, store: LocalBlobStore, store_base: Path
    ) -> None:
        root = store.get_or_create_folder(None, "Invoices")

        stable_id = store.create_file(root, "../../etc/passwd", b"data")

        assert stable_id.startswith("Invoices/")
        assert stable_id.count("/") == 1
        full_path = store.get_path(stable_id)
        assert full_path.parent == store_base / "Invoices"

    def test_dot_dot_folder_name_sanitized(
        self, store: LocalBlobStore, store_base: Path
    ) -> None:
        folder = store.get_or_create_folder(None, "..")
        assert folder.parent == store_base

"""Shared test fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from invoice_sorter.config import ImapConfig, Settings
from invoice_sorter.models import Attachment
from invoice_sorter.store import LocalBlobStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def _make_pdf(pages: int = 1, marker: str = "") -> bytes:
    objects = "".join(
        f"{n + 3} 0 obj << /Type /Page /Parent 2 0 R >> endobj\n" for n in range(pages)
    )
    return (
        "%PDF-1.4\n"
        "1 0 obj << /Type /Catalog /Pages 2 0 R >> endobj\n"
        f"2 0 obj << /Type /Pages /Count {pages} >> endobj\n"
        f"{objects}"
        f"% {marker}\n"
        "%%EOF\n"
    ).encode()


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Build bytes that look enough like a PDF for the page heuristic.

    ``marker`` varies the content so digests differ.
    """
    return _make_pdf


@pytest.fixture
def store_base(tmp_path: Path) -> Path:
    """Provide a temporary directory as the blob store base."""
    base = tmp_path / "store"
    base.mkdir()
    return base


@pytest.fixture
def store(store_base: Path) -> LocalBlobStore:
    return LocalBlobStore(store_base)


@pytest.fixture
def settings() -> Settings:
    """Settings with tiny backoff delays."""
    return Settings(max_retries=3, initial_delay_ms=10, max_delay_ms=50)


@pytest.fixture
def imap_config() -> ImapConfig:
    """Provide a test IMAP configuration."""
    return ImapConfig(
        host="imap.example.com",
        username="test@example.com",
        password="secret",  # pragma: allowlist secret
        port=993,
        folder="INBOX",
    )


@pytest.fixture
def invoice_attachment() -> Attachment:
    """Provide a one-page PDF attachment named invoice123.pdf."""
    return Attachment(
        name="invoice123.pdf",
        content_type="application/pdf",
        data=_make_pdf(1, marker="invoice123"),
    )

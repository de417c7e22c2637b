"""Blob store abstraction and local filesystem implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    """A file already persisted in a blob store.

    Content is read lazily so that files with a cached digest are never read.
    """

    name: str
    stable_id: str
    reader: Callable[[], bytes]

    def read_bytes(self) -> bytes:
        return self.reader()


class BlobStore(Protocol):
    """Protocol for folder-based invoice storage backends.

    Folder handles are opaque to callers; ``None`` as a parent means the
    top of the store.
    """

    def get_or_create_folder(self, parent: Any | None, name: str) -> Any: ...

    def list_files(self, folder: Any) -> Sequence[StoredFile]: ...

    def list_subfolders(self, folder: Any) -> Sequence[Any]: ...

    def create_file(self, folder: Any, name: str, data: bytes) -> str: ...

    def normalise_name(self, name: str) -> str: ...


class LocalBlobStore:
    """Local filesystem implementation of BlobStore.

    Folders are directories under ``base_dir`` and stable ids are POSIX
    paths relative to it, e.g. ``Invoices/2024/03/[2024-03] invoice.pdf``.
    """

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir

    def get_or_create_folder(self, parent: Path | None, name: str) -> Path:
        """Return the folder named ``name`` under ``parent``, creating it if needed."""
        folder = (parent or self.base_dir) / self.normalise_name(name)
        if not folder.is_dir():
            logger.info("Creating folder %s", self._relative(folder))
            folder.mkdir(parents=True, exist_ok=True)
        return folder

    def list_files(self, folder: Path) -> list[StoredFile]:
        """List regular files directly inside ``folder``, sorted by name."""
        return [
            StoredFile(
                name=path.name,
                stable_id=self._relative(path),
                reader=path.read_bytes,
            )
            for path in sorted(folder.iterdir())
            if path.is_file()
        ]

    def list_subfolders(self, folder: Path) -> list[Path]:
        """List directories directly inside ``folder``, sorted by name."""
        return [path for path in sorted(folder.iterdir()) if path.is_dir()]

    def create_file(self, folder: Path, name: str, data: bytes) -> str:
        """Write ``data`` as ``name`` inside ``folder`` and return its stable id.

        Raises FileExistsError rather than replace an existing file.
        """
        path = folder / self.normalise_name(name)
        with path.open("xb") as fh:
            fh.write(data)
        return self._relative(path)

    def get_path(self, stable_id: str) -> Path:
        """Return the absolute path for a stable id."""
        return self.base_dir / stable_id

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.base_dir).as_posix()

    @staticmethod
    def normalise_name(name: str) -> str:
        """Return the name a file or folder called ``name`` is stored under.

        Names stay verbatim except for characters that would escape the folder.
        """
        cleaned = name.replace("/", "_").replace("\\", "_").replace("\x00", "")
        if cleaned in ("", ".", ".."):
            return "_"
        return cleaned

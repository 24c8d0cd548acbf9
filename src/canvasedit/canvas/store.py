"""Vault-backed storage for canvas files.

Canvases live below a vault root as ``*.canvas`` JSON files. The store reads
and writes whole documents, reads note content for file nodes, and guards the
read-modify-write cycle:

- ``lock(path)`` returns an asyncio.Lock per canvas, so writers inside one
  process are serialized.
- Every read returns a version token (SHA-256 of the bytes read). ``write``
  with ``expected_version`` refuses to overwrite a file that changed on disk
  since it was read, so a writer in another process is detected instead of
  silently lost.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import weakref
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from canvasedit.models.canvas import CanvasDocument

logger = logging.getLogger(__name__)

CANVAS_SUFFIX = ".canvas"


class CanvasStoreError(Exception):
    """Base class for canvas storage failures."""


class CanvasNotFoundError(CanvasStoreError):
    """The canvas file does not exist."""


class InvalidCanvasError(CanvasStoreError):
    """The path is not a canvas inside the vault, or its JSON is malformed."""


class CanvasWriteError(CanvasStoreError):
    """The canvas could not be written."""


class CanvasConflictError(CanvasWriteError):
    """The canvas changed on disk since it was read."""


def content_version(data: bytes) -> str:
    """Version token for file contents."""
    return hashlib.sha256(data).hexdigest()


@dataclass
class CanvasSnapshot:
    """A canvas document together with the version it was read at."""

    path: str
    document: CanvasDocument
    version: str


class CanvasStore:
    """Read and write canvases and notes below a vault root."""

    def __init__(self, vault_path: Path) -> None:
        self.vault_path = Path(vault_path)
        # Entries disappear once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[Path, asyncio.Lock] = weakref.WeakValueDictionary()

    def resolve(self, path: str) -> Path:
        """Resolve a vault-relative path, refusing anything outside the vault."""
        if not path or path.startswith("/") or ".." in Path(path).parts:
            raise InvalidCanvasError(f"Path traversal not allowed: {path}")

        target = self.vault_path / path
        try:
            target.resolve().relative_to(self.vault_path.resolve())
        except ValueError as e:
            raise InvalidCanvasError(f"Path traversal not allowed: {path}") from e
        return target

    def resolve_canvas(self, path: str) -> Path:
        """Resolve a canvas path; it must end in .canvas."""
        if not path.endswith(CANVAS_SUFFIX):
            raise InvalidCanvasError(f"Invalid canvas file: {path}")
        return self.resolve(path)

    def lock(self, path: str) -> asyncio.Lock:
        """Lock serializing read-modify-write cycles on one canvas."""
        key = self.resolve_canvas(path).resolve()
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def read(self, path: str) -> CanvasSnapshot:
        """Read and parse a canvas.

        Raises CanvasNotFoundError or InvalidCanvasError.
        """
        target = self.resolve_canvas(path)
        if not target.is_file():
            raise CanvasNotFoundError(f"Canvas file not found: {path}")

        try:
            data = await asyncio.to_thread(target.read_bytes)
        except OSError as e:
            raise CanvasNotFoundError(f"Failed to read canvas: {path}: {e}") from e

        try:
            document = CanvasDocument.from_json(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            raise InvalidCanvasError(f"Failed to parse canvas: {path}: {e}") from e

        return CanvasSnapshot(path=path, document=document, version=content_version(data))

    async def write(
        self,
        path: str,
        document: CanvasDocument,
        expected_version: str | None = None,
        create: bool = False,
    ) -> str:
        """Write a canvas and return its new version.

        Raises CanvasNotFoundError when the file is missing and ``create`` is
        not set, CanvasConflictError when ``expected_version`` no longer
        matches, and CanvasWriteError on I/O failure.
        """
        target = self.resolve_canvas(path)

        if target.exists():
            if expected_version is not None:
                current = content_version(await asyncio.to_thread(target.read_bytes))
                if current != expected_version:
                    raise CanvasConflictError(f"Canvas changed on disk since it was read: {path}")
        elif not create:
            raise CanvasNotFoundError(f"Canvas file not found: {path}")

        data = document.to_json().encode("utf-8")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, data)
        except OSError as e:
            raise CanvasWriteError(f"Failed to write canvas: {path}: {e}") from e

        logger.info(f"Canvas updated: {path}")
        return content_version(data)

    async def read_note(self, path: str) -> str | None:
        """Read a text file referenced by a file node; None if unavailable."""
        try:
            target = self.resolve(path)
        except InvalidCanvasError:
            logger.warning(f"Refusing to read note outside vault: {path}")
            return None

        if not target.is_file():
            logger.debug(f"Referenced file not found: {path}")
            return None

        try:
            return await asyncio.to_thread(target.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Skipping unreadable file {path}: {e}")
            return None

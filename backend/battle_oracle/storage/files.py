"""Local content-addressed store for settlement records.

Records live under ``<data_dir>/records/<first two hex chars>/<sha256>.json``.
The handle returned by ``put`` is the SHA-256 hex digest of the stored bytes,
so identical records share one file and any handle can be re-verified
against the content it names.
"""

import asyncio
import hashlib
import logging
import re
import shutil
import tempfile
from pathlib import Path

from .exceptions import ContentIntegrityError, ContentNotFoundError, StorageError

logger = logging.getLogger(__name__)

_HANDLE_RE = re.compile(r"^[0-9a-f]{64}$")


def content_handle(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class LocalContentStore:
    """Filesystem content store; writes are atomic."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    async def __aenter__(self) -> "LocalContentStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    def _path_for(self, handle: str) -> Path:
        if not _HANDLE_RE.match(handle):
            raise ContentNotFoundError(f"Invalid content handle: {handle!r}")
        return self.base_dir / handle[:2] / f"{handle}.json"

    def put_sync(self, data: bytes) -> str:
        """Store ``data`` and return its handle.

        Uses a tempfile -> rename so a crash mid-write never leaves a
        partial record behind.
        """
        handle = content_handle(data)
        target = self._path_for(handle)

        if target.exists():
            logger.debug(f"Record {handle} already stored")
            return handle

        temp_path: Path | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=target.parent,
                delete=False,
                suffix=".tmp",
            ) as temp_file:
                temp_file.write(data)
                temp_path = Path(temp_file.name)

            # Atomic rename
            shutil.move(str(temp_path), str(target))
            logger.info(f"Stored record {handle} at {target}")
            return handle

        except OSError as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            logger.error(f"Failed to store record {handle}: {e}")
            raise StorageError(f"Failed to store record {handle}: {e}") from e

    def get_sync(self, handle: str) -> bytes:
        """Read the record named by ``handle``.

        Raises:
            ContentNotFoundError: If nothing is stored under ``handle``.
            ContentIntegrityError: If the file no longer matches its handle.
        """
        path = self._path_for(handle)
        if not path.exists():
            raise ContentNotFoundError(f"No record stored for {handle}", status_code=404)

        try:
            data = path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read record {handle}: {e}") from e
        if content_handle(data) != handle:
            raise ContentIntegrityError(f"Record {handle} is corrupted on disk")
        return data

    async def put(self, data: bytes) -> str:
        return await asyncio.to_thread(self.put_sync, data)

    async def get(self, handle: str) -> bytes:
        return await asyncio.to_thread(self.get_sync, handle)

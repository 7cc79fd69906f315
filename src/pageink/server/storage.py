from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Protocol

from pageink.ink.errors import StorageUnavailable, StorageWriteError

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def check(self) -> None: ...

    async def write(self, directory: str, name: str, data: bytes) -> None: ...

    async def list_directory(self, directory: str) -> list[str]: ...


def _safe_write(path: Path, data: bytes) -> None:
    # Write to a temp sibling then rename, so readers never see half a file.
    tmp = path.with_name(f"{path.name}.{time.time_ns()}.tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class FolderStorage:
    """Writes artifacts under `root/<directory>/<name>`."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def check(self) -> None:
        if not self.root.is_dir():
            raise StorageUnavailable(f"export root {self.root} does not exist")
        if not os.access(self.root, os.W_OK):
            raise StorageUnavailable(f"export root {self.root} is not writable")

    def _dir(self, directory: str) -> Path:
        d = (self.root / directory).resolve()
        if self.root.resolve() not in d.parents:
            raise StorageWriteError(f"directory {directory!r} escapes the export root")
        return d

    async def write(self, directory: str, name: str, data: bytes) -> None:
        d = self._dir(directory)
        path = d / name
        if path.parent != d:
            raise StorageWriteError(f"bad artifact name {name!r}")

        def _write() -> None:
            d.mkdir(parents=True, exist_ok=True)
            _safe_write(path, data)

        try:
            await asyncio.to_thread(_write)
        except StorageWriteError:
            raise
        except OSError as e:
            raise StorageWriteError(f"writing {directory}/{name}: {e}") from e
        logger.debug("wrote %s (%d bytes)", path, len(data))

    async def list_directory(self, directory: str) -> list[str]:
        d = self._dir(directory)

        def _list() -> list[str]:
            if not d.is_dir():
                return []
            return sorted(p.name for p in d.iterdir() if p.is_file())

        return await asyncio.to_thread(_list)

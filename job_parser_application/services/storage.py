from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger("job_parser.storage")


class BlobStore(Protocol):
    """Key-value store holding one serialized collection per key."""

    def read(self, key: str) -> Optional[bytes]: ...

    def write(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class FileBlobStore:
    """One ``<key>.json`` file per key under ``root``; writes replace atomically."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in key)
        return self.root / f"{safe}.json"

    def read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def write(self, key: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MemoryBlobStore:
    def __init__(self, initial: Dict[str, bytes] | None = None) -> None:
        self.blobs: Dict[str, bytes] = dict(initial or {})
        self.writes = 0

    def read(self, key: str) -> Optional[bytes]:
        return self.blobs.get(key)

    def write(self, key: str, data: bytes) -> None:
        self.writes += 1
        self.blobs[key] = data

    def delete(self, key: str) -> None:
        self.blobs.pop(key, None)


def load_json_list(store: BlobStore, key: str) -> list[Any]:
    """Load a persisted JSON array; corrupt or missing blobs read as empty."""

    raw = store.read(key)
    if not raw:
        return []
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Discarding unreadable %s store: %s", key, exc)
        return []
    if not isinstance(data, list):
        logger.warning("Discarding %s store with unexpected shape %s", key, type(data).__name__)
        return []
    return data


def dump_json_list(store: BlobStore, key: str, items: list[Any]) -> None:
    store.write(key, json.dumps(items, indent=2, default=str).encode("utf-8"))

"""Blob store — string values under string keys.

This is the local, client-owned substrate the leave store sits on: a
browser-storage-like mapping with plain get/set/remove and no
transactions. Two backends:
- MemoryBlobStore: in-process dict, used by tests and ephemeral sessions.
- JsonFileBlobStore: one JSON object on disk mapping keys to strings.

There is no locking between processes. Two writers on the same file
resolve as last-write-wins.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol


class BlobStore(Protocol):
    """Minimal key-value contract consumed by LeaveStore."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryBlobStore:
    """In-process blob store."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileBlobStore:
    """JSON file-backed blob store.

    Usage:
        blobs = JsonFileBlobStore(Path("data/leave_store.json"))
        blobs.set("leaveApplications", "[]")
        raw = blobs.get("leaveApplications")

    The file is re-read on every get so that a write made by another
    process is visible to the next read. Writes go to a temporary file in
    the same directory and are moved into place with os.replace.

    Raises json.JSONDecodeError if the file exists but is not valid JSON,
    and ValueError if it holds something other than a JSON object.
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        if value is None:
            return None
        return str(value)

    def set(self, key: str, value: str) -> None:
        state = self._read()
        state[key] = value
        self._write(state)

    def remove(self, key: str) -> None:
        state = self._read()
        if key in state:
            del state[key]
            self._write(state)

    def keys(self) -> list[str]:
        return list(self._read())

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as f:
            state = json.load(f)
        if not isinstance(state, dict):
            raise ValueError(
                f"Blob store file must hold a JSON object: {self._path}"
            )
        return state

    def _write(self, state: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=self._path.name, suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, sort_keys=True, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

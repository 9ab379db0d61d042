"""Leave store — the serialized sequence of leave records.

Stores one JSON array of leave record objects under a single key of a
BlobStore. A second key is reserved for user accounts and is never
written here.

The store is a best-effort cache, not a durable source of truth:
- load() fails soft. An unreadable blob yields an empty list; an
  unreadable row is skipped and the readable rows are still returned.
- save() fails soft. A failed write is logged and returned as an error
  string instead of being raised.

save() never destroys stored data it cannot read:
- Rows that do not decode into a LeaveRecord are carried over verbatim,
  after the records being saved.
- A blob that is not a JSON array is left in place and the write is
  refused.

Callers own the read-modify-write cycle. Nothing here serializes
concurrent mutations.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from leaveflow.leave.errors import StoreCorruptionError
from leaveflow.models.leave import LeaveRecord
from leaveflow.persistence.blob_store import BlobStore

logger = logging.getLogger(__name__)

LEAVE_STORAGE_KEY = "leaveApplications"
USERS_STORAGE_KEY = "users"


class LeaveStore:
    """Load/save the full leave record sequence.

    Usage:
        store = LeaveStore(MemoryBlobStore())
        records = await store.load()
        records.append(record)
        error = await store.save(records)
    """

    def __init__(
        self,
        blobs: BlobStore,
        key: str = LEAVE_STORAGE_KEY,
        users_key: str = USERS_STORAGE_KEY,
    ) -> None:
        self._blobs = blobs
        self._key = key
        self._users_key = users_key

    @property
    def key(self) -> str:
        return self._key

    @property
    def users_key(self) -> str:
        return self._users_key

    async def load(self) -> list[LeaveRecord]:
        """Return every readable persisted record in stored order.

        Never raises for bad data: corruption is logged and the
        unreadable part is left out of the result.
        """
        try:
            records, unreadable = self._read()
        except (StoreCorruptionError, OSError, ValueError) as e:
            logger.warning("Discarding unreadable leave data: %s", e)
            return []
        for index, _, reason in unreadable:
            logger.warning(
                "Skipping unreadable leave record %d under %s: %s",
                index, self._key, reason,
            )
        return records

    async def save(self, records: Sequence[LeaveRecord]) -> Optional[str]:
        """Overwrite the stored sequence with ``records``.

        Returns None on success, or a description of why the write did
        not happen.
        """
        try:
            _, unreadable = self._read()
            kept = [item for _, item, _ in unreadable]
            payload = json.dumps(
                [r.to_dict() for r in records] + kept, ensure_ascii=False,
            )
            self._blobs.set(self._key, payload)
        except StoreCorruptionError as e:
            error = f"Refusing to overwrite unreadable leave data: {e}"
            logger.warning(error)
            return error
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save leave data: %s", e)
            return str(e)
        return None

    async def is_empty(self) -> bool:
        """True only when nothing at all is stored under the leave key.

        An absent blob, an empty string and an empty JSON array are
        empty. Unreadable data is not.
        """
        try:
            raw = self._blobs.get(self._key)
            if raw is None or raw == "":
                return True
            return json.loads(raw) == []
        except (OSError, ValueError):
            return False

    def _read(self) -> tuple[list[LeaveRecord], list[tuple[int, Any, str]]]:
        """Decode the blob into records plus (index, row, reason) for bad rows.

        Raises StoreCorruptionError when the blob as a whole is unusable.
        """
        raw = self._blobs.get(self._key)
        if raw is None or raw == "":
            return [], []
        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreCorruptionError(f"Invalid JSON under {self._key}: {e}") from e
        if not isinstance(data, list):
            raise StoreCorruptionError(
                f"Expected a JSON array under {self._key}, "
                f"got {type(data).__name__}"
            )

        records: list[LeaveRecord] = []
        unreadable: list[tuple[int, Any, str]] = []
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                unreadable.append((index, item, "not an object"))
                continue
            try:
                records.append(LeaveRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                unreadable.append((index, item, f"malformed: {e}"))
        return records, unreadable

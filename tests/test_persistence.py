"""Tests for persistence layer — proves blob stores and the leave store work correctly."""

import asyncio
import json
import pytest
from datetime import datetime, timezone
from pathlib import Path

from leaveflow.models.leave import LeaveRecord, LeaveStatus, LeaveType
from leaveflow.persistence.blob_store import JsonFileBlobStore, MemoryBlobStore
from leaveflow.persistence.leave_store import (
    LEAVE_STORAGE_KEY,
    USERS_STORAGE_KEY,
    LeaveStore,
)


def _record(leave_id: str, applicant: str = "alice") -> LeaveRecord:
    return LeaveRecord(
        leave_id=leave_id,
        applicant=applicant,
        leave_type=LeaveType.CASUAL,
        start_date="2024-01-10",
        end_date="2024-01-12",
        reason="Trip",
        applied_utc=datetime(2024, 1, 5, tzinfo=timezone.utc),
    )


class FailingBlobStore(MemoryBlobStore):
    """Blob store whose writes always fail."""

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


# =====================================================================
# Blob store tests
# =====================================================================


class TestMemoryBlobStore:
    def test_get_missing_is_none(self) -> None:
        assert MemoryBlobStore().get("nope") is None

    def test_set_get_remove(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("k", "v")
        assert blobs.get("k") == "v"
        blobs.remove("k")
        assert blobs.get("k") is None

    def test_remove_missing_is_noop(self) -> None:
        MemoryBlobStore().remove("nope")


class TestJsonFileBlobStore:
    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        blobs = JsonFileBlobStore(tmp_path / "store.json")
        assert blobs.get("k") is None
        assert blobs.keys() == []

    def test_set_creates_parent_dirs(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "store.json"
        JsonFileBlobStore(path).set("k", "v")
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}

    def test_values_visible_to_second_instance(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        JsonFileBlobStore(path).set("k", "v")
        assert JsonFileBlobStore(path).get("k") == "v"

    def test_remove(self, tmp_path: Path) -> None:
        blobs = JsonFileBlobStore(tmp_path / "store.json")
        blobs.set("a", "1")
        blobs.set("b", "2")
        blobs.remove("a")
        assert blobs.keys() == ["b"]

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        blobs = JsonFileBlobStore(tmp_path / "store.json")
        blobs.set("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_non_object_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "store.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            JsonFileBlobStore(path).get("k")


# =====================================================================
# LeaveStore tests
# =====================================================================


class TestLeaveStore:
    def test_empty_store_loads_empty(self) -> None:
        store = LeaveStore(MemoryBlobStore())
        assert asyncio.run(store.load()) == []

    def test_save_then_load_preserves_order(self) -> None:
        store = LeaveStore(MemoryBlobStore())
        records = [_record("L-3"), _record("L-1"), _record("L-2")]

        async def scenario() -> list[LeaveRecord]:
            await store.save(records)
            return await store.load()

        loaded = asyncio.run(scenario())
        assert [r.leave_id for r in loaded] == ["L-3", "L-1", "L-2"]

    def test_persisted_shape_is_single_json_array(self) -> None:
        blobs = MemoryBlobStore()
        store = LeaveStore(blobs)
        asyncio.run(store.save([_record("L-1")]))

        data = json.loads(blobs.get(LEAVE_STORAGE_KEY))
        assert isinstance(data, list)
        assert data[0]["id"] == "L-1"
        assert data[0]["leaveType"] == "casual"
        assert data[0]["status"] == "pending"

    def test_users_key_never_written(self) -> None:
        blobs = MemoryBlobStore()
        store = LeaveStore(blobs)
        asyncio.run(store.save([_record("L-1")]))
        assert store.users_key == USERS_STORAGE_KEY
        assert blobs.get(USERS_STORAGE_KEY) is None

    def test_invalid_json_loads_empty(self) -> None:
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: "{not json"})
        assert asyncio.run(LeaveStore(blobs).load()) == []

    def test_non_array_loads_empty(self) -> None:
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: '{"id": "L-1"}'})
        assert asyncio.run(LeaveStore(blobs).load()) == []

    def test_malformed_record_skipped(self) -> None:
        payload = json.dumps([{"id": "L-1"}, {"status": "pending"}])
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: payload})
        loaded = asyncio.run(LeaveStore(blobs).load())
        assert [r.leave_id for r in loaded] == ["L-1"]

    def test_bad_status_skipped_good_rows_kept(self) -> None:
        good = _record("L-1").to_dict()
        good["reason"] = "keep me"
        payload = json.dumps([good, dict(good, id="L-2", status="cancelled")])
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: payload})
        loaded = asyncio.run(LeaveStore(blobs).load())
        assert [(r.leave_id, r.reason) for r in loaded] == [("L-1", "keep me")]

    def test_numeric_timestamp_skipped(self) -> None:
        bad = dict(_record("L-1").to_dict(), appliedDate=1700000000000)
        payload = json.dumps([bad, _record("L-2").to_dict()])
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: payload})
        loaded = asyncio.run(LeaveStore(blobs).load())
        assert [r.leave_id for r in loaded] == ["L-2"]

    def test_numeric_processed_date_skipped(self) -> None:
        bad = dict(_record("L-1").to_dict(), processedDate=12)
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: json.dumps([bad])})
        assert asyncio.run(LeaveStore(blobs).load()) == []

    def test_save_carries_unreadable_rows(self) -> None:
        foreign = dict(_record("L-9").to_dict(), status="cancelled")
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: json.dumps([foreign, 42])})
        store = LeaveStore(blobs)

        async def scenario() -> None:
            records = await store.load()
            records.append(_record("L-1"))
            assert await store.save(records) is None

        asyncio.run(scenario())
        data = json.loads(blobs.get(LEAVE_STORAGE_KEY))
        assert [row if not isinstance(row, dict) else row["id"] for row in data] == [
            "L-1", "L-9", 42,
        ]
        assert data[1]["status"] == "cancelled"

    def test_save_refuses_to_overwrite_corrupt_blob(self) -> None:
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: "{not json"})
        error = asyncio.run(LeaveStore(blobs).save([_record("L-1")]))
        assert "unreadable" in error
        assert blobs.get(LEAVE_STORAGE_KEY) == "{not json"

    def test_corruption_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: "garbage"})
        with caplog.at_level("WARNING"):
            asyncio.run(LeaveStore(blobs).load())
        assert "unreadable leave data" in caplog.text

    def test_save_failure_is_soft(self) -> None:
        store = LeaveStore(FailingBlobStore())
        assert asyncio.run(store.save([_record("L-1")])) == "disk full"

    def test_save_success_returns_none(self) -> None:
        store = LeaveStore(MemoryBlobStore())
        assert asyncio.run(store.save([])) is None

    def test_custom_key(self) -> None:
        blobs = MemoryBlobStore()
        store = LeaveStore(blobs, key="leaves_v2")
        asyncio.run(store.save([_record("L-1")]))
        assert blobs.get("leaves_v2") is not None
        assert blobs.get(LEAVE_STORAGE_KEY) is None

    def test_is_empty(self) -> None:
        store = LeaveStore(MemoryBlobStore())

        async def scenario() -> tuple[bool, bool]:
            before = await store.is_empty()
            await store.save([_record("L-1")])
            return before, await store.is_empty()

        assert asyncio.run(scenario()) == (True, False)

    @pytest.mark.parametrize("raw", [None, "", "[]"])
    def test_is_empty_for_blank_blobs(self, raw: str | None) -> None:
        blobs = MemoryBlobStore({} if raw is None else {LEAVE_STORAGE_KEY: raw})
        assert asyncio.run(LeaveStore(blobs).is_empty()) is True

    @pytest.mark.parametrize("raw", ["{not json", "{}", "[{\"status\": \"x\"}]"])
    def test_unreadable_blob_is_not_empty(self, raw: str) -> None:
        blobs = MemoryBlobStore({LEAVE_STORAGE_KEY: raw})
        assert asyncio.run(LeaveStore(blobs).is_empty()) is False


class TestLeaveStoreOnFile:
    def test_round_trip_through_file(self, tmp_path: Path) -> None:
        path = tmp_path / "leave_store.json"
        approved = _record("L-1")
        approved.status = LeaveStatus.APPROVED
        approved.processed_utc = datetime(2024, 1, 6, tzinfo=timezone.utc)
        asyncio.run(LeaveStore(JsonFileBlobStore(path)).save([approved]))

        loaded = asyncio.run(LeaveStore(JsonFileBlobStore(path)).load())
        assert len(loaded) == 1
        assert loaded[0].status == LeaveStatus.APPROVED
        assert loaded[0].processed_utc == approved.processed_utc

    def test_corrupt_file_loads_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "leave_store.json"
        path.write_text("{{{", encoding="utf-8")
        assert asyncio.run(LeaveStore(JsonFileBlobStore(path)).load()) == []

"""Persistence layer — blob storage and the leave record store."""

from leaveflow.persistence.blob_store import BlobStore, JsonFileBlobStore, MemoryBlobStore
from leaveflow.persistence.leave_store import (
    LEAVE_STORAGE_KEY,
    USERS_STORAGE_KEY,
    LeaveStore,
)

__all__ = [
    "BlobStore",
    "JsonFileBlobStore",
    "MemoryBlobStore",
    "LeaveStore",
    "LEAVE_STORAGE_KEY",
    "USERS_STORAGE_KEY",
]

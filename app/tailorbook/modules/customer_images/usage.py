from __future__ import annotations

import logging
from dataclasses import dataclass

from app.tailorbook.storage import DEFAULT_LIST_LIMIT, Storage

logger = logging.getLogger(__name__)

DEFAULT_LIMIT_MB = 1024
_BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class StorageUsage:
    total_bytes: int
    limit_mb: int

    @property
    def total_mb(self) -> str:
        return f"{self.total_bytes / _BYTES_PER_MB:.2f}"

    @property
    def remaining_mb(self) -> float:
        return round(max(self.limit_mb - self.total_bytes / _BYTES_PER_MB, 0.0), 2)

    def to_dict(self) -> dict:
        return {"totalBytes": self.total_bytes, "totalMB": self.total_mb, "limitMB": self.limit_mb}


def compute_storage_usage(storage: Storage, *, limit_mb: int = DEFAULT_LIMIT_MB) -> StorageUsage:
    """
    Sum object sizes at the bucket root and one level down (the customer folders).

    Any listing error propagates; a partial total is never returned.
    """
    total = 0
    top = storage.list_entries("", limit=DEFAULT_LIST_LIMIT)
    folders = []
    for entry in top:
        if entry.is_folder:
            folders.append(entry.name)
        else:
            total += entry.size or 0

    for folder in folders:
        for entry in storage.list_entries(folder, limit=DEFAULT_LIST_LIMIT):
            if not entry.is_folder:
                total += entry.size or 0

    usage = StorageUsage(total_bytes=total, limit_mb=limit_mb)
    logger.info("Storage usage: %s MB of %s MB across %d folder(s)", usage.total_mb, limit_mb, len(folders))
    return usage

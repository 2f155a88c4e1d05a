"""Storage — граница с persistence backend (record store protocol + backends)."""

from .record_store import InMemoryRecordStore, JsonFileRecordStore, Record, RecordStore

__all__ = [
    "RecordStore",
    "Record",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
]

"""
Record Store — граница с persistence backend

Engine требует от хранилища только key-value-by-id с запросом по равенству полей:
- get_all(collection) -> list[dict]
- put(collection, id, record)
- delete(collection, id)             (удаление отсутствующего id — no-op)
- query(collection, field_equals)    -> list[dict]

Engine одинаково работает с локальным хранилищем устройства и с удалённой
document DB. Здесь поставляются два backend:
- InMemoryRecordStore — словари в памяти (копирование на входе и выходе)
- JsonFileRecordStore — один JSON документ на коллекцию в директории

Записи — JSON-совместимые dict. Corrupt данные НЕ чинятся здесь: store
отдаёт то, что лежит, а фильтрация — забота repository/ledger.
"""

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Protocol, runtime_checkable

from src.core.errors import PersistenceError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


# =============================================================================
# PROTOCOL
# =============================================================================


@runtime_checkable
class RecordStore(Protocol):
    """Минимальный контракт backing store."""

    def get_all(self, collection: str) -> List[Any]:
        """Все записи коллекции (порядок не гарантируется)."""
        ...

    def put(self, collection: str, record_id: str, record: Record) -> None:
        """Создать или заменить запись по id."""
        ...

    def delete(self, collection: str, record_id: str) -> None:
        """Удалить запись по id; отсутствующий id — no-op."""
        ...

    def query(self, collection: str, field_equals: Mapping[str, Any]) -> List[Record]:
        """Записи, у которых все указанные поля равны заданным значениям."""
        ...


def _matches(record: Any, field_equals: Mapping[str, Any]) -> bool:
    if not isinstance(record, dict):
        return False
    return all(field in record and record[field] == value for field, value in field_equals.items())


# =============================================================================
# IN-MEMORY BACKEND
# =============================================================================


class InMemoryRecordStore:
    """
    Хранилище в памяти.

    Записи копируются на входе и на выходе: вызывающий код не может
    изменить сохранённое состояние через ссылку.
    """

    def __init__(self, initial: Mapping[str, Mapping[str, Any]] | None = None):
        self._collections: Dict[str, Dict[str, Any]] = {}
        for collection, records in (initial or {}).items():
            self._collections[collection] = {
                str(record_id): copy.deepcopy(record) for record_id, record in records.items()
            }

    def get_all(self, collection: str) -> List[Any]:
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    def get(self, collection: str, record_id: str) -> Any | None:
        record = self._collections.get(collection, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def put(self, collection: str, record_id: str, record: Record) -> None:
        self._collections.setdefault(collection, {})[record_id] = copy.deepcopy(record)

    def delete(self, collection: str, record_id: str) -> None:
        self._collections.get(collection, {}).pop(record_id, None)

    def query(self, collection: str, field_equals: Mapping[str, Any]) -> List[Record]:
        return [
            copy.deepcopy(r)
            for r in self._collections.get(collection, {}).values()
            if _matches(r, field_equals)
        ]

    def ids(self, collection: str) -> List[str]:
        return list(self._collections.get(collection, {}))


# =============================================================================
# JSON FILE BACKEND
# =============================================================================


class JsonFileRecordStore:
    """
    Хранилище "один JSON файл на коллекцию" (<root>/<collection>.json).

    Формат файла — объект {id: record}. Для совместимости читается и массив
    записей (id берётся из поля "id"; записи без строкового id пропускаются).

    Запись атомарна: временный файл + os.replace.
    Нечитаемый файл целиком логируется и трактуется как пустая коллекция.
    """

    def __init__(self, root: str | Path):
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, collection: str) -> Path:
        return self._root / f"{collection}.json"

    def _read(self, collection: str) -> Dict[str, Any]:
        path = self._path(collection)
        if not path.exists():
            return {}

        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Unreadable collection file %s: %s", path, e)
            return {}

        if isinstance(payload, dict):
            return payload

        if isinstance(payload, list):
            records: Dict[str, Any] = {}
            for item in payload:
                if isinstance(item, dict) and isinstance(item.get("id"), str):
                    records[item["id"]] = item
                else:
                    logger.warning("Skipping record without id in %s", path)
            return records

        logger.error("Collection file %s holds %s, expected object", path, type(payload).__name__)
        return {}

    def _write(self, collection: str, records: Dict[str, Any]) -> None:
        path = self._path(collection)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f".{collection}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, ensure_ascii=False, indent=2, sort_keys=True)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Failed to write collection {collection!r} to {path}: {e}",
                collection=collection,
            ) from e

    def get_all(self, collection: str) -> List[Any]:
        return list(self._read(collection).values())

    def put(self, collection: str, record_id: str, record: Record) -> None:
        records = self._read(collection)
        records[record_id] = record
        self._write(collection, records)

    def delete(self, collection: str, record_id: str) -> None:
        records = self._read(collection)
        if record_id not in records:
            return
        del records[record_id]
        self._write(collection, records)

    def query(self, collection: str, field_equals: Mapping[str, Any]) -> List[Record]:
        return [r for r in self._read(collection).values() if _matches(r, field_equals)]

"""
Invoice Repository — каноническая коллекция счетов

Отвечает за валидацию, нормализацию, хранение и выдачу invoice records.

Порядок каждой записи (add/update/toggle/remove):
1. Валидация + нормализация (pydantic Invoice) — при ошибке InvalidInvoiceError,
   состояние НЕ меняется, частичные записи не наблюдаемы
2. Мутация in-memory коллекции
3. Запись в backing store — при ошибке PersistenceError; изменение уже "живое",
   но не durable (rollback не выполняется, retry — забота вызывающего)

Загрузка (load):
- каждая запись проверяется JSON Schema контрактом и pydantic моделью
- невалидные записи отбрасываются (WARNING в лог), загрузка продолжается
- нечитаемое хранилище целиком -> пустая коллекция (ERROR в лог)

Not-found на remove/update/toggle_paid — no-op, не ошибка.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, List, Mapping

from pydantic import ValidationError

from src.core.contracts import InvoiceRecordValidator
from src.core.domain.firm import Firm
from src.core.domain.invoice import Invoice
from src.core.domain.period import is_in_quarter
from src.core.errors import (
    DuplicateInvoiceError,
    InvalidInvoiceError,
    InvoiceAccessError,
    PersistenceError,
)
from src.storage.record_store import RecordStore

logger = logging.getLogger(__name__)

# snake_case атрибут -> camelCase wire имя (для слияния частичных обновлений)
_WIRE_NAMES: dict[str, str] = {
    name: (field.alias or name) for name, field in Invoice.model_fields.items()
}


# =============================================================================
# RESULT TYPES
# =============================================================================


class InvoiceStatusFilter(str, Enum):
    """Фильтр по статусу оплаты"""

    ALL = "all"
    PAID = "paid"
    UNPAID = "unpaid"


@dataclass(frozen=True)
class LoadReport:
    """Результат загрузки коллекции из backing store."""

    loaded: int
    dropped: int
    dropped_ids: tuple[str, ...]


# =============================================================================
# HELPERS
# =============================================================================


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def _to_wire(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {_WIRE_NAMES.get(key, key): value for key, value in fields.items()}


def _record_label(raw: Any) -> str:
    if isinstance(raw, dict) and isinstance(raw.get("id"), str):
        return raw["id"]
    return "<no id>"


# =============================================================================
# REPOSITORY
# =============================================================================


class InvoiceRepository:
    """
    Репозиторий счетов поверх RecordStore.

    Args:
        store: Backing store
        collection: Имя коллекции счетов
        id_factory: Генератор id для новых счетов без id (default: uuid4)
        autoload: Загрузить коллекцию из store при создании
    """

    def __init__(
        self,
        store: RecordStore,
        collection: str = "invoices",
        id_factory: Callable[[], str] | None = None,
        autoload: bool = True,
    ):
        self._store = store
        self._collection = collection
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._contract = InvoiceRecordValidator()
        self._invoices: dict[str, Invoice] = {}

        if autoload:
            self.load()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load(self) -> LoadReport:
        """
        (Пере)загрузка коллекции из backing store.

        Corrupt records отбрасываются по одному; исключения наружу не выходят.
        """
        try:
            raw_records = self._store.get_all(self._collection)
        except Exception:
            logger.error(
                "Failed to read collection %r, starting empty", self._collection, exc_info=True
            )
            raw_records = []

        invoices: dict[str, Invoice] = {}
        dropped: list[str] = []

        for raw in raw_records:
            if not self._contract.is_valid(raw):
                logger.warning(
                    "Dropping corrupt invoice record %s: %s",
                    _record_label(raw),
                    self._contract.describe_errors(raw),
                )
                dropped.append(_record_label(raw))
                continue

            try:
                invoice = Invoice.from_record(raw)
            except ValidationError as e:
                logger.warning(
                    "Dropping invalid invoice record %s: %s",
                    _record_label(raw),
                    _describe_validation_error(e),
                )
                dropped.append(_record_label(raw))
                continue

            if invoice.id in invoices:
                logger.warning("Duplicate invoice id %s in storage, keeping the later record", invoice.id)
            invoices[invoice.id] = invoice

        self._invoices = invoices
        return LoadReport(loaded=len(invoices), dropped=len(dropped), dropped_ids=tuple(dropped))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list(self) -> List[Invoice]:
        """Все текущие счета (порядок не гарантируется)."""
        return list(self._invoices.values())

    def get(self, invoice_id: str) -> Invoice | None:
        return self._invoices.get(invoice_id)

    def __len__(self) -> int:
        return len(self._invoices)

    def __contains__(self, invoice_id: object) -> bool:
        return invoice_id in self._invoices

    def __iter__(self) -> Iterator[Invoice]:
        return iter(list(self._invoices.values()))

    def filter(
        self,
        year: int,
        quarter: int,
        search: str = "",
        status: InvoiceStatusFilter | str = InvoiceStatusFilter.ALL,
        firm: Firm | None = None,
    ) -> List[Invoice]:
        """
        Счета квартала с фильтрами, от новых к старым.

        Args:
            year, quarter: Квартал (даты на обеих границах входят)
            search: Подстрока имени клиента (без учёта регистра)
            status: all / paid / unpaid
            firm: Фирма-участник с любой стороны счёта
        """
        status = InvoiceStatusFilter(status)
        needle = search.strip().lower()

        result = []
        for invoice in self._invoices.values():
            if not is_in_quarter(invoice.issue_date, year, quarter):
                continue
            if needle and needle not in invoice.client_name.lower():
                continue
            if status == InvoiceStatusFilter.PAID and not invoice.is_paid:
                continue
            if status == InvoiceStatusFilter.UNPAID and invoice.is_paid:
                continue
            if firm is not None and not invoice.involves(firm):
                continue
            result.append(invoice)

        result.sort(key=lambda inv: inv.issue_date, reverse=True)
        return result

    def client_names(self) -> List[str]:
        """Уникальные имена клиентов (по алфавиту, без учёта регистра)."""
        names = {invoice.client_name for invoice in self._invoices.values()}
        return sorted(names, key=str.lower)

    def search_clients(self, query: str) -> List[str]:
        """Имена клиентов, содержащие query (пустой query -> пусто)."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [name for name in self.client_names() if needle in name.lower()]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, data: Invoice | Mapping[str, Any]) -> Invoice:
        """
        Добавление счёта.

        Args:
            data: Invoice или mapping (camelCase или snake_case); без id — id генерируется

        Returns:
            Нормализованный сохранённый счёт

        Raises:
            InvalidInvoiceError: Невалидные данные (состояние не меняется)
            DuplicateInvoiceError: Счёт с таким id уже есть
            PersistenceError: Store не принял запись (счёт уже в памяти)
        """
        if isinstance(data, Invoice):
            invoice = data
        else:
            wire = _to_wire(data)
            if wire.get("id") in (None, ""):
                wire["id"] = self._id_factory()
            invoice = self._validate(wire)

        if invoice.id in self._invoices:
            raise DuplicateInvoiceError(f"Invoice {invoice.id!r} already exists")

        self._invoices[invoice.id] = invoice
        logger.debug("Invoice %s added", invoice.id)
        self._persist(invoice)
        return invoice

    def update(self, invoice_id: str, fields: Mapping[str, Any]) -> Invoice | None:
        """
        Слияние полей с существующим счётом + повторная валидация результата.

        Returns:
            Обновлённый счёт или None, если id неизвестен (no-op)

        Raises:
            InvalidInvoiceError: Результат слияния невалиден (ничего не записано)
            PersistenceError: Store не принял запись (обновление уже в памяти)
        """
        existing = self._invoices.get(invoice_id)
        if existing is None:
            return None

        changes = _to_wire(fields)
        if "id" in changes and changes["id"] != invoice_id:
            raise InvalidInvoiceError(
                f"Invoice id is immutable: {invoice_id!r} -> {changes['id']!r}",
                errors=[{"loc": ("id",), "msg": "id is immutable", "type": "immutable"}],
            )

        merged = {**existing.to_record(), **changes}
        if "comment" in changes and changes["comment"] is None:
            merged.pop("comment", None)

        invoice = self._validate(merged)
        self._invoices[invoice_id] = invoice
        logger.debug("Invoice %s updated (%s)", invoice_id, ", ".join(sorted(changes)))
        self._persist(invoice)
        return invoice

    def toggle_paid(self, invoice_id: str, acting_firm: Firm | None = None) -> Invoice | None:
        """
        Инверсия isPaid.

        Args:
            invoice_id: Счёт
            acting_firm: Если задана — должна быть фирмой, выставившей счёт

        Returns:
            Обновлённый счёт или None, если id неизвестен (no-op)

        Raises:
            InvoiceAccessError: acting_firm не выставляла этот счёт
        """
        existing = self._invoices.get(invoice_id)
        if existing is None:
            return None

        if acting_firm is not None and acting_firm != existing.invoiced_by_firm:
            raise InvoiceAccessError(
                f"Only {existing.invoiced_by_firm.value} may change payment status of "
                f"invoice {invoice_id!r}, not {acting_firm.value}"
            )

        invoice = existing.model_copy(update={"is_paid": not existing.is_paid})
        self._invoices[invoice_id] = invoice
        logger.debug("Invoice %s isPaid -> %s", invoice_id, invoice.is_paid)
        self._persist(invoice)
        return invoice

    def remove(self, invoice_id: str) -> None:
        """Удаление по id; неизвестный id — no-op."""
        if self._invoices.pop(invoice_id, None) is None:
            return

        logger.debug("Invoice %s removed", invoice_id)
        try:
            self._store.delete(self._collection, invoice_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Invoice {invoice_id!r} removed in memory but not in storage: {e}",
                collection=self._collection,
                record_id=invoice_id,
            ) from e

    def clear(self) -> None:
        """Удаление всех счетов (in-memory и в store)."""
        invoice_ids = list(self._invoices)
        self._invoices.clear()
        logger.info("Invoice repository reset (%d invoices removed)", len(invoice_ids))

        for invoice_id in invoice_ids:
            try:
                self._store.delete(self._collection, invoice_id)
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(
                    f"Reset incomplete in storage at invoice {invoice_id!r}: {e}",
                    collection=self._collection,
                    record_id=invoice_id,
                ) from e

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _validate(self, wire: Mapping[str, Any]) -> Invoice:
        try:
            return Invoice.from_record(dict(wire))
        except ValidationError as e:
            raise InvalidInvoiceError(
                f"Invalid invoice: {_describe_validation_error(e)}",
                errors=e.errors(include_context=False),
            ) from e

    def _persist(self, invoice: Invoice) -> None:
        try:
            self._store.put(self._collection, invoice.id, invoice.to_record())
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Invoice {invoice.id!r} changed in memory but not persisted: {e}",
                collection=self._collection,
                record_id=invoice.id,
            ) from e

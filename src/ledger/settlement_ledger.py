"""Settlement Ledger — идемпотентное состояние урегулирования кварталов.

Scope записи:
- (quarterKey, settledBy) — весь квартал с точки зрения одной фирмы
- (quarterKey, settledBy, counterparty) — пара фирм, опционально с batch invoiceIds

Правила:
- на scope НЕ БОЛЕЕ ОДНОЙ effective записи; settle сначала удаляет прежние
  записи scope (включая legacy дубликаты с произвольными id), затем пишет новую
- unsettle удаляет запись, а не переключает флаг
- settle/unsettle НЕ требуют согласия контрагента (per-viewpoint модель)
- in-memory состояние меняется первым, затем backing store (PersistenceError
  означает "изменение живое, но не durable")
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from pydantic import ValidationError

from src.core.contracts import SettlementRecordValidator
from src.core.domain.firm import Firm, parse_firm
from src.core.domain.period import parse_quarter_key
from src.core.domain.settlement import SettlementRecord, SettlementScope
from src.core.errors import PersistenceError
from src.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Default clock ledger'а."""
    return datetime.now(timezone.utc)


class SettlementLedger:
    """Реестр settlement записей поверх RecordStore.

    Args:
        store: Backing store
        collection: Имя коллекции settlement записей
        clock: Источник settledAt (default: текущее UTC время)
        autoload: Загрузить записи из store при создании
    """

    def __init__(
        self,
        store: RecordStore,
        collection: str = "settlements",
        clock: Optional[Callable[[], datetime]] = None,
        autoload: bool = True,
    ):
        self._store = store
        self._collection = collection
        self._clock = clock or utc_now
        self._contract = SettlementRecordValidator()
        self._records: Dict[SettlementScope, SettlementRecord] = {}

        if autoload:
            self.load()

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self) -> int:
        """(Пере)загрузка записей из store.

        Невалидные записи и записи с isSettled=false отбрасываются; legacy
        дубликаты одного scope схлопываются до самой свежей по settledAt.

        Returns:
            Количество effective записей
        """
        try:
            raw_records = self._store.get_all(self._collection)
        except Exception:
            logger.error(
                "Failed to read collection %r, starting with no settlements",
                self._collection,
                exc_info=True,
            )
            raw_records = []

        records: Dict[SettlementScope, SettlementRecord] = {}
        for raw in raw_records:
            if not self._contract.is_valid(raw):
                logger.warning(
                    "Dropping corrupt settlement record: %s", self._contract.describe_errors(raw)
                )
                continue
            try:
                record = SettlementRecord.from_record(raw)
            except ValidationError as e:
                logger.warning("Dropping invalid settlement record: %s", e)
                continue

            if not record.is_settled:
                continue

            current = records.get(record.scope)
            if current is not None:
                logger.warning(
                    "Duplicate settlement records for %s, keeping the most recent",
                    record.record_id,
                )
                if current.settled_at >= record.settled_at:
                    continue
            records[record.scope] = record

        self._records = records
        return len(records)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(
        self, quarter_key: str, firm: Firm, counterparty: Optional[Firm] = None
    ) -> Optional[SettlementRecord]:
        """Effective запись scope или None."""
        return self._records.get(self._scope(quarter_key, firm, counterparty))

    def is_settled(
        self, quarter_key: str, firm: Firm, counterparty: Optional[Firm] = None
    ) -> bool:
        """True iff для ровно этого scope есть effective запись с isSettled."""
        record = self.get(quarter_key, firm, counterparty)
        return record is not None and record.is_settled

    def is_pair_settled(self, quarter_key: str, firm: Firm, counterparty: Firm) -> bool:
        """Пара урегулирована: либо весь квартал, либо именно эта пара."""
        return self.is_settled(quarter_key, firm) or self.is_settled(
            quarter_key, firm, counterparty
        )

    def settled_invoice_ids(
        self, quarter_key: str, firm: Firm, counterparty: Optional[Firm] = None
    ) -> FrozenSet[str]:
        """Счета, покрытые batch записями фирмы в квартале.

        counterparty=None — объединение по всем scope фирмы в этом квартале.
        """
        firm = parse_firm(firm)
        if counterparty is not None:
            record = self.get(quarter_key, firm, counterparty)
            return frozenset(record.invoice_ids) if record is not None else frozenset()

        ids: set = set()
        for record in self._records.values():
            if record.quarter_key == quarter_key and record.settled_by == firm:
                ids.update(record.invoice_ids)
        return frozenset(ids)

    def batch_for_invoice(
        self, quarter_key: str, firm: Firm, counterparty: Optional[Firm], invoice_id: str
    ) -> Optional[str]:
        """Id batch записи, покрывающей счёт, или None.

        Сначала запись пары (если counterparty задан), затем quarter-wide запись.
        """
        scopes = [None] if counterparty is None else [counterparty, None]
        for scope_counterparty in scopes:
            record = self.get(quarter_key, firm, scope_counterparty)
            if record is not None and record.covers_invoice(invoice_id):
                return record.record_id
        return None

    def records(self) -> List[SettlementRecord]:
        """Все effective записи (по quarter key, затем по id)."""
        return sorted(self._records.values(), key=lambda r: (r.quarter_key, r.record_id))

    def records_for_quarter(self, quarter_key: str) -> List[SettlementRecord]:
        return [r for r in self.records() if r.quarter_key == quarter_key]

    def __len__(self) -> int:
        return len(self._records)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def settle(
        self,
        quarter_key: str,
        firm: Firm,
        counterparty: Optional[Firm] = None,
        invoice_ids: Iterable[str] = (),
    ) -> SettlementRecord:
        """Отметить scope урегулированным.

        Идемпотентно: повторный вызов оставляет ровно одну запись, settledAt —
        момент последнего вызова.

        Raises:
            ValueError: Некорректный quarter key, firm или counterparty == firm
            PersistenceError: Store не принял изменение (состояние уже в памяти)
        """
        scope = self._scope(quarter_key, firm, counterparty)
        record = SettlementRecord(
            quarter_key=scope.quarter_key,
            settled_by=scope.settled_by,
            settled_at=self._clock(),
            counterparty=scope.counterparty,
            invoice_ids=tuple(invoice_ids),
        )

        self._records[scope] = record
        logger.info(
            "Settled %s (%d invoices) at %s",
            record.record_id,
            len(record.invoice_ids),
            record.settled_at.isoformat(),
        )

        try:
            for stale_id in self._stored_ids(scope) - {scope.record_id}:
                self._store.delete(self._collection, stale_id)
            self._store.put(self._collection, scope.record_id, record.to_record())
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Settlement {scope.record_id!r} is live but not persisted: {e}",
                collection=self._collection,
                record_id=scope.record_id,
            ) from e

        return record

    def unsettle(
        self, quarter_key: str, firm: Firm, counterparty: Optional[Firm] = None
    ) -> bool:
        """Снять отметку scope.

        Returns:
            True если запись была; False — no-op (scope уже не урегулирован)

        Raises:
            ValueError: Некорректный quarter key или firm
            PersistenceError: Store не принял удаление (в памяти запись уже снята)
        """
        scope = self._scope(quarter_key, firm, counterparty)
        if self._records.pop(scope, None) is None:
            return False

        logger.info("Unsettled %s", scope.record_id)

        try:
            for stored_id in self._stored_ids(scope):
                self._store.delete(self._collection, stored_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Settlement {scope.record_id!r} removed in memory but not in storage: {e}",
                collection=self._collection,
                record_id=scope.record_id,
            ) from e

        return True

    def clear(self) -> None:
        """Удаление всех settlement записей (in-memory и в store)."""
        scopes = list(self._records)
        self._records.clear()
        logger.info("Settlement ledger reset (%d records removed)", len(scopes))

        try:
            stored_ids = {scope.record_id for scope in scopes}
            for raw in self._store.get_all(self._collection):
                if isinstance(raw, dict) and isinstance(raw.get("id"), str):
                    stored_ids.add(raw["id"])
            for stored_id in sorted(stored_ids):
                self._store.delete(self._collection, stored_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Settlement reset incomplete in storage: {e}", collection=self._collection
            ) from e

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _scope(
        quarter_key: str, firm: Firm, counterparty: Optional[Firm]
    ) -> SettlementScope:
        parse_quarter_key(quarter_key)
        firm = parse_firm(firm)
        if counterparty is not None:
            counterparty = parse_firm(counterparty)
            if counterparty == firm:
                raise ValueError(f"Firm {firm.value} cannot settle with itself")
        return SettlementScope(quarter_key, firm, counterparty)

    def _stored_ids(self, scope: SettlementScope) -> set:
        """Id всех записей store для scope (derived id + legacy дубликаты)."""
        ids = {scope.record_id}
        expected_counterparty = scope.counterparty.value if scope.counterparty else None
        matches = self._store.query(
            self._collection,
            {"quarterKey": scope.quarter_key, "settledBy": scope.settled_by.value},
        )
        for raw in matches:
            if raw.get("counterparty") != expected_counterparty:
                continue
            if isinstance(raw.get("id"), str):
                ids.add(raw["id"])
        return ids

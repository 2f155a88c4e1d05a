"""
Period Selection — последний просмотренный пользователем квартал

Это preference, а не business data: хранится одной записью в коллекции
preferences. Отсутствующее или corrupt значение -> текущий квартал.
"""

import logging
from datetime import date

from src.core.contracts import PeriodSelectionValidator
from src.core.domain.period import Period, current_quarter, quarter_key
from src.core.errors import PersistenceError
from src.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


class PeriodSelection:
    """
    Выбранный (year, quarter) с сохранением в RecordStore.

    Args:
        store: Backing store
        collection: Коллекция preferences
        record_id: Id записи выбора
        today: Дата отсчёта для default периода (None — системная дата)
    """

    def __init__(
        self,
        store: RecordStore,
        collection: str = "preferences",
        record_id: str = "selected_period",
        today: date | None = None,
    ):
        self._store = store
        self._collection = collection
        self._record_id = record_id
        self._today = today
        self._contract = PeriodSelectionValidator()
        self._period = self._default()
        self.load()

    @property
    def period(self) -> Period:
        return self._period

    @property
    def key(self) -> str:
        return self._period.key

    def load(self) -> Period:
        """Чтение сохранённого выбора; при ошибке — default."""
        try:
            matches = self._store.query(self._collection, {"id": self._record_id})
        except Exception:
            logger.error("Failed to read period selection, using current quarter", exc_info=True)
            matches = []

        self._period = self._default()
        if not matches:
            return self._period

        raw = matches[-1]
        if not self._contract.is_valid(raw):
            logger.warning(
                "Ignoring corrupt period selection: %s", self._contract.describe_errors(raw)
            )
            return self._period

        self._period = Period(year=raw["year"], quarter=raw["quarter"])
        return self._period

    def select(self, year: int, quarter: int) -> Period:
        """
        Выбор квартала.

        Raises:
            ValueError: quarter вне 1..4 или year вне 1..9999
            PersistenceError: Store не принял запись (выбор уже применён)
        """
        quarter_key(year, quarter)
        period = Period(year=year, quarter=quarter)
        self._period = period
        self._persist(period)
        return period

    def step_forward(self) -> Period:
        nxt = self._period.next()
        return self.select(nxt.year, nxt.quarter)

    def step_back(self) -> Period:
        prev = self._period.previous()
        return self.select(prev.year, prev.quarter)

    def reset(self) -> Period:
        """Возврат к текущему кварталу."""
        default = self._default()
        return self.select(default.year, default.quarter)

    def _default(self) -> Period:
        year, quarter = current_quarter(self._today)
        return Period(year=year, quarter=quarter)

    def _persist(self, period: Period) -> None:
        record = {"id": self._record_id, "year": period.year, "quarter": period.quarter}
        try:
            self._store.put(self._collection, self._record_id, record)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Period selection {period.key} is live but not persisted: {e}",
                collection=self._collection,
                record_id=self._record_id,
            ) from e

"""
Reconciliation Engine — явная сборка компонентов для одной сессии

Engine владеет одним repository, одним ledger'ом и одним выбором периода,
построенными поверх одного RecordStore. Никакого глобального состояния:
всё, что нужно presentation коду, передаётся ссылкой на engine.

viewpoint — фирма текущего пользователя (граница identity provider):
один непрозрачный Firm на сессию.
"""

import logging
from datetime import date, datetime
from typing import Callable

from src.aggregation.quarterly import (
    QuarterSummary,
    aggregate_quarters,
    group_by_settlement,
    summary_for_quarter,
)
from src.aggregation.yearly import YearlyStats, available_years, yearly_statistics
from src.core.domain.commission import CommissionObligation
from src.core.domain.firm import Firm, parse_firm
from src.core.domain.invoice import Invoice
from src.core.domain.period import parse_quarter_key
from src.core.domain.settlement import SettlementRecord
from src.core.math.commission_calculator import commissions_for_all
from src.engine.config import EngineConfig
from src.engine.period_selection import PeriodSelection
from src.ledger.settlement_ledger import SettlementLedger
from src.repository.invoice_repository import InvoiceRepository, InvoiceStatusFilter
from src.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Facade над repository + ledger + aggregation для одной viewpoint фирмы.

    Args:
        store: Backing store (общий для всех коллекций)
        viewpoint: Фирма текущей сессии
        config: Конфигурация (default: EngineConfig())
        clock: Источник settledAt для ledger'а
        today: Дата отсчёта для default периода и окна годов
    """

    def __init__(
        self,
        store: RecordStore,
        viewpoint: Firm | str,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        today: date | None = None,
    ):
        self.config = config or EngineConfig()
        self.viewpoint = parse_firm(viewpoint)
        self._today = today

        self.invoices = InvoiceRepository(store, collection=self.config.invoices_collection)
        self.ledger = SettlementLedger(
            store, collection=self.config.settlements_collection, clock=clock
        )
        self.selection = PeriodSelection(
            store,
            collection=self.config.preferences_collection,
            record_id=self.config.selected_period_key,
            today=today,
        )

    # -------------------------------------------------------------------------
    # Quarterly view
    # -------------------------------------------------------------------------

    def quarter_summaries(self) -> dict[str, QuarterSummary]:
        """Итоги всех кварталов с obligations, хронологически."""
        return aggregate_quarters(self.invoices.list(), self.viewpoint, self.ledger)

    def summary(self, key: str) -> QuarterSummary:
        """Итог квартала (пустой, если obligations нет)."""
        return summary_for_quarter(self.invoices.list(), self.viewpoint, key, self.ledger)

    def selected_summary(self) -> QuarterSummary:
        return self.summary(self.selection.key)

    def selected_invoices(
        self,
        search: str = "",
        status: InvoiceStatusFilter | str = InvoiceStatusFilter.ALL,
        firm: Firm | None = None,
    ) -> list[Invoice]:
        """Счета выбранного квартала, от новых к старым."""
        period = self.selection.period
        return self.invoices.filter(period.year, period.quarter, search, status, firm)

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    def settle_quarter(self, key: str, counterparty: Firm | None = None) -> SettlementRecord:
        """
        Отметить квартал (или пару с контрагентом) урегулированным.

        Batch записи — ровно те счета, которые сейчас агрегированы в этом scope.
        Поздние правки счетов settle НЕ снимают.
        """
        summary = self.summary(key)
        invoice_ids = summary.invoice_ids_with(counterparty)
        return self.ledger.settle(key, self.viewpoint, counterparty, invoice_ids)

    def unsettle_quarter(self, key: str, counterparty: Firm | None = None) -> bool:
        return self.ledger.unsettle(key, self.viewpoint, counterparty)

    def settlement_groups(self, key: str) -> dict[str | None, list[CommissionObligation]]:
        """Obligations квартала по покрывающим batch записям (None — не покрыты)."""
        year, quarter = parse_quarter_key(key)
        in_quarter = [inv for inv in self.invoices.list() if inv.quarter() == (year, quarter)]
        return group_by_settlement(
            commissions_for_all(in_quarter, self.viewpoint), key, self.viewpoint, self.ledger
        )

    def toggle_paid(self, invoice_id: str) -> Invoice | None:
        """Смена статуса оплаты от имени viewpoint фирмы."""
        return self.invoices.toggle_paid(invoice_id, acting_firm=self.viewpoint)

    # -------------------------------------------------------------------------
    # Yearly view
    # -------------------------------------------------------------------------

    def available_years(self) -> list[int]:
        return available_years(
            self.invoices.list(),
            today=self._today,
            years_back=self.config.years_back,
            years_window=self.config.years_window,
        )

    def yearly_statistics(self) -> dict[int, YearlyStats]:
        return yearly_statistics(self.invoices.list(), years=self.available_years())

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def reload(self) -> None:
        """Перечитать все коллекции из store."""
        self.invoices.load()
        self.ledger.load()
        self.selection.load()

    def reset(self) -> None:
        """Удалить все счета и settlement записи, вернуть выбор к текущему кварталу."""
        logger.info("Resetting all data for %s session", self.viewpoint.value)
        self.invoices.clear()
        self.ledger.clear()
        self.selection.reset()

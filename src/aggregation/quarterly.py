"""
Quarterly Aggregation — obligations по кварталам и контрагентам

Один проход по коллекции счетов:
1. commission calculator с точки зрения viewpoint фирмы
2. bucket по quarter key (period resolver) и по контрагенту
3. суммы (sum_exact, полная точность) + списки invoice ids по bucket
4. статус settlement из ledger'а (весь квартал + каждая пара)

group_by_settlement раскладывает obligations квартала по batch записям ledger'а.

Округление — только на отображении (QuarterSummary.rounded_*), сами суммы
не округляются, чтобы ошибка не накапливалась по многим счетам квартала.
"""

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from src.core.domain.commission import CommissionDirection, CommissionObligation
from src.core.domain.firm import ALL_FIRMS, Firm, firm_buckets
from src.core.domain.invoice import Invoice
from src.core.domain.period import parse_quarter_key, quarter_key
from src.core.math.commission_calculator import commissions_for
from src.core.math.numerical_safeguards import EPS_MONEY, round_money, sum_exact


class SettlementStatusSource(Protocol):
    """Часть ledger'а, нужная aggregation layer."""

    def is_settled(self, quarter_key: str, firm: Firm, counterparty: Firm | None = None) -> bool:
        ...

    def is_pair_settled(self, quarter_key: str, firm: Firm, counterparty: Firm) -> bool:
        ...


class SettlementBatchSource(Protocol):
    """Часть ledger'а, нужная для группировки по batch записям."""

    def batch_for_invoice(
        self, quarter_key: str, firm: Firm, counterparty: Firm | None, invoice_id: str
    ) -> str | None:
        ...


# =============================================================================
# SUMMARY TYPES
# =============================================================================


@dataclass(frozen=True)
class CounterpartyBucket:
    """Сумма и счета одного направления с одним контрагентом."""

    counterparty: Firm
    total: float = 0.0
    invoice_ids: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.invoice_ids


@dataclass(frozen=True)
class DirectionSummary:
    """
    Одно направление (to_receive / to_pay) квартала.

    by_counterparty содержит bucket для КАЖДОЙ фирмы (fixed shape), включая
    саму viewpoint фирму — её bucket всегда пуст.
    """

    direction: CommissionDirection
    total: float
    invoice_ids: tuple[str, ...]
    by_counterparty: dict[Firm, CounterpartyBucket]

    @classmethod
    def empty(cls, direction: CommissionDirection) -> "DirectionSummary":
        return cls(
            direction=direction,
            total=0.0,
            invoice_ids=(),
            by_counterparty={firm: CounterpartyBucket(counterparty=firm) for firm in ALL_FIRMS},
        )


@dataclass(frozen=True)
class QuarterSummary:
    """Итог квартала с точки зрения viewpoint фирмы."""

    year: int
    quarter: int
    viewpoint: Firm
    to_receive: DirectionSummary
    to_pay: DirectionSummary
    is_settled: bool
    pair_settled: dict[Firm, bool] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return quarter_key(self.year, self.quarter)

    @property
    def net_balance(self) -> float:
        """to_receive.total - to_pay.total (> 0 — viewpoint в плюсе)."""
        return self.to_receive.total - self.to_pay.total

    @property
    def has_obligations(self) -> bool:
        return bool(self.to_receive.invoice_ids or self.to_pay.invoice_ids)

    def invoice_ids_with(self, counterparty: Firm | None = None) -> tuple[str, ...]:
        """
        Счета квартала (оба направления), опционально только с одним контрагентом.

        Используется, чтобы settle покрывал ровно агрегированные счета.
        """
        if counterparty is None:
            ids = self.to_receive.invoice_ids + self.to_pay.invoice_ids
        else:
            ids = (
                self.to_receive.by_counterparty[counterparty].invoice_ids
                + self.to_pay.by_counterparty[counterparty].invoice_ids
            )
        return tuple(dict.fromkeys(ids))

    def rounded_totals(self, step: float = EPS_MONEY) -> dict[str, float]:
        """Суммы для отображения (округление только здесь)."""
        return {
            "to_receive": round_money(self.to_receive.total, step),
            "to_pay": round_money(self.to_pay.total, step),
            "net_balance": round_money(self.net_balance, step),
        }


# =============================================================================
# AGGREGATION
# =============================================================================


class _DirectionAccumulator:
    """Mutable накопитель одного направления (только внутри прохода)."""

    def __init__(self, direction: CommissionDirection):
        self.direction = direction
        self.amounts: dict[Firm, list[float]] = firm_buckets(list)
        self.invoice_ids: dict[Firm, list[str]] = firm_buckets(list)

    def add(self, counterparty: Firm, amount: float, invoice_id: str) -> None:
        self.amounts[counterparty].append(amount)
        self.invoice_ids[counterparty].append(invoice_id)

    def freeze(self) -> DirectionSummary:
        buckets = {
            firm: CounterpartyBucket(
                counterparty=firm,
                total=sum_exact(self.amounts[firm]),
                invoice_ids=tuple(self.invoice_ids[firm]),
            )
            for firm in ALL_FIRMS
        }
        all_amounts = [amount for firm in ALL_FIRMS for amount in self.amounts[firm]]
        all_ids = tuple(invoice_id for firm in ALL_FIRMS for invoice_id in self.invoice_ids[firm])
        return DirectionSummary(
            direction=self.direction,
            total=sum_exact(all_amounts),
            invoice_ids=all_ids,
            by_counterparty=buckets,
        )


def _settlement_flags(
    ledger: SettlementStatusSource | None, key: str, viewpoint: Firm
) -> tuple[bool, dict[Firm, bool]]:
    if ledger is None:
        return False, {firm: False for firm in ALL_FIRMS if firm != viewpoint}
    pair_settled = {
        firm: ledger.is_pair_settled(key, viewpoint, firm) for firm in ALL_FIRMS if firm != viewpoint
    }
    return ledger.is_settled(key, viewpoint), pair_settled


def aggregate_quarters(
    invoices: Iterable[Invoice],
    viewpoint: Firm,
    ledger: SettlementStatusSource | None = None,
) -> dict[str, QuarterSummary]:
    """
    Итоги по всем кварталам, в которых у viewpoint есть obligations.

    Args:
        invoices: Коллекция счетов (обходится ровно один раз)
        viewpoint: Фирма, с чьей точки зрения считаем
        ledger: Источник settlement статуса (None — всё не урегулировано)

    Returns:
        {quarter_key: QuarterSummary} в хронологическом порядке
    """
    accumulators: dict[tuple[int, int], dict[CommissionDirection, _DirectionAccumulator]] = {}

    for invoice in invoices:
        obligations = commissions_for(invoice, viewpoint)
        if not obligations:
            continue

        period = invoice.quarter()
        per_direction = accumulators.get(period)
        if per_direction is None:
            per_direction = {d: _DirectionAccumulator(d) for d in CommissionDirection}
            accumulators[period] = per_direction

        for obligation in obligations:
            per_direction[obligation.direction].add(
                obligation.counterparty, obligation.amount, obligation.invoice_id
            )

    summaries: dict[str, QuarterSummary] = {}
    for (year, quarter) in sorted(accumulators):
        key = quarter_key(year, quarter)
        per_direction = accumulators[(year, quarter)]
        is_settled, pair_settled = _settlement_flags(ledger, key, viewpoint)
        summaries[key] = QuarterSummary(
            year=year,
            quarter=quarter,
            viewpoint=viewpoint,
            to_receive=per_direction[CommissionDirection.TO_RECEIVE].freeze(),
            to_pay=per_direction[CommissionDirection.TO_PAY].freeze(),
            is_settled=is_settled,
            pair_settled=pair_settled,
        )

    return summaries


def summary_for_quarter(
    invoices: Iterable[Invoice],
    viewpoint: Firm,
    key: str,
    ledger: SettlementStatusSource | None = None,
) -> QuarterSummary:
    """
    Итог одного квартала; квартал без obligations -> пустой итог.

    Raises:
        ValueError: Некорректный quarter key
    """
    year, quarter = parse_quarter_key(key)
    summaries = aggregate_quarters(invoices, viewpoint, ledger)
    if key in summaries:
        return summaries[key]

    is_settled, pair_settled = _settlement_flags(ledger, key, viewpoint)
    return QuarterSummary(
        year=year,
        quarter=quarter,
        viewpoint=viewpoint,
        to_receive=DirectionSummary.empty(CommissionDirection.TO_RECEIVE),
        to_pay=DirectionSummary.empty(CommissionDirection.TO_PAY),
        is_settled=is_settled,
        pair_settled=pair_settled,
    )


def group_by_settlement(
    obligations: Iterable[CommissionObligation],
    key: str,
    viewpoint: Firm,
    ledger: SettlementBatchSource,
) -> dict[str | None, list[CommissionObligation]]:
    """
    Obligations квартала, сгруппированные по покрывающей batch записи.

    Ключ группы — record id batch записи viewpoint фирмы (сначала пары с
    контрагентом, затем всего квартала); None — счёт не покрыт ни одной записью.
    Порядок obligations внутри группы сохраняется.

    Raises:
        ValueError: Некорректный quarter key
    """
    parse_quarter_key(key)
    groups: dict[str | None, list[CommissionObligation]] = {}
    for obligation in obligations:
        batch = ledger.batch_for_invoice(
            key, viewpoint, obligation.counterparty, obligation.invoice_id
        )
        groups.setdefault(batch, []).append(obligation)
    return groups

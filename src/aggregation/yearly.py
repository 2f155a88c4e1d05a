"""Yearly statistics и список доступных годов."""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from src.core.domain.invoice import Invoice
from src.core.domain.period import year_over_year_growth
from src.core.math.numerical_safeguards import sum_exact


@dataclass(frozen=True)
class YearlyStats:
    """Статистика года по всем счетам (оплаченным и нет).

    - total_revenue: сумма amount
    - total_commissions: сумма commission_amount()
    - year_over_year_growth: рост выручки к предыдущему году, % (0 если выручки не было)
    """
    year: int
    total_revenue: float
    total_commissions: float
    invoice_count: int
    year_over_year_growth: float


def yearly_statistics(
    invoices: Iterable[Invoice], years: Optional[Iterable[int]] = None
) -> dict[int, YearlyStats]:
    """Статистика по годам за один проход по счетам.

    Args:
        invoices: Коллекция счетов
        years: Дополнительные годы, для которых нужна (нулевая) статистика

    Returns:
        {year: YearlyStats}, от новых годов к старым
    """
    revenue: dict[int, list[float]] = {}
    commissions: dict[int, list[float]] = {}

    for invoice in invoices:
        year = invoice.issue_date.year
        revenue.setdefault(year, []).append(invoice.amount)
        commissions.setdefault(year, []).append(invoice.commission_amount())

    all_years = set(revenue) | set(years or ())
    totals = {year: sum_exact(amounts) for year, amounts in revenue.items()}

    stats: dict[int, YearlyStats] = {}
    for year in sorted(all_years, reverse=True):
        total = totals.get(year, 0.0)
        stats[year] = YearlyStats(
            year=year,
            total_revenue=total,
            total_commissions=sum_exact(commissions.get(year, ())),
            invoice_count=len(revenue.get(year, ())),
            year_over_year_growth=year_over_year_growth(total, totals.get(year - 1, 0.0)),
        )
    return stats


def available_years(
    invoices: Iterable[Invoice],
    today: Optional[date] = None,
    years_back: int = 5,
    years_window: int = 10,
) -> list[int]:
    """Годы для навигации: годы счетов + окно вокруг текущего года.

    Окно: [current - years_back, current - years_back + years_window - 1].

    Examples:
        >>> available_years([], today=date(2024, 6, 1))[:3]
        [2028, 2027, 2026]
    """
    current_year = (today or date.today()).year
    first = current_year - years_back
    years = set(range(first, first + years_window))
    years.update(invoice.issue_date.year for invoice in invoices)
    return sorted(years, reverse=True)

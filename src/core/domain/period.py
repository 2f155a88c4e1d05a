"""
Period Resolver — календарная арифметика кварталов

Чистые функции без side effects:
- date -> (year, quarter), quarter = floor(month0 / 3) + 1 (month0 — месяц 0..11)
- проверка принадлежности даты кварталу (обе границы включены)
- канонический quarter key "YYYY-Q{quarter}" (год дополняется нулями до 4 цифр) и его разбор
- границы квартала, навигация вперёд/назад с переходом года
- year-over-year рост в процентах

Важно: используются ТОЛЬКО календарные поля переданной даты. Ни одна функция
не обращается к "сейчас", кроме current_quarter() без аргумента.
"""

import calendar
import re
from datetime import date, datetime
from typing import Final

from pydantic import BaseModel, Field

from src.core.math.numerical_safeguards import safe_divide

# =============================================================================
# CONSTANTS
# =============================================================================

QUARTERS_PER_YEAR: Final[int] = 4
MONTHS_PER_QUARTER: Final[int] = 3

_QUARTER_KEY_RE: Final[re.Pattern[str]] = re.compile(r"^(\d{4})-Q([1-4])$")

QUARTER_KEY_PATTERN: Final[str] = _QUARTER_KEY_RE.pattern


# =============================================================================
# PERIOD MODEL
# =============================================================================


class Period(BaseModel):
    """
    Календарный квартал (year, quarter).

    Immutable модель (frozen=True). Порядок сравнения — хронологический.
    """

    year: int = Field(..., ge=1, le=9999, description="Календарный год")
    quarter: int = Field(..., ge=1, le=4, description="Квартал 1..4")

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        """Канонический quarter key, например '2024-Q2'."""
        return quarter_key(self.year, self.quarter)

    def as_tuple(self) -> tuple[int, int]:
        return (self.year, self.quarter)

    def next(self) -> "Period":
        year, quarter = next_quarter(self.year, self.quarter)
        return Period(year=year, quarter=quarter)

    def previous(self) -> "Period":
        year, quarter = previous_quarter(self.year, self.quarter)
        return Period(year=year, quarter=quarter)

    def __lt__(self, other: "Period") -> bool:
        return self.as_tuple() < other.as_tuple()

    @classmethod
    def from_key(cls, key: str) -> "Period":
        year, quarter = parse_quarter_key(key)
        return cls(year=year, quarter=quarter)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def _validate_quarter(quarter: int) -> None:
    if isinstance(quarter, bool) or not isinstance(quarter, int):
        raise ValueError(f"quarter must be an integer, got {quarter!r}")
    if not 1 <= quarter <= QUARTERS_PER_YEAR:
        raise ValueError(f"quarter must be in [1, 4], got {quarter}")


def _calendar_date(value: date) -> date:
    # datetime является подклассом date, берём календарные поля как есть, без tz-конверсии
    if isinstance(value, datetime):
        return value.date()
    return value


# =============================================================================
# QUARTER ARITHMETIC
# =============================================================================


def quarter_of(value: date) -> tuple[int, int]:
    """
    Квартал, которому принадлежит дата.

    Args:
        value: Календарная дата (datetime допускается, используется его дата)

    Returns:
        (year, quarter), quarter в 1..4

    Examples:
        >>> quarter_of(date(2024, 3, 31))
        (2024, 1)
        >>> quarter_of(date(2024, 4, 1))
        (2024, 2)
    """
    d = _calendar_date(value)
    month0 = d.month - 1
    return (d.year, month0 // MONTHS_PER_QUARTER + 1)


def is_in_quarter(value: date, year: int, quarter: int) -> bool:
    """
    Принадлежит ли дата кварталу (year, quarter).

    True iff год совпадает и month0 в [(quarter-1)*3, (quarter-1)*3 + 2].
    Первый и последний день квартала входят в квартал.
    """
    _validate_quarter(quarter)
    d = _calendar_date(value)
    first_month0 = (quarter - 1) * MONTHS_PER_QUARTER
    month0 = d.month - 1
    return d.year == year and first_month0 <= month0 <= first_month0 + 2


def quarter_key(year: int, quarter: int) -> str:
    """
    Канонический ключ квартала.

    Examples:
        >>> quarter_key(2024, 2)
        '2024-Q2'
        >>> quarter_key(999, 2)
        '0999-Q2'
    """
    _validate_quarter(quarter)
    return f"{year:04d}-Q{quarter}"


def parse_quarter_key(key: str) -> tuple[int, int]:
    """
    Разбор ключа "YYYY-Q{quarter}".

    Raises:
        ValueError: Если ключ не в каноническом формате
    """
    match = _QUARTER_KEY_RE.match(key) if isinstance(key, str) else None
    if match is None:
        raise ValueError(f"Malformed quarter key {key!r}, expected 'YYYY-Q[1-4]'")
    return (int(match.group(1)), int(match.group(2)))


def quarter_key_of(value: date) -> str:
    """Quarter key для даты (composition quarter_of + quarter_key)."""
    return quarter_key(*quarter_of(value))


def quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    """
    Первый и последний календарный день квартала (оба включительно).

    Examples:
        >>> quarter_bounds(2024, 1)
        (datetime.date(2024, 1, 1), datetime.date(2024, 3, 31))
    """
    _validate_quarter(quarter)
    first_month = (quarter - 1) * MONTHS_PER_QUARTER + 1
    last_month = first_month + 2
    last_day = calendar.monthrange(year, last_month)[1]
    return (date(year, first_month, 1), date(year, last_month, last_day))


def next_quarter(year: int, quarter: int) -> tuple[int, int]:
    """Следующий квартал (Q4 -> Q1 следующего года)."""
    _validate_quarter(quarter)
    if quarter == QUARTERS_PER_YEAR:
        return (year + 1, 1)
    return (year, quarter + 1)


def previous_quarter(year: int, quarter: int) -> tuple[int, int]:
    """Предыдущий квартал (Q1 -> Q4 предыдущего года)."""
    _validate_quarter(quarter)
    if quarter == 1:
        return (year - 1, QUARTERS_PER_YEAR)
    return (year, quarter - 1)


def quarters_of_year(year: int) -> list[str]:
    """Quarter keys года по порядку."""
    return [quarter_key(year, q) for q in range(1, QUARTERS_PER_YEAR + 1)]


def current_quarter(today: date | None = None) -> tuple[int, int]:
    """
    Текущий квартал.

    Args:
        today: Дата отсчёта; None — локальная системная дата
    """
    return quarter_of(today if today is not None else date.today())


# =============================================================================
# YEAR-OVER-YEAR
# =============================================================================


def year_over_year_growth(current: float, previous: float) -> float:
    """
    Рост год к году в процентах.

    Returns:
        (current - previous) / previous * 100; 0.0 если previous == 0

    Examples:
        >>> year_over_year_growth(150.0, 100.0)
        50.0
        >>> year_over_year_growth(100.0, 0.0)
        0.0
    """
    return safe_divide(current - previous, previous, fallback=0.0) * 100.0

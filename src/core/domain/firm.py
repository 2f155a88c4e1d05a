"""
Firm — закрытое перечисление фирм-партнёров

Ровно три кооперирующиеся фирмы, известные заранее. Firm — value type,
а не свободная строка: любое значение вне перечисления невалидно.

Per-firm buckets строятся через firm_buckets(): словарь всегда содержит
запись для КАЖДОЙ фирмы, bucket никогда не появляется "по первой записи".
"""

from enum import Enum
from typing import Callable, Final, TypeVar

T = TypeVar("T")


# =============================================================================
# ENUMS
# =============================================================================


class Firm(str, Enum):
    """Фирма-партнёр (wire values чувствительны к регистру)"""

    SKALLARS = "SKALLARS"
    MKMS = "MKMs"
    CONTAX = "Contax"


ALL_FIRMS: Final[tuple[Firm, ...]] = tuple(Firm)


# =============================================================================
# HELPERS
# =============================================================================


def firm_buckets(factory: Callable[[], T]) -> dict[Firm, T]:
    """
    Fixed-shape словарь по всем фирмам.

    Args:
        factory: Фабрика пустого bucket (вызывается один раз на фирму)

    Returns:
        dict, в котором есть ключ для каждой Firm в порядке ALL_FIRMS
    """
    return {firm: factory() for firm in ALL_FIRMS}


def parse_firm(value: "Firm | str") -> Firm:
    """
    Приведение значения к Firm.

    Raises:
        ValueError: Если значение не входит в перечисление
    """
    if isinstance(value, Firm):
        return value
    try:
        return Firm(value)
    except ValueError:
        raise ValueError(
            f"Unknown firm {value!r}, expected one of {[f.value for f in ALL_FIRMS]}"
        ) from None

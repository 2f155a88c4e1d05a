"""
Numerical Safeguards — Safe Math Primitives для денежных сумм

Модуль обеспечивает численную устойчивость операций над суммами комиссий:
- NaN/Inf проверки и санитизация (невалидные значения не пропагируют)
- Безопасное деление (year-over-year рост при нулевой базе)
- Точное суммирование (math.fsum) без накопления ошибки округления
- Округление ТОЛЬКО для отображения (шаг EPS_MONEY)
- Валидация параметров с понятными сообщениями об ошибках

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (возвращается fallback)
2. Агрегация хранит полную точность; округление — только на границе показа
3. Все операции детерминированы и воспроизводимы
"""

import math
from typing import Final, Iterable

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Шаг округления денежных сумм для отображения (центы)
EPS_MONEY: Final[float] = 0.01

# Epsilon для общих вычислений
EPS_CALC: Final[float] = 1e-12

# Толерантности сравнения float (относительная / абсолютная)
EPS_FLOAT_COMPARE_REL: Final[float] = 1e-9
EPS_FLOAT_COMPARE_ABS: Final[float] = 1e-9


# =============================================================================
# NaN/Inf ПРОВЕРКИ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """
    Проверка, является ли значение конечным числом.

    bool намеренно не считается числом: True/False в поле суммы —
    это ошибка данных, а не 1.0/0.0.

    Returns:
        True если value — int/float, не NaN и не Inf
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def sanitize_float(value: float, fallback: float = 0.0) -> float:
    """
    Замена NaN/Inf на fallback.

    Examples:
        >>> sanitize_float(10.0)
        10.0
        >>> sanitize_float(float('nan'))
        0.0
    """
    if is_valid_float(value):
        return float(value)
    return fallback


# =============================================================================
# БЕЗОПАСНОЕ ДЕЛЕНИЕ И СУММИРОВАНИЕ
# =============================================================================


def safe_divide(
    numerator: float,
    denominator: float,
    fallback: float = 0.0,
    eps: float = EPS_CALC,
) -> float:
    """
    Деление с защитой от нулевого знаменателя и NaN/Inf.

    Args:
        numerator: Числитель
        denominator: Знаменатель
        fallback: Результат при |denominator| < eps или невалидных входах
        eps: Порог "нулевого" знаменателя

    Returns:
        numerator / denominator или fallback

    Examples:
        >>> safe_divide(10.0, 4.0)
        2.5
        >>> safe_divide(10.0, 0.0)
        0.0
    """
    if eps <= 0:
        raise ValueError(f"eps must be positive, got {eps}")

    if not is_valid_float(numerator) or not is_valid_float(denominator):
        return fallback

    if abs(denominator) < eps:
        return fallback

    return sanitize_float(numerator / denominator, fallback=fallback)


def sum_exact(values: Iterable[float]) -> float:
    """
    Сумма без накопления ошибки округления (Shewchuk / math.fsum).

    Используется агрегацией: сотни комиссий одного квартала суммируются
    без промежуточного округления.
    """
    return math.fsum(values)


# =============================================================================
# СРАВНЕНИЯ
# =============================================================================


def is_close(
    a: float,
    b: float,
    rel_tol: float = EPS_FLOAT_COMPARE_REL,
    abs_tol: float = EPS_FLOAT_COMPARE_ABS,
) -> bool:
    """Сравнение float с учётом машинной точности (math.isclose)."""
    return math.isclose(a, b, rel_tol=rel_tol, abs_tol=abs_tol)


def is_zero(value: float, tol: float = EPS_FLOAT_COMPARE_ABS) -> bool:
    """True если |value| <= tol."""
    return abs(value) <= tol


# =============================================================================
# ОКРУГЛЕНИЕ ДЛЯ ОТОБРАЖЕНИЯ
# =============================================================================


def round_to_epsilon(value: float, eps: float) -> float:
    """
    Округление до ближайшего кратного eps (round half away from zero).

    Для шагов вида 10^-k масштабирование идёт умножением и делением на целое
    1/eps, поэтому 1.2345 -> 1.23, а не 1.2300000000000002.

    Examples:
        >>> round_to_epsilon(1.23456789, 0.01)
        1.23
        >>> round_to_epsilon(-2.5, 1.0)
        -3.0
    """
    if eps <= 0:
        raise ValueError(f"eps must be positive, got {eps}")

    inverse = 1.0 / eps
    integral_inverse = inverse >= 1.0 and is_close(inverse, round(inverse))

    ratio = value * round(inverse) if integral_inverse else value / eps
    if ratio >= 0:
        steps = math.floor(ratio + 0.5)
    else:
        steps = math.ceil(ratio - 0.5)

    if integral_inverse:
        return steps / round(inverse)
    return steps * eps


def round_money(value: float, step: float = EPS_MONEY) -> float:
    """
    Округление денежной суммы для отображения.

    НЕ использовать внутри агрегации — только на границе presentation.
    """
    return round_to_epsilon(value, step)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_finite(value: float, name: str) -> None:
    """
    Raises:
        ValueError: Если value не конечное число
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a finite number (not NaN/Inf), got {value!r}")


def validate_non_negative(value: float, name: str) -> None:
    """
    Raises:
        ValueError: Если value < 0 или NaN/Inf
    """
    validate_finite(value, name)

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_in_range(
    value: float,
    name: str,
    min_value: float | None = None,
    max_value: float | None = None,
) -> None:
    """
    Валидация, что значение в диапазоне [min_value, max_value] (границы включены).

    Raises:
        ValueError: Если value вне диапазона или NaN/Inf
    """
    validate_finite(value, name)

    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be >= {min_value}, got {value}")

    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be <= {max_value}, got {value}")

"""
Core math modules.

Numerical primitives for money amounts. The commission calculator lives in
src.core.math.commission_calculator and is imported by its full path.
"""

from src.core.math.numerical_safeguards import (
    # Epsilon constants
    EPS_CALC,
    EPS_FLOAT_COMPARE_ABS,
    EPS_FLOAT_COMPARE_REL,
    EPS_MONEY,
    # NaN/Inf
    is_valid_float,
    sanitize_float,
    # Division / summation
    safe_divide,
    sum_exact,
    # Comparisons
    is_close,
    is_zero,
    # Rounding
    round_money,
    round_to_epsilon,
    # Validation
    validate_finite,
    validate_in_range,
    validate_non_negative,
)

__all__ = [
    "EPS_CALC",
    "EPS_FLOAT_COMPARE_ABS",
    "EPS_FLOAT_COMPARE_REL",
    "EPS_MONEY",
    "is_valid_float",
    "sanitize_float",
    "safe_divide",
    "sum_exact",
    "is_close",
    "is_zero",
    "round_money",
    "round_to_epsilon",
    "validate_finite",
    "validate_in_range",
    "validate_non_negative",
]

"""Engine — конфигурация, выбор периода и facade reconciliation engine."""

from .config import EngineConfig
from .period_selection import PeriodSelection
from .reconciliation import ReconciliationEngine

__all__ = [
    "EngineConfig",
    "PeriodSelection",
    "ReconciliationEngine",
]

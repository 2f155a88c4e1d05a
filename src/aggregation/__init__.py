"""Aggregation layer — итоги по кварталам и годам."""

from .quarterly import (
    CounterpartyBucket,
    DirectionSummary,
    QuarterSummary,
    SettlementBatchSource,
    SettlementStatusSource,
    aggregate_quarters,
    group_by_settlement,
    summary_for_quarter,
)
from .yearly import YearlyStats, available_years, yearly_statistics

__all__ = [
    "CounterpartyBucket",
    "DirectionSummary",
    "QuarterSummary",
    "SettlementBatchSource",
    "SettlementStatusSource",
    "aggregate_quarters",
    "group_by_settlement",
    "summary_for_quarter",
    "YearlyStats",
    "available_years",
    "yearly_statistics",
]

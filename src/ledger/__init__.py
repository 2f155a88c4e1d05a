"""Ledger — состояние урегулирования кварталов."""

from .settlement_ledger import SettlementLedger, utc_now

__all__ = [
    "SettlementLedger",
    "utc_now",
]

"""
Contract Validation Module

Модуль для структурной валидации persisted records (JSON Schema).
"""

from .validators import (
    ContractValidator,
    InvoiceRecordValidator,
    PeriodSelectionValidator,
    SchemaLoader,
    SettlementRecordValidator,
    validate_invoice_record,
    validate_period_selection,
    validate_settlement_record,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "InvoiceRecordValidator",
    "SettlementRecordValidator",
    "PeriodSelectionValidator",
    # Functions
    "validate_invoice_record",
    "validate_settlement_record",
    "validate_period_selection",
]

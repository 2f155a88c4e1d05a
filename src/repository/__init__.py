"""Repository — каноническая коллекция счетов."""

from .invoice_repository import InvoiceRepository, InvoiceStatusFilter, LoadReport

__all__ = [
    "InvoiceRepository",
    "InvoiceStatusFilter",
    "LoadReport",
]

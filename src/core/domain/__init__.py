"""
Domain models and value objects.

Contains fundamental domain entities: Firm, Invoice, CommissionObligation,
SettlementRecord and calendar Period arithmetic.
"""

from src.core.domain.commission import CommissionDirection, CommissionObligation
from src.core.domain.firm import ALL_FIRMS, Firm, firm_buckets, parse_firm
from src.core.domain.invoice import Invoice, parse_calendar_date
from src.core.domain.period import (
    QUARTER_KEY_PATTERN,
    Period,
    current_quarter,
    is_in_quarter,
    next_quarter,
    parse_quarter_key,
    previous_quarter,
    quarter_bounds,
    quarter_key,
    quarter_key_of,
    quarter_of,
    quarters_of_year,
    year_over_year_growth,
)
from src.core.domain.settlement import SettlementRecord, SettlementScope

__all__ = [
    # Firm
    "Firm",
    "ALL_FIRMS",
    "firm_buckets",
    "parse_firm",
    # Invoice
    "Invoice",
    "parse_calendar_date",
    # Commission
    "CommissionDirection",
    "CommissionObligation",
    # Settlement
    "SettlementRecord",
    "SettlementScope",
    # Period resolver
    "Period",
    "QUARTER_KEY_PATTERN",
    "quarter_of",
    "is_in_quarter",
    "quarter_key",
    "quarter_key_of",
    "parse_quarter_key",
    "quarter_bounds",
    "next_quarter",
    "previous_quarter",
    "quarters_of_year",
    "current_quarter",
    "year_over_year_growth",
]

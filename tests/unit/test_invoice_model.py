"""
Тесты для Invoice / CommissionObligation / SettlementRecord моделей

Проверяет:
- нормализацию (trim, даты, числа, firm поля, default isPaid)
- отклонение невалидных значений (NaN/Inf, вне диапазона, неизвестная фирма)
- immutability (frozen=True)
- wire формат (camelCase) и обратное построение
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.core.domain import (
    CommissionDirection,
    CommissionObligation,
    Firm,
    Invoice,
    SettlementRecord,
    SettlementScope,
    firm_buckets,
    parse_firm,
)
from src.core.domain.invoice import parse_calendar_date


@pytest.fixture
def invoice_record():
    """Валидный persisted invoice record."""
    return {
        "id": "inv-1",
        "clientName": "Acme d.o.o.",
        "amount": 10000,
        "date": "2024-05-15",
        "commissionPercentage": 10,
        "invoicedByFirm": "MKMs",
        "referredByFirm": "SKALLARS",
        "isPaid": True,
    }


# =============================================================================
# FIRM
# =============================================================================


class TestFirm:
    """Тесты для Firm"""

    def test_wire_values(self) -> None:
        assert [f.value for f in Firm] == ["SKALLARS", "MKMs", "Contax"]

    def test_parse_firm(self) -> None:
        assert parse_firm("MKMs") is Firm.MKMS
        assert parse_firm(Firm.CONTAX) is Firm.CONTAX

    def test_parse_firm_is_case_sensitive(self) -> None:
        with pytest.raises(ValueError, match="Unknown firm"):
            parse_firm("mkms")

    def test_firm_buckets_has_every_firm(self) -> None:
        buckets = firm_buckets(list)
        assert list(buckets) == list(Firm)
        buckets[Firm.SKALLARS].append(1)
        assert buckets[Firm.MKMS] == []


# =============================================================================
# INVOICE NORMALIZATION
# =============================================================================


class TestInvoiceNormalization:
    """Тесты нормализации Invoice"""

    def test_valid_record(self, invoice_record) -> None:
        invoice = Invoice.from_record(invoice_record)
        assert invoice.client_name == "Acme d.o.o."
        assert invoice.amount == 10000.0
        assert isinstance(invoice.amount, float)
        assert invoice.issue_date == date(2024, 5, 15)
        assert invoice.invoiced_by_firm is Firm.MKMS
        assert invoice.referred_by_firm is Firm.SKALLARS
        assert invoice.is_paid is True

    def test_client_name_trimmed(self, invoice_record) -> None:
        invoice_record["clientName"] = "  Acme  "
        assert Invoice.from_record(invoice_record).client_name == "Acme"

    def test_blank_client_name_rejected(self, invoice_record) -> None:
        invoice_record["clientName"] = "   "
        with pytest.raises(ValidationError):
            Invoice.from_record(invoice_record)

    def test_missing_is_paid_defaults_to_false(self, invoice_record) -> None:
        del invoice_record["isPaid"]
        assert Invoice.from_record(invoice_record).is_paid is False

    def test_numeric_strings_coerced(self, invoice_record) -> None:
        invoice_record["amount"] = "2500.50"
        invoice_record["commissionPercentage"] = "7.5"
        invoice = Invoice.from_record(invoice_record)
        assert invoice.amount == 2500.5
        assert invoice.commission_percentage == 7.5

    def test_iso_timestamp_date(self, invoice_record) -> None:
        invoice_record["date"] = "2024-06-30T22:15:00.000Z"
        assert Invoice.from_record(invoice_record).issue_date == date(2024, 6, 30)

    def test_snake_case_input_accepted(self) -> None:
        invoice = Invoice(
            id="inv-2",
            client_name="Beta",
            amount=100.0,
            issue_date=date(2024, 1, 1),
            commission_percentage=5,
            invoiced_by_firm=Firm.CONTAX,
            referred_by_firm=Firm.MKMS,
        )
        assert invoice.quarter_key() == "2024-Q1"

    def test_blank_comment_becomes_none(self, invoice_record) -> None:
        invoice_record["comment"] = "   "
        assert Invoice.from_record(invoice_record).comment is None

    def test_unknown_fields_ignored(self, invoice_record) -> None:
        invoice_record["createdAt"] = "2024-05-15T10:00:00Z"
        assert Invoice.from_record(invoice_record).id == "inv-1"


# =============================================================================
# INVOICE VALIDATION
# =============================================================================


class TestInvoiceValidation:
    """Тесты отклонения невалидных Invoice"""

    @pytest.mark.parametrize("amount", [-1, float("nan"), float("inf"), "abc", True])
    def test_invalid_amount(self, invoice_record, amount) -> None:
        invoice_record["amount"] = amount
        with pytest.raises(ValidationError):
            Invoice.from_record(invoice_record)

    @pytest.mark.parametrize("pct", [-0.1, 100.1, float("nan")])
    def test_invalid_commission_percentage(self, invoice_record, pct) -> None:
        invoice_record["commissionPercentage"] = pct
        with pytest.raises(ValidationError):
            Invoice.from_record(invoice_record)

    @pytest.mark.parametrize("pct", [0, 100])
    def test_commission_percentage_bounds_inclusive(self, invoice_record, pct) -> None:
        invoice_record["commissionPercentage"] = pct
        assert Invoice.from_record(invoice_record).commission_percentage == pct

    @pytest.mark.parametrize("value", ["2024-13-01", "2024-02-30", "yesterday", "", 20240515])
    def test_invalid_date(self, invoice_record, value) -> None:
        invoice_record["date"] = value
        with pytest.raises(ValidationError):
            Invoice.from_record(invoice_record)

    def test_unknown_firm(self, invoice_record) -> None:
        invoice_record["referredByFirm"] = "Other LLP"
        with pytest.raises(ValidationError):
            Invoice.from_record(invoice_record)

    @pytest.mark.parametrize("field", ["id", "clientName", "amount", "date", "invoicedByFirm"])
    def test_missing_required_field(self, invoice_record, field) -> None:
        del invoice_record[field]
        with pytest.raises(ValidationError):
            Invoice.from_record(invoice_record)

    def test_frozen(self, invoice_record) -> None:
        invoice = Invoice.from_record(invoice_record)
        with pytest.raises(ValidationError):
            invoice.is_paid = False  # type: ignore[misc]


# =============================================================================
# DERIVED VALUES & WIRE FORMAT
# =============================================================================


class TestInvoiceDerived:
    """Тесты производных значений и сериализации"""

    def test_commission_amount_full_precision(self, invoice_record) -> None:
        invoice_record["amount"] = 333.33
        invoice_record["commissionPercentage"] = 7
        invoice = Invoice.from_record(invoice_record)
        assert invoice.commission_amount() == 333.33 * 7 / 100

    def test_self_referred(self, invoice_record) -> None:
        invoice_record["referredByFirm"] = "MKMs"
        invoice = Invoice.from_record(invoice_record)
        assert invoice.is_self_referred()

    def test_involves(self, invoice_record) -> None:
        invoice = Invoice.from_record(invoice_record)
        assert invoice.involves(Firm.MKMS)
        assert invoice.involves(Firm.SKALLARS)
        assert not invoice.involves(Firm.CONTAX)

    def test_to_record_is_camel_case(self, invoice_record) -> None:
        record = Invoice.from_record(invoice_record).to_record()
        assert record == {
            "id": "inv-1",
            "clientName": "Acme d.o.o.",
            "amount": 10000.0,
            "date": "2024-05-15",
            "commissionPercentage": 10.0,
            "invoicedByFirm": "MKMs",
            "referredByFirm": "SKALLARS",
            "isPaid": True,
        }

    def test_record_round_trip(self, invoice_record) -> None:
        invoice_record["comment"] = "retainer"
        invoice = Invoice.from_record(invoice_record)
        assert Invoice.from_record(invoice.to_record()) == invoice


class TestParseCalendarDate:
    """Тесты для parse_calendar_date"""

    def test_datetime_keeps_calendar_fields(self) -> None:
        moment = datetime(2024, 12, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert parse_calendar_date(moment) == date(2024, 12, 31)

    def test_offset_timestamp(self) -> None:
        assert parse_calendar_date("2024-04-01T00:30:00+02:00") == date(2024, 4, 1)


# =============================================================================
# COMMISSION OBLIGATION & SETTLEMENT RECORD
# =============================================================================


class TestCommissionObligation:
    """Тесты для CommissionObligation"""

    def test_signed_amount(self) -> None:
        receive = CommissionObligation(
            invoice_id="a", amount=100.0, direction=CommissionDirection.TO_RECEIVE,
            counterparty=Firm.MKMS,
        )
        pay = CommissionObligation(
            invoice_id="b", amount=40.0, direction=CommissionDirection.TO_PAY,
            counterparty=Firm.CONTAX,
        )
        assert receive.signed_amount() == 100.0
        assert pay.signed_amount() == -40.0

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CommissionObligation(
                invoice_id="a", amount=-1.0, direction=CommissionDirection.TO_PAY,
                counterparty=Firm.MKMS,
            )


class TestSettlementRecord:
    """Тесты для SettlementRecord"""

    def test_record_id_derived_from_scope(self) -> None:
        assert SettlementScope("2024-Q2", Firm.SKALLARS).record_id == "2024-Q2:SKALLARS"
        assert (
            SettlementScope("2024-Q2", Firm.SKALLARS, Firm.MKMS).record_id
            == "2024-Q2:SKALLARS:MKMs"
        )

    def test_naive_timestamp_treated_as_utc(self) -> None:
        record = SettlementRecord(
            quarter_key="2024-Q2", settled_by=Firm.MKMS, settled_at=datetime(2024, 7, 1, 12, 0)
        )
        assert record.settled_at.tzinfo == timezone.utc

    def test_malformed_quarter_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SettlementRecord(
                quarter_key="2024-Q7", settled_by=Firm.MKMS, settled_at=datetime.now(timezone.utc)
            )

    def test_invoice_ids_deduplicated(self) -> None:
        record = SettlementRecord(
            quarter_key="2024-Q2",
            settled_by=Firm.MKMS,
            counterparty=Firm.CONTAX,
            settled_at=datetime(2024, 7, 1, tzinfo=timezone.utc),
            invoice_ids=("a", "b", "a"),
        )
        assert record.invoice_ids == ("a", "b")
        assert record.covers_invoice("b")

    def test_wire_round_trip(self) -> None:
        record = SettlementRecord(
            quarter_key="2024-Q2",
            settled_by=Firm.CONTAX,
            settled_at=datetime(2024, 7, 1, 9, 30, tzinfo=timezone.utc),
        )
        wire = record.to_record()
        assert wire["id"] == "2024-Q2:Contax"
        assert wire["quarterKey"] == "2024-Q2"
        assert wire["settledBy"] == "Contax"
        assert wire["isSettled"] is True
        assert SettlementRecord.from_record(wire) == record

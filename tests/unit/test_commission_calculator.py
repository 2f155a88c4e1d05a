"""
Тесты для Commission Calculator

Свойства:
- неоплаченный счёт -> пусто с любой точки зрения
- оплаченный счёт между разными фирмами -> ровно одно to_receive у реферера,
  ровно одно to_pay у выставившего, ничего у третьей фирмы
- self-referred счёт -> пусто с любой точки зрения
- сумма = amount * pct / 100 без округления
"""

import itertools
from datetime import date

import pytest

from src.core.domain import CommissionDirection, Firm, Invoice
from src.core.math.commission_calculator import commissions_for, commissions_for_all


def make_invoice(
    invoiced_by: Firm,
    referred_by: Firm,
    amount: float = 10000.0,
    pct: float = 10.0,
    is_paid: bool = True,
    invoice_id: str = "inv-1",
    issue_date: date = date(2024, 5, 15),
) -> Invoice:
    return Invoice(
        id=invoice_id,
        client_name="Client",
        amount=amount,
        commission_percentage=pct,
        issue_date=issue_date,
        invoiced_by_firm=invoiced_by,
        referred_by_firm=referred_by,
        is_paid=is_paid,
    )


FIRM_PAIRS = list(itertools.permutations(Firm, 2))


class TestUnpaidInvoices:
    """Неоплаченный счёт не порождает обязательств"""

    @pytest.mark.parametrize("invoiced_by, referred_by", FIRM_PAIRS)
    @pytest.mark.parametrize("viewpoint", list(Firm))
    def test_unpaid_is_empty(self, invoiced_by, referred_by, viewpoint) -> None:
        invoice = make_invoice(invoiced_by, referred_by, is_paid=False)
        assert commissions_for(invoice, viewpoint) == []


class TestPaidCrossFirmInvoices:
    """Оплаченный счёт между разными фирмами"""

    @pytest.mark.parametrize("invoiced_by, referred_by", FIRM_PAIRS)
    def test_referrer_receives(self, invoiced_by, referred_by) -> None:
        invoice = make_invoice(invoiced_by, referred_by)
        [obligation] = commissions_for(invoice, referred_by)
        assert obligation.direction == CommissionDirection.TO_RECEIVE
        assert obligation.counterparty == invoiced_by
        assert obligation.amount == 1000.0
        assert obligation.invoice_id == "inv-1"

    @pytest.mark.parametrize("invoiced_by, referred_by", FIRM_PAIRS)
    def test_invoicer_pays(self, invoiced_by, referred_by) -> None:
        invoice = make_invoice(invoiced_by, referred_by)
        [obligation] = commissions_for(invoice, invoiced_by)
        assert obligation.direction == CommissionDirection.TO_PAY
        assert obligation.counterparty == referred_by
        assert obligation.amount == 1000.0

    @pytest.mark.parametrize("invoiced_by, referred_by", FIRM_PAIRS)
    def test_third_firm_sees_nothing(self, invoiced_by, referred_by) -> None:
        [third] = [f for f in Firm if f not in (invoiced_by, referred_by)]
        invoice = make_invoice(invoiced_by, referred_by)
        assert commissions_for(invoice, third) == []

    def test_amount_not_rounded(self) -> None:
        invoice = make_invoice(Firm.MKMS, Firm.SKALLARS, amount=1234.567, pct=3.3)
        [obligation] = commissions_for(invoice, Firm.SKALLARS)
        assert obligation.amount == 1234.567 * 3.3 / 100

    def test_zero_percentage_yields_zero_obligation(self) -> None:
        invoice = make_invoice(Firm.MKMS, Firm.SKALLARS, pct=0)
        [obligation] = commissions_for(invoice, Firm.SKALLARS)
        assert obligation.amount == 0.0


class TestSelfReferredInvoices:
    """Фирма не должна комиссию самой себе"""

    @pytest.mark.parametrize("firm", list(Firm))
    @pytest.mark.parametrize("viewpoint", list(Firm))
    def test_self_referred_is_empty(self, firm, viewpoint) -> None:
        invoice = make_invoice(firm, firm)
        assert commissions_for(invoice, viewpoint) == []


class TestCommissionsForAll:
    """Тесты для commissions_for_all"""

    def test_preserves_invoice_order(self) -> None:
        invoices = [
            make_invoice(Firm.MKMS, Firm.SKALLARS, invoice_id="a"),
            make_invoice(Firm.MKMS, Firm.SKALLARS, invoice_id="b", is_paid=False),
            make_invoice(Firm.SKALLARS, Firm.CONTAX, invoice_id="c", amount=500.0),
        ]
        obligations = commissions_for_all(invoices, Firm.SKALLARS)
        assert [o.invoice_id for o in obligations] == ["a", "c"]
        assert [o.direction for o in obligations] == [
            CommissionDirection.TO_RECEIVE,
            CommissionDirection.TO_PAY,
        ]
        assert sum(o.signed_amount() for o in obligations) == 1000.0 - 50.0

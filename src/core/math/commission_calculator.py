"""
Commission Calculator — invoice + viewpoint firm -> 0, 1 или 2 obligations

Правила (viewpoint — фирма, с чьей точки зрения считаем):
1. Неоплаченный счёт -> пусто
2. referredBy == viewpoint != invoicedBy -> одно to_receive, контрагент invoicedBy
3. invoicedBy == viewpoint != referredBy -> одно to_pay, контрагент referredBy
4. referredBy == invoicedBy == viewpoint -> пусто (нет комиссии самому себе)
5. viewpoint не участвует в счёте -> пусто

Сумма ВСЕГДА выводится из счёта (amount * pct / 100), никогда не ищется
где-то ещё, и не округляется.

Чистые функции, без I/O.
"""

from typing import Iterable

from src.core.domain.commission import CommissionDirection, CommissionObligation
from src.core.domain.firm import Firm
from src.core.domain.invoice import Invoice


def commissions_for(invoice: Invoice, viewpoint: Firm) -> list[CommissionObligation]:
    """
    Обязательства по комиссии с одного счёта для viewpoint фирмы.

    Args:
        invoice: Валидный (нормализованный) счёт
        viewpoint: Фирма, с чьей точки зрения считаем

    Returns:
        Список obligations. Фактически 0 или 1: viewpoint на обеих сторонах
        счёта — это self-referral, который отсекается правилом 4
    """
    if not invoice.is_paid:
        return []

    if invoice.is_self_referred():
        return []

    amount = invoice.commission_amount()
    obligations: list[CommissionObligation] = []

    if invoice.referred_by_firm == viewpoint:
        obligations.append(
            CommissionObligation(
                invoice_id=invoice.id,
                amount=amount,
                direction=CommissionDirection.TO_RECEIVE,
                counterparty=invoice.invoiced_by_firm,
            )
        )

    if invoice.invoiced_by_firm == viewpoint:
        obligations.append(
            CommissionObligation(
                invoice_id=invoice.id,
                amount=amount,
                direction=CommissionDirection.TO_PAY,
                counterparty=invoice.referred_by_firm,
            )
        )

    return obligations


def commissions_for_all(
    invoices: Iterable[Invoice], viewpoint: Firm
) -> list[CommissionObligation]:
    """Obligations по всем счетам (порядок счетов сохраняется)."""
    return [obligation for invoice in invoices for obligation in commissions_for(invoice, viewpoint)]

"""
CommissionObligation — производная сумма комиссии между двумя фирмами

Obligation не хранится как отдельная запись: это единица, которую
aggregation layer группирует по кварталу и контрагенту.
Существует только для оплаченных счетов, где referredByFirm != invoicedByFirm.
"""

from enum import Enum

from pydantic import BaseModel, Field

from src.core.domain.firm import Firm

# =============================================================================
# ENUMS
# =============================================================================


class CommissionDirection(str, Enum):
    """Направление комиссии с точки зрения viewpoint фирмы"""

    TO_PAY = "to_pay"  # viewpoint выставил счёт и должен рефереру
    TO_RECEIVE = "to_receive"  # viewpoint привёл клиента и получает комиссию


# =============================================================================
# OBLIGATION MODEL
# =============================================================================


class CommissionObligation(BaseModel):
    """
    Обязательство по комиссии с одного счёта.

    Immutable модель (frozen=True). amount всегда выводится из invoice
    калькулятором и не может разойтись с исходным счётом.
    """

    invoice_id: str = Field(..., min_length=1, description="Счёт-источник")
    amount: float = Field(..., ge=0, description="Сумма комиссии (полная точность)")
    direction: CommissionDirection = Field(..., description="to_pay / to_receive")
    counterparty: Firm = Field(..., description="Вторая сторона обязательства")

    model_config = {"frozen": True}

    def signed_amount(self) -> float:
        """+amount для to_receive, -amount для to_pay (вклад в net balance)."""
        if self.direction == CommissionDirection.TO_RECEIVE:
            return self.amount
        return -self.amount

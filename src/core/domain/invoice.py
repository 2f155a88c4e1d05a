"""
Invoice — Модель счёта за одно engagement

Immutable Pydantic модель. Нормализация выполняется при КАЖДОЙ успешной
записи (add/update) и при загрузке из backing store:
- clientName обрезается по краям, пустое имя невалидно
- date приводится к календарной дате (ISO строки, date, datetime)
- amount / commissionPercentage приводятся к float, NaN/Inf запрещены
- firm поля приводятся к Firm
- isPaid приводится к bool, отсутствующий isPaid = False

Комиссия (amount * commissionPercentage / 100) вычисляется по запросу
и никогда не хранится.

Wire формат (camelCase) совпадает с persisted record; Python атрибуты — snake_case.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.core.domain.firm import Firm
from src.core.domain.period import quarter_key_of, quarter_of
from src.core.math.numerical_safeguards import validate_finite

# =============================================================================
# HELPERS
# =============================================================================


def parse_calendar_date(value: Any) -> date:
    """
    Приведение входного значения к календарной дате.

    Допускаются:
    - date / datetime (у datetime берётся дата как записана, без tz-конверсии)
    - 'YYYY-MM-DD'
    - полный ISO timestamp ('2024-05-15T10:30:00.000Z', '2024-05-15T10:30:00+02:00')

    Raises:
        ValueError: Если значение не разбирается в валидную дату
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"date must be an ISO date string, got {type(value).__name__}")

    text = value.strip()
    if not text:
        raise ValueError("date must not be empty")

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValueError(f"date {value!r} is not a valid calendar date") from None


# =============================================================================
# INVOICE MODEL
# =============================================================================


class Invoice(BaseModel):
    """
    Счёт за одно engagement между фирмами.

    Immutable модель (frozen=True): любое изменение (toggle isPaid, правка полей)
    создаёт новый экземпляр через repository, который заново валидирует результат.
    """

    # Идентификация
    id: str = Field(..., min_length=1, description="Стабильный уникальный идентификатор")
    client_name: str = Field(..., alias="clientName", description="Имя клиента")

    # Деньги
    amount: float = Field(..., ge=0, description="Сумма счёта (неотрицательная, конечная)")
    commission_percentage: float = Field(
        ...,
        ge=0,
        le=100,
        alias="commissionPercentage",
        description="Процент комиссии рефереру, [0, 100]",
    )

    # Время
    issue_date: date = Field(
        ..., alias="date", description="Дата выставления счёта (календарная)"
    )

    # Стороны
    invoiced_by_firm: Firm = Field(
        ..., alias="invoicedByFirm", description="Фирма, выставившая счёт"
    )
    referred_by_firm: Firm = Field(
        ..., alias="referredByFirm", description="Фирма, приведшая клиента"
    )

    # Статус
    is_paid: bool = Field(default=False, alias="isPaid", description="Счёт оплачен клиентом")
    comment: str | None = Field(default=None, description="Свободный комментарий")

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    @field_validator("client_name", mode="before")
    @classmethod
    def normalize_client_name(cls, v: Any) -> Any:
        """Trim; пустое после trim имя невалидно."""
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("clientName must not be empty")
        return v

    @field_validator("issue_date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> date:
        """Каноническая календарная дата."""
        return parse_calendar_date(v)

    @field_validator("amount", "commission_percentage", mode="before")
    @classmethod
    def reject_booleans(cls, v: Any) -> Any:
        """True/False не являются суммами (pydantic иначе примет их как 1/0)."""
        if isinstance(v, bool):
            raise ValueError("must be a number, got a boolean")
        return v

    @field_validator("amount", "commission_percentage")
    @classmethod
    def validate_finite_number(cls, v: float, info) -> float:
        """NaN/Inf запрещены (Inf проходит ge=0, поэтому проверка отдельная)."""
        validate_finite(v, info.field_name)
        return v

    @field_validator("comment", mode="before")
    @classmethod
    def normalize_comment(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    # -------------------------------------------------------------------------
    # Derived
    # -------------------------------------------------------------------------

    def commission_amount(self) -> float:
        """
        Сумма комиссии: amount * commissionPercentage / 100.

        Полная точность, без округления.
        """
        return self.amount * self.commission_percentage / 100

    def quarter(self) -> tuple[int, int]:
        """(year, quarter) даты счёта."""
        return quarter_of(self.issue_date)

    def quarter_key(self) -> str:
        """Quarter key даты счёта, например '2024-Q2'."""
        return quarter_key_of(self.issue_date)

    def is_self_referred(self) -> bool:
        """Фирма сама привела клиента и сама выставила счёт."""
        return self.invoiced_by_firm == self.referred_by_firm

    def involves(self, firm: Firm) -> bool:
        """Участвует ли фирма в счёте с любой стороны."""
        return firm in (self.invoiced_by_firm, self.referred_by_firm)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """
        Persisted record (camelCase, JSON-совместимый).

        date сериализуется как 'YYYY-MM-DD', firm поля — как wire values.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Invoice":
        """
        Построение из persisted record или пользовательского ввода.

        Raises:
            pydantic.ValidationError: Если запись невалидна
        """
        return cls.model_validate(record)

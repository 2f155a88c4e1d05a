"""
SettlementRecord — отметка, что обязательства квартала урегулированы

Scope записи:
- quarter-wide: (quarterKey, settledBy)
- pair/batch вариант: (quarterKey, settledBy, counterparty) + опционально invoiceIds

Для каждого scope существует НЕ БОЛЕЕ ОДНОЙ effective записи; id записи
выводится из scope, поэтому повторный settle перезаписывает, а не дублирует.
Unsettle удаляет запись целиком (stale settledAt не переживает цикл
unsettle/resettle).
"""

from datetime import datetime, timezone
from typing import Any, NamedTuple

from pydantic import BaseModel, Field, field_validator

from src.core.domain.firm import Firm
from src.core.domain.period import QUARTER_KEY_PATTERN

# =============================================================================
# SCOPE
# =============================================================================


class SettlementScope(NamedTuple):
    """Ключ effective записи."""

    quarter_key: str
    settled_by: Firm
    counterparty: Firm | None = None

    @property
    def record_id(self) -> str:
        """Детерминированный id записи в backing store."""
        parts = [self.quarter_key, self.settled_by.value]
        if self.counterparty is not None:
            parts.append(self.counterparty.value)
        return ":".join(parts)


# =============================================================================
# SETTLEMENT RECORD MODEL
# =============================================================================


class SettlementRecord(BaseModel):
    """
    Запись об урегулировании квартала с точки зрения одной фирмы.

    Immutable модель (frozen=True).
    """

    quarter_key: str = Field(
        ..., alias="quarterKey", pattern=QUARTER_KEY_PATTERN, description="Квартал, '2024-Q2'"
    )
    settled_by: Firm = Field(..., alias="settledBy", description="Фирма, отметившая settle")
    is_settled: bool = Field(default=True, alias="isSettled", description="Флаг урегулирования")
    settled_at: datetime = Field(
        ..., alias="settledAt", description="Момент settle (UTC, timezone-aware)"
    )

    # Pair/batch вариант
    counterparty: Firm | None = Field(
        default=None, description="Контрагент (None — весь квартал)"
    )
    invoice_ids: tuple[str, ...] = Field(
        default=(), alias="invoiceIds", description="Счета, покрытые этим settle"
    )

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    @field_validator("settled_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive datetime трактуется как UTC; aware приводится к UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("invoice_ids")
    @classmethod
    def dedupe_invoice_ids(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Уникальные id в порядке первого появления."""
        return tuple(dict.fromkeys(v))

    @property
    def scope(self) -> SettlementScope:
        return SettlementScope(self.quarter_key, self.settled_by, self.counterparty)

    @property
    def record_id(self) -> str:
        return self.scope.record_id

    def covers_invoice(self, invoice_id: str) -> bool:
        return invoice_id in self.invoice_ids

    def to_record(self) -> dict[str, Any]:
        """Persisted record (camelCase, settledAt — ISO-8601, id — derived из scope)."""
        return {"id": self.record_id, **self.model_dump(mode="json", by_alias=True)}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "SettlementRecord":
        """
        Raises:
            pydantic.ValidationError: Если запись невалидна
        """
        return cls.model_validate(record)

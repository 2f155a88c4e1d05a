"""Конфигурация reconciliation engine."""

from dataclasses import dataclass

from src.core.math.numerical_safeguards import EPS_MONEY


@dataclass(frozen=True)
class EngineConfig:
    """Конфигурация engine (передаётся явно, без глобального состояния).

    - *_collection: имена коллекций в record store
    - selected_period_key: id записи выбора периода в preferences
    - money_display_step: шаг округления сумм для отображения
    - years_back / years_window: окно available_years вокруг текущего года
    """
    invoices_collection: str = "invoices"
    settlements_collection: str = "settlements"
    preferences_collection: str = "preferences"
    selected_period_key: str = "selected_period"

    money_display_step: float = EPS_MONEY

    years_back: int = 5
    years_window: int = 10

    def __post_init__(self) -> None:
        names = (self.invoices_collection, self.settlements_collection, self.preferences_collection)
        if any(not name for name in names):
            raise ValueError("collection names must be non-empty")
        if len(set(names)) != len(names):
            raise ValueError(f"collection names must be distinct, got {names}")
        if self.money_display_step <= 0:
            raise ValueError(f"money_display_step must be positive, got {self.money_display_step}")
        if self.years_back < 0 or self.years_window < 1:
            raise ValueError(
                f"invalid years window: back={self.years_back}, window={self.years_window}"
            )

"""
Errors — таксономия ошибок reconciliation engine

Три класса ситуаций:
- Validation error: невалидный invoice на add/update (операция отклоняется целиком)
- Access error: попытка изменить isPaid от имени не той фирмы
- Persistence error: запись в backing store не удалась (in-memory состояние уже изменено)

Not-found (remove/update/toggle неизвестного id) ошибкой НЕ является — это no-op.
Corrupt records при загрузке тоже не ошибки: они отбрасываются и логируются.
"""

from typing import Any


class ReconciliationError(Exception):
    """Базовый класс для всех ошибок engine."""


class InvalidInvoiceError(ReconciliationError, ValueError):
    """
    Invoice не прошёл валидацию.

    Поднимается синхронно из add/update ДО любого изменения состояния.

    Attributes:
        errors: Список ошибок валидации (формат pydantic `errors()`)
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class DuplicateInvoiceError(InvalidInvoiceError):
    """Invoice с таким id уже существует."""


class InvoiceAccessError(ReconciliationError):
    """Фирма не имеет права менять статус оплаты этого invoice."""


class PersistenceError(ReconciliationError):
    """
    Запись в backing store не удалась.

    In-memory мутация к этому моменту уже выполнена: изменение "живое",
    но ещё не durable. Engine НЕ делает retry — это решение вызывающего кода.
    """

    def __init__(self, message: str, collection: str, record_id: str | None = None):
        super().__init__(message)
        self.collection = collection
        self.record_id = record_id

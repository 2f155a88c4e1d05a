"""
JSON Schema Contract Validators

Модуль для структурной валидации persisted records согласно JSON Schema
контрактам. Использует библиотеку jsonschema (Draft 2020-12).

Контракт проверяется ДО pydantic-нормализации при загрузке из backing store:
в хранилище числа уже должны быть числами, firm поля — членами перечисления.
Коэрция строк в числа допустима только на входе add/update, не при загрузке.

Схемы (src/core/contracts/schema/):
- invoice.json
- settlement.json
- period_selection.json
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы лежат рядом с модулем (schema/), поэтому поставляются вместе с пакетом.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'invoice')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если файл не является валидной JSON Schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Meta-validation самой схемы
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика (схемы неизменяемы, кэш безопасен)
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Any) -> bool:
        """Проверка валидности без exception (не-dict тоже просто невалиден)."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Any) -> Iterator[ValidationError]:
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)

    def describe_errors(self, data: Any) -> str:
        """Короткое описание всех нарушений (для логов)."""
        messages = []
        for error in sorted(self.iter_errors(data), key=lambda e: list(e.absolute_path)):
            location = "/".join(str(p) for p in error.absolute_path) or "<root>"
            messages.append(f"{location}: {error.message}")
        return "; ".join(messages)


class InvoiceRecordValidator(ContractValidator):
    """Валидатор persisted invoice record."""

    def __init__(self):
        super().__init__("invoice")


class SettlementRecordValidator(ContractValidator):
    """Валидатор persisted settlement record."""

    def __init__(self):
        super().__init__("settlement")


class PeriodSelectionValidator(ContractValidator):
    """Валидатор сохранённого выбора периода."""

    def __init__(self):
        super().__init__("period_selection")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_invoice_record(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если данные не соответствуют схеме invoice
    """
    InvoiceRecordValidator().validate(data)


def validate_settlement_record(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если данные не соответствуют схеме settlement
    """
    SettlementRecordValidator().validate(data)


def validate_period_selection(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если данные не соответствуют схеме period_selection
    """
    PeriodSelectionValidator().validate(data)

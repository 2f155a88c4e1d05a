"""
Tests for JSON Schema Contract Validators

Комплексное тестирование JSON Schema валидаторов persisted records:
- Валидность самих схем
- Валидация правильных данных
- Детекция нарушений required полей
- Детекция нарушений типов (строки вместо чисел при загрузке)
- Детекция нарушений constraints (min/max/enum/pattern)
- Интеграция с Pydantic моделями
"""

from datetime import date, datetime, timezone

import pytest
from jsonschema import ValidationError

from src.core.contracts import (
    InvoiceRecordValidator,
    PeriodSelectionValidator,
    SchemaLoader,
    SettlementRecordValidator,
    validate_invoice_record,
    validate_period_selection,
    validate_settlement_record,
)
from src.core.domain import Firm, Invoice, SettlementRecord


# =============================================================================
# FIXTURES - VALID DATA SAMPLES
# =============================================================================


@pytest.fixture
def valid_invoice():
    """Валидный invoice record для тестирования."""
    return {
        "id": "7d1f0c7e-6c3b-4a53-9a8e-0c1d2e3f4a5b",
        "clientName": "Acme d.o.o.",
        "amount": 10000.0,
        "date": "2024-05-15",
        "commissionPercentage": 10,
        "invoicedByFirm": "MKMs",
        "referredByFirm": "SKALLARS",
        "isPaid": True,
        "comment": None,
    }


@pytest.fixture
def valid_settlement():
    """Валидный settlement record для тестирования."""
    return {
        "id": "2024-Q2:SKALLARS:MKMs",
        "quarterKey": "2024-Q2",
        "settledBy": "SKALLARS",
        "isSettled": True,
        "settledAt": "2024-07-01T09:00:00Z",
        "counterparty": "MKMs",
        "invoiceIds": ["a", "b"],
    }


# =============================================================================
# TESTS - SCHEMA LOADING
# =============================================================================


def test_schema_loader_loads_all_schemas():
    """Проверка загрузки всех схем."""
    loader = SchemaLoader()

    invoice_schema = loader.load_schema("invoice")
    settlement_schema = loader.load_schema("settlement")
    selection_schema = loader.load_schema("period_selection")

    assert invoice_schema["title"] == "Invoice"
    assert settlement_schema["title"] == "SettlementRecord"
    assert selection_schema["title"] == "PeriodSelection"


def test_schema_firm_enum_matches_domain():
    """Перечисление фирм в схемах совпадает с Firm."""
    loader = SchemaLoader()
    for name in ("invoice", "settlement"):
        assert loader.load_schema(name)["$defs"]["firm"]["enum"] == [f.value for f in Firm]


def test_schema_loader_caches_schemas():
    """Проверка кэширования схем."""
    loader = SchemaLoader()

    schema1 = loader.load_schema("invoice")
    schema2 = loader.load_schema("invoice")

    # Должен вернуть тот же объект (кэш)
    assert schema1 is schema2


def test_schema_loader_raises_on_missing_schema():
    """Проверка ошибки при отсутствующей схеме."""
    loader = SchemaLoader()

    with pytest.raises(FileNotFoundError):
        loader.load_schema("non_existent_schema")


def test_schema_loader_raises_on_missing_directory(tmp_path):
    """Проверка ошибки при отсутствующей директории схем."""
    with pytest.raises(RuntimeError):
        SchemaLoader(tmp_path / "nowhere")


def test_schema_loader_rejects_invalid_schema(tmp_path):
    """Файл, не являющийся валидной JSON Schema."""
    (tmp_path / "broken.json").write_text('{"type": 12}', encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid JSON Schema"):
        SchemaLoader(tmp_path).load_schema("broken")


# =============================================================================
# TESTS - INVOICE VALIDATION
# =============================================================================


def test_invoice_validator_accepts_valid_data(valid_invoice):
    """Валидация правильного invoice record."""
    validator = InvoiceRecordValidator()
    validator.validate(valid_invoice)  # Не должно выбросить исключение
    assert validator.is_valid(valid_invoice)


def test_invoice_validate_function(valid_invoice):
    """Проверка функции validate_invoice_record."""
    validate_invoice_record(valid_invoice)


def test_invoice_accepts_missing_is_paid(valid_invoice):
    """isPaid опционален (default false при нормализации)."""
    del valid_invoice["isPaid"]
    validate_invoice_record(valid_invoice)


def test_invoice_rejects_missing_required_field(valid_invoice):
    """Валидация отклоняет данные без обязательных полей."""
    del valid_invoice["referredByFirm"]

    with pytest.raises(ValidationError) as exc_info:
        validate_invoice_record(valid_invoice)
    assert "'referredByFirm' is a required property" in str(exc_info.value)


def test_invoice_rejects_numeric_string(valid_invoice):
    """В хранилище amount обязан быть числом (коэрция только на add/update)."""
    valid_invoice["amount"] = "10000"

    with pytest.raises(ValidationError) as exc_info:
        validate_invoice_record(valid_invoice)
    assert "is not of type 'number'" in str(exc_info.value)


def test_invoice_rejects_boolean_amount(valid_invoice):
    valid_invoice["amount"] = True
    assert not InvoiceRecordValidator().is_valid(valid_invoice)


def test_invoice_rejects_negative_amount(valid_invoice):
    valid_invoice["amount"] = -0.01
    assert not InvoiceRecordValidator().is_valid(valid_invoice)


@pytest.mark.parametrize("pct", [-1, 100.5])
def test_invoice_rejects_percentage_out_of_range(valid_invoice, pct):
    valid_invoice["commissionPercentage"] = pct
    assert not InvoiceRecordValidator().is_valid(valid_invoice)


def test_invoice_rejects_unknown_firm(valid_invoice):
    """Firm — закрытое перечисление, регистр важен."""
    valid_invoice["invoicedByFirm"] = "mkms"
    with pytest.raises(ValidationError):
        validate_invoice_record(valid_invoice)


def test_invoice_rejects_non_object():
    assert not InvoiceRecordValidator().is_valid(["not", "a", "record"])
    assert not InvoiceRecordValidator().is_valid(None)


def test_invoice_allows_backend_bookkeeping_fields(valid_invoice):
    valid_invoice["createdAt"] = "2024-05-15T10:00:00Z"
    validate_invoice_record(valid_invoice)


# =============================================================================
# TESTS - SETTLEMENT VALIDATION
# =============================================================================


def test_settlement_validator_accepts_valid_data(valid_settlement):
    validator = SettlementRecordValidator()
    validator.validate(valid_settlement)
    assert validator.is_valid(valid_settlement)


def test_settlement_accepts_quarter_wide_record(valid_settlement):
    """counterparty=null и без invoiceIds — quarter-wide scope."""
    valid_settlement["counterparty"] = None
    del valid_settlement["invoiceIds"]
    validate_settlement_record(valid_settlement)


@pytest.mark.parametrize("key", ["2024-Q5", "2024Q1", "24-Q1"])
def test_settlement_rejects_malformed_quarter_key(valid_settlement, key):
    valid_settlement["quarterKey"] = key
    with pytest.raises(ValidationError):
        validate_settlement_record(valid_settlement)


def test_settlement_rejects_non_string_invoice_ids(valid_settlement):
    valid_settlement["invoiceIds"] = ["a", 7]
    assert not SettlementRecordValidator().is_valid(valid_settlement)


# =============================================================================
# TESTS - PERIOD SELECTION
# =============================================================================


def test_period_selection_accepts_valid_data():
    validate_period_selection({"id": "selected_period", "year": 2024, "quarter": 2})
    assert PeriodSelectionValidator().is_valid({"year": 2024, "quarter": 4})


@pytest.mark.parametrize("quarter", [0, 5, "2", 2.5])
def test_period_selection_rejects_invalid_quarter(quarter):
    with pytest.raises(ValidationError):
        validate_period_selection({"year": 2024, "quarter": quarter})


# =============================================================================
# TESTS - PYDANTIC MODEL INTEGRATION
# =============================================================================


def test_invoice_model_generates_valid_record():
    """Проверка, что Pydantic Invoice генерирует запись, проходящую контракт."""
    invoice = Invoice(
        id="inv-1",
        client_name="Beta",
        amount=250.0,
        commission_percentage=12.5,
        issue_date=date(2024, 2, 29),
        invoiced_by_firm=Firm.CONTAX,
        referred_by_firm=Firm.MKMS,
        comment="quarterly retainer",
    )

    validate_invoice_record(invoice.to_record())


def test_settlement_model_generates_valid_record():
    """Проверка, что Pydantic SettlementRecord генерирует запись, проходящую контракт."""
    record = SettlementRecord(
        quarter_key="2024-Q1",
        settled_by=Firm.MKMS,
        settled_at=datetime(2024, 4, 2, 15, 0, tzinfo=timezone.utc),
        counterparty=Firm.CONTAX,
        invoice_ids=("x", "y"),
    )

    validate_settlement_record(record.to_record())


def test_iter_errors_returns_all_errors():
    """Проверка, что iter_errors возвращает все ошибки валидации."""
    validator = InvoiceRecordValidator()

    invalid_data = {
        "id": "",  # minLength: 1 - НАРУШЕНИЕ
        "clientName": "Acme",
        "amount": "100",  # type number - НАРУШЕНИЕ
        "date": "2024-05-15",
        "commissionPercentage": 101,  # maximum: 100 - НАРУШЕНИЕ
        "invoicedByFirm": "Nobody",  # enum - НАРУШЕНИЕ
        "referredByFirm": "SKALLARS",
        "isPaid": "yes",  # type boolean - НАРУШЕНИЕ
    }

    errors = list(validator.iter_errors(invalid_data))
    assert len(errors) >= 5

    description = validator.describe_errors(invalid_data)
    assert "amount" in description
    assert "invoicedByFirm" in description

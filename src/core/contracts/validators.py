"""
JSON Schema Contract Validators

Модуль для валидации входящих JSON запросов согласно JSON Schema контрактам.
Использует библиотеку jsonschema для проверки соответствия данных схемам.

Схемы:
- external_offers.json (POST /external-offers)
- disable_offers.json (POST /disable-offers)
- finalize_request.json (POST /finalize-external-deal)
- deal_update.json (POST /deal-update)
- approval_event.json (POST /approval-events)
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы лежат в contracts/schema/ в корне проекта.
    """

    def __init__(self, schema_dir: Optional[Path] = None):
        # Корень проекта: 4 уровня вверх от этого файла
        self._schema_dir = schema_dir or Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла (с кэшем).

        Args:
            schema_name: Имя схемы без расширения (например, 'external_offers')

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Базовый валидатор: данные против одной JSON Schema."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Any) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Any) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Any):
        return self.validator.iter_errors(data)

    def first_error(self, data: Any) -> Optional[str]:
        """
        Сообщение первой ошибки (по пути в документе) или None.

        Формат: "order.airtableRecordId: '' is too short"
        """
        errors = sorted(self.validator.iter_errors(data), key=lambda e: list(e.absolute_path))
        if not errors:
            return None
        error = errors[0]
        path = ".".join(str(p) for p in error.absolute_path)
        return f"{path}: {error.message}" if path else error.message


class ExternalOffersValidator(ContractValidator):
    def __init__(self):
        super().__init__("external_offers")


class DisableOffersValidator(ContractValidator):
    def __init__(self):
        super().__init__("disable_offers")


class FinalizeRequestValidator(ContractValidator):
    def __init__(self):
        super().__init__("finalize_request")


class DealUpdateValidator(ContractValidator):
    def __init__(self):
        super().__init__("deal_update")


class ApprovalEventValidator(ContractValidator):
    def __init__(self):
        super().__init__("approval_event")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_external_offers(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    ExternalOffersValidator().validate(data)


def validate_disable_offers(data: Dict[str, Any]) -> None:
    DisableOffersValidator().validate(data)


def validate_finalize_request(data: Dict[str, Any]) -> None:
    FinalizeRequestValidator().validate(data)


def validate_deal_update(data: Dict[str, Any]) -> None:
    DealUpdateValidator().validate(data)


def validate_approval_event(data: Dict[str, Any]) -> None:
    ApprovalEventValidator().validate(data)


__all__ = [
    "SchemaLoader",
    "ContractValidator",
    "ValidationError",
    "ExternalOffersValidator",
    "DisableOffersValidator",
    "FinalizeRequestValidator",
    "DealUpdateValidator",
    "ApprovalEventValidator",
    "validate_external_offers",
    "validate_disable_offers",
    "validate_finalize_request",
    "validate_deal_update",
    "validate_approval_event",
]

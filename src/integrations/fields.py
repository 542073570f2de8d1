"""
Fields — разбор и кодирование значений полей record store

Значения полей приходят в разных формах: строка, число, список строк
(lookup), список id ("rec..."), список объектов {id, ...} (linked records,
attachments), объект {name} (single select). parse_field приводит всё к
тегированному FieldValue:

    EMPTY | TEXT(text) | LINKED_RECORD(id) | LINKED_RECORDS(ids)

Для записи single-select значений используется маркер SingleSelect: store сам
выбирает форму ({"name": v} или строка).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Optional

from src.core.math.numerical_safeguards import to_number

# Префикс id записей record store
RECORD_ID_PREFIX: Final[str] = "rec"


# =============================================================================
# FIELD VALUE
# =============================================================================


class FieldKind(str, Enum):
    """Тег разобранного значения"""

    EMPTY = "EMPTY"
    TEXT = "TEXT"
    LINKED_RECORD = "LINKED_RECORD"
    LINKED_RECORDS = "LINKED_RECORDS"


@dataclass(frozen=True)
class FieldValue:
    """Разобранное значение поля."""

    kind: FieldKind
    text: Optional[str] = None
    ids: tuple[str, ...] = ()
    number: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.kind == FieldKind.EMPTY

    @property
    def first_id(self) -> Optional[str]:
        """Первый linked record id (или None)"""
        return self.ids[0] if self.ids else None

    def as_text(self) -> Optional[str]:
        """Текстовое представление: текст, либо id через запятую"""
        if self.kind == FieldKind.TEXT:
            return self.text
        if self.ids:
            return ", ".join(self.ids)
        return None

    def as_number(self) -> Optional[float]:
        if self.number is not None:
            return self.number
        return to_number(self.text) if self.text is not None else None


EMPTY: Final[FieldValue] = FieldValue(kind=FieldKind.EMPTY)


def _linked_id(item: Any) -> Optional[str]:
    """Id из элемента linked/attachment списка"""
    if isinstance(item, str) and item.startswith(RECORD_ID_PREFIX):
        return item
    if isinstance(item, dict) and isinstance(item.get("id"), str):
        return item["id"]
    return None


def _item_text(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, bool):
        return None
    if isinstance(item, (int, float)):
        return str(item)
    if isinstance(item, dict) and isinstance(item.get("name"), str):
        return item["name"]
    return None


def parse_field(raw: Any) -> FieldValue:
    """
    Разбор сырого значения поля в FieldValue.

    Examples:
        >>> parse_field(None).kind
        <FieldKind.EMPTY: 'EMPTY'>
        >>> parse_field(["recA"]).first_id
        'recA'
        >>> parse_field({"name": "Confirmed"}).text
        'Confirmed'
        >>> parse_field([100]).as_number()
        100.0
    """
    if raw is None or raw == "" or raw == [] or raw is False:
        return EMPTY

    if isinstance(raw, bool):
        return FieldValue(kind=FieldKind.TEXT, text="true")

    if isinstance(raw, (int, float)):
        return FieldValue(kind=FieldKind.TEXT, text=str(raw), number=float(raw))

    if isinstance(raw, str):
        text = raw.strip()
        return FieldValue(kind=FieldKind.TEXT, text=text) if text else EMPTY

    if isinstance(raw, dict):
        if isinstance(raw.get("name"), str) and "id" not in raw:
            return FieldValue(kind=FieldKind.TEXT, text=raw["name"])
        linked = _linked_id(raw)
        if linked:
            return FieldValue(kind=FieldKind.LINKED_RECORD, ids=(linked,))
        return EMPTY

    if isinstance(raw, (list, tuple)):
        ids = [_linked_id(item) for item in raw]
        if ids and all(ids):
            if len(ids) == 1:
                return FieldValue(kind=FieldKind.LINKED_RECORD, ids=(ids[0],))
            return FieldValue(kind=FieldKind.LINKED_RECORDS, ids=tuple(ids))

        # Lookup/rollup: список значений
        numbers = [item for item in raw if isinstance(item, (int, float)) and not isinstance(item, bool)]
        parts = [t for t in (_item_text(item) for item in raw) if t]
        if not parts:
            return EMPTY
        number = float(numbers[0]) if len(numbers) == 1 and len(raw) == 1 else None
        return FieldValue(kind=FieldKind.TEXT, text=", ".join(parts), number=number)

    return EMPTY


# =============================================================================
# SINGLE SELECT
# =============================================================================


@dataclass(frozen=True)
class SingleSelect:
    """
    Маркер значения single-select поля для записи.

    Record store пишет сначала структурированную форму {"name": value},
    при отказе — простую строку.
    """

    name: str

    def structured(self) -> dict[str, str]:
        return {"name": self.name}


def encode_fields(fields: dict[str, Any], structured: bool) -> dict[str, Any]:
    """
    Кодирование полей для записи.

    Args:
        fields: поля, где single-select значения обёрнуты в SingleSelect
        structured: True → {"name": v}, False → строка

    Returns:
        Новый dict, готовый к отправке
    """
    encoded: dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, SingleSelect):
            encoded[name] = value.structured() if structured else value.name
        else:
            encoded[name] = value
    return encoded


def has_single_select(fields: dict[str, Any]) -> bool:
    return any(isinstance(value, SingleSelect) for value in fields.values())

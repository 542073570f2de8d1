"""
Record Store — интерфейс хранилища записей и Airtable адаптер

Интерфейс (RecordStore):
- get_record(table, record_id) -> fields
- patch_record(table, record_id, fields) -> fields
- create_record(table, fields) -> record_id
- query_records(table, formula) -> list[Record]

Single-select значения передаются как SingleSelect. Store сначала пишет
структурированную форму {"name": v}; если хранилище отвергает форму
(UnsupportedFieldShapeError), запрос повторяется со строкой. Бизнес-логика
про двойное кодирование не знает.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Final, Optional, Protocol
from urllib.parse import quote

import httpx

from src.integrations.fields import encode_fields, has_single_select

log = logging.getLogger(__name__)

AIRTABLE_API_URL: Final[str] = "https://api.airtable.com/v0"

# Ошибки Airtable, означающие неподдерживаемую форму значения
SHAPE_ERROR_TYPES: Final[frozenset[str]] = frozenset(
    {
        "INVALID_VALUE_FOR_COLUMN",
        "INVALID_MULTIPLE_CHOICE_OPTIONS",
    }
)


# =============================================================================
# ERRORS
# =============================================================================


class RecordStoreError(Exception):
    """Ошибка обращения к record store"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RecordNotFoundError(RecordStoreError):
    """Запись не существует (удалена или неверный id)"""


class UnsupportedFieldShapeError(RecordStoreError):
    """Хранилище отвергло форму значения поля (например {"name": ...})"""


# =============================================================================
# INTERFACE
# =============================================================================


@dataclass(frozen=True)
class Record:
    """Запись record store"""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)


class RecordStore(Protocol):
    """Collaborator: key-value хранилище записей."""

    async def get_record(self, table: str, record_id: str) -> dict[str, Any]: ...

    async def patch_record(self, table: str, record_id: str, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def create_record(self, table: str, fields: dict[str, Any]) -> str: ...

    async def query_records(self, table: str, formula: str) -> list[Record]: ...


def formula_equals(field_name: str, value: str) -> str:
    """Формула равенства поля строке: {Field}='value'"""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"{{{field_name}}}='{escaped}'"


# =============================================================================
# AIRTABLE
# =============================================================================


class AirtableRecordStore:
    """
    Record store поверх Airtable REST API v0.

    httpx.AsyncClient передаётся снаружи (один на процесс), закрывает его
    владелец.
    """

    def __init__(self, client: httpx.AsyncClient, base_id: str, api_key: str):
        if not base_id:
            raise ValueError("AIRTABLE_BASE_ID is required")
        self._client = client
        self._base_url = f"{AIRTABLE_API_URL}/{base_id}"
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _url(self, table: str, record_id: Optional[str] = None) -> str:
        url = f"{self._base_url}/{quote(table, safe='')}"
        if record_id:
            url = f"{url}/{quote(record_id, safe='')}"
        return url

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, headers=self._headers, json=json, params=params)
        except httpx.HTTPError as e:
            raise RecordStoreError(f"[Airtable] {method} {url} failed: {e}") from e

        if response.is_success:
            return response.json()

        body = response.text
        message = f"[Airtable] {method} {url} → {response.status_code} {body}"
        if response.status_code == 404:
            raise RecordNotFoundError(message, response.status_code, body)
        if response.status_code == 422 and self._error_type(response) in SHAPE_ERROR_TYPES:
            raise UnsupportedFieldShapeError(message, response.status_code, body)
        raise RecordStoreError(message, response.status_code, body)

    @staticmethod
    def _error_type(response: httpx.Response) -> Optional[str]:
        try:
            error = response.json().get("error")
        except ValueError:
            return None
        if isinstance(error, dict):
            return error.get("type")
        return error if isinstance(error, str) else None

    async def get_record(self, table: str, record_id: str) -> dict[str, Any]:
        data = await self._request("GET", self._url(table, record_id))
        return data.get("fields") or {}

    async def patch_record(self, table: str, record_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """
        PATCH записи с согласованием формы single-select полей.

        Raises:
            UnsupportedFieldShapeError: если обе формы отвергнуты
        """
        url = self._url(table, record_id)
        if not has_single_select(fields):
            data = await self._request("PATCH", url, json={"fields": encode_fields(fields, structured=False)})
            return data.get("fields") or {}

        try:
            data = await self._request("PATCH", url, json={"fields": encode_fields(fields, structured=True)})
        except UnsupportedFieldShapeError:
            log.debug("Structured single-select rejected for %s/%s, retrying as plain string", table, record_id)
            data = await self._request("PATCH", url, json={"fields": encode_fields(fields, structured=False)})
        return data.get("fields") or {}

    async def create_record(self, table: str, fields: dict[str, Any]) -> str:
        url = self._url(table)
        if not has_single_select(fields):
            data = await self._request("POST", url, json={"fields": encode_fields(fields, structured=False)})
            return data["id"]

        try:
            data = await self._request("POST", url, json={"fields": encode_fields(fields, structured=True)})
        except UnsupportedFieldShapeError:
            log.debug("Structured single-select rejected for %s, retrying as plain string", table)
            data = await self._request("POST", url, json={"fields": encode_fields(fields, structured=False)})
        return data["id"]

    async def query_records(self, table: str, formula: str) -> list[Record]:
        """Все записи по filterByFormula (с пагинацией по offset)"""
        records: list[Record] = []
        params: dict[str, str] = {"filterByFormula": formula}
        while True:
            data = await self._request("GET", self._url(table), params=params)
            for raw in data.get("records") or []:
                records.append(Record(id=raw["id"], fields=raw.get("fields") or {}))
            offset = data.get("offset")
            if not offset:
                return records
            params = {"filterByFormula": formula, "offset": offset}

"""Google Sheets adapter for the food log."""

import logging
import math
from dataclasses import dataclass

import httpx

from macro_logger.domain.entries import LogEntry
from macro_logger.domain.errors import (
    NetworkError,
    SchemaConflictError,
    StoreAuthError,
    StoreError,
    StoreRateLimitError,
)

logger = logging.getLogger(__name__)

LOG_SHEET_TITLE = "Log"

# Column order is append-only: never rename or reorder existing positions.
HEADERS: tuple[str, ...] = (
    "Date",
    "Time",
    "Description",
    "Calories",
    "Protein (g)",
    "Carbs (g)",
    "Fat (g)",
    "Raw Input",
    "Group ID",
    "Meal Label",
    "UTC Offset",
)

HEADER_TO_FIELD: dict[str, str] = {
    "Date": "date",
    "Time": "time",
    "Description": "description",
    "Calories": "calories",
    "Protein (g)": "protein_g",
    "Carbs (g)": "carbs_g",
    "Fat (g)": "fat_g",
    "Raw Input": "raw_input",
    "Group ID": "group_id",
    "Meal Label": "meal_label",
    "UTC Offset": "utc_offset",
}

NUMERIC_FIELDS = frozenset({"calories", "protein_g", "carbs_g", "fat_g"})

HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429


def column_letter(number: int) -> str:
    """Convert a 1-based column number to its letter form (1 -> A, 27 -> AA)."""
    result = ""
    while number > 0:
        number, remainder = divmod(number - 1, 26)
        result = chr(ord("A") + remainder) + result
    return result


@dataclass
class HttpxSheetsClient:
    """Food log store backed by the Google Sheets v4 REST API."""

    base_url: str
    http_client: httpx.AsyncClient
    sheet_title: str = LOG_SHEET_TITLE

    @classmethod
    def create(cls, base_url: str) -> "HttpxSheetsClient":
        """Create a Sheets client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    @property
    def _last_column(self) -> str:
        return column_letter(len(HEADERS))

    @property
    def _log_range(self) -> str:
        return f"{self.sheet_title}!A:{self._last_column}"

    @property
    def _header_range(self) -> str:
        return f"{self.sheet_title}!A1:{self._last_column}1"

    async def read_all_entries(self, log_id: str, token: str) -> list[LogEntry]:
        """Read every data row of the log sheet."""
        response = await self._request(
            "GET", f"{self.base_url}/{log_id}/values/{self._log_range}", token
        )
        if response.status_code == HTTP_NOT_FOUND:
            return []
        _ensure_ok(response)
        rows: list[list[object]] = response.json().get("values") or []
        if len(rows) < 2:  # noqa: PLR2004
            return []

        column_index: dict[str, int] = {}
        for position, header in enumerate(rows[0]):
            field_name = HEADER_TO_FIELD.get(str(header))
            if field_name and field_name not in column_index:
                column_index[field_name] = position

        entries: list[LogEntry] = []
        for offset, row in enumerate(rows[1:]):
            values: dict[str, object] = {}
            for field_name, position in column_index.items():
                raw = row[position] if position < len(row) else ""
                if field_name in NUMERIC_FIELDS:
                    values[field_name] = _to_number(raw)
                else:
                    values[field_name] = "" if raw is None else str(raw)
            entries.append(LogEntry(**values, sheet_row=offset))
        return entries

    async def write_entries(
        self, log_id: str, token: str, entries: list[LogEntry]
    ) -> None:
        """Append one row per entry at the end of the log."""
        rows = [_encode_row(entry) for entry in entries]
        response = await self._request(
            "POST",
            f"{self.base_url}/{log_id}/values/{self._log_range}:append",
            token,
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": rows},
        )
        _ensure_ok(response)

    async def ensure_log_sheet(self, log_id: str, token: str) -> None:
        """Create the log sheet or migrate its header to the current schema."""
        response = await self._request(
            "GET",
            f"{self.base_url}/{log_id}",
            token,
            params={"fields": "sheets.properties.title"},
        )
        _ensure_ok(response)
        sheets = response.json().get("sheets") or []
        titles = {sheet.get("properties", {}).get("title") for sheet in sheets}

        if self.sheet_title not in titles:
            logger.info("Creating %s sheet in spreadsheet", self.sheet_title)
            await self._batch_update(
                log_id,
                token,
                [{"addSheet": {"properties": {"title": self.sheet_title}}}],
            )
            await self._write_header(log_id, token, self._header_range, HEADERS)
            return

        response = await self._request(
            "GET", f"{self.base_url}/{log_id}/values/{self.sheet_title}!1:1", token
        )
        _ensure_ok(response)
        values = response.json().get("values") or [[]]
        existing = [str(cell) for cell in values[0]]

        if not existing:
            await self._write_header(log_id, token, self._header_range, HEADERS)
            return

        for position in range(min(len(existing), len(HEADERS))):
            if existing[position] != HEADERS[position]:
                raise SchemaConflictError(
                    f"Schema mismatch: expected column {position + 1} to be "
                    f'"{HEADERS[position]}" but found "{existing[position]}"'
                )

        if len(existing) >= len(HEADERS):
            return

        missing = HEADERS[len(existing) :]
        start = column_letter(len(existing) + 1)
        migrate_range = f"{self.sheet_title}!{start}1:{self._last_column}1"
        logger.info("Migrating log header: adding %s", ", ".join(missing))
        await self._write_header(log_id, token, migrate_range, missing)

    async def get_log_sheet_id(self, log_id: str, token: str) -> int:
        """Resolve the numeric sheet id of the log sheet."""
        response = await self._request(
            "GET",
            f"{self.base_url}/{log_id}",
            token,
            params={"fields": "sheets.properties(title,sheetId)"},
        )
        _ensure_ok(response)
        for sheet in response.json().get("sheets") or []:
            properties = sheet.get("properties", {})
            if properties.get("title") == self.sheet_title:
                return int(properties["sheetId"])
        raise StoreError(f'Sheet "{self.sheet_title}" not found in spreadsheet')

    async def delete_entries(
        self, log_id: str, token: str, sheet_rows: list[int]
    ) -> None:
        """Delete data rows by their 0-based position, highest first."""
        if not sheet_rows:
            return
        sheet_id = await self.get_log_sheet_id(log_id, token)
        requests = [
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": sheet_id,
                        "dimension": "ROWS",
                        # +1 skips the header row.
                        "startIndex": row + 1,
                        "endIndex": row + 2,
                    }
                }
            }
            for row in sorted(set(sheet_rows), reverse=True)
        ]
        await self._batch_update(log_id, token, requests)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _batch_update(
        self, log_id: str, token: str, requests: list[dict[str, object]]
    ) -> None:
        response = await self._request(
            "POST",
            f"{self.base_url}/{log_id}:batchUpdate",
            token,
            json={"requests": requests},
        )
        _ensure_ok(response)

    async def _write_header(
        self, log_id: str, token: str, cell_range: str, headers: tuple[str, ...]
    ) -> None:
        response = await self._request(
            "PUT",
            f"{self.base_url}/{log_id}/values/{cell_range}",
            token,
            params={"valueInputOption": "RAW"},
            json={"values": [list(headers)]},
        )
        _ensure_ok(response)

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, object] | None = None,
    ) -> httpx.Response:
        try:
            return await self.http_client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=15,
            )
        except httpx.TransportError as exc:
            raise NetworkError(f"Google Sheets unreachable: {exc}") from exc


def _ensure_ok(response: httpx.Response) -> None:
    if response.is_success:
        return
    status = response.status_code
    message = f"Google Sheets API error: {status} {response.reason_phrase}"
    if status == HTTP_UNAUTHORIZED:
        raise StoreAuthError(message, status)
    if status == HTTP_TOO_MANY_REQUESTS:
        raise StoreRateLimitError(message, status)
    raise StoreError(message, status)


def _encode_row(entry: LogEntry) -> list[object]:
    return [getattr(entry, HEADER_TO_FIELD[header], "") for header in HEADERS]


def _to_number(value: object) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip()) if value.strip() else 0.0
        except ValueError:
            return 0
    else:
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number

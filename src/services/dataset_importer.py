"""Dataset import: the ingestion boundary of the sentiment job.

Turns already-parsed tabular rows (from an uploaded CSV) or a public
Google Sheet into a ``processing`` dataset plus its response rows.
Analysis itself never happens here; the batch advancer picks the rows up.

Rows are inserted in chunks after the dataset header exists.  If a chunk
fails the dataset is marked ``failed`` (it would otherwise sit forever
in ``processing`` with fewer rows than ``total_rows``).
"""

from __future__ import annotations

import csv
import io
import re
from typing import Any

import httpx

from src.interfaces.row_store import IRowStore
from src.models.dataset import Dataset, SourceType
from src.utils.errors import IngestionError, RowPersistenceError
from src.utils.logging import get_logger

_RESPONDENT_COLUMN_PATTERN = re.compile(
    r"^(name|student.?name|full.?name|respondent|respondent.?name|participant)$",
    re.IGNORECASE,
)
_SHEET_ID_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_SHEET_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"

_INSERT_CHUNK_SIZE = 500


def detect_respondent_column(columns: list[str]) -> str | None:
    """Return the first column that looks like a respondent name column."""
    for column in columns:
        if _RESPONDENT_COLUMN_PATTERN.match(column.strip()):
            return column
    return None


def extract_sheet_id(sheets_url: str) -> str:
    """Pull the spreadsheet id out of a Google Sheets URL.

    Raises:
        IngestionError: If the URL has no ``/spreadsheets/d/<id>`` part.
    """
    match = _SHEET_ID_PATTERN.search(sheets_url or "")
    if match is None:
        raise IngestionError(message="Invalid Google Sheets URL")
    return match.group(1)


def _normalize_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (bool, int, float)):
        return value
    return str(value)


class DatasetImporter:
    """Creates datasets from parsed rows or shared spreadsheets."""

    def __init__(
        self,
        store: IRowStore,
        http_client: httpx.AsyncClient | None = None,
        sheet_timeout_seconds: float = 30.0,
    ) -> None:
        self._store = store
        self._http_client = http_client
        self._sheet_timeout_seconds = sheet_timeout_seconds
        self._logger = get_logger(__name__)

    async def import_rows(
        self,
        title: str,
        source_type: SourceType,
        columns: list[str],
        rows: list[dict[str, Any]],
        source_url: str | None = None,
    ) -> Dataset:
        """Validate, normalise and store rows as a new dataset.

        Raises:
            IngestionError: On an empty title, no columns or no rows.
            RowPersistenceError: If storing the rows fails (the dataset is
                left in ``failed`` state).
        """
        title = (title or "").strip()
        if not title:
            raise IngestionError(message="Dataset title is required")
        columns = [str(c).strip() for c in columns if str(c).strip()]
        if not columns:
            raise IngestionError(message="Dataset has no columns")
        if not rows:
            raise IngestionError(message="Dataset has no rows")

        respondent_column = detect_respondent_column(columns)
        prepared: list[tuple[str, dict[str, Any]]] = []
        for index, row in enumerate(rows):
            raw_data = {c: _normalize_value(row.get(c)) for c in columns}
            label = ""
            if respondent_column:
                label = str(raw_data.get(respondent_column) or "").strip()
            prepared.append((label or f"Respondent {index + 1}", raw_data))

        dataset = await self._store.create_dataset(
            title=title,
            source_type=source_type,
            columns=columns,
            total_rows=len(prepared),
            source_url=source_url,
            respondent_column=respondent_column,
        )

        try:
            for start in range(0, len(prepared), _INSERT_CHUNK_SIZE):
                await self._store.add_rows(
                    dataset.id, prepared[start : start + _INSERT_CHUNK_SIZE], start_index=start
                )
        except RowPersistenceError as exc:
            await self._store.mark_failed(dataset.id, f"Import failed: {exc.message}")
            raise

        self._logger.info(
            "dataset_imported",
            dataset_id=dataset.id,
            source_type=SourceType(source_type).value,
            rows=len(prepared),
            respondent_column=respondent_column,
        )
        return dataset

    async def import_google_sheet(self, title: str, sheets_url: str) -> Dataset:
        """Download a public sheet as CSV and import it.

        Raises:
            IngestionError: Bad URL, unreachable / private sheet, or a
                sheet with no header or no data rows.
        """
        sheet_id = extract_sheet_id(sheets_url)
        csv_text = await self._fetch_sheet_csv(sheet_id)

        reader = csv.reader(io.StringIO(csv_text))
        header = next(reader, None)
        if not header or not any(h.strip() for h in header):
            raise IngestionError(message="Sheet has no header row")
        columns = [h.strip() for h in header]

        rows: list[dict[str, Any]] = []
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            rows.append({c: (record[i] if i < len(record) else "") for i, c in enumerate(columns)})
        if not rows:
            raise IngestionError(message="Sheet has no data rows")

        return await self.import_rows(
            title=title,
            source_type=SourceType.SHEET,
            columns=columns,
            rows=rows,
            source_url=sheets_url,
        )

    async def _fetch_sheet_csv(self, sheet_id: str) -> str:
        url = _SHEET_EXPORT_URL.format(sheet_id=sheet_id)
        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    url, timeout=self._sheet_timeout_seconds, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        url, timeout=self._sheet_timeout_seconds, follow_redirects=True
                    )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self._logger.warning("sheet_fetch_failed", sheet_id=sheet_id, error=str(exc))
            raise IngestionError(
                message="Could not fetch the sheet; make sure it is shared publicly",
                provider_name="google_sheets",
            ) from exc
        return response.text

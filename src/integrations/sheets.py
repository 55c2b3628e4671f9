"""Google Sheets values API client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from src.integrations.base import HTTPCollaborator


class SheetsClient(HTTPCollaborator):
    provider = "google_sheets"
    base_url = "https://sheets.googleapis.com/v4/spreadsheets"

    @staticmethod
    def _values_path(spreadsheet_id: str, range_: str, suffix: str = "") -> str:
        return f"/{spreadsheet_id}/values/{quote(range_, safe='!:')}{suffix}"

    async def read(self, spreadsheet_id: str, range_: str) -> list[list[Any]]:
        response = await self._request("GET", self._values_path(spreadsheet_id, range_))
        return response.json().get("values") or []

    async def write(self, spreadsheet_id: str, range_: str, values: list[list[Any]]) -> dict[str, Any]:
        response = await self._request(
            "PUT",
            self._values_path(spreadsheet_id, range_),
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": values},
        )
        return {"updated_cells": response.json().get("updatedCells", 0)}

    async def append(self, spreadsheet_id: str, range_: str, values: list[list[Any]]) -> dict[str, Any]:
        response = await self._request(
            "POST",
            self._values_path(spreadsheet_id, range_, ":append"),
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json={"values": values},
        )
        updates = response.json().get("updates") or {}
        return {"updated_range": updates.get("updatedRange"), "updated_rows": updates.get("updatedRows", 0)}

    async def clear(self, spreadsheet_id: str, range_: str) -> dict[str, Any]:
        response = await self._request("POST", self._values_path(spreadsheet_id, range_, ":clear"), json={})
        return {"cleared_range": response.json().get("clearedRange")}

    async def delete_rows(
        self, spreadsheet_id: str, sheet_id: int, start_index: int, end_index: int
    ) -> dict[str, Any]:
        body = {
            "requests": [
                {
                    "deleteDimension": {
                        "range": {
                            "sheetId": sheet_id,
                            "dimension": "ROWS",
                            "startIndex": start_index,
                            "endIndex": end_index,
                        }
                    }
                }
            ]
        }
        await self._request("POST", f"/{spreadsheet_id}:batchUpdate", json=body)
        return {"deleted_rows": end_index - start_index}

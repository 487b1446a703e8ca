"""
Google Sheets translation source for the relay.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from shared.logging import get_logger
from shared.errors import ServerConfigurationError, TranslatorInitFailed


class SheetTranslationSource:
    """Fetches key/value translations from one sheet of a spreadsheet.

    The first row is a header. The first column holds the lookup key and the
    value comes from the column named ``value_column`` (second column when
    unset). The fetched structure is keyed by sheet name.
    """

    API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
    SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]

    def __init__(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        credentials_json: Optional[str],
        value_column: Optional[str] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.credentials_json = credentials_json
        self.value_column = value_column
        self.logger = get_logger("relay.translation_source")

    def _load_credentials(self) -> service_account.Credentials:
        if not self.credentials_json:
            raise ServerConfigurationError("Translation sheet credentials not configured")
        try:
            info = json.loads(self.credentials_json)
            return service_account.Credentials.from_service_account_info(info, scopes=self.SCOPES)
        except (ValueError, KeyError) as exc:
            raise ServerConfigurationError(
                "Translation sheet credentials are invalid",
                details={"error": str(exc)}
            )

    def _access_token(self) -> str:
        """Mint an access token; blocking, run it off the event loop."""
        credentials = self._load_credentials()
        credentials.refresh(GoogleAuthRequest())
        return credentials.token

    async def fetch(self) -> Dict[str, Dict[str, str]]:
        """Fetch the sheet and return ``{sheet_name: {key: value}}``."""
        token = await asyncio.to_thread(self._access_token)
        url = f"{self.API_URL}/{quote(self.spreadsheet_id, safe='')}/values/{quote(self.sheet_name, safe='')}"

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(url, headers={"Authorization": f"Bearer {token}"})

        if response.status_code != 200:
            self.logger.error(
                "Translation sheet request failed",
                spreadsheet_id=self.spreadsheet_id,
                sheet_name=self.sheet_name,
                status_code=response.status_code,
                response=response.text
            )
            raise TranslatorInitFailed(f"Sheets API returned {response.status_code}")

        values = response.json().get("values", [])
        mapping = self.parse_values(values)
        self.logger.info("Translation sheet fetched", sheet_name=self.sheet_name, entries=len(mapping))
        return {self.sheet_name: mapping}

    def parse_values(self, values: List[List[Any]]) -> Dict[str, str]:
        """Turn raw sheet rows into a key/value mapping."""
        if not values:
            return {}

        header, rows = values[0], values[1:]
        column = 1
        if self.value_column:
            try:
                column = header.index(self.value_column)
            except ValueError:
                raise ServerConfigurationError(
                    f"Column {self.value_column!r} not found in sheet {self.sheet_name!r}"
                )

        mapping: Dict[str, str] = {}
        for row in rows:
            if not row or len(row) <= column:
                continue
            key = str(row[0]).strip()
            value = row[column]
            if not key or value in (None, ""):
                continue
            mapping[key] = str(value)
        return mapping

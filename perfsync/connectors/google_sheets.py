"""
Google Sheets Connector

Reads configured tabs of a client's performance spreadsheet with the
Sheets v4 API using an OAuth access token supplied by the caller.
"""
import asyncio
from typing import Dict, List, Optional, Sequence

import google_auth_httplib2
import httplib2
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from perfsync.config import get_settings
from perfsync.connectors.base import TabData, TabularDataSource, values_to_tab
from perfsync.exceptions import DataSourceError
from perfsync.utils.logger import log

settings = get_settings()


def build_range(tab_name: str, cell_range: str = "A:Z") -> str:
    """
    A1 range for a tab.

    Entries that already carry a range ("Leads!A1:F200") are passed through;
    bare tab names are quoted so spaces and apostrophes survive.
    """
    if "!" in tab_name:
        return tab_name
    escaped = tab_name.replace("'", "''")
    return f"'{escaped}'!{cell_range}"


class GoogleSheetsClient(TabularDataSource):
    """
    Tabular data source backed by Google Sheets

    One batchGet per spreadsheet; the blocking google-api-python-client call
    runs in a worker thread under a hard timeout.
    """

    def __init__(
        self,
        access_token: str,
        cell_range: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        if not access_token:
            raise ValueError("A Google OAuth access token is required to read sheets")

        self.access_token = access_token
        self.cell_range = cell_range or settings.sheets_default_range
        self.timeout = timeout or settings.sheets_api_timeout_seconds
        self._service = None

    def _get_service(self):
        """Build the Sheets service lazily with a timeout-aware transport."""
        if self._service is None:
            credentials = Credentials(token=self.access_token)
            http = httplib2.Http(timeout=self.timeout)
            authed_http = google_auth_httplib2.AuthorizedHttp(credentials, http=http)
            self._service = build("sheets", "v4", http=authed_http, cache_discovery=False)
        return self._service

    async def _execute_with_timeout(self, request):
        """
        Execute a Google API request off the event loop with a timeout.

        httplib2 calls block and can hang on network issues.
        """
        try:
            return await asyncio.wait_for(asyncio.to_thread(request.execute), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Google Sheets API call timed out after {self.timeout}s")

    async def fetch_tabs(self, source_id: str, tab_names: Sequence[str]) -> Dict[str, TabData]:
        ranges: List[str] = [build_range(tab, self.cell_range) for tab in tab_names]

        try:
            request = self._get_service().spreadsheets().values().batchGet(
                spreadsheetId=source_id,
                ranges=ranges,
            )
            response = await self._execute_with_timeout(request)
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            raise DataSourceError(source_id, str(e), status_code=int(status) if status else None) from e
        except TimeoutError as e:
            raise DataSourceError(source_id, str(e)) from e
        except Exception as e:
            raise DataSourceError(source_id, f"{type(e).__name__}: {e}") from e

        value_ranges = response.get("valueRanges", [])
        result: Dict[str, TabData] = {}
        for index, tab in enumerate(tab_names):
            values = value_ranges[index].get("values", []) if index < len(value_ranges) else []
            result[tab] = values_to_tab(values)

        log.info(
            f"Read {sum(len(t.rows) for t in result.values())} rows "
            f"from {len(tab_names)} tab(s) of sheet {source_id}"
        )
        return result

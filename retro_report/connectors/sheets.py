"""Google Sheets source for the country -> region table.

Authenticates with a service account JSON file (path from the
``GOOGLE_SERVICE_ACCOUNT_JSON`` environment variable unless given) and
reads a whole worksheet tab as a header-first list of rows.

Usage::

    from retro_report.connectors.sheets import SheetsClient

    table = SheetsClient().read_table(spreadsheet_id, "Regions")
"""

import logging
import os

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

CREDENTIALS_ENV = "GOOGLE_SERVICE_ACCOUNT_JSON"
DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets.readonly",
]


class SheetsClient:
    """Thin wrapper around an authorized gspread client.

    Parameters
    ----------
    service_account_json : str or Path, optional
        Path to the service account credentials file.
    client : gspread.Client, optional
        Pre-built client (used by tests); skips authentication.
    """

    def __init__(self, service_account_json=None, scopes=None, client=None):
        if client is not None:
            self.client = client
            return
        path = service_account_json or os.getenv(CREDENTIALS_ENV)
        if not path:
            raise ConfigurationError(
                f"No service account credentials: set {CREDENTIALS_ENV}"
            )
        try:
            creds = Credentials.from_service_account_file(
                str(path), scopes=scopes or DEFAULT_SCOPES
            )
        except (OSError, ValueError) as exc:
            raise ConfigurationError(
                f"Could not load service account credentials from {path}: {exc}"
            ) from exc
        self.client = gspread.authorize(creds)

    def read_table(self, spreadsheet_id: str, tab_name: str) -> list[list[str]]:
        """Every value of *tab_name*, header row first."""
        if not spreadsheet_id:
            raise ConfigurationError("No region spreadsheet id configured")
        try:
            spreadsheet = self.client.open_by_key(spreadsheet_id)
            worksheet = spreadsheet.worksheet(tab_name)
            values = worksheet.get_all_values()
        except gspread.exceptions.WorksheetNotFound:
            raise ConfigurationError(
                f"Sheet tab named '{tab_name}' not found"
            ) from None
        except gspread.exceptions.SpreadsheetNotFound:
            raise ConfigurationError(
                f"Spreadsheet '{spreadsheet_id}' not found or not shared"
            ) from None
        except (gspread.exceptions.APIError, PermissionError, GoogleAuthError) as exc:
            raise ConfigurationError(
                f"Could not read spreadsheet '{spreadsheet_id}': {exc}"
            ) from exc
        logger.info("Read %d row(s) from tab '%s'", len(values), tab_name)
        return values

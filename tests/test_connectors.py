"""Tests for the file source, region sheet source and Confluence sink."""

from unittest.mock import MagicMock, patch

import gspread
import pytest
import requests
from google.auth.exceptions import RefreshError

from retro_report.connectors.confluence import (
    ConfluenceClient,
    ConfluenceError,
    publish_report,
    storage_body,
)
from retro_report.connectors.files import (
    detect_encoding,
    guess_mime_type,
    list_folder,
    load_file,
    read_table_csv,
    read_text,
)
from retro_report.connectors.sheets import SheetsClient
from retro_report.errors import ConfigurationError
from retro_report.schema.loader import ConfluenceConfig


# ===================================================================
# Local folder source
# ===================================================================

class TestFiles:
    def test_detect_utf8(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text("a,b\n", encoding="utf-8")
        assert detect_encoding(path) == "utf-8-sig"

    def test_detect_utf16(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_bytes("a,b\n".encode("utf-16"))
        assert detect_encoding(path) == "utf-16"

    def test_read_utf16(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_bytes("Day,Spend\n".encode("utf-16"))
        assert read_text(path) == "Day,Spend\n"

    def test_read_strips_utf8_bom(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_bytes(b"\xef\xbb\xbfDay,Spend\n")
        assert read_text(path) == "Day,Spend\n"

    def test_mime_types(self):
        assert guess_mime_type("x.CSV") == "text/csv"
        assert guess_mime_type("x.json") == "application/json"
        assert guess_mime_type("x.unknownext") == "application/octet-stream"

    def test_non_csv_content_not_read(self, tmp_path):
        path = tmp_path / "report.json"
        path.write_text('{"a": 1}', encoding="utf-8")
        assert load_file(path).content == ""

    def test_list_folder_sorted(self, tmp_path):
        (tmp_path / "b.csv").write_text("x\n", encoding="utf-8")
        (tmp_path / "a.csv").write_text("y\n", encoding="utf-8")
        (tmp_path / "sub").mkdir()
        files = list_folder(tmp_path)
        assert [f.name for f in files] == ["a.csv", "b.csv"]
        assert files[0].mime_type == "text/csv"
        assert files[0].content == "y\n"

    def test_list_missing_folder(self, tmp_path):
        with pytest.raises(ConfigurationError):
            list_folder(tmp_path / "missing")

    def test_read_table_csv(self, tmp_path):
        path = tmp_path / "regions.csv"
        path.write_text("Country,2-ISO,Region\nUnited States,US,North America\n",
                        encoding="utf-8")
        assert read_table_csv(path) == [
            ["Country", "2-ISO", "Region"],
            ["United States", "US", "North America"],
        ]

    def test_read_table_csv_missing(self, tmp_path):
        with pytest.raises(ConfigurationError):
            read_table_csv(tmp_path / "missing.csv")


# ===================================================================
# Google Sheets source
# ===================================================================

class TestSheetsClient:
    @pytest.fixture
    def gclient(self):
        client = MagicMock()
        worksheet = client.open_by_key.return_value.worksheet.return_value
        worksheet.get_all_values.return_value = [
            ["2-ISO", "Region"],
            ["US", "North America"],
        ]
        return client

    def test_read_table(self, gclient):
        table = SheetsClient(client=gclient).read_table("sheet-id", "Regions")
        assert table == [["2-ISO", "Region"], ["US", "North America"]]
        gclient.open_by_key.assert_called_once_with("sheet-id")
        gclient.open_by_key.return_value.worksheet.assert_called_once_with("Regions")

    def test_missing_tab(self, gclient):
        gclient.open_by_key.return_value.worksheet.side_effect = \
            gspread.exceptions.WorksheetNotFound("Regions")
        with pytest.raises(ConfigurationError, match="Regions"):
            SheetsClient(client=gclient).read_table("sheet-id", "Regions")

    @pytest.mark.parametrize("error", [
        PermissionError("403 forbidden"),
        RefreshError("invalid_grant"),
    ])
    def test_access_errors(self, gclient, error):
        gclient.open_by_key.side_effect = error
        with pytest.raises(ConfigurationError, match="sheet-id"):
            SheetsClient(client=gclient).read_table("sheet-id", "Regions")

    def test_missing_spreadsheet_id(self, gclient):
        with pytest.raises(ConfigurationError):
            SheetsClient(client=gclient).read_table("", "Regions")

    def test_no_credentials(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_JSON", raising=False)
        with pytest.raises(ConfigurationError, match="GOOGLE_SERVICE_ACCOUNT_JSON"):
            SheetsClient()

    def test_authorizes_with_service_account(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_JSON", "/secrets/sa.json")
        with patch("retro_report.connectors.sheets.Credentials") as MockCreds, \
             patch("retro_report.connectors.sheets.gspread.authorize") as mock_auth:
            client = SheetsClient()
        MockCreds.from_service_account_file.assert_called_once()
        assert MockCreds.from_service_account_file.call_args.args[0] == "/secrets/sa.json"
        mock_auth.assert_called_once_with(MockCreds.from_service_account_file.return_value)
        assert client.client is mock_auth.return_value

    def test_bad_credentials_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            SheetsClient(service_account_json=tmp_path / "missing.json")


# ===================================================================
# Confluence sink
# ===================================================================

def _response(status=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload or {}
    response.text = text
    return response


@pytest.fixture
def confluence_config():
    return ConfluenceConfig(domain="acme", space_key="MKT",
                            parent_page_id="100", search_ancestor_id="10")


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def confluence(confluence_config, session):
    return ConfluenceClient(confluence_config, email="me@acme.test",
                            api_token="tok", session=session)


class TestConfluenceClient:
    def test_basic_auth(self, confluence, session):
        assert session.auth == ("me@acme.test", "tok")

    def test_credentials_from_environment(self, monkeypatch, confluence_config, session):
        monkeypatch.setenv("CONFLUENCE_EMAIL", "env@acme.test")
        monkeypatch.setenv("CONFLUENCE_API_TOKEN", "env-tok")
        ConfluenceClient(confluence_config, session=session)
        assert session.auth == ("env@acme.test", "env-tok")

    def test_missing_settings(self, monkeypatch, session):
        monkeypatch.delenv("CONFLUENCE_EMAIL", raising=False)
        monkeypatch.delenv("CONFLUENCE_API_TOKEN", raising=False)
        with pytest.raises(ConfigurationError, match="CONFLUENCE_EMAIL"):
            ConfluenceClient(ConfluenceConfig(domain="acme"), session=session)

    @pytest.mark.parametrize("domain, expected", [
        ("acme", "https://acme.atlassian.net/wiki"),
        ("acme.atlassian.net", "https://acme.atlassian.net/wiki"),
        ("https://wiki.acme.test/", "https://wiki.acme.test/wiki"),
    ])
    def test_base_url(self, confluence_config, session, domain, expected):
        confluence_config.domain = domain
        client = ConfluenceClient(confluence_config, email="e", api_token="t",
                                  session=session)
        assert client.base_url == expected

    def test_page_exists_query(self, confluence, session):
        session.request.return_value = _response(payload={"results": [{"id": "1"}]})
        assert confluence.page_exists('Retro "Aug"') is True
        method, url = session.request.call_args.args
        params = session.request.call_args.kwargs["params"]
        assert method == "GET"
        assert url == "https://acme.atlassian.net/wiki/rest/api/content/search"
        assert params["cql"] == 'ancestor=10 and title="Retro \\"Aug\\"" and type=page'
        assert params["status"] == "current"

    def test_page_does_not_exist(self, confluence, session):
        session.request.return_value = _response(payload={"results": []})
        assert confluence.page_exists("Retro") is False

    def test_search_error(self, confluence, session):
        session.request.return_value = _response(status=401, text="denied")
        with pytest.raises(ConfluenceError, match="401"):
            confluence.page_exists("Retro")

    def test_network_error(self, confluence, session):
        session.request.side_effect = requests.ConnectionError("down")
        with pytest.raises(ConfluenceError):
            confluence.page_exists("Retro")

    def test_create_page_payload(self, confluence, session):
        session.request.return_value = _response(
            payload={"_links": {"webui": "/spaces/MKT/pages/5"}}
        )
        url = confluence.create_page("Retro", "a < b")
        assert url == "https://acme.atlassian.net/wiki/spaces/MKT/pages/5"
        method, endpoint = session.request.call_args.args
        payload = session.request.call_args.kwargs["json"]
        assert method == "POST"
        assert endpoint == "https://acme.atlassian.net/wiki/rest/api/content"
        assert payload["type"] == "page"
        assert payload["space"] == {"key": "MKT"}
        assert payload["ancestors"] == [{"id": "100"}]
        assert payload["body"]["storage"]["value"] == "<pre>a &lt; b</pre>"
        assert payload["body"]["storage"]["representation"] == "storage"

    def test_create_page_error(self, confluence, session):
        session.request.return_value = _response(status=400, text="bad")
        with pytest.raises(ConfluenceError, match="400"):
            confluence.create_page("Retro", "text")


class TestPublishReport:
    def test_skips_existing_page(self):
        client = MagicMock()
        client.page_exists.return_value = True
        assert publish_report(client, "Retro", "text") is None
        client.create_page.assert_not_called()

    def test_creates_new_page(self):
        client = MagicMock()
        client.page_exists.return_value = False
        client.create_page.return_value = "https://wiki/page"
        assert publish_report(client, "Retro", "text") == "https://wiki/page"
        client.create_page.assert_called_once_with("Retro", "text")

    def test_storage_body_escapes(self):
        assert storage_body('a & "b"\n<c>') == '<pre>a &amp; "b"\n&lt;c&gt;</pre>'

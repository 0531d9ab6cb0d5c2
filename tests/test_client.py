"""Tests for the ledger API client."""

from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import FIXED_NOW, TEST_ENDPOINTS
from ledgerlink.client import LedgerClient, UploadResult, write_export
from ledgerlink.errors import NetworkError, ValidationError
from ledgerlink.models import EntrySubmission, ListingFilters, Side
from ledgerlink.session import MemorySessionStore
from ledgerlink.signing import RequestSigner


def make_response(
    json_data: Any = None,
    status_code: int = 200,
    text: str = "",
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Build a mocked requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    response.headers = headers or {"Content-Type": "application/json"}
    return response


def make_submission(files: list[Path] | None = None) -> EntrySubmission:
    return EntrySubmission(
        date=date(2024, 1, 5),
        amount="42.00",
        side=Side.DEBIT,
        category="Office",
        description="Printer paper",
        files=files or [],
    )


class TestLedgerClient:
    """Tests for LedgerClient class."""

    @patch("ledgerlink.client.requests.Session")
    def test_load_entries_signed(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test loading a page sends a signed JSON body."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = make_response({"response": []})

        client = LedgerClient(TEST_ENDPOINTS, signer)
        filters = ListingFilters(query_string="rent", start_date="01-jan-2024")
        result = client.load_entries(filters, page_number=2, limit=20)

        assert result == {"response": []}
        args, kwargs = mock_session.request.call_args
        assert args == ("POST", TEST_ENDPOINTS.filter_endpoint)
        assert kwargs["json"] == {
            "limit": 20,
            "pageNumber": 2,
            "queryString": "rent",
            "startDate": "01-jan-2024",
        }
        assert kwargs["headers"] == signer.sign(TEST_ENDPOINTS.filter_endpoint).headers

    @patch("ledgerlink.client.requests.Session")
    def test_unsigned_without_session(
        self, mock_session_class: MagicMock, empty_store: MemorySessionStore
    ) -> None:
        """Test requests go out without signing headers when logged out."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = make_response([])

        client = LedgerClient(TEST_ENDPOINTS, RequestSigner(empty_store))
        client.load_entries(ListingFilters())

        kwargs = mock_session.request.call_args.kwargs
        assert kwargs["json"] == {"limit": 20, "pageNumber": 1}
        assert "x-message" not in kwargs["headers"]
        assert "x-signature" not in kwargs["headers"]

    @patch("ledgerlink.client.requests.Session")
    def test_http_error_becomes_network_error(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test non-2xx responses raise NetworkError with the status."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        response = make_response(status_code=500)
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
        mock_session.request.return_value = response

        client = LedgerClient(TEST_ENDPOINTS, signer)

        with pytest.raises(NetworkError) as exc_info:
            client.load_entries(ListingFilters())
        assert exc_info.value.status_code == 500

    @patch("ledgerlink.client.requests.Session")
    def test_connection_error_becomes_network_error(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test transport failures raise NetworkError."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = requests.ConnectionError("unreachable")

        client = LedgerClient(TEST_ENDPOINTS, signer)

        with pytest.raises(NetworkError) as exc_info:
            client.load_entries(ListingFilters())
        assert exc_info.value.status_code is None

    @patch("ledgerlink.client.requests.Session")
    def test_invalid_json_becomes_network_error(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test undecodable response bodies raise NetworkError."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        response = make_response()
        response.json.side_effect = ValueError("bad json")
        mock_session.request.return_value = response

        client = LedgerClient(TEST_ENDPOINTS, signer)

        with pytest.raises(NetworkError):
            client.load_entries(ListingFilters())

    @patch("ledgerlink.client.requests.Session")
    def test_export_entries(self, mock_session_class: MagicMock, signer: RequestSigner) -> None:
        """Test export posts the filters and returns the CSV text."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        response = make_response(text="id,amount\n1,10.00\n", headers={"Content-Type": "text/csv"})
        mock_session.request.return_value = response

        client = LedgerClient(TEST_ENDPOINTS, signer)
        csv_text = client.export_entries(ListingFilters(end_date="31-jan-2024"))

        assert csv_text == "id,amount\n1,10.00\n"
        assert response.encoding == "utf-8"
        args, kwargs = mock_session.request.call_args
        assert args[1] == TEST_ENDPOINTS.export_endpoint
        assert kwargs["json"] == {"endDate": "31-jan-2024"}


class TestSubmitEntry:
    """Tests for LedgerClient.submit_entry."""

    @patch("ledgerlink.client.requests.Session")
    def test_success_reports_progress(
        self, mock_session_class: MagicMock, signer: RequestSigner, tmp_path: Path
    ) -> None:
        """Test a successful upload streams the body and ends at 1.0."""
        attachment = tmp_path / "paper receipt.png"
        attachment.write_bytes(b"\x89PNG" + b"\x00" * 30000)

        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        sent: list[bytes] = []

        def fake_request(method: str, url: str, **kwargs: Any) -> MagicMock:
            sent.extend(kwargs["data"])
            return make_response(status_code=201)

        mock_session.request.side_effect = fake_request
        seen: list[float] = []

        client = LedgerClient(TEST_ENDPOINTS, signer)
        result = client.submit_entry(make_submission([attachment]), seen.append, now=FIXED_NOW)

        assert isinstance(result, UploadResult)
        assert result.status_code == 201
        assert result.file_count == 1
        assert result.file_names[0].endswith("-05-jan-2024-paperreceipt.png")

        assert seen[-1] == 1.0
        assert seen.count(1.0) == 1
        assert seen == sorted(seen)
        assert len(seen) > 1

        kwargs = mock_session.request.call_args.kwargs
        assert kwargs["headers"]["Content-Type"].startswith("multipart/form-data")
        assert "x-signature" in kwargs["headers"]
        assert b'name="description"' in b"".join(sent)

    @patch("ledgerlink.client.requests.Session")
    def test_failure_never_reports_one(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test a failed upload raises and never reports completion."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = requests.Timeout("slow")
        seen: list[float] = []

        client = LedgerClient(TEST_ENDPOINTS, signer)

        with pytest.raises(NetworkError):
            client.submit_entry(make_submission(), seen.append, now=FIXED_NOW)
        assert 1.0 not in seen

    @patch("ledgerlink.client.requests.Session")
    def test_invalid_submission_not_sent(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test validation happens before any request."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        client = LedgerClient(TEST_ENDPOINTS, signer)
        submission = make_submission()
        submission.category = ""

        with pytest.raises(ValidationError):
            client.submit_entry(submission)
        mock_session.request.assert_not_called()


class TestSuggestions:
    """Tests for autocomplete suggestions."""

    @patch("ledgerlink.client.requests.Session")
    def test_categories(self, mock_session_class: MagicMock, signer: RequestSigner) -> None:
        """Test category suggestions are read from the first element."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = make_response(
            [{"appended_category": ["Food", "Fuel"]}]
        )

        client = LedgerClient(TEST_ENDPOINTS, signer)

        assert client.suggest_categories("F") == ["Food", "Fuel"]
        args, kwargs = mock_session.request.call_args
        assert args[1] == TEST_ENDPOINTS.category_autocomplete_endpoint
        assert kwargs["json"] == {"searchFor": "F"}

    @patch("ledgerlink.client.requests.Session")
    def test_descriptions(self, mock_session_class: MagicMock, signer: RequestSigner) -> None:
        """Test description suggestions use their own endpoint and field."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = make_response(
            [{"appended_description": ["Lunch with team"]}]
        )

        client = LedgerClient(TEST_ENDPOINTS, signer)

        assert client.suggest_descriptions("Lun") == ["Lunch with team"]
        assert mock_session.request.call_args.args[1] == (
            TEST_ENDPOINTS.description_autocomplete_endpoint
        )

    @patch("ledgerlink.client.requests.Session")
    def test_short_input_skips_request(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test input below the minimum length does not query the API."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        client = LedgerClient(TEST_ENDPOINTS, signer, autocomplete_min_chars=3)

        assert client.suggest_categories("Fo") == []
        assert client.suggest_categories("") == []
        mock_session.request.assert_not_called()

    @patch("ledgerlink.client.requests.Session")
    def test_errors_give_no_suggestions(
        self, mock_session_class: MagicMock, signer: RequestSigner
    ) -> None:
        """Test failures and odd payloads give an empty list."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        client = LedgerClient(TEST_ENDPOINTS, signer)

        mock_session.request.side_effect = requests.ConnectionError("down")
        assert client.suggest_categories("Food") == []

        mock_session.request.side_effect = None
        mock_session.request.return_value = make_response({"unexpected": True})
        assert client.suggest_categories("Food") == []

        mock_session.request.return_value = make_response([])
        assert client.suggest_categories("Food") == []


class TestWriteExport:
    """Tests for write_export function."""

    def test_writes_named_file(self, tmp_path: Path) -> None:
        """Test the CSV is written under the dated export name."""
        path = write_export("a,b\r\n1,2\r\n", tmp_path, today=date(2024, 1, 5))

        assert path == tmp_path / "transactions-export-05-jan-2024.csv"
        assert path.read_bytes() == b"a,b\r\n1,2\r\n"

"""Ledger API client with HMAC-signed requests."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import requests

from ledgerlink.config import DEFAULT_AUTOCOMPLETE_MIN_CHARS, Endpoints
from ledgerlink.errors import AuthRequiredError, NetworkError
from ledgerlink.models import EntrySubmission, ListingFilters
from ledgerlink.signing import RequestSigner
from ledgerlink.upload import (
    ProgressBody,
    ProgressCallback,
    UploadProgress,
    build_multipart_body,
    export_file_name,
)

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    """Result of submitting an entry."""

    status_code: int
    file_names: list[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        """Number of attachments sent."""
        return len(self.file_names)


class LedgerClient:
    """Client for the ledger API.

    Every call is signed with ``x-message``/``x-signature`` headers when a
    session password is available. Without one the call is still sent and the
    server decides whether to accept it.
    """

    def __init__(
        self,
        endpoints: Endpoints,
        signer: RequestSigner,
        autocomplete_min_chars: int = DEFAULT_AUTOCOMPLETE_MIN_CHARS,
        timeout: float | None = 30.0,
    ) -> None:
        """Initialize client with endpoints and a request signer."""
        self.endpoints = endpoints
        self.signer = signer
        self.autocomplete_min_chars = autocomplete_min_chars
        self.timeout = timeout
        self._session = requests.Session()

    def auth_headers(self, url: str) -> dict[str, str]:
        """Signing headers for ``url``, or none when there is no session."""
        try:
            return self.signer.sign(url).headers
        except AuthRequiredError:
            logger.debug("No session password; sending unsigned request to %s", url)
            return {}

    def _send(
        self,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """POST a request and check its status."""
        all_headers = self.auth_headers(url)
        if headers:
            all_headers.update(headers)

        try:
            response = self._session.request(
                "POST",
                url,
                json=json,
                data=data,
                headers=all_headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise NetworkError(f"API request failed with status {status}", status) from e
        except requests.RequestException as e:
            raise NetworkError(f"Network error calling {url}: {e}") from e

        return response

    def _post_json(self, url: str, body: dict[str, Any]) -> Any:
        """POST a JSON body and decode the JSON response."""
        response = self._send(url, json=body)
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON in response from {url}") from e

    def load_entries(
        self,
        filters: ListingFilters,
        page_number: int = 1,
        limit: int = 20,
    ) -> Any:
        """Fetch one page of entries.

        Returns:
            The decoded response payload, in whichever envelope the server uses
        """
        body: dict[str, Any] = {"limit": limit, "pageNumber": page_number}
        body.update(filters.to_payload())
        logger.info("Loading entries with filters: %s", body)
        return self._post_json(self.endpoints.filter_endpoint, body)

    def export_entries(self, filters: ListingFilters) -> str:
        """Export entries matching ``filters`` as CSV text."""
        body = filters.to_payload()
        logger.info("Exporting entries with filters: %s", body)
        response = self._send(self.endpoints.export_endpoint, json=body)
        if "charset" not in response.headers.get("Content-Type", ""):
            response.encoding = "utf-8"
        return response.text

    def submit_entry(
        self,
        submission: EntrySubmission,
        on_progress: ProgressCallback | None = None,
        now: datetime | None = None,
    ) -> UploadResult:
        """Submit a new entry with its attachments.

        Args:
            submission: Form values and attachment paths
            on_progress: Called with the uploaded fraction in [0, 1]; 1.0 is
                delivered only when the server accepted the entry, and no
                call happens after this method returns or raises
            now: Time used for renaming attachments

        Returns:
            UploadResult with the status code and renamed file names

        Raises:
            ValidationError: If the submission is incomplete
            NetworkError: If the upload fails
        """
        body, content_type, file_names = build_multipart_body(submission, now)
        progress = UploadProgress(on_progress)

        try:
            response = self._send(
                self.endpoints.upload_endpoint,
                data=ProgressBody(body, progress),
                headers={"Content-Type": content_type},
            )
        except NetworkError:
            progress.fail()
            logger.error("Error submitting transaction")
            raise

        progress.complete()
        return UploadResult(status_code=response.status_code, file_names=file_names)

    def _suggest(self, url: str, search_for: str, field_name: str) -> list[str]:
        if not search_for or len(search_for) < self.autocomplete_min_chars:
            return []

        try:
            data = self._post_json(url, {"searchFor": search_for})
        except NetworkError as e:
            logger.warning("Error fetching %s suggestions: %s", field_name, e)
            return []

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return []
        suggestions = data[0].get(field_name) or []
        if not isinstance(suggestions, list):
            return []
        return [str(s) for s in suggestions]

    def suggest_categories(self, search_for: str) -> list[str]:
        """Category autocomplete suggestions for ``search_for``."""
        return self._suggest(
            self.endpoints.category_autocomplete_endpoint, search_for, "appended_category"
        )

    def suggest_descriptions(self, search_for: str) -> list[str]:
        """Description autocomplete suggestions for ``search_for``."""
        return self._suggest(
            self.endpoints.description_autocomplete_endpoint, search_for, "appended_description"
        )

    def sign_for_link(self, url: str) -> str:
        """Authenticated URL for opening a document directly."""
        return self.signer.sign_for_link(url)


def write_export(csv_text: str, directory: Path, today: date | None = None) -> Path:
    """Write exported CSV text to ``transactions-export-<DD-mon-YYYY>.csv``."""
    output_path = directory / export_file_name(today)
    output_path.write_text(csv_text, encoding="utf-8", newline="")
    return output_path

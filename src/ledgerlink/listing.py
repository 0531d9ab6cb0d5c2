"""Paginated entry listing with filters and "load more".

Each fetch is tagged with a PageRequest snapshot. Only the most recently
issued request can change the listing; responses for older requests are
discarded, so a slow response never overwrites newer filter results.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any

from ledgerlink.errors import NetworkError
from ledgerlink.models import Entry, ListingFilters, ListingState
from ledgerlink.normalizer import EntryNormalizer
from ledgerlink.utils import format_date_for_api

if TYPE_CHECKING:
    from ledgerlink.client import LedgerClient

logger = logging.getLogger(__name__)

FILTERED_EMPTY_MESSAGE = "No entries found matching your filters."
EMPTY_LEDGER_MESSAGE = "No entries found. Try adding some transactions first."
LOAD_ERROR_MESSAGE = "Error loading entries. Please try again."

FetchPage = Callable[[ListingFilters, int, int], Any]


class ListingStatus(str, Enum):
    """What the listing currently shows."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class PageRequest:
    """Snapshot a fetch was issued for."""

    generation: int
    filters: ListingFilters
    page: int
    page_size: int


def build_filters(
    query_string: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> ListingFilters:
    """Clean user-entered filter values.

    The query string is trimmed and dates are reformatted to DD-mon-YYYY.
    Blank values and dates that don't parse are left unset.
    """
    query = query_string.strip() if query_string else ""

    api_dates: list[str | None] = []
    for label, value in (("start", start_date), ("end", end_date)):
        formatted = format_date_for_api(value)
        if formatted is None and value not in (None, ""):
            logger.warning("Ignoring invalid %s date %r", label, value)
        api_dates.append(formatted)

    return ListingFilters(
        query_string=query or None,
        start_date=api_dates[0],
        end_date=api_dates[1],
    )


class ListingController:
    """
    Drives the entry listing.

    Usage:
        listing = ListingController(client.load_entries, page_size=20)
        listing.reset_and_load()
        while not listing.state.exhausted:
            listing.load_more()
        print(listing.entries)
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        page_size: int = 20,
        today: date | None = None,
    ) -> None:
        """
        Initialize controller.

        Args:
            fetch_page: Called as fetch_page(filters, page, page_size) and
                returning the raw response payload; raises NetworkError on
                failure
            page_size: Records requested per page
            today: Date used for records without a valid date
        """
        self._fetch_page = fetch_page
        self._normalizer = EntryNormalizer(today=today)
        self._generation = 0
        self._pending: PageRequest | None = None
        self._page_loaded = False

        self.state = ListingState(page_size=page_size)
        self.entries: list[Entry] = []
        self.status = ListingStatus.IDLE
        self.message: str | None = None

    @property
    def loading(self) -> bool:
        """True while a fetch is outstanding."""
        return self._pending is not None

    @property
    def has_more(self) -> bool:
        """True when "load more" would fetch another page."""
        return not self.state.exhausted and not self.loading

    def begin_reset(self, filters: ListingFilters | None = None) -> PageRequest:
        """Start over on page 1 with ``filters``; returns the fetch to run."""
        self._generation += 1
        self.state = ListingState(
            filters=filters or ListingFilters(),
            page_size=self.state.page_size,
        )
        self.entries = []
        self._page_loaded = False
        return self._issue(page=1)

    def begin_load_more(self) -> PageRequest | None:
        """Issue the next page fetch, or None when there is nothing to load.

        Until a page has loaded for the current filters, page 1 is retried.
        """
        if self.state.exhausted:
            logger.debug("Listing exhausted, not loading more")
            return None
        if self.loading:
            logger.debug("Fetch already in flight, not loading more")
            return None
        if not self._page_loaded:
            logger.debug("No page loaded yet, retrying page 1")
            return self._issue(page=1)
        return self._issue(page=self.state.page + 1)

    def _issue(self, page: int) -> PageRequest:
        request = PageRequest(
            generation=self._generation,
            filters=self.state.filters,
            page=page,
            page_size=self.state.page_size,
        )
        self._pending = request
        self.status = ListingStatus.LOADING
        self.message = None
        return request

    def is_current(self, request: PageRequest) -> bool:
        """True if ``request`` is the fetch the listing is waiting for."""
        return request == self._pending

    def complete(self, request: PageRequest, raw: Any) -> bool:
        """Apply a fetched page.

        Returns:
            False if the response was stale and discarded
        """
        if not self.is_current(request):
            logger.debug("Discarding stale response for page %d", request.page)
            return False
        self._pending = None
        self._page_loaded = True

        entries = self._normalizer.process(raw)
        count = self._normalizer.record_count

        self.entries.extend(entries)
        self.state.page = request.page
        self.state.total_loaded += count
        self.state.exhausted = count < request.page_size

        if self.state.total_loaded == 0:
            self.status = ListingStatus.EMPTY
            if request.filters.is_active:
                self.message = FILTERED_EMPTY_MESSAGE
            else:
                self.message = EMPTY_LEDGER_MESSAGE
        else:
            self.status = ListingStatus.READY
            self.message = None

        logger.info(
            "Loaded page %d: %d records, %d total", request.page, count, self.state.total_loaded
        )
        return True

    def fail(self, request: PageRequest, error: Exception) -> bool:
        """Record a failed fetch; pagination state is left as it was.

        Returns:
            False if the failure belonged to a stale request
        """
        if not self.is_current(request):
            logger.debug("Ignoring failure of stale request for page %d", request.page)
            return False
        self._pending = None

        logger.error("Error loading entries: %s", error)
        self.status = ListingStatus.ERROR
        self.message = LOAD_ERROR_MESSAGE
        return True

    def _run(self, request: PageRequest) -> bool:
        try:
            raw = self._fetch_page(request.filters, request.page, request.page_size)
        except NetworkError as e:
            return self.fail(request, e)
        return self.complete(request, raw)

    def reset_and_load(self) -> bool:
        """Clear filters and load the first page.

        Returns:
            True if the page loaded
        """
        self._run(self.begin_reset())
        return self.status is not ListingStatus.ERROR

    def apply_filters(
        self,
        query_string: str | None = None,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> bool:
        """Load the first page for new filter values.

        Returns:
            True if the page loaded
        """
        filters = build_filters(query_string, start_date, end_date)
        logger.info("Applying filters: %s", filters)
        self._run(self.begin_reset(filters))
        return self.status is not ListingStatus.ERROR

    def load_more(self) -> bool | None:
        """Load the next page.

        Returns:
            None when there was nothing to load (no fetch issued), otherwise
            True if the page loaded
        """
        request = self.begin_load_more()
        if request is None:
            return None
        self._run(request)
        return self.status is not ListingStatus.ERROR

    def export_csv(self, client: "LedgerClient") -> str:
        """Export entries matching the current filters as CSV text."""
        return client.export_entries(self.state.filters)

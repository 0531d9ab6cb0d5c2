"""Data models for ledger entries, documents and listing state."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any


class Side(str, Enum):
    """Credit/debit side of a ledger entry."""

    CREDIT = "CR"
    DEBIT = "DR"


@dataclass(frozen=True)
class Document:
    """A file attached to an entry, reachable by URL."""

    url: str
    name: str = "Document"


@dataclass(frozen=True)
class Entry:
    """Represents a normalized ledger entry."""

    id: str
    date: date
    amount: Decimal
    side: Side
    category: str = "Uncategorized"
    description: str = ""
    human_code: str | None = None
    documents: tuple[Document, ...] = ()

    def __post_init__(self) -> None:
        """Keep the magnitude non-negative; the sign lives in ``side``."""
        if self.amount < 0:
            object.__setattr__(self, "amount", -self.amount)

    @property
    def is_debit(self) -> bool:
        """Return True if this entry is a debit."""
        return self.side is Side.DEBIT

    @property
    def signed_amount(self) -> Decimal:
        """Amount as displayed: negative for debits."""
        return -self.amount if self.is_debit else self.amount

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary (JSON friendly)."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "side": self.side.value,
            "category": self.category,
            "description": self.description,
            "human_code": self.human_code,
            "documents": [{"url": d.url, "name": d.name} for d in self.documents],
        }


@dataclass(frozen=True)
class ListingFilters:
    """Filters applied to the entry listing.

    Dates are already in the API's ``DD-mon-YYYY`` format.
    """

    query_string: str | None = None
    start_date: str | None = None
    end_date: str | None = None

    @property
    def is_active(self) -> bool:
        """Return True if any filter is set."""
        return bool(self.query_string or self.start_date or self.end_date)

    def to_payload(self) -> dict[str, str]:
        """Filter fields for a request body, omitting unset ones."""
        payload: dict[str, str] = {}
        if self.query_string:
            payload["queryString"] = self.query_string
        if self.start_date:
            payload["startDate"] = self.start_date
        if self.end_date:
            payload["endDate"] = self.end_date
        return payload


@dataclass
class ListingState:
    """Pagination and filter state of one listing session."""

    filters: ListingFilters = field(default_factory=ListingFilters)
    page: int = 1
    page_size: int = 20
    total_loaded: int = 0
    exhausted: bool = False

    def __post_init__(self) -> None:
        """Validate pagination values."""
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {self.page_size}")


@dataclass
class EntrySubmission:
    """Form values for a new ledger entry."""

    date: date | str
    amount: Decimal | str
    side: Side
    category: str
    description: str
    files: list[Path] = field(default_factory=list)

"""Normalization of ledger API payloads into Entry objects.

The backend's payload shape has changed over time. Envelopes are resolved by
an ordered list of matchers (first match wins) and record fields by an ordered
table of candidate keys with a default per field.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from urllib.parse import unquote

from ledgerlink.errors import BadResponseShape, InvalidDate, InvalidDocument
from ledgerlink.models import Document, Entry, Side
from ledgerlink.utils import coerce_date, parse_amount

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_DOCUMENT_NAME = "Document"


@dataclass(frozen=True)
class FieldSpec:
    """Candidate raw keys for one Entry field, tried in order."""

    keys: tuple[str, ...]
    default: Any = None


FIELD_CANDIDATES: dict[str, FieldSpec] = {
    "id": FieldSpec(("id", "_id"), ""),
    "date": FieldSpec(("date", "entry_date", "transaction_date")),
    "amount": FieldSpec(("amount", "transaction_amount", "value"), 0),
    "side": FieldSpec(("cr_dr", "type", "transaction_type")),
    "category": FieldSpec(("category", "group"), DEFAULT_CATEGORY),
    "description": FieldSpec(("description", "desc", "note"), ""),
    "human_code": FieldSpec(("human_code",)),
    "documents": FieldSpec(("documents", "files"), ()),
}

DOCUMENT_URL_KEYS = ("publicUrl", "public_url", "url", "link", "path", "file_path")
DOCUMENT_NAME_KEYS = ("name", "filename", "file_name", "title")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def pick(raw: dict[str, Any], keys: tuple[str, ...], default: Any = None) -> Any:
    """Return the first present, non-empty value among ``keys``."""
    for key in keys:
        value = raw.get(key)
        if not _is_empty(value):
            return value
    return default


def pick_field(raw: dict[str, Any], field_name: str) -> Any:
    """Look up an Entry field through FIELD_CANDIDATES."""
    spec = FIELD_CANDIDATES[field_name]
    return pick(raw, spec.keys, spec.default)


def normalize_side(value: Any) -> Side:
    """Map a credit/debit indicator to a Side; unknown values are credits."""
    if not isinstance(value, str):
        return Side.CREDIT

    upper = value.upper()
    if "CR" in upper or "CREDIT" in upper:
        return Side.CREDIT
    if "DR" in upper or "DEBIT" in upper:
        return Side.DEBIT
    return Side.CREDIT


def normalize_amount(value: Any) -> Decimal:
    """Parse an amount magnitude; unparseable values become zero."""
    if isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, (int, float)):
        parsed: Decimal | None = Decimal(str(value))
    elif isinstance(value, str):
        parsed = parse_amount(value)
    else:
        parsed = None

    if parsed is None or not parsed.is_finite():
        logger.warning("Invalid amount %r, using 0", value)
        return Decimal(0)
    return abs(parsed)


def strict_date(value: Any) -> date:
    """Parse a record date.

    Raises:
        InvalidDate: If the value is not a recognizable date
    """
    parsed = coerce_date(value)
    if parsed is None:
        raise InvalidDate(f"Invalid date: {value!r}")
    return parsed


def normalize_date(value: Any, today: date | None = None) -> date:
    """Parse a record date, defaulting to today when absent or invalid."""
    fallback = today or date.today()
    if value is None:
        return fallback
    try:
        return strict_date(value)
    except InvalidDate as e:
        logger.warning("%s, using %s", e, fallback.isoformat())
        return fallback


def file_name_from_url(url: str) -> str:
    """Last path segment of ``url``, query stripped and percent-decoded."""
    if not url:
        return ""
    segment = url.split("?", 1)[0].split("#", 1)[0].rstrip("/").split("/")[-1]
    return unquote(segment)


def resolve_document_url(raw: Any) -> str:
    """Find a document's URL.

    Raises:
        InvalidDocument: If no candidate yields a URL
    """
    if isinstance(raw, str):
        url = raw.strip()
    elif isinstance(raw, dict):
        value = pick(raw, DOCUMENT_URL_KEYS, "")
        url = value.strip() if isinstance(value, str) else ""
    else:
        url = ""

    if not url:
        raise InvalidDocument(f"Document without URL: {raw!r}")
    return url


def normalize_document(raw: Any) -> Document | None:
    """Normalize a raw document (bare URL string or object).

    Returns:
        Document, or None when no URL can be resolved
    """
    try:
        url = resolve_document_url(raw)
    except InvalidDocument as e:
        logger.warning("Dropping document: %s", e)
        return None

    name = None
    if isinstance(raw, dict):
        value = pick(raw, DOCUMENT_NAME_KEYS)
        if isinstance(value, str):
            name = value.strip()

    return Document(url=url, name=name or file_name_from_url(url) or DEFAULT_DOCUMENT_NAME)


def normalize_documents(raw: Any) -> tuple[Document, ...]:
    """Normalize a document list, dropping documents without URL."""
    if not isinstance(raw, (list, tuple)):
        return ()
    documents = (normalize_document(doc) for doc in raw)
    return tuple(doc for doc in documents if doc is not None)


def normalize_entry(
    raw: dict[str, Any],
    documents: Any = None,
    today: date | None = None,
) -> Entry:
    """Map a raw entry record to an Entry.

    Args:
        raw: Raw entry record
        documents: Raw documents carried next to the record; when None the
            record's own ``documents``/``files`` field is used
        today: Date used when the record has no valid date
    """
    if documents is None:
        documents = pick_field(raw, "documents")

    human_code = pick_field(raw, "human_code")
    description = pick_field(raw, "description")
    category = pick_field(raw, "category")

    return Entry(
        id=str(pick_field(raw, "id")),
        date=normalize_date(pick_field(raw, "date"), today),
        amount=normalize_amount(pick_field(raw, "amount")),
        side=normalize_side(pick_field(raw, "side")),
        category=str(category),
        description=str(description),
        human_code=str(human_code) if human_code is not None else None,
        documents=normalize_documents(documents),
    )


# Envelope matchers: each returns the record list, or None when it doesn't match.

def _match_wrapped_list(raw: Any) -> list[Any] | None:
    if isinstance(raw, list) and raw and isinstance(raw[0], dict):
        inner = raw[0].get("response")
        if isinstance(inner, list):
            return inner
    return None


def _match_response_object(raw: Any) -> list[Any] | None:
    if isinstance(raw, dict) and isinstance(raw.get("response"), list):
        return raw["response"]  # type: ignore[no-any-return]
    return None


def _match_bare_list(raw: Any) -> list[Any] | None:
    return raw if isinstance(raw, list) else None


def _match_entries_object(raw: Any) -> list[Any] | None:
    if isinstance(raw, dict):
        for key in ("entries", "data"):
            if isinstance(raw.get(key), list):
                return raw[key]  # type: ignore[no-any-return]
    return None


ENVELOPE_MATCHERS: tuple[tuple[str, Callable[[Any], list[Any] | None]], ...] = (
    ("wrapped_list", _match_wrapped_list),
    ("response_object", _match_response_object),
    ("bare_list", _match_bare_list),
    ("entries_object", _match_entries_object),
)


def unwrap_response_envelope(raw: Any) -> list[Any]:
    """Extract the list of entry-like records from a response payload."""
    if raw is None:
        return []

    for name, matcher in ENVELOPE_MATCHERS:
        records = matcher(raw)
        if records is not None:
            logger.debug("Envelope %s matched with %d records", name, len(records))
            return list(records)

    shape = BadResponseShape(
        f"Unrecognized envelope {type(raw).__name__}, using it as one record"
    )
    logger.warning("%s", shape)
    return [raw]


def split_record(item: Any) -> tuple[dict[str, Any], Any] | None:
    """Separate a record into (raw entry, raw documents).

    Recognizes ``{"entry": {...}, "documents": [...]}`` and flat records
    carrying their own ``id``/``_id``.
    """
    if not isinstance(item, dict):
        return None

    entry = item.get("entry")
    if isinstance(entry, dict) and entry:
        return entry, item.get("documents")

    if not _is_empty(item.get("id")) or not _is_empty(item.get("_id")):
        return item, None

    return None


class EntryNormalizer:
    """
    Turns API responses into Entry lists.

    Usage:
        normalizer = EntryNormalizer()
        entries = normalizer.process(response_json)
        if normalizer.skipped:
            ...
    """

    def __init__(self, today: date | None = None) -> None:
        """
        Initialize normalizer.

        Args:
            today: Date used for records without a valid date (defaults to
                the current date at processing time)
        """
        self.today = today
        self._skipped: list[Any] = []
        self._record_count = 0

    @property
    def skipped(self) -> list[Any]:
        """Records from the last response that were not recognizable entries."""
        return self._skipped.copy()

    @property
    def record_count(self) -> int:
        """Number of records the last response carried, including skipped ones."""
        return self._record_count

    def process(self, raw: Any) -> list[Entry]:
        """Unwrap a response payload and normalize each record in it."""
        records = unwrap_response_envelope(raw)
        self._record_count = len(records)
        self._skipped = []

        entries: list[Entry] = []
        for item in records:
            parts = split_record(item)
            if parts is None:
                logger.warning("Skipping unexpected entry format: %.200r", item)
                self._skipped.append(item)
                continue
            raw_entry, raw_documents = parts
            entries.append(normalize_entry(raw_entry, raw_documents, self.today))

        return entries


def normalize_response(raw: Any, today: date | None = None) -> list[Entry]:
    """Normalize a whole response payload into entries."""
    return EntryNormalizer(today=today).process(raw)

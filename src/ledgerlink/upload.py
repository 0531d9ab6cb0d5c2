"""Multipart entry submission: form fields, file renaming and upload progress."""

import logging
import mimetypes
from collections.abc import Callable, Iterator
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from urllib3 import encode_multipart_formdata

from ledgerlink.errors import ValidationError
from ledgerlink.models import EntrySubmission
from ledgerlink.utils import format_date_for_api, parse_amount, sanitize_basename, split_extension

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

CHUNK_SIZE = 8192


def generate_file_name(original_name: str, now: datetime | None = None) -> str:
    """Rename an upload to ``<epoch-ms>-<DD-mon-YYYY>-<clean-basename><ext>``.

    Only the basename is sanitized; the extension (from the last dot) is kept
    verbatim. The date part is the calendar date of ``now`` in its own
    timezone; the default ``now`` is naive local time, so it is the local date.
    """
    if now is None:
        now = datetime.now()

    basename, extension = split_extension(original_name)
    epoch_ms = int(now.timestamp() * 1000)
    return f"{epoch_ms}-{format_date_for_api(now)}-{sanitize_basename(basename)}{extension}"


def export_file_name(today: date | None = None) -> str:
    """File name for a CSV export made on ``today``."""
    return f"transactions-export-{format_date_for_api(today or date.today())}.csv"


def build_form_fields(submission: EntrySubmission) -> list[tuple[str, str]]:
    """
    Validate a submission and return its text form fields in order.

    Raises:
        ValidationError: If a required field is missing or malformed
    """
    missing = [
        name
        for name, value in (
            ("date", submission.date),
            ("amount", submission.amount),
            ("category", submission.category),
            ("description", submission.description),
        )
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ValidationError(
            "Please fill all required fields: date, amount, category, and description "
            f"(missing: {', '.join(missing)})"
        )

    api_date = format_date_for_api(submission.date)
    if api_date is None:
        raise ValidationError(f"Invalid date: {submission.date!r}")

    amount = submission.amount
    if not isinstance(amount, Decimal):
        amount = parse_amount(str(amount))
    if amount is None or not amount.is_finite():
        raise ValidationError(f"Invalid amount: {submission.amount!r}")
    if amount < 0:
        raise ValidationError("Amount cannot be negative; use the debit side instead")

    return [
        ("date", api_date),
        ("amount", str(amount)),
        ("crdr", submission.side.value.upper()),
        ("category", submission.category.strip()),
        ("description", submission.description.strip()),
    ]


def build_multipart_body(
    submission: EntrySubmission,
    now: datetime | None = None,
) -> tuple[bytes, str, list[str]]:
    """
    Encode a submission as multipart/form-data.

    Returns:
        Tuple of (body, content type header, renamed file names)
    """
    fields: list[tuple[str, str | tuple[str, bytes, str]]] = list(build_form_fields(submission))
    file_names: list[str] = []

    for path in submission.files:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ValidationError(f"Cannot read attachment {path}: {e}") from e

        renamed = generate_file_name(path.name, now)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        logger.info("Uploading file %s as %s", path.name, renamed)
        fields.append(("file", (renamed, data, content_type)))
        file_names.append(renamed)

    body, content_type = encode_multipart_formdata(fields)
    return body, content_type, file_names


class UploadProgress:
    """Single-consumer stream of upload progress fractions.

    Fractions are delivered in non-decreasing order. While bytes are in
    flight the reported value stays below 1.0; ``complete()`` delivers 1.0
    once the server accepted the upload. After ``complete()`` or ``fail()``
    nothing more is delivered.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self._last = 0.0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last(self) -> float:
        return self._last

    def _emit(self, fraction: float) -> None:
        self._last = fraction
        if self._callback is not None:
            self._callback(fraction)

    def update(self, sent: int, total: int) -> None:
        if self._closed or total <= 0 or sent >= total:
            return
        fraction = sent / total
        if fraction > self._last:
            self._emit(fraction)

    def complete(self) -> None:
        if self._closed:
            return
        self._emit(1.0)
        self._closed = True

    def fail(self) -> None:
        self._closed = True


class ProgressBody:
    """File-like request body that reports bytes read to an UploadProgress.

    ``requests`` sends objects with ``read`` in chunks and takes the
    Content-Length from ``len()``.
    """

    def __init__(self, data: bytes, progress: UploadProgress) -> None:
        self._data = data
        self._offset = 0
        self._progress = progress

    def __len__(self) -> int:
        return len(self._data)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data) - self._offset
        chunk = self._data[self._offset : self._offset + size]
        self._offset += len(chunk)
        self._progress.update(self._offset, len(self._data))
        return chunk

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

"""ledgerlink - signed client for a transaction-ledger API."""

import logging

from ledgerlink.client import LedgerClient, UploadResult
from ledgerlink.listing import ListingController
from ledgerlink.models import Document, Entry, EntrySubmission, ListingFilters, Side
from ledgerlink.normalizer import EntryNormalizer
from ledgerlink.session import FileSessionStore, MemorySessionStore
from ledgerlink.signing import RequestSigner

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "Document",
    "Entry",
    "EntryNormalizer",
    "EntrySubmission",
    "FileSessionStore",
    "LedgerClient",
    "ListingController",
    "ListingFilters",
    "MemorySessionStore",
    "RequestSigner",
    "Side",
    "UploadResult",
]

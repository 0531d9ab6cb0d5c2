"""HMAC request signing.

Every API call carries ``x-message: <domain>:<yyyyMMddHHmmss>`` and
``x-signature: hex(HMAC-SHA512(password, message))``. The timestamp is UTC at
one-second resolution; the server is expected to enforce freshness.
"""

import hashlib
import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlencode, urlsplit

from ledgerlink.errors import AuthRequiredError
from ledgerlink.session import CredentialStore

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

MESSAGE_HEADER = "x-message"
SIGNATURE_HEADER = "x-signature"
NOCACHE_PARAM = "_nocache"


def utc_now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SignedRequest:
    """Authentication material for one request."""

    target_url: str
    timestamp: str
    message: str
    signature: str

    @property
    def headers(self) -> dict[str, str]:
        """Headers to attach to the outgoing request."""
        return {MESSAGE_HEADER: self.message, SIGNATURE_HEADER: self.signature}


def format_timestamp(moment: datetime) -> str:
    """Format an instant as a 14-digit UTC timestamp."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def extract_domain(url: str) -> str:
    """Return the host part of ``url``, or ``url`` itself when it has none."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        hostname = None

    if not hostname:
        logger.debug("No host in URL %r, signing with the raw string", url)
        return url
    return hostname


def build_message(url: str, timestamp: str) -> str:
    """Build the signed message ``<domain>:<timestamp>``."""
    return f"{extract_domain(url)}:{timestamp}"


def compute_signature(message: str, secret: str) -> str:
    """Hex-encoded HMAC-SHA512 of ``message`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha512).hexdigest()


class RequestSigner:
    """Signs request URLs with the password held in a credential store."""

    def __init__(
        self,
        store: CredentialStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.clock = clock

    def sign(self, target_url: str) -> SignedRequest:
        """Sign ``target_url`` for the current second.

        Raises:
            AuthRequiredError: If no session password is stored
        """
        password = self.store.get_password()
        if not password:
            raise AuthRequiredError()

        timestamp = format_timestamp(self.clock())
        message = build_message(target_url, timestamp)
        signature = compute_signature(message, password)

        logger.debug(
            "Signed %s: message=%s signature=%s...", target_url, message, signature[:10]
        )
        return SignedRequest(
            target_url=target_url,
            timestamp=timestamp,
            message=message,
            signature=signature,
        )

    def sign_for_link(self, url: str) -> str:
        """Append signing and cache-busting query parameters to a link.

        Used for documents opened directly in a browser, where headers cannot
        be attached. Returns ``url`` unchanged when it is empty or when there
        is no session to sign with.
        """
        if not url:
            logger.error("Cannot authenticate empty URL")
            return url

        try:
            signed = self.sign(url)
        except AuthRequiredError:
            logger.warning("No session password; document link left unsigned")
            return url

        separator = "&" if "?" in url else "?"
        nocache = int(self.clock().timestamp() * 1000)
        query = urlencode({
            MESSAGE_HEADER: signed.message,
            SIGNATURE_HEADER: signed.signature,
            NOCACHE_PARAM: nocache,
        })
        return f"{url}{separator}{query}"

"""Login and logout against the configured bcrypt credentials."""

import logging

import bcrypt

from ledgerlink.config import AuthConfig
from ledgerlink.session import CredentialStore

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = 12) -> str:
    """Create a bcrypt hash suitable for ``auth.password_hash``."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_credentials(username: str, password: str, auth: AuthConfig) -> bool:
    """Check a username and password against the configured credentials."""
    if username != auth.username:
        return False

    try:
        return bcrypt.checkpw(password.encode("utf-8"), auth.password_hash.encode("utf-8"))
    except ValueError as e:
        logger.error("Authentication error: %s", e)
        return False


def login(store: CredentialStore, username: str, password: str, auth: AuthConfig) -> bool:
    """Verify credentials and start a session.

    The password itself is kept in the store as the request-signing secret.

    Returns:
        True if the login was accepted
    """
    username = username.strip()
    logger.info("Login attempt with username: %s", username)

    if not password or not verify_credentials(username, password, auth):
        logger.info("Login failed - invalid credentials")
        return False

    store.set_session(password)
    logger.info("Login successful")
    return True


def logout(store: CredentialStore) -> None:
    """End the session, erasing the stored password."""
    store.clear_session()

"""Session id minting, validation and log-safe fingerprints."""

import hashlib
import re
import secrets


# Characters allowed in a session id; anything else could break the store key
SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9,_-]{1,256}$")

# Entropy of freshly minted ids, in bytes
SESSION_ID_BYTES = 32


def new_session_id() -> str:
    return secrets.token_urlsafe(SESSION_ID_BYTES)


def is_valid_session_id(session_id) -> bool:
    return isinstance(session_id, str) and SESSION_ID_PATTERN.fullmatch(session_id) is not None


def fingerprint(session_id) -> str:
    """
    Short, non-reversible tag for a session id.

    Session ids are bearer credentials, so logs carry this instead.
    """
    if not session_id:
        return "-"
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()[:12]

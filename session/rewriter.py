"""
Session cookie rewriting.

Runs after the session host has put its Set-Cookie header into the
pending outgoing headers and before those headers are copied onto the
response. The rewriter forces the configured SameSite restriction onto
the session cookie and warns when the result will be rejected by
browsers.
"""

import logging
from typing import Optional, Set

from errors.exceptions import InvalidCookieHeader
from session.cookie import SameSite, SessionCookie
from session.headers import SET_COOKIE, OutgoingHeaders

logger = logging.getLogger(__name__)


INSECURE_SAME_SITE_NONE_WARNING = (
    "Session cookie uses SameSite=None without the Secure flag and will be "
    "rejected by modern browsers; set SESSION_COOKIE_SECURE=true"
)


class CookieRewriter:
    """
    Rewrites the session cookie's SameSite attribute in place.

    Args:
        cookie_name: Name of the session cookie
        headers: Pending outgoing headers shared with the session host
    """

    def __init__(self, cookie_name: str, headers: OutgoingHeaders):
        self.cookie_name = cookie_name
        self.headers = headers
        self._rewritten: Set[str] = set()

    def apply(self, same_site) -> Optional[str]:
        """
        Apply `same_site` to the pending session cookie header.

        Only the first Set-Cookie value whose name matches the session
        cookie is touched; other Set-Cookie values stay as they are. If no
        session cookie is pending, or the pending one was produced by an
        earlier apply(), nothing happens. An unparsable header is put back
        unchanged and logged.

        Args:
            same_site: A SameSite member or its case-insensitive name

        Returns:
            The rewritten header value, or None if nothing was rewritten.
        """
        same_site = SameSite.parse(same_site)
        original = self.headers.take(SET_COOKIE, f"{self.cookie_name}=")
        if original is None:
            return None
        if original in self._rewritten:
            self.headers.add(SET_COOKIE, original)
            return None

        try:
            cookie = SessionCookie.parse(original)
        except InvalidCookieHeader as e:
            logger.warning(
                "Leaving unparsable session cookie header unchanged",
                extra={"extra_data": {"details": e.details}}
            )
            self.headers.add(SET_COOKIE, original)
            return None

        rewritten = cookie.with_same_site(same_site)
        if rewritten.same_site == SameSite.NONE and not rewritten.secure:
            logger.warning(
                INSECURE_SAME_SITE_NONE_WARNING,
                extra={"extra_data": {"cookie_name": self.cookie_name}}
            )

        value = rewritten.serialize()
        self.headers.add(SET_COOKIE, value)
        self._rewritten.add(value)
        return value

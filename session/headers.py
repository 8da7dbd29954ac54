"""
Pending outgoing response headers.

Session code runs before the ASGI response object exists, so the headers
it wants to send are collected here and copied onto the response by the
session middleware once the route has returned.
"""

from typing import Iterator, List, Optional, Tuple


SET_COOKIE = "Set-Cookie"


class OutgoingHeaders:
    """
    Ordered list of (name, value) header pairs waiting to be sent.

    Header names compare case-insensitively. Multiple values for the
    same name are kept as separate entries, which is what Set-Cookie
    requires.
    """

    def __init__(self, headers: Optional[List[Tuple[str, str]]] = None):
        self._headers: List[Tuple[str, str]] = list(headers or [])

    @staticmethod
    def _matches(entry: Tuple[str, str], name: str, value_prefix: str) -> bool:
        entry_name, entry_value = entry
        return entry_name.lower() == name.lower() and entry_value.startswith(value_prefix)

    def add(self, name: str, value: str) -> None:
        self._headers.append((name, value))

    def take(self, name: str, value_prefix: str = "") -> Optional[str]:
        """
        Remove and return the first value of `name` starting with `value_prefix`.

        Only that one entry is removed; other entries with the same header
        name are left in place and in order.

        Returns:
            The removed header value, or None if nothing matched.
        """
        for index, entry in enumerate(self._headers):
            if self._matches(entry, name, value_prefix):
                del self._headers[index]
                return entry[1]
        return None

    def remove(self, name: str, value_prefix: str = "") -> int:
        """Remove every matching entry and return how many were removed."""
        kept = [entry for entry in self._headers if not self._matches(entry, name, value_prefix)]
        removed = len(self._headers) - len(kept)
        self._headers = kept
        return removed

    def get_all(self, name: str) -> List[str]:
        return [value for entry_name, value in self._headers if entry_name.lower() == name.lower()]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._headers)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._headers))

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"OutgoingHeaders({self._headers!r})"

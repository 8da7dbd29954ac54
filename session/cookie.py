"""
Minimal Set-Cookie parsing for the session cookie rewriter.

Only what is needed to change one attribute of one header value is
parsed: the name=value pair, the SameSite attribute and the Secure flag.
Every other attribute segment is kept as the exact substring it was in
the original header so rewriting never reformats Path, Domain, Expires
or HttpOnly.
"""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from errors.exceptions import InvalidCookieHeader


_TOKEN_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class SameSite(str, Enum):
    """Same-site restriction values in their canonical header spelling."""
    STRICT = "Strict"
    LAX = "Lax"
    NONE = "None"

    @classmethod
    def parse(cls, value: "str | SameSite") -> "SameSite":
        """
        Parse a same-site value case-insensitively.

        Raises:
            ValueError: If the value is not Strict, Lax or None.
        """
        if isinstance(value, SameSite):
            return value
        normalized = value.strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unknown SameSite restriction: {value!r}")


def _attribute_name(segment: str) -> str:
    return segment.split("=", 1)[0].strip().lower()


@dataclass(frozen=True)
class SessionCookie:
    """
    A parsed Set-Cookie header value.

    Attributes:
        name: Cookie name
        value: Cookie value, verbatim
        segments: Raw attribute segments after the name=value pair, each
            including its leading whitespace
    """
    name: str
    value: str
    segments: tuple = field(default_factory=tuple)

    @classmethod
    def parse(cls, header_value: str) -> "SessionCookie":
        """
        Parse a Set-Cookie header value.

        Args:
            header_value: The header value without the "Set-Cookie:" prefix

        Returns:
            The parsed cookie

        Raises:
            InvalidCookieHeader: If the first segment is not a name=value pair
                with a token name.
        """
        pair, *segments = header_value.split(";")
        if "=" not in pair:
            raise InvalidCookieHeader(
                "Set-Cookie value has no name=value pair",
                details={"reason": "missing_separator"},
            )
        name, value = pair.split("=", 1)
        name = name.strip()
        if not _TOKEN_PATTERN.match(name):
            raise InvalidCookieHeader(
                "Set-Cookie name is empty or not a token",
                details={"reason": "invalid_name"},
            )
        return cls(name=name, value=value, segments=tuple(segments))

    def _find(self, attribute: str) -> Optional[int]:
        for index, segment in enumerate(self.segments):
            if _attribute_name(segment) == attribute:
                return index
        return None

    @property
    def same_site(self) -> Optional[SameSite]:
        """The SameSite restriction, or None if absent or unrecognised."""
        index = self._find("samesite")
        if index is None:
            return None
        _, _, raw = self.segments[index].partition("=")
        try:
            return SameSite.parse(raw)
        except ValueError:
            return None

    @property
    def secure(self) -> bool:
        return self._find("secure") is not None

    def with_same_site(self, same_site: SameSite) -> "SessionCookie":
        """
        Return a copy with the SameSite attribute set.

        An existing SameSite segment is replaced in place, keeping its
        leading whitespace; otherwise the attribute is added after the last
        non-empty segment, so a trailing ";" stays at the end.
        """
        segments = list(self.segments)
        index = self._find("samesite")
        if index is None:
            position = len(segments)
            while position and not segments[position - 1].strip():
                position -= 1
            segments.insert(position, f" SameSite={same_site.value}")
        else:
            existing = segments[index]
            leading = existing[: len(existing) - len(existing.lstrip())]
            segments[index] = f"{leading}SameSite={same_site.value}"
        return replace(self, segments=tuple(segments))

    def serialize(self) -> str:
        """Render the cookie back to a Set-Cookie header value."""
        return ";".join([f"{self.name}={self.value}", *self.segments])

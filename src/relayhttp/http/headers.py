"""
=============================================================================
HTTP HEADERS
=============================================================================

Headers are kept as an ordered list of (name, value) pairs, exactly as
they appeared on the wire:

    Host: localhost:8080\r\n          → ("Host", "localhost:8080")
    Accept: text/html\r\n             → ("Accept", "text/html")
    Accept: application/json\r\n      → ("Accept", "application/json")

=============================================================================
LOOKUP AND MUTATION RULES
=============================================================================

    get(name)      first pair whose name matches, case-insensitively
                   (HTTP field names are case-insensitive per RFC 7230)
    get_all(name)  every matching value, in order
    set(name, v)   APPENDS a pair; it never replaces an existing one,
                   so duplicates are allowed on both requests and responses

Names keep their original case, so serialization reproduces what the
handler (or the client) wrote.

=============================================================================
LINE FORMAT
=============================================================================

Each header line must contain exactly one ": " separator. This is stricter
than RFC 7230 (which allows optional whitespace) and rejects values that
themselves contain ": ".

=============================================================================
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from ..errors import ParseError


class Headers:
    """Ordered, duplicate-preserving header collection."""

    SEPARATOR = ": "

    def __init__(self, pairs: Optional[List[Tuple[str, str]]] = None):
        self._pairs: List[Tuple[str, str]] = list(pairs or [])

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "Headers":
        """
        Parse header lines, stopping at the first empty line.

        Args:
            lines: Header lines without their trailing CRLF.

        Returns:
            Parsed Headers.

        Raises:
            ParseError: If a line does not contain exactly one ": ".
        """
        headers = cls()
        for line in lines:
            if not line:
                break
            if line.count(cls.SEPARATOR) != 1:
                raise ParseError(f"failed to parse header {line!r}")
            name, value = line.split(cls.SEPARATOR)
            headers.set(name, value)
        return headers

    def set(self, name: str, value: str) -> "Headers":
        """Append a header. Returns self for chaining."""
        self._pairs.append((name, value))
        return self

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value for `name` (case-insensitive), or `default`."""
        wanted = name.lower()
        for n, v in self._pairs:
            if n.lower() == wanted:
                return v
        return default

    def get_all(self, name: str) -> List[str]:
        wanted = name.lower()
        return [v for n, v in self._pairs if n.lower() == wanted]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._pairs)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get(name) is not None

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._pairs == other._pairs
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({self._pairs!r})"

    def __str__(self) -> str:
        """Header lines joined by CRLF, without a trailing CRLF."""
        return "\r\n".join(f"{n}: {v}" for n, v in self._pairs)

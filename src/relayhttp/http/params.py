"""
=============================================================================
ORDERED KEY/VALUE PARAMETERS
=============================================================================

Params is the ordered pair list used for two things:

    1. QUERY PARAMETERS   /search?q=python&page=2&q=http
                          → Params([("q", "python"), ("page", "2"), ("q", "http")])

    2. PATH CAPTURES      pattern /users/{id}/posts/{post}, path /users/7/posts/9
                          → Params([("id", "7"), ("post", "9")])

Why not a dict?
    - Order is significant (captures accumulate in pattern order and the
      query string must be reproduced exactly when a URL is formatted)
    - Duplicate keys are legal in a query string
    - Lookup returns the FIRST match, which a dict cannot express once a
      key repeats

=============================================================================
"""

from typing import Iterator, List, Optional, Tuple

from ..errors import ParseError


class Params:
    """
    Ordered sequence of (key, value) string pairs.

    Values are plain strings copied out of the request text; nothing here
    is percent-decoded.
    """

    def __init__(self, pairs: Optional[List[Tuple[str, str]]] = None):
        self._pairs: List[Tuple[str, str]] = list(pairs or [])

    @classmethod
    def parse_query(cls, query: str) -> "Params":
        """
        Decode a query string (without the leading "?") into Params.

        Splits on "&", then each piece on its first "=". A piece without
        "=" makes the whole query invalid. An empty query string is simply
        no parameters.

            >>> Params.parse_query("a=1&b=2").items()
            [('a', '1'), ('b', '2')]
            >>> Params.parse_query("a&b=1")
            Traceback (most recent call last):
            ...
            relayhttp.errors.ParseError: query pair 'a' has no '='

        Raises:
            ParseError: If any pair lacks the "=" separator.
        """
        params = cls()
        if not query:
            return params

        for piece in query.split("&"):
            key, sep, value = piece.partition("=")
            if not sep:
                raise ParseError(f"query pair {piece!r} has no '='")
            params.push(key, value)
        return params

    def push(self, key: str, value: str) -> None:
        """Append a pair; existing pairs with the same key are kept."""
        self._pairs.append((key, value))

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the value of the first pair named `key`, else `default`."""
        for k, v in self._pairs:
            if k == key:
                return v
        return default

    def get_all(self, key: str) -> List[str]:
        """Return every value bound to `key`, in order."""
        return [v for k, v in self._pairs if k == key]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._pairs)

    def to_dict(self) -> dict:
        """First-match view as a dict (later duplicates are ignored)."""
        result = {}
        for k, v in self._pairs:
            result.setdefault(k, v)
        return result

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self._pairs)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __bool__(self) -> bool:
        return bool(self._pairs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Params):
            return self._pairs == other._pairs
        return NotImplemented

    def __repr__(self) -> str:
        return f"Params({self._pairs!r})"

    def __str__(self) -> str:
        """
        Query-string form including the leading "?", or "" when empty.

            Params([("key", "value")])  →  "?key=value"
        """
        if not self._pairs:
            return ""
        return "?" + "&".join(f"{k}={v}" for k, v in self._pairs)

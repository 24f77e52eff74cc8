"""
=============================================================================
CONTENT TYPES FOR FILE BODIES
=============================================================================

ctx.file() serves UTF-8 text files, so only text-based types are listed
here. Unknown extensions fall back to text/plain.

    page.html   →  text/html; charset=utf-8
    data.json   →  application/json; charset=utf-8
    notes       →  text/plain; charset=utf-8

=============================================================================
"""

from pathlib import Path
from typing import Union


MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
    ".xml": "application/xml",
    ".svg": "image/svg+xml",        # SVG is XML text
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: Union[str, Path]) -> str:
    """
    MIME type for a file based on its extension (case-insensitive).

        >>> get_mime_type("style.CSS")
        'text/css'
    """
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """Full Content-Type header value, including the charset."""
    return f"{get_mime_type(path)}; charset={charset}"

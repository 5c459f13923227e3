"""Persistence of navigation states."""

from polrad.data.nav_file import (
    NAV_FIELDS,
    NAV_DTYPE,
    NavFileError,
    NavReader,
    NavWriter,
    format_nav,
    parse_nav,
    open_nav_file,
)

__all__ = [
    "NAV_FIELDS",
    "NAV_DTYPE",
    "NavFileError",
    "NavReader",
    "NavWriter",
    "format_nav",
    "parse_nav",
    "open_nav_file",
]

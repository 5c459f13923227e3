"""
Navigation state persistence.

A Nav record is the flat ordered field list

    time, x, y, z, dx, dy, dz, a, e

stored either as one line of whitespace separated text fields per record,
or as a fixed-layout binary record of nine little-endian float64 values.
Both round-trip to an equal Nav.

Files are opened through :func:`open_nav_file`, which returns a reader or a
writer depending on the mode, so a handle only offers the operations its
mode allows.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

import numpy as np

from polrad.geometry.navigation import NAV_FIELD_COUNT, Nav

logger = logging.getLogger(__name__)

NAV_FIELDS = ("time", "x", "y", "z", "dx", "dy", "dz", "a", "e")
NAV_DTYPE = np.dtype([(name, "<f8") for name in NAV_FIELDS])

PathLike = Union[str, Path]


class NavFileError(ValueError):
    """A Nav record could not be read or written."""

    def __init__(self, path, index: int, reason: str):
        self.path = str(path)
        self.index = index
        super().__init__(f"{self.path}: record {index}: {reason}")


def format_nav(nav: Nav) -> str:
    """Text record of a Nav, exact to the last bit."""
    return " ".join(repr(float(v)) for v in nav.as_fields())


def parse_nav(line: str, path: PathLike = "<string>", index: int = 0) -> Nav:
    """
    Parse one text record.

    Raises
    ------
    NavFileError
        If the record does not hold nine numbers describing a valid Nav
    """
    tokens = line.split()
    if len(tokens) != NAV_FIELD_COUNT:
        raise NavFileError(
            path, index, f"expected {NAV_FIELD_COUNT} fields, got {len(tokens)}"
        )
    try:
        values = [float(t) for t in tokens]
        return Nav.from_fields(values)
    except ValueError as e:
        raise NavFileError(path, index, str(e)) from e


def _nav_from_record(record, path: PathLike, index: int) -> Nav:
    try:
        return Nav.from_fields([record[name] for name in NAV_FIELDS])
    except ValueError as e:
        raise NavFileError(path, index, str(e)) from e


class _NavFile:
    def __init__(self, path: Path, handle, binary: bool):
        self.path = path
        self.binary = binary
        self._handle = handle
        self._index = 0

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def close(self) -> None:
        self._handle.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class NavReader(_NavFile):
    """Read-only handle over a Nav file."""

    def read(self) -> Optional[Nav]:
        """Next record, or None at the end of the file."""
        if self.binary:
            buffer = self._handle.read(NAV_DTYPE.itemsize)
            if not buffer:
                return None
            if len(buffer) != NAV_DTYPE.itemsize:
                raise NavFileError(
                    self.path, self._index,
                    f"truncated record of {len(buffer)} bytes, "
                    f"expected {NAV_DTYPE.itemsize}",
                )
            nav = _nav_from_record(np.frombuffer(buffer, dtype=NAV_DTYPE)[0],
                                   self.path, self._index)
        else:
            while True:
                line = self._handle.readline()
                if not line:
                    return None
                line = line.strip()
                if line and not line.startswith("#"):
                    break
            nav = parse_nav(line, self.path, self._index)

        self._index += 1
        return nav

    def read_all(self) -> List[Nav]:
        navs = list(self)
        logger.debug(f"Read {len(navs)} Nav records from {self.path}")
        return navs

    def __iter__(self) -> Iterator[Nav]:
        while True:
            nav = self.read()
            if nav is None:
                return
            yield nav


class NavWriter(_NavFile):
    """Write-only handle over a Nav file."""

    def write(self, nav: Nav) -> None:
        if self.binary:
            record = np.array(tuple(float(v) for v in nav.as_fields()), dtype=NAV_DTYPE)
            self._handle.write(record.tobytes())
        else:
            self._handle.write(format_nav(nav) + "\n")
        self._index += 1

    def write_all(self, navs: Iterable[Nav]) -> int:
        """Write every Nav; returns the number of records written."""
        start = self._index
        for nav in navs:
            self.write(nav)
        logger.debug(f"Wrote {self._index - start} Nav records to {self.path}")
        return self._index - start


_MODES = {
    "r": (NavReader, "r"),
    "rb": (NavReader, "rb"),
    "w": (NavWriter, "w"),
    "wb": (NavWriter, "wb"),
    "a": (NavWriter, "a"),
    "ab": (NavWriter, "ab"),
}


def open_nav_file(path: PathLike, mode: str = "r") -> Union[NavReader, NavWriter]:
    """
    Open a Nav file.

    Parameters
    ----------
    path : str or Path
        File location
    mode : str
        One of ``r``, ``w``, ``a`` (text) or ``rb``, ``wb``, ``ab`` (binary)

    Returns
    -------
    NavReader or NavWriter
        Reader for the read modes, writer otherwise

    Raises
    ------
    FileNotFoundError
        If a file opened for reading does not exist
    ValueError
        For an unknown mode
    """
    if mode not in _MODES:
        raise ValueError(f"Unknown Nav file mode {mode!r}, use one of {sorted(_MODES)}")

    path = Path(path)
    cls, file_mode = _MODES[mode]
    if cls is NavReader and not path.exists():
        raise FileNotFoundError(f"Nav file not found: {path}")

    binary = file_mode.endswith("b")
    handle = open(path, file_mode) if binary else open(path, file_mode, encoding="utf-8")
    return cls(path, handle, binary)

"""Log file access, text export and binary frame building.

Binary logs are a flat sequence of frames with no file header:
  [0xA3][0x95][type: uint8][payload]
  [0xA3][0x95][type: uint8][payload]
  ...

Text logs hold one record per line, ``NAME, value, value, ...``.  Either
kind must declare every format with a FMT record before using it.
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import Iterable, Iterator, Sequence, TextIO

from .decoder import BinaryLogParser, TextLogParser
from .record import Record
from .schema import FMT_FORMAT, FMT_TYPE, HEAD1, HEAD2, FormatDescriptor, FormatRegistry

logger = logging.getLogger(__name__)

TEXT_SNIFF_BYTES = 8000

# Banner written ahead of exported text logs; none of these lines is a record
DEFAULT_HEADER = ("37", "", "ArduCopter V3.1.5 (ee63c88b)", "Free RAM: 65535", "PX4")


# ---------------------------------------------------------------------------
# Frame building
# ---------------------------------------------------------------------------

def build_frame(fmt: FormatDescriptor, values: Sequence) -> bytes:
    """Encode native values as one binary frame of ``fmt``.

    Raises ValueError if the value count is wrong or a value does not fit
    its field.
    """
    if len(values) != len(fmt.format):
        raise ValueError(
            f"{fmt.name} takes {len(fmt.format)} values, got {len(values)}")
    payload = b"".join(fmt.converter(code).pack(v)
                       for code, v in zip(fmt.format, values))
    return struct.pack("<BBB", HEAD1, HEAD2, fmt.type) + payload


def build_format_frame(fmt: FormatDescriptor) -> bytes:
    """Encode the FMT frame that declares ``fmt``.

    Raises ValueError if the name, format or joined columns are too long
    for their FMT fields.
    """
    values = (fmt.type, fmt.length, fmt.name, fmt.format, ",".join(fmt.columns))
    payload = b"".join(fmt.converter(code).pack(v)
                       for code, v in zip(FMT_FORMAT, values))
    return struct.pack("<BBB", HEAD1, HEAD2, FMT_TYPE) + payload


# ---------------------------------------------------------------------------
# Text export
# ---------------------------------------------------------------------------

def write_text(records: Iterable[Record], out: TextIO,
               header: Sequence[str] | None = DEFAULT_HEADER) -> int:
    """Write records as a text log.  Returns the number of records written."""
    if header:
        for line in header:
            out.write(line + "\n")
    count = 0
    for record in records:
        out.write(record.to_text() + "\n")
        count += 1
    logger.info("Converted %d records to text", count)
    return count


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

def is_text_log(path: str | Path) -> bool:
    """True if the start of the file contains a text FMT line."""
    with open(path, "rb") as f:
        return b"FMT," in f.read(TEXT_SNIFF_BYTES)


class LogReader:
    """Opens a text or binary log file and iterates its records."""

    def __init__(self, path: str | Path, registry: FormatRegistry | None = None):
        self._path = Path(path)
        self._registry = registry
        self._parser: TextLogParser | BinaryLogParser | None = None

    def open(self) -> TextLogParser | BinaryLogParser:
        if self._parser is None:
            if is_text_log(self._path):
                self._parser = TextLogParser.from_path(self._path, self._registry)
            else:
                self._parser = BinaryLogParser(self._path.read_bytes(), self._registry)
        return self._parser

    @property
    def is_text(self) -> bool:
        return isinstance(self.open(), TextLogParser)

    @property
    def registry(self) -> FormatRegistry:
        return self.open().registry

    def records(self) -> Iterator[Record]:
        return iter(self.open())

    def close(self) -> None:
        self._parser = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()

"""Lazy text and binary DataFlash log parsers."""

from __future__ import annotations

import io
import logging
import struct
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .converters import BinaryCursor
from .errors import DataflashError, InvalidLog, MalformedRecord, UnknownFormat
from .record import MSG, Record
from .schema import FRAME_HEADER_SIZE, HEAD1, HEAD2, FormatRegistry
from .vehicle import VersionDecoder, decode_version_message

logger = logging.getLogger(__name__)

# Lines / frames inspected for a FMT record before giving up on the stream
TEXT_LOOKBACK = 100
BINARY_LOOKBACK = 20

# Per-record failures: logged, and the record is skipped
_RECORD_ERRORS = (DataflashError, ValueError, struct.error, IndexError)


class EndOfStream:
    """Returned by :meth:`BinaryLogParser.next_frame` once no frame remains."""

    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM = EndOfStream()


def _split_columns(columns: str) -> list[str]:
    return [] if columns == "" else columns.split(",")


class _LogParser:
    """State shared by the text and binary parsers."""

    def __init__(self, registry: FormatRegistry | None,
                 lookback: int | None,
                 version_decoder: VersionDecoder):
        self.registry = registry if registry is not None else FormatRegistry()
        self.lookback = lookback
        self.version_decoder = version_decoder

    def _observe(self, record: Record) -> None:
        """Pick up vehicle build information from firmware banners."""
        if record.type_name != MSG:
            return
        text = record.message
        if text is None:
            return
        info = self.version_decoder(text)
        if info is not None:
            self.registry.session.set_build(info.name)

    def _check_lookback(self, count: int, seen_fmt: bool, unit: str) -> None:
        if not seen_fmt and self.lookback is not None and count >= self.lookback:
            raise InvalidLog(
                f"No FMT record in the first {count} {unit}; "
                "this doesn't look like a dataflash log")


class TextLogParser(_LogParser):
    """Decodes comma-separated text logs.

    ``source`` is called at the start of every iteration and must return a
    fresh iterable of lines; if that iterable has a ``close`` method it is
    called when the pass ends, including early termination.
    """

    def __init__(self, source: Callable[[], Iterable[str]],
                 registry: FormatRegistry | None = None, *,
                 lookback: int | None = TEXT_LOOKBACK,
                 version_decoder: VersionDecoder = decode_version_message):
        super().__init__(registry, lookback, version_decoder)
        self._source = source

    @classmethod
    def from_path(cls, path: str | Path, registry: FormatRegistry | None = None,
                  **kwargs) -> TextLogParser:
        def open_lines() -> Iterator[str]:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                yield from f
        return cls(open_lines, registry, **kwargs)

    @classmethod
    def from_string(cls, text: str, registry: FormatRegistry | None = None,
                    **kwargs) -> TextLogParser:
        return cls(lambda: io.StringIO(text), registry, **kwargs)

    def __iter__(self) -> Iterator[Record]:
        seen_fmt = False
        lines = self._source()
        try:
            for index, line in enumerate(lines):
                record = self.parse_line(line)
                if record is not None:
                    seen_fmt |= record.format.is_fmt
                    self._observe(record)
                    yield record
                self._check_lookback(index + 1, seen_fmt, "lines")
        finally:
            close = getattr(lines, "close", None)
            if close is not None:
                close()

    def parse_line(self, line: str) -> Record | None:
        """Decode one line; malformed or unknown lines are logged and give None."""
        try:
            return self._parse_line(line)
        except UnknownFormat as e:
            logger.warning("%s", e)
            return None
        except _RECORD_ERRORS as e:
            logger.warning("Malformed log line %r: %s", line.rstrip(), e)
            return None

    def _parse_line(self, line: str) -> Record | None:
        # FMT, 128, 89, FMT, BBnNZ, Type,Length,Name,Format,Columns
        # FMT, 129, 23, PARM, Nf, Name,Value
        splits = [s.strip() for s in line.split(",")]
        if len(splits) < 2:
            return None

        name, args = splits[0], splits[1:]
        fmt = self.registry.get_by_name(name)
        if fmt is None:
            raise UnknownFormat(f"Unrecognised format: {name}")

        if len(args) < len(fmt.columns):
            raise MalformedRecord(
                f"{name} has {len(args)} fields, expected {len(fmt.columns)}")

        if fmt.is_fmt:
            columns = ",".join(args[4:])
            self.registry.define(int(args[0]), int(args[1]), args[2], args[3],
                                 _split_columns(columns))
            args = args[:4] + [columns]

        return fmt.create_message(args)


class BinaryLogParser(_LogParser):
    """Decodes framed binary logs held in memory.

    Each iteration starts a fresh cursor at offset 0.  Frames are
    ``A3 95 <type> <payload>``; a frame shorter than its declared length is
    taken to be followed immediately by the next frame.
    """

    def __init__(self, data: bytes, registry: FormatRegistry | None = None, *,
                 lookback: int | None = BINARY_LOOKBACK,
                 version_decoder: VersionDecoder = decode_version_message):
        super().__init__(registry, lookback, version_decoder)
        self._data = data

    def __iter__(self) -> Iterator[Record]:
        cursor = BinaryCursor(self._data)
        seen_fmt = False
        count = 0
        while True:
            count += 1
            result = self.next_frame(cursor)
            if result is END_OF_STREAM:
                return
            if result is not None:
                seen_fmt |= result.format.is_fmt
                self._observe(result)
                yield result
            self._check_lookback(count, seen_fmt, "frames")

    def next_frame(self, cursor: BinaryCursor) -> Record | EndOfStream | None:
        """Read one frame: a record, None if it was skipped, or END_OF_STREAM."""
        start = cursor.offset
        if cursor.remaining == 0:
            return END_OF_STREAM
        if cursor.remaining < FRAME_HEADER_SIZE:
            logger.warning("%d trailing bytes at offset %d", cursor.remaining, start)
            return END_OF_STREAM

        if cursor.read_byte() != HEAD1:
            logger.warning("Bad header1 byte at offset %d", start)
            return None
        if cursor.read_byte() != HEAD2:
            logger.warning("Bad header2 byte at offset %d", start)
            return None

        code = cursor.read_byte()
        try:
            fmt = self.registry.get_by_type(code)
            if fmt is None:
                raise UnknownFormat(f"Unrecognised format type {code}")
            if cursor.remaining < fmt.payload_width:
                logger.warning("Truncated %s frame at offset %d", fmt.name, start)
                return END_OF_STREAM
            record = fmt.create_binary(cursor)
            if fmt.is_fmt:
                self._register(record)
        except UnknownFormat as e:
            logger.warning("%s at offset %d", e, start)
            return None
        except _RECORD_ERRORS as e:
            logger.warning("Malformed binary frame at offset %d: %s", start, e)
            return None
        return record

    def _register(self, record: Record) -> None:
        v = record.values
        self.registry.define(v[0].as_int(), v[1].as_int(), v[2].as_str(),
                             v[3].as_str(), _split_columns(v[4].as_str()))

"""Format descriptors and the self-describing format registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterator, Mapping, Sequence

from .converters import BinaryCursor, Converter, TypedValue, build_type_codes
from .errors import MalformedRecord, UnknownTypeCode
from .record import Record
from .vehicle import VehicleSession

logger = logging.getLogger(__name__)

# Wire format constants
HEAD1 = 0xA3
HEAD2 = 0x95
FRAME_HEADER_SIZE = 3

# The one format every log starts out understanding
FMT_NAME = "FMT"
FMT_TYPE = 0x80
FMT_LENGTH = 89
FMT_FORMAT = "BBnNZ"
FMT_COLUMNS = ("Type", "Length", "Name", "Format", "Columns")


@dataclass(frozen=True)
class FormatDescriptor:
    """Layout of one record type.

    ``length`` is the full binary frame length, including the 3 byte header.
    """

    type: int
    name: str
    length: int
    format: str
    columns: tuple[str, ...]
    type_codes: Mapping[str, Converter] = field(repr=False, compare=False)
    name_to_index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        if not 0 <= self.type <= 0xFF:
            raise MalformedRecord(f"Type code {self.type} out of range for {self.name}")
        if len(self.format) != len(self.columns):
            raise MalformedRecord(
                f"Format {self.name}: {len(self.format)} type codes "
                f"but {len(self.columns)} columns")
        object.__setattr__(self, "name_to_index",
                           {c: i for i, c in enumerate(self.columns)})

    @property
    def is_fmt(self) -> bool:
        return self.name == FMT_NAME

    def converter(self, code: str) -> Converter:
        try:
            return self.type_codes[code]
        except KeyError:
            raise UnknownTypeCode(code, self.name) from None

    @property
    def payload_width(self) -> int:
        """Bytes consumed by one binary payload of this format."""
        return sum(self.converter(c).width for c in self.format)

    def create_message(self, args: Sequence[str]) -> Record:
        """Decode text arguments; any beyond the declared columns are strings."""
        values: list[TypedValue] = []
        for index, arg in enumerate(args):
            code = self.format[index] if index < len(self.format) else "Z"
            values.append(self.converter(code).from_text(arg))
        return Record(self, tuple(values))

    def create_binary(self, cursor: BinaryCursor) -> Record:
        """Decode a payload; the cursor must sit just after the frame header."""
        total = 0
        values: list[TypedValue] = []
        for code in self.format:
            value, n = self.converter(code).from_binary(cursor)
            values.append(value)
            total += n

        # Short frames are followed immediately by the next frame; no skip.
        expected = self.length - FRAME_HEADER_SIZE
        if total != expected:
            logger.debug("%s payload is %d bytes, declared %d", self.name, total, expected)

        return Record(self, tuple(values))

    def __str__(self) -> str:
        return f"{self.name}: {self.format} " + ",".join(self.columns)


class FormatRegistry:
    """Session-scoped map of format name and type code to descriptor.

    Starts out knowing only ``FMT`` and grows as parsers decode ``FMT``
    records.  Registering a name or code that already exists replaces the
    earlier descriptor.  Passes over a log that share a registry are
    cumulative; use :meth:`copy` for an independent starting state.
    """

    def __init__(self, session: VehicleSession | None = None):
        self.session = session if session is not None else VehicleSession()
        self.type_codes = build_type_codes(self.session)
        self.by_name: dict[str, FormatDescriptor] = {}
        self.by_type: dict[int, FormatDescriptor] = {}
        self.define(FMT_TYPE, FMT_LENGTH, FMT_NAME, FMT_FORMAT, FMT_COLUMNS)

    def add(self, fmt: FormatDescriptor) -> None:
        self.by_name[fmt.name] = fmt
        self.by_type[fmt.type] = fmt

    def define(self, type: int, length: int, name: str, format: str,
               columns: Sequence[str]) -> FormatDescriptor:
        """Build a descriptor bound to this registry's converters and add it."""
        fmt = FormatDescriptor(type, name, length, format, tuple(columns),
                               self.type_codes)
        self.add(fmt)
        logger.debug("registered format %s", fmt)
        return fmt

    def frame_length(self, format: str) -> int:
        """Declared frame length for a format string, header included."""
        try:
            return FRAME_HEADER_SIZE + sum(self.type_codes[c].width for c in format)
        except KeyError as e:
            raise UnknownTypeCode(e.args[0]) from None

    def get_by_name(self, name: str) -> FormatDescriptor | None:
        return self.by_name.get(name)

    def get_by_type(self, type: int) -> FormatDescriptor | None:
        return self.by_type.get(type)

    @property
    def fmt(self) -> FormatDescriptor:
        return self.by_name[FMT_NAME]

    def copy(self) -> FormatRegistry:
        """Independent registry holding the same formats and build name."""
        clone = FormatRegistry(VehicleSession(self.session.build_name))
        rebound: dict[int, FormatDescriptor] = {}
        for fmt in self.by_name.values():
            rebound[id(fmt)] = replace(fmt, type_codes=clone.type_codes)
            clone.by_name[fmt.name] = rebound[id(fmt)]
        for fmt in self.by_type.values():
            if id(fmt) not in rebound:
                rebound[id(fmt)] = replace(fmt, type_codes=clone.type_codes)
            clone.by_type[fmt.type] = rebound[id(fmt)]
        return clone

    def __contains__(self, key: str | int) -> bool:
        if isinstance(key, int):
            return key in self.by_type
        return key in self.by_name

    def __iter__(self) -> Iterator[FormatDescriptor]:
        """Descriptors currently reachable by type code, in code order."""
        for code in sorted(self.by_type):
            yield self.by_type[code]

    def __len__(self) -> int:
        return len(self.by_type)

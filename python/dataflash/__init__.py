"""dataflash - Self-describing DataFlash flight log decoder."""

from .errors import (
    DataflashError, InvalidLog, UnknownFormat, MalformedRecord,
    UnknownTypeCode, TypeMismatch,
)
from .converters import IntValue, FloatValue, TextValue, BinaryCursor, build_type_codes
from .schema import FormatDescriptor, FormatRegistry
from .record import Record, gps_time_to_usec
from .vehicle import BuildInfo, VehicleSession, decode_version_message
from .decoder import TextLogParser, BinaryLogParser, END_OF_STREAM
from .storage import LogReader, is_text_log, write_text, build_frame, build_format_frame
from .capture import Capture

__all__ = [
    "DataflashError", "InvalidLog", "UnknownFormat", "MalformedRecord",
    "UnknownTypeCode", "TypeMismatch",
    "IntValue", "FloatValue", "TextValue", "BinaryCursor", "build_type_codes",
    "FormatDescriptor", "FormatRegistry",
    "Record", "gps_time_to_usec",
    "BuildInfo", "VehicleSession", "decode_version_message",
    "TextLogParser", "BinaryLogParser", "END_OF_STREAM",
    "LogReader", "is_text_log", "write_text", "build_frame", "build_format_frame",
    "Capture",
]

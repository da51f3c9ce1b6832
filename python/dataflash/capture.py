"""Columnar numpy extraction over a decoded log.

Capture collects every record of a log into per-type columns so that a
field can be pulled out as a pair of numpy arrays (timestamps, values).
Timestamps are microseconds since boot taken from TimeUS, else
TimeMS * 1000; records without either inherit the previous timestamp.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from .record import Record
from .schema import FormatDescriptor, FormatRegistry

logger = logging.getLogger(__name__)

# numpy dtypes indexed by format character; strings and modes stay objects
_DTYPES = {
    "b": np.int8,
    "B": np.uint8,
    "h": np.int16,
    "H": np.uint16,
    "i": np.int32,
    "I": np.uint32,
    "q": np.int64,
    "Q": np.uint64,
    "f": np.float32,
    "c": np.float64,
    "C": np.float64,
    "e": np.float64,
    "E": np.float64,
    "L": np.float64,
}


def column_dtype(code: str) -> np.dtype:
    return np.dtype(_DTYPES.get(code, object))


class Capture:
    """In-memory columns for every record type seen in a log."""

    def __init__(self, records: Iterable[Record]):
        self._formats: dict[str, FormatDescriptor] = {}
        self._timestamps: dict[str, list[int]] = {}
        self._rows: dict[str, list[tuple[Any, ...]]] = {}

        last_ts = 0
        for record in records:
            ts = record.time_usec
            if ts is None:
                ts = last_ts
            else:
                last_ts = ts
            self._append(record, ts)

    @classmethod
    def from_file(cls, path: str | Path,
                  registry: FormatRegistry | None = None) -> Capture:
        from .storage import LogReader
        with LogReader(path, registry) as reader:
            return cls(reader.records())

    def _append(self, record: Record, ts: int) -> None:
        name = record.type_name
        fmt = self._formats.get(name)
        if fmt is not None and fmt != record.format:
            logger.warning("Format %s redefined mid-log, dropping %d earlier rows",
                           name, len(self._rows[name]))
            fmt = None
        if fmt is None:
            self._formats[name] = record.format
            self._timestamps[name] = []
            self._rows[name] = []
        ncols = len(record.format.columns)
        self._timestamps[name].append(ts)
        self._rows[name].append(tuple(v.value for v in record.values[:ncols]))

    def types(self) -> list[str]:
        return list(self._formats)

    def count(self, type_name: str) -> int:
        return len(self._rows.get(type_name, ()))

    def fields(self, type_name: str) -> tuple[str, ...]:
        return self._formats[type_name].columns

    def series(self, type_name: str, field: str,
               t0: int | None = None, t1: int | None = None
               ) -> tuple[np.ndarray, np.ndarray]:
        """Timestamps and values of one field, optionally within [t0, t1]."""
        fmt = self._formats[type_name]
        index = fmt.name_to_index.get(field)
        if index is None:
            raise KeyError(f"{type_name} has no field {field!r}")

        ts = np.asarray(self._timestamps[type_name], dtype=np.uint64)
        values = np.asarray([row[index] for row in self._rows[type_name]],
                            dtype=column_dtype(fmt.format[index]))

        if t0 is None and t1 is None:
            return ts, values
        mask = np.ones(len(ts), dtype=bool)
        if t0 is not None:
            mask &= ts >= t0
        if t1 is not None:
            mask &= ts <= t1
        return ts[mask], values[mask]

    def table(self, type_name: str) -> dict[str, np.ndarray]:
        """All fields of a type as arrays, plus ``_timestamp``."""
        fmt = self._formats[type_name]
        tbl: dict[str, np.ndarray] = {
            "_timestamp": np.asarray(self._timestamps[type_name], dtype=np.uint64),
        }
        rows = self._rows[type_name]
        for index, (code, column) in enumerate(zip(fmt.format, fmt.columns)):
            tbl[column] = np.asarray([row[index] for row in rows],
                                     dtype=column_dtype(code))
        return tbl

    def close(self) -> None:
        self._formats.clear()
        self._timestamps.clear()
        self._rows.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

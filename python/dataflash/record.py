"""Decoded records and well-known field accessors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

from .converters import TypedValue
from .errors import TypeMismatch

if TYPE_CHECKING:
    from .schema import FormatDescriptor

# Well-known message type names
GPS = "GPS"
PARM = "PARM"
MODE = "MODE"
ATT = "ATT"
IMU = "IMU"
CMD = "CMD"
NTUN = "NTUN"
MSG = "MSG"
VER = "VER"
TIME = "TIME"
ERR = "ERR"

# Days from 1970-01-01 to the GPS epoch, 1980-01-06
GPS_EPOCH_SECONDS = 86400 * (10 * 365 + (1980 - 1969) // 4 + 1 + 6 - 2)
GPS_LEAP_SECONDS = 15
# Weeks beyond this put the date past ~2037; treat as no fix
MAX_GPS_WEEK = 3000

_VIEWS = {int: "as_int", float: "as_float", str: "as_str"}


def gps_time_to_usec(week: int, time_ms: int) -> int:
    """GPS week and millisecond-of-week to microseconds since 1970."""
    seconds = GPS_EPOCH_SECONDS + 86400 * 7 * week - GPS_LEAP_SECONDS
    return seconds * 1_000_000 + int(time_ms * 1000)


def _accessor(kind: type, *names: str) -> property:
    """Property returning the first of ``names`` present as ``kind``, else None."""
    def fget(self: Record):
        for name in names:
            value = self.get_opt(name, kind)
            if value is not None:
                return value
        return None
    fget.__doc__ = f"{'/'.join(names)} as {kind.__name__}, or None."
    return property(fget)


@dataclass(frozen=True)
class Record:
    """One decoded line or frame: its format plus ordered typed values.

    Text records may carry more values than the format has columns; the
    extras are unnamed strings.
    """

    format: FormatDescriptor
    values: tuple[TypedValue, ...]

    @property
    def type_name(self) -> str:
        return self.format.name

    @property
    def field_names(self) -> tuple[str, ...]:
        return self.format.columns

    def pairs(self) -> Iterator[tuple[str, TypedValue]]:
        return zip(self.format.columns, self.values)

    @property
    def fields(self) -> dict[str, Any]:
        return {name: v.value for name, v in self.pairs()}

    def element(self, name: str) -> TypedValue | None:
        index = self.format.name_to_index.get(name)
        if index is None or index >= len(self.values):
            return None
        return self.values[index]

    def get(self, name: str, kind: type | None = None) -> Any:
        """Field value by name, optionally coerced to int, float or str.

        Raises KeyError if the field is absent and TypeMismatch if it
        cannot be viewed as ``kind``.
        """
        element = self.element(name)
        if element is None:
            raise KeyError(f"{self.type_name} has no field {name!r}")
        if kind is None:
            return element.value
        return getattr(element, _VIEWS[kind])()

    def get_opt(self, name: str, kind: type | None = None) -> Any:
        try:
            return self.get(name, kind)
        except (KeyError, TypeMismatch):
            return None

    # CMD
    ctot = _accessor(int, "CTot")
    cnum = _accessor(int, "CNum")
    cid = _accessor(int, "CId")
    prm1 = _accessor(float, "Prm1")
    prm2 = _accessor(float, "Prm2")
    prm3 = _accessor(float, "Prm3")
    prm4 = _accessor(float, "Prm4")

    # GPS
    lat = _accessor(float, "Lat")
    lng = _accessor(float, "Lng", "Lon")
    alt = _accessor(float, "Alt")
    spd = _accessor(float, "Spd")
    week = _accessor(int, "Week", "GWk")
    t = _accessor(int, "T")
    gps_time = _accessor(int, "GPSTime")

    # CURR
    thr_out = _accessor(int, "ThrOut")

    # MODE
    mode = _accessor(str, "Mode")
    mode_num = _accessor(int, "ModeNum")

    # PARM
    param_name = _accessor(str, "Name")
    param_value = _accessor(float, "Value")

    # MSG
    message = _accessor(str, "Message")

    # NTUN
    arspd = _accessor(float, "Arspd")

    # TIME
    start_time = _accessor(int, "StartTime")

    # VER
    arch = _accessor(str, "Arch")
    fw_git = _accessor(str, "FwGit")

    # ERR
    ecode = _accessor(int, "ECode")
    subsys = _accessor(int, "Subsys")

    time_ms = _accessor(int, "TimeMS")
    time_us = _accessor(int, "TimeUS")

    @property
    def time_usec(self) -> int | None:
        """Boot-relative time in microseconds from TimeUS or TimeMS."""
        if self.time_us is not None:
            return self.time_us
        if self.time_ms is not None:
            return self.time_ms * 1000
        return None

    @property
    def gps_time_usec(self) -> int | None:
        """Wall-clock microseconds since 1970, or None without a GPS fix.

        Uses Week/TimeMS (or GWk/GMS); failing that, a GPSTime field is
        returned as-is.
        """
        for week_field, ms_field in (("Week", "TimeMS"), ("GWk", "GMS")):
            week = self.get_opt(week_field, int)
            time_ms = self.get_opt(ms_field, int)
            if week is None or time_ms is None:
                continue
            if week <= 0 or week > MAX_GPS_WEEK:
                return None
            return gps_time_to_usec(week, time_ms)
        return self.gps_time

    def to_text(self) -> str:
        """Render as a text log line."""
        return ", ".join([self.type_name] + [str(v) for v in self.values])

    def __str__(self) -> str:
        return self.to_text()

"""Vehicle firmware detection and flight-mode naming."""

from __future__ import annotations

import logging
import re
from typing import Callable, NamedTuple

logger = logging.getLogger(__name__)

COPTER_MODES = {
    0: "STABILIZE", 1: "ACRO", 2: "ALT_HOLD", 3: "AUTO", 4: "GUIDED",
    5: "LOITER", 6: "RTL", 7: "CIRCLE", 8: "POSITION", 9: "LAND",
    10: "OF_LOITER", 11: "DRIFT", 13: "SPORT", 14: "FLIP", 15: "AUTOTUNE",
    16: "POSHOLD", 17: "BRAKE", 18: "THROW", 19: "AVOID_ADSB",
    20: "GUIDED_NOGPS", 21: "SMART_RTL", 22: "FLOWHOLD", 23: "FOLLOW",
    24: "ZIGZAG", 25: "SYSTEMID", 26: "AUTOROTATE", 27: "AUTO_RTL",
}

PLANE_MODES = {
    0: "MANUAL", 1: "CIRCLE", 2: "STABILIZE", 3: "TRAINING", 4: "ACRO",
    5: "FBWA", 6: "FBWB", 7: "CRUISE", 8: "AUTOTUNE", 10: "AUTO",
    11: "RTL", 12: "LOITER", 13: "TAKEOFF", 14: "AVOID_ADSB", 15: "GUIDED",
    16: "INITIALISING", 17: "QSTABILIZE", 18: "QHOVER", 19: "QLOITER",
    20: "QLAND", 21: "QRTL", 22: "QAUTOTUNE", 23: "QACRO", 24: "THERMAL",
    25: "LOITERALTQLAND",
}

ROVER_MODES = {
    0: "MANUAL", 1: "ACRO", 3: "STEERING", 4: "HOLD", 5: "LOITER",
    6: "FOLLOW", 7: "SIMPLE", 10: "AUTO", 11: "RTL", 12: "SMART_RTL",
    15: "GUIDED", 16: "INITIALISING",
}

MODE_TABLES: dict[str, dict[int, str]] = {
    "ArduCopter": COPTER_MODES,
    "ArduPlane": PLANE_MODES,
    "ArduRover": ROVER_MODES,
}

# "APM:Copter V3.2.1 (36b405fb)" style banners name the family differently
_APM_ALIASES = {
    "APM:Copter": "ArduCopter",
    "APM:Plane": "ArduPlane",
    "APM:Rover": "ArduRover",
}

_VERSION_RE = re.compile(
    r"^\s*(Ardu\w+|APM:\w+)\s+V?(\d[\w.\-]*)(?:\s+\(([0-9a-fA-F]+)\))?")


class BuildInfo(NamedTuple):
    name: str
    version: str
    git_hash: str | None = None


def decode_version_message(text: str) -> BuildInfo | None:
    """Recognise a firmware banner such as ``ArduCopter V3.1.5 (ee63c88b)``."""
    m = _VERSION_RE.match(text)
    if m is None:
        return None
    name = _APM_ALIASES.get(m.group(1), m.group(1))
    return BuildInfo(name, m.group(2), m.group(3))


VersionDecoder = Callable[[str], "BuildInfo | None"]


class VehicleSession:
    """Per-log vehicle build state, consulted when naming flight modes."""

    def __init__(self, build_name: str | None = None):
        self.build_name = build_name

    def set_build(self, name: str) -> None:
        if name != self.build_name:
            logger.debug("vehicle build detected: %s", name)
        self.build_name = name

    @property
    def mode_table(self) -> dict[int, str]:
        return MODE_TABLES.get(self.build_name or "", {})

    def mode_name(self, code: int) -> str:
        return self.mode_table.get(code, f"mode{code}")

    def mode_number(self, name: str) -> int:
        """Inverse of :meth:`mode_name`, accepting ``mode<N>`` labels."""
        for code, label in self.mode_table.items():
            if label == name:
                return code
        if name.startswith("mode") and name[4:].isdigit():
            return int(name[4:])
        raise ValueError(f"Unknown mode {name!r} for build {self.build_name!r}")

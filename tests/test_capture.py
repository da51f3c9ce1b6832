"""Tests for the numpy capture interface.

Run from repo root:
    python3 tests/test_capture.py
"""

import sys
import os
import tempfile

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

import numpy as np

from dataflash.capture import Capture, column_dtype
from dataflash.decoder import TextLogParser


LOG = """\
FMT, 128, 89, FMT, BBnNZ, Type,Length,Name,Format,Columns
FMT, 129, 23, PARM, Nf, Name,Value
FMT, 133, 21, ATT, QffH, TimeUS,Roll,Pitch,Yaw
FMT, 134, 9, CURR, IH, TimeMS,ThrOut
PARM, A, 1.0
ATT, 1000, 0.5, -0.25, 90
CURR, 2, 400
ATT, 3000, 1.5, 0.75, 180
PARM, B, 2.0
"""


def make_capture(text=LOG):
    return Capture(TextLogParser.from_string(text))


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_capture_series():
    """series() returns uint64 timestamps and values typed by format char."""
    print("test_capture_series...", end="")

    cap = make_capture()
    assert cap.types() == ["FMT", "PARM", "ATT", "CURR"]
    assert cap.count("ATT") == 2
    assert cap.count("NOPE") == 0
    assert cap.fields("ATT") == ("TimeUS", "Roll", "Pitch", "Yaw")

    ts, roll = cap.series("ATT", "Roll")
    assert ts.dtype == np.uint64
    assert roll.dtype == np.float32
    assert list(ts) == [1000, 3000]
    np.testing.assert_array_equal(roll, np.array([0.5, 1.5], dtype=np.float32))

    _, yaw = cap.series("ATT", "Yaw")
    assert yaw.dtype == np.uint16
    assert list(yaw) == [90, 180]

    # TimeMS is scaled to microseconds
    ts, thr = cap.series("CURR", "ThrOut")
    assert list(ts) == [2000]
    assert list(thr) == [400]

    print(" OK")


def test_capture_time_range():
    print("test_capture_time_range...", end="")

    cap = make_capture()
    ts, pitch = cap.series("ATT", "Pitch", t0=2000)
    assert list(ts) == [3000]
    assert list(pitch) == [0.75]

    ts, _ = cap.series("ATT", "Pitch", t1=2000)
    assert list(ts) == [1000]

    ts, _ = cap.series("ATT", "Pitch", t0=5000, t1=6000)
    assert len(ts) == 0

    print(" OK")


def test_capture_carried_timestamps():
    """Records without a time field take the last seen timestamp, 0 at start."""
    print("test_capture_carried_timestamps...", end="")

    cap = make_capture()
    tbl = cap.table("PARM")
    assert list(tbl["_timestamp"]) == [0, 3000]
    assert tbl["Name"].dtype == object
    assert list(tbl["Name"]) == ["A", "B"]
    assert tbl["Value"].dtype == np.float32

    print(" OK")


def test_capture_table():
    print("test_capture_table...", end="")

    cap = make_capture()
    tbl = cap.table("ATT")
    assert set(tbl) == {"_timestamp", "TimeUS", "Roll", "Pitch", "Yaw"}
    assert tbl["TimeUS"].dtype == np.uint64
    assert list(tbl["TimeUS"]) == list(tbl["_timestamp"])

    print(" OK")


def test_capture_missing_field():
    print("test_capture_missing_field...", end="")

    cap = make_capture()
    try:
        cap.series("ATT", "Heading")
    except KeyError:
        pass
    else:
        raise AssertionError("expected KeyError")

    print(" OK")


def test_capture_redefinition():
    """Redefining a format mid-log starts its columns afresh."""
    print("test_capture_redefinition...", end="")

    text = LOG + "FMT, 133, 13, ATT, QH, TimeUS,Yaw\nATT, 4000, 7\n"
    cap = make_capture(text)
    assert cap.fields("ATT") == ("TimeUS", "Yaw")
    ts, yaw = cap.series("ATT", "Yaw")
    assert list(ts) == [4000]
    assert list(yaw) == [7]

    print(" OK")


def test_capture_from_file():
    print("test_capture_from_file...", end="")

    with tempfile.NamedTemporaryFile("w", suffix=".log", delete=False) as f:
        f.write(LOG)
        path = f.name

    try:
        with Capture.from_file(path) as cap:
            assert cap.count("ATT") == 2
            _, roll = cap.series("ATT", "Roll")
            assert list(roll) == [0.5, 1.5]
        assert cap.types() == []
    finally:
        os.unlink(path)

    print(" OK")


def test_column_dtypes():
    print("test_column_dtypes...", end="")

    assert column_dtype("b") == np.int8
    assert column_dtype("Q") == np.uint64
    assert column_dtype("L") == np.float64
    assert column_dtype("Z") == np.dtype(object)
    assert column_dtype("M") == np.dtype(object)

    print(" OK")


if __name__ == "__main__":
    print("dataflash capture tests")
    print("=======================\n")

    test_capture_series()
    test_capture_time_range()
    test_capture_carried_timestamps()
    test_capture_table()
    test_capture_missing_field()
    test_capture_redefinition()
    test_capture_from_file()
    test_column_dtypes()

    print("\nAll tests passed.")

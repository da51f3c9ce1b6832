"""Test record field access and the well-known accessors.

Run from the repo root:
    python3 tests/test_record.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

from dataflash.errors import TypeMismatch
from dataflash.record import GPS_EPOCH_SECONDS, gps_time_to_usec
from dataflash.schema import FormatRegistry


def make_record(name, format, columns, args, type=200):
    reg = FormatRegistry()
    fmt = reg.define(type, reg.frame_length(format), name, format, columns)
    return fmt.create_message(args)


def test_gps_epoch():
    """1980-01-06 is 315964800 seconds after 1970."""
    print("test_gps_epoch...", end="")

    assert GPS_EPOCH_SECONDS == 315964800

    print(" OK")


def test_gps_time_usec():
    print("test_gps_time_usec...", end="")

    gps = make_record("GPS", "BIHLL", ["Status", "TimeMS", "Week", "Lat", "Lng"],
                      ["3", "302400000", "2190", "-35.36", "149.16"])
    expected = (315964800 + 604800 * 2190 - 15) * 1_000_000 + 302400000 * 1000
    assert gps.gps_time_usec == expected
    assert gps.gps_time_usec == gps_time_to_usec(2190, 302400000)

    print(" OK")


def test_gps_time_implausible_week():
    """Week 0 means no fix yet; absurd weeks are rejected too."""
    print("test_gps_time_implausible_week...", end="")

    for week in ("0", "3001", "65535"):
        gps = make_record("GPS", "IH", ["TimeMS", "Week"], ["1000", week])
        assert gps.gps_time_usec is None, week

    # the last plausible week still converts
    gps = make_record("GPS", "IH", ["TimeMS", "Week"], ["1000", "3000"])
    assert gps.gps_time_usec == gps_time_to_usec(3000, 1000)

    gps = make_record("GPS", "IH", ["TimeMS", "Week"], ["1000", "1"])
    assert gps.gps_time_usec == gps_time_to_usec(1, 1000)

    print(" OK")


def test_gps_time_newer_field_names():
    print("test_gps_time_newer_field_names...", end="")

    gps = make_record("GPS", "QIH", ["TimeUS", "GMS", "GWk"], ["5", "1000", "2000"])
    assert gps.week == 2000
    assert gps.gps_time_usec == gps_time_to_usec(2000, 1000)

    print(" OK")


def test_gps_time_fallback():
    """Without week/time, an absolute GPSTime field is returned as-is."""
    print("test_gps_time_fallback...", end="")

    gps = make_record("GPS", "Q", ["GPSTime"], ["1400000000000000"])
    assert gps.gps_time_usec == 1400000000000000

    att = make_record("ATT", "Qff", ["TimeUS", "Roll", "Pitch"], ["1", "0.5", "0.25"])
    assert att.gps_time_usec is None

    print(" OK")


def test_accessors():
    print("test_accessors...", end="")

    cmd = make_record("CMD", "HHHffff", ["CTot", "CNum", "CId", "Prm1", "Prm2", "Prm3", "Prm4"],
                      ["10", "3", "16", "0", "1.5", "0", "2"])
    assert (cmd.ctot, cmd.cnum, cmd.cid) == (10, 3, 16)
    assert cmd.prm2 == 1.5
    assert cmd.prm4 == 2.0

    # Lng falls back to Lon
    pos = make_record("POS", "LLe", ["Lat", "Lon", "Alt"], ["-35.5", "149.25", "10.5"])
    assert pos.lng == 149.25
    assert pos.alt == 10.5
    assert pos.spd is None

    ver = make_record("VER", "ZZ", ["Arch", "FwGit"], ["arm", "abc123"])
    assert ver.arch == "arm"
    assert ver.fw_git == "abc123"

    err = make_record("ERR", "QBB", ["TimeUS", "Subsys", "ECode"], ["1", "2", "3"])
    assert (err.subsys, err.ecode) == (2, 3)
    assert err.time_usec == 1

    t = make_record("TIME", "IQ", ["TimeMS", "StartTime"], ["250", "99"])
    assert t.start_time == 99
    assert t.time_ms == 250
    assert t.time_usec == 250000

    curr = make_record("CURR", "H", ["ThrOut"], ["412"])
    assert curr.thr_out == 412
    assert curr.message is None
    assert curr.arspd is None

    print(" OK")


def test_accessor_type_mismatch_is_absent():
    """An accessor whose field has the wrong type yields None."""
    print("test_accessor_type_mismatch_is_absent...", end="")

    odd = make_record("ODD", "Zf", ["Mode", "CNum"], ["AUTO", "1.5"])
    assert odd.mode == "AUTO"
    assert odd.cnum is None

    try:
        odd.get("CNum", int)
    except TypeMismatch:
        pass
    else:
        raise AssertionError("expected TypeMismatch")

    try:
        odd.get("Missing")
    except KeyError:
        pass
    else:
        raise AssertionError("expected KeyError")

    print(" OK")


def test_fields_and_text():
    print("test_fields_and_text...", end="")

    parm = make_record("PARM", "Nf", ["Name", "Value"], ["RATE_RLL_P", "0.15"])
    assert parm.fields == {"Name": "RATE_RLL_P", "Value": 0.15}
    assert [name for name, _ in parm.pairs()] == ["Name", "Value"]
    assert parm.get("Value", float) == 0.15
    assert parm.to_text() == "PARM, RATE_RLL_P, 0.15"
    assert str(parm) == parm.to_text()

    print(" OK")


if __name__ == "__main__":
    print("dataflash record tests")
    print("======================\n")

    test_gps_epoch()
    test_gps_time_usec()
    test_gps_time_implausible_week()
    test_gps_time_newer_field_names()
    test_gps_time_fallback()
    test_accessors()
    test_accessor_type_mismatch_is_absent()
    test_fields_and_text()

    print("\nAll tests passed.")

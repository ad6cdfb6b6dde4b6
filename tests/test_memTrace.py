import json
import logging

import pytest

from cachehier import memTrace
from cachehier.cache import ConfigurationError
from cachehier.memTrace import TraceError, parseLine, readTrace

TRACE = """\
fetch 400
read 1000
write 1000
read 1000

fetch 404
write 2000
"""


@pytest.mark.parametrize("line,expected", [
    ("fetch 400\n", ("fetch", 0x400)),
    ("read ffff", ("read", 0xFFFF)),
    ("write 0x10", ("write", 0x10)),
    ("  WRITE\t7fffffffffff  ", ("write", 0x7FFFFFFFFFFF)),
])
def test_parse_line(line, expected):
    assert parseLine(line) == expected


@pytest.mark.parametrize("line", [
    "read",
    "read 10 20",
    "load 10",
    "read xyz",
    "read -10",
])
def test_parse_line_rejects(line):
    with pytest.raises(TraceError) as e:
        parseLine(line, 7)
    assert e.value.lineNumber == 7
    assert "line 7" in str(e.value)


def test_read_trace_skips_bad_lines(caplog):
    lines = ["read 10\n", "garbage\n", "\n", "write 20\n"]
    with caplog.at_level(logging.WARNING, logger="cachehier.memTrace"):
        entries = list(readTrace(lines))
    assert entries == [("read", 0x10), ("write", 0x20)]
    assert "line 2" in caplog.text


def test_read_trace_strict():
    with pytest.raises(TraceError):
        list(readTrace(["read 10\n", "garbage\n"], strict=True))


def runMain(tmp_path, capsys, trace, *args):
    path = tmp_path / "trace.txt"
    path.write_text(trace)
    status = memTrace.main([str(path)] + list(args))
    return status, capsys.readouterr().out


def test_main_report(tmp_path, capsys):
    status, out = runMain(tmp_path, capsys, TRACE)
    assert status == 0
    assert out.startswith("N: 6\nL1 I-Cache:\nHits: 1\nMisses: 1\nWrite-backs: 0\nHit rate: 50.000%\n")
    assert "L1 D-Cache:\nHits: 2\nMisses: 2\nWrite-backs: 0\nHit rate: 50.000%\n" in out
    assert "L2 Cache:\nHits: 0\nMisses: 3\nWrite-backs: 0\nHit rate: 0.000%\n" in out


def test_main_skip_warmup_lines(tmp_path, capsys):
    status, out = runMain(tmp_path, capsys, TRACE, "--skip", "1", "--warmup", "1", "-n", "2")
    assert status == 0
    # read 1000 warms up, write/read 1000 are counted hits
    assert out.startswith("N: 2\nL1 I-Cache:\nHits: 0\nMisses: 0\n")
    assert "L1 D-Cache:\nHits: 2\nMisses: 0\n" in out


def test_main_config_file(tmp_path, capsys):
    config = tmp_path / "cache.json"
    config.write_text(json.dumps({"size": 64, "blockSize": 16, "associativity": 1}))
    trace = "read 0\nread 40\nread 0\n"
    status, out = runMain(tmp_path, capsys, trace, "--config", str(config))
    assert status == 0
    assert "L1 D-Cache:\nHits: 0\nMisses: 3\n" in out
    assert "L2 Cache:\nHits: 1\nMisses: 2\n" in out


def test_main_flags_override_config(tmp_path, capsys):
    config = tmp_path / "cache.json"
    config.write_text(json.dumps({"size": 64, "associativity": 1}))
    status, out = runMain(tmp_path, capsys, "read 0\nread 40\nread 0\n",
                          "--config", str(config), "--associativity", "4")
    assert status == 0
    assert "L1 D-Cache:\nHits: 1\nMisses: 2\n" in out


def test_main_bad_configuration(tmp_path, capsys):
    status, out = runMain(tmp_path, capsys, TRACE, "--size", "1000")
    assert status == 1
    assert out == ""


def test_main_unknown_config_key(tmp_path, capsys):
    config = tmp_path / "cache.json"
    config.write_text(json.dumps({"sets": 4}))
    status, out = runMain(tmp_path, capsys, TRACE, "--config", str(config))
    assert status == 1
    assert out == ""


def test_main_strict(tmp_path, capsys):
    status, out = runMain(tmp_path, capsys, TRACE + "bogus line here\n", "--strict")
    assert status == 1
    assert out == ""


def test_main_tolerant(tmp_path, capsys):
    status, out = runMain(tmp_path, capsys, "bogus\n" + TRACE)
    assert status == 0
    assert out.startswith("N: 6\n")


def test_main_missing_file(tmp_path, capsys):
    assert memTrace.main([str(tmp_path / "missing.txt")]) == 1
    assert capsys.readouterr().out == ""


def test_main_report_write_backs(tmp_path, capsys):
    trace = "write 0\nwrite 40\nwrite 0\n"
    status, out = runMain(tmp_path, capsys, trace, "--size", "64", "--associativity", "1",
                          "--l2-size", "64", "--l2-associativity", "1")
    assert status == 0
    assert "L1 D-Cache:\nHits: 0\nMisses: 3\nWrite-backs: 2\n" in out
    assert "L2 Cache:\nHits: 0\nMisses: 3\nWrite-backs: 2\n" in out


@pytest.mark.parametrize("config", [{"size": "1024"}, {"associativity": 2.5}, [64, 16, 1], 1024])
def test_main_rejects_malformed_config(tmp_path, capsys, config):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps(config))
    status, out = runMain(tmp_path, capsys, TRACE, "--config", str(path))
    assert status == 1
    assert out == ""


def test_load_config_requires_object(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("[1024, 16, 2]")
    with pytest.raises(ConfigurationError):
        memTrace.loadConfig(str(path))


def writeBinaryTrace(tmp_path):
    path = tmp_path / "trace.bin"
    path.write_bytes(b"read 10\nread \xff0\nwrite 20\n")
    return path


def test_main_undecodable_line_skipped(tmp_path, capsys, caplog):
    path = writeBinaryTrace(tmp_path)
    with caplog.at_level(logging.WARNING, logger="cachehier.memTrace"):
        status = memTrace.main([str(path)])
    assert status == 0
    assert capsys.readouterr().out.startswith("N: 2\n")
    assert "line 2" in caplog.text


def test_main_undecodable_line_strict(tmp_path, capsys, caplog):
    path = writeBinaryTrace(tmp_path)
    with caplog.at_level(logging.ERROR, logger="cachehier.memTrace"):
        status = memTrace.main([str(path), "--strict"])
    assert status == 1
    assert capsys.readouterr().out == ""
    assert "line 2" in caplog.text

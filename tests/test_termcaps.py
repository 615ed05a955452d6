# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC
#
# Capability tables: the built-in ANSI sequences, terminfo loading and the
# fallback when terminfo is unavailable.

import logging
import os

import pytest

import termcaps
from termcaps import ANSI, Capabilities
from termdev import DeviceError
from termevents import Key


def test_ansi_cursor_addressing_is_zero_based():
    assert ANSI.get("cup", 0, 0) == "\x1b[1;1H"
    assert ANSI.get("cup", 4, 9) == "\x1b[5;10H"


@pytest.mark.parametrize(
    "cap, n, expected",
    [
        ("setaf", 1, "\x1b[31m"),
        ("setaf", 7, "\x1b[37m"),
        ("setaf", 8, "\x1b[90m"),
        ("setaf", 15, "\x1b[97m"),
        ("setaf", 16, "\x1b[38;5;16m"),
        ("setab", 0, "\x1b[40m"),
        ("setab", 12, "\x1b[104m"),
        ("setab", 255, "\x1b[48;5;255m"),
    ],
)
def test_ansi_colors(cap, n, expected):
    assert ANSI.get(cap, n) == expected


def test_ansi_rgb():
    assert ANSI.get("setaf_rgb", 10, 20, 30) == "\x1b[38;2;10;20;30m"
    assert ANSI.get("setab_rgb", 0, 0, 0) == "\x1b[48;2;0;0;0m"


def test_ansi_has_everything_the_renderer_uses():
    for cap in (
        "smcup",
        "rmcup",
        "smkx",
        "rmkx",
        "cnorm",
        "civis",
        "cup",
        "clear",
        "sgr0",
        "bold",
        "smul",
        "rev",
        "blink",
        "setaf",
        "setab",
        "setaf_rgb",
        "setab_rgb",
        "mouse_on",
        "mouse_off",
    ):
        assert cap in ANSI, cap


def test_missing_capability_expands_to_nothing():
    caps = Capabilities("tiny", {"sgr0": "\x1b[m"})
    assert caps.get("sgr0") == "\x1b[m"
    assert caps.get("blink") == ""
    assert caps.get("cup", 1, 2) == ""
    assert "blink" not in caps


def test_key_sequences_are_copied():
    caps = Capabilities("k", {}, {"\x1bOP": Key.F1})
    keys = caps.key_sequences()
    assert keys == {"\x1bOP": Key.F1}
    keys.clear()
    assert caps.key_sequences() == {"\x1bOP": Key.F1}
    assert ANSI.key_sequences() == {}


def test_load_falls_back_to_ansi(monkeypatch, caplog):
    def no_terminfo(term=None, fd=-1):
        raise DeviceError(f"no terminfo entry for {term!r}")

    monkeypatch.setattr(termcaps, "from_terminfo", no_terminfo)
    with caplog.at_level(logging.WARNING, logger="termcaps"):
        caps = termcaps.load("nonesuch")
    assert caps is ANSI
    assert "falling back" in caplog.text


def test_from_terminfo_xterm():
    pytest.importorskip("curses")
    fd = os.open(os.devnull, os.O_WRONLY)
    try:
        caps = termcaps.from_terminfo("xterm-256color", fd)
    except DeviceError as e:
        pytest.skip(str(e))
    finally:
        os.close(fd)

    # curses keeps the first terminal type set up in the process, so only
    # check what every xterm-like entry agrees on
    assert caps.get("cup", 2, 4) == "\x1b[3;5H"
    assert caps.get("setaf", 1).endswith("31m")
    assert caps.get("setaf_rgb", 1, 2, 3) == "\x1b[38;2;1;2;3m"
    assert Key.UP in caps.key_sequences().values()

# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC
#
# The celldemo event loop, driven through a Terminal on the fake device.

import celldemo
from cellterm import Color
from conftest import make_terminal


def test_quits_on_q(term, device):
    device.send(b"q")
    assert celldemo.demo(term, Color.GREEN) == 1


def test_quits_on_lone_escape(device):
    with make_terminal(device, esc_delay=0.001) as t:
        device.send(b"\x1b")
        assert celldemo.demo(t, Color.GREEN) == 1


def test_unknown_escape_sequence_keeps_running(term, device):
    # Ctrl+Up isn't in the key table and arrives as Key.ESCAPE
    device.send(b"\x1b[1;5A\x1b[99~q")
    assert celldemo.demo(term, Color.GREEN) == 3


def test_marker_follows_arrow_keys(term, device):
    device.send(b"\x1b[C\x1b[Aq")
    assert celldemo.demo(term, Color.GREEN) == 3
    # Starts at the center (10, 2) of the 20x5 screen
    assert term.back_buffer().get(11, 1).ch == "@"


def test_draws_on_tiny_screen(device):
    with make_terminal(device, size=(3, 2)) as t:
        device.send(b"q")
        assert celldemo.demo(t, Color.GREEN) == 1
        assert t.back_buffer().get(0, 0).ch == " "
        assert t.back_buffer().get(1, 0).ch == "c"

# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC
#
# Shared fixtures and helpers for the cellterm pytest suite.

import errno
import os
import sys

import pytest

# Ensure cellterm is importable from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import cellterm  # noqa: E402
import termcaps  # noqa: E402

# ---------------------------------------------------------------------------
# Fake device
# ---------------------------------------------------------------------------


class FakeDevice:
    """
    Stand-in for termdev.TtyDevice.

    Input comes from a pipe (feed it with send()), so the input thread can
    poll it like a real terminal. Output is recorded in 'written'.
    """

    def __init__(self, cols=80, rows=24):
        self.size = (cols, rows)
        self.written = bytearray()
        self.fail_writes = False
        self.raw_calls = []
        self.restored = []
        self.closed = False
        self._r, self._w = os.pipe()

    def fileno(self):
        return self._r

    def output_fileno(self):
        return -1

    def read(self, n=1024):
        return os.read(self._r, n)

    def write(self, data):
        if self.fail_writes:
            raise OSError(errno.EIO, "Input/output error")
        self.written += data

    def get_size(self):
        return self.size

    def enter_raw(self, keep_signals=True):
        self.raw_calls.append(keep_signals)
        return "saved-attrs"

    def restore(self, saved):
        self.restored.append(saved)

    def send(self, data):
        os.write(self._w, data)

    def hangup(self):
        """Close the writing end, so the reader sees end of file."""
        if self._w is not None:
            os.close(self._w)
            self._w = None

    def take(self):
        """Return and forget everything written so far."""
        data = bytes(self.written)
        self.written.clear()
        return data

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.hangup()
        os.close(self._r)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the environment from leaking into TermConfig.from_env()."""
    for var in ("ESCDELAY", "CELLTERM_MATCH"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def device():
    dev = FakeDevice(cols=20, rows=5)
    yield dev
    dev.close()


def make_terminal(device, **config):
    config.setdefault("use_terminfo", False)
    return cellterm.Terminal(
        cellterm.TermConfig(**config), device=device, caps=termcaps.ANSI
    )


@pytest.fixture
def term(device):
    """A Terminal on the fake device, with the init output discarded."""
    t = make_terminal(device)
    device.take()
    yield t
    t.close()

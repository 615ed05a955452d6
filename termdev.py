# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC

"""
termdev -- the terminal device and its raw-mode lease

TtyDevice is the byte source/sink for one terminal: reads, writes, and
window-size queries on a pair of file descriptors (normally both on
/dev/tty). RawMode is the exclusive handle on the device's raw mode. Only one
RawMode can be alive in a process; constructing a second one raises
DeviceError.

The exception hierarchy lives here since every other cellterm module imports
this one.
"""

import fcntl
import logging
import os
import shutil
import struct
import termios
import threading

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TermError(Exception):
    """Base class for all cellterm errors."""


class DeviceError(TermError):
    """
    The device is unavailable, is not a terminal, or a mode switch failed.
    Raised from Terminal construction and never retried.
    """


class TermIOError(TermError, OSError):
    """A read or write on the device failed mid-session."""


class OutOfBoundsError(TermError, IndexError):
    """A cell coordinate lies outside the current dimensions."""


# ---------------------------------------------------------------------------
# Device
# ---------------------------------------------------------------------------


class TtyDevice:
    """
    Raw byte access to a terminal.

    TtyDevice() opens /dev/tty (the controlling terminal, independent of
    stdin/stdout redirection). TtyDevice.from_fds() wraps existing
    descriptors, e.g. sys.stdin.fileno() and sys.stdout.fileno(), without
    taking ownership of them.
    """

    def __init__(self, path="/dev/tty"):
        try:
            fd = os.open(path, os.O_RDWR | os.O_NOCTTY)
        except OSError as e:
            raise DeviceError(f"cannot open {path}: {e.strerror}") from e

        if not os.isatty(fd):
            os.close(fd)
            raise DeviceError(f"{path} is not a terminal")

        self._in_fd = fd
        self._out_fd = fd
        self._owned = True
        self._closed = False

    @classmethod
    def from_fds(cls, in_fd, out_fd):
        for fd in (in_fd, out_fd):
            if not os.isatty(fd):
                raise DeviceError(f"file descriptor {fd} is not a terminal")

        dev = cls.__new__(cls)
        dev._in_fd = in_fd
        dev._out_fd = out_fd
        dev._owned = False
        dev._closed = False
        return dev

    def fileno(self):
        """Descriptor that input is read from."""
        return self._in_fd

    def output_fileno(self):
        """Descriptor that output is written to."""
        return self._out_fd

    def read(self, n=1024):
        return os.read(self._in_fd, n)

    def write(self, data):
        # os.write() may write less than asked for on a tty, and raises
        # BlockingIOError if someone left the descriptor non-blocking
        view = memoryview(data)
        while view:
            try:
                n = os.write(self._out_fd, view)
            except BlockingIOError:
                os.set_blocking(self._out_fd, True)
                continue
            view = view[n:]

    def get_size(self):
        """Return the window size as (cols, rows)."""
        try:
            packed = fcntl.ioctl(self._out_fd, termios.TIOCGWINSZ, b"\0" * 8)
            rows, cols = struct.unpack("hhhh", packed)[:2]
        except OSError:
            rows = cols = 0

        if cols <= 0 or rows <= 0:
            # Some ptys report 0x0 until the emulator sets a size. Fall back
            # to $COLUMNS/$LINES and then the 80x24 default.
            sz = shutil.get_terminal_size()
            cols, rows = sz.columns, sz.lines

        return cols, rows

    def enter_raw(self, keep_signals=True):
        """
        Switch the device to raw mode and return the previous settings, to
        be handed back to restore().

        keep_signals:
          If True, ISIG stays set so Ctrl-C still delivers SIGINT. Otherwise
          Ctrl-C, Ctrl-Z and Ctrl-\\ arrive as ordinary input bytes.
        """
        fd = self._in_fd
        try:
            saved = termios.tcgetattr(fd)
            new = termios.tcgetattr(fd)

            # IFLAG: no break processing, parity marking, stripping, CR/NL
            # translation or flow control
            new[0] &= ~(
                termios.IGNBRK
                | termios.BRKINT
                | termios.PARMRK
                | termios.ISTRIP
                | termios.INLCR
                | termios.IGNCR
                | termios.ICRNL
                | termios.IXON
            )
            # OFLAG: no output post-processing (no NL -> CRNL)
            new[1] &= ~termios.OPOST
            # CFLAG: 8-bit characters
            new[2] &= ~(termios.CSIZE | termios.PARENB)
            new[2] |= termios.CS8
            # LFLAG: no echo, no canonical mode
            lflags = termios.ECHO | termios.ECHONL | termios.ICANON | termios.IEXTEN
            if not keep_signals:
                lflags |= termios.ISIG
            new[3] &= ~lflags
            new[6][termios.VMIN] = 1
            new[6][termios.VTIME] = 0

            termios.tcsetattr(fd, termios.TCSAFLUSH, new)
        except termios.error as e:
            raise DeviceError(f"cannot enter raw mode: {e}") from e

        return saved

    def restore(self, saved):
        try:
            termios.tcsetattr(self._in_fd, termios.TCSAFLUSH, saved)
        except termios.error as e:
            raise DeviceError(f"cannot restore terminal mode: {e}") from e

    def close(self):
        if self._closed:
            return
        self._closed = True
        if self._owned:
            os.close(self._in_fd)


# ---------------------------------------------------------------------------
# Raw-mode lease
# ---------------------------------------------------------------------------

# Held for as long as a RawMode handle is alive
_lease_lock = threading.Lock()


class RawMode:
    """
    Exclusive lease on raw mode.

    Constructing a RawMode switches the device to raw mode; release() (or
    leaving a 'with' block) restores the saved settings. Only one lease can
    exist per process. release() is idempotent.
    """

    def __init__(self, device, keep_signals=True):
        if not _lease_lock.acquire(blocking=False):
            raise DeviceError("raw mode is already held by another terminal")

        try:
            self._saved = device.enter_raw(keep_signals)
        except BaseException:
            _lease_lock.release()
            raise

        self._device = device
        self._released = False
        _log.debug("raw mode acquired on fd %d", device.fileno())

    @property
    def released(self):
        return self._released

    def release(self):
        if self._released:
            return
        self._released = True
        try:
            self._device.restore(self._saved)
        finally:
            _lease_lock.release()
            _log.debug("raw mode released on fd %d", self._device.fileno())

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.release()

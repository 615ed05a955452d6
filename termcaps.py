# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC

"""
termcaps -- control-sequence templates for a terminal type

A Capabilities object maps capability names to templates. A template is
either a plain string or a function taking the capability's parameters and
returning a string. Names follow terminfo capnames:

  smcup/rmcup   enter/leave the alternate screen
  smkx/rmkx     enter/leave keypad transmit mode
  cnorm/civis   show/hide the cursor
  cup(row, col) move the cursor (0-based)
  clear         clear the screen, cursor home
  sgr0          reset all attributes
  bold smul rev blink
                attribute on
  setaf(n)      foreground color n (0-255)
  setab(n)      background color n (0-255)

plus a few without a terminfo equivalent:

  setaf_rgb(r, g, b), setab_rgb(r, g, b)
                24-bit colors
  mouse_on/mouse_off
                SGR mouse reporting

ANSI is the built-in VT100/xterm table. from_terminfo() reads the system
terminfo database through the standard curses module.
"""

import logging
import os

from termdev import DeviceError
from termevents import Key

_log = logging.getLogger(__name__)


class Capabilities:
    """Control-sequence templates plus the key sequences a terminal sends."""

    __slots__ = ("name", "_strings", "_keys")

    def __init__(self, name, strings, keys=None):
        self.name = name
        self._strings = dict(strings)
        self._keys = dict(keys) if keys else {}

    def __contains__(self, cap):
        return cap in self._strings

    def get(self, cap, *params):
        """
        Expand capability 'cap' with 'params'. Returns "" for a capability
        the terminal does not have.
        """
        template = self._strings.get(cap)
        if template is None:
            return ""
        if callable(template):
            return template(*params)
        return template

    def key_sequences(self):
        """Return a {sequence: Key constant} dict for EventDecoder."""
        return dict(self._keys)

    def __repr__(self):
        return f"<Capabilities {self.name!r}: {len(self._strings)} strings>"


# ---------------------------------------------------------------------------
# Built-in ANSI table
# ---------------------------------------------------------------------------


def _sgr_color(base, n):
    # base is 30 for foreground, 40 for background
    if n < 8:
        return f"\x1b[{base + n}m"
    if n < 16:
        return f"\x1b[{base + 60 + n - 8}m"
    return f"\x1b[{base + 8};5;{n}m"


ANSI = Capabilities(
    "ansi",
    {
        "smcup": "\x1b[?1049h",
        "rmcup": "\x1b[?1049l",
        "smkx": "\x1b[?1h\x1b=",
        "rmkx": "\x1b[?1l\x1b>",
        "cnorm": "\x1b[?12l\x1b[?25h",
        "civis": "\x1b[?25l",
        "cup": lambda row, col: f"\x1b[{row + 1};{col + 1}H",
        "clear": "\x1b[H\x1b[2J",
        "sgr0": "\x1b[0m",
        "bold": "\x1b[1m",
        "smul": "\x1b[4m",
        "rev": "\x1b[7m",
        "blink": "\x1b[5m",
        "setaf": lambda n: _sgr_color(30, n),
        "setab": lambda n: _sgr_color(40, n),
        "setaf_rgb": lambda r, g, b: f"\x1b[38;2;{r};{g};{b}m",
        "setab_rgb": lambda r, g, b: f"\x1b[48;2;{r};{g};{b}m",
        "mouse_on": "\x1b[?1000h\x1b[?1002h\x1b[?1006h",
        "mouse_off": "\x1b[?1006l\x1b[?1002l\x1b[?1000l",
    },
)


# ---------------------------------------------------------------------------
# terminfo
# ---------------------------------------------------------------------------

# Capabilities taken from terminfo when present. The rest come from ANSI.
_TERMINFO_STRINGS = (
    "smcup",
    "rmcup",
    "smkx",
    "rmkx",
    "cnorm",
    "civis",
    "clear",
    "sgr0",
    "bold",
    "smul",
    "rev",
    "blink",
)

# Without these the renderer can't work, so their absence is worth a log line
_REQUIRED = ("cup", "sgr0", "clear")

# terminfo key capnames
_TERMINFO_KEYS = {
    "kcuu1": Key.UP,
    "kcud1": Key.DOWN,
    "kcub1": Key.LEFT,
    "kcuf1": Key.RIGHT,
    "khome": Key.HOME,
    "kend": Key.END,
    "kpp": Key.PAGE_UP,
    "knp": Key.PAGE_DOWN,
    "kich1": Key.INSERT,
    "kdch1": Key.DELETE,
    "kcbt": Key.BACKTAB,
    "kbs": Key.BACKSPACE,
    "kf1": Key.F1,
    "kf2": Key.F2,
    "kf3": Key.F3,
    "kf4": Key.F4,
    "kf5": Key.F5,
    "kf6": Key.F6,
    "kf7": Key.F7,
    "kf8": Key.F8,
    "kf9": Key.F9,
    "kf10": Key.F10,
    "kf11": Key.F11,
    "kf12": Key.F12,
}


def _decode(b):
    # terminfo strings are bytes. surrogateescape keeps any non-ASCII byte
    # intact through the str round trip (Terminal encodes output the same
    # way).
    return b.decode("ascii", "surrogateescape")


def from_terminfo(term=None, fd=-1):
    """
    Build a Capabilities table for terminal type 'term' (default: $TERM)
    from the terminfo database. 'fd' is handed to curses.setupterm(); -1
    means sys.stdout.

    Raises DeviceError if curses is unavailable or the terminal type is
    unknown. curses only supports one terminal type per process, so the
    first call decides it.
    """
    try:
        import curses
    except ImportError as e:
        raise DeviceError("terminfo lookup needs the curses module") from e

    if term is None:
        term = os.environ.get("TERM") or "dumb"

    try:
        curses.setupterm(term, fd)
    except (curses.error, OSError, ValueError) as e:
        raise DeviceError(f"no terminfo entry for {term!r}: {e}") from e

    strings = {}
    for cap in _TERMINFO_STRINGS:
        value = curses.tigetstr(cap)
        if value:
            strings[cap] = _decode(value)

    cup = curses.tigetstr("cup")
    if cup:
        strings["cup"] = lambda row, col: _decode(curses.tparm(cup, row, col))

    ncolors = curses.tigetnum("colors")
    for cap in ("setaf", "setab"):
        value = curses.tigetstr(cap)
        if value and ncolors > 0:
            strings[cap] = _color_template(curses, value, ncolors, ANSI._strings[cap])

    for cap in _REQUIRED:
        if cap not in strings:
            _log.info("terminfo entry %r lacks %r, using the ANSI sequence", term, cap)

    # Fill in everything terminfo didn't provide
    for cap, template in ANSI._strings.items():
        strings.setdefault(cap, template)

    keys = {}
    for cap, code in _TERMINFO_KEYS.items():
        value = curses.tigetstr(cap)
        if value:
            keys[_decode(value)] = code

    return Capabilities(term, strings, keys)


def _color_template(curses, cap, ncolors, fallback):
    # Colors past what the terminal advertises go through the ANSI
    # 256-color form
    def expand(n):
        if n < ncolors:
            return _decode(curses.tparm(cap, n))
        return fallback(n)

    return expand


def load(term=None, fd=-1):
    """
    Return the terminfo table for 'term', or the ANSI table (with a
    warning) if terminfo can't describe it.
    """
    try:
        return from_terminfo(term, fd)
    except DeviceError as e:
        _log.warning("%s; falling back to built-in ANSI sequences", e)
        return ANSI

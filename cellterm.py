#!/usr/bin/env python3

# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC

"""
cellterm -- terminal UI as a grid of styled cells

The screen is a CellBuffer: a cols x rows grid of Cell objects, each one
character with a foreground color, a background color and attribute bits.
The application draws into the Terminal's back buffer and calls render().
render() compares the back buffer with the front buffer (what the terminal
currently shows) and writes only what changed, coalescing horizontal runs of
same-style cells into one cursor move plus the run's characters.

Input is read on a background thread and delivered as events (KeyEvent,
ResizeEvent, MouseEvent) through Terminal.receive() and
Terminal.try_receive().

Typical use:

  import cellterm

  def main(term):
      term.back_buffer().write(0, 0, "Hello", fg=cellterm.Color.GREEN)
      term.render()
      term.receive()

  cellterm.run(main)

Terminal control sequences come from a termcaps.Capabilities table (terminfo
when available, built-in ANSI sequences otherwise). POSIX only.
"""

import atexit
import logging
import os
import signal
import threading
import unicodedata

import termcaps
from termdev import (
    DeviceError,
    OutOfBoundsError,
    RawMode,
    TermError,
    TermIOError,
    TtyDevice,
)
from termevents import (
    ESC_DELAY,
    MATCH_LONGEST,
    MATCH_SHORTEST,
    NO_EVENT,
    EventDecoder,
    EventStream,
    InputReader,
    Key,
    KeyEvent,
    Mouse,
    MouseEvent,
    OverflowEvent,
    ResizeEvent,
)

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


class Color:
    """Terminal color: named constant, 256-color index, or 24-bit RGB."""

    __slots__ = ("_kind", "_value")

    # kind: "default", "named", "index", "rgb"
    def __init__(self, kind, value):
        self._kind = kind
        self._value = value

    # Predefined named colors (indices 0-7 in standard palette)
    DEFAULT = None  # will be assigned below

    BLACK = None
    RED = None
    GREEN = None
    YELLOW = None
    BLUE = None
    MAGENTA = None
    CYAN = None
    WHITE = None

    # Bright variants (indices 8-15)
    BRIGHT_BLACK = None
    BRIGHT_RED = None
    BRIGHT_GREEN = None
    BRIGHT_YELLOW = None
    BRIGHT_BLUE = None
    BRIGHT_MAGENTA = None
    BRIGHT_CYAN = None
    BRIGHT_WHITE = None

    @staticmethod
    def rgb(r, g, b):
        """Create a 24-bit RGB color."""
        for c in (r, g, b):
            if not 0 <= c <= 255:
                raise ValueError(f"RGB component {c} out of range 0-255")
        return Color("rgb", (r, g, b))

    @staticmethod
    def index(n):
        """Create a color from xterm 256-color palette index."""
        if not 0 <= n <= 255:
            raise ValueError(f"color index {n} out of range 0-255")
        return Color("index", n)

    @property
    def kind(self):
        return self._kind

    @property
    def value(self):
        return self._value

    def __eq__(self, other):
        if not isinstance(other, Color):
            return NotImplemented
        return self._kind == other._kind and self._value == other._value

    def __hash__(self):
        return hash((self._kind, self._value))

    # Reverse map filled after named constants are created
    _NAMED_REPRS = {}

    def __repr__(self):
        if self._kind == "default":
            return "Color.DEFAULT"
        if self._kind == "named":
            return Color._NAMED_REPRS.get(self._value, f"Color('named', {self._value})")
        if self._kind == "index":
            return f"Color.index({self._value})"
        return "Color.rgb({},{},{})".format(*self._value)


# Initialize named color constants
Color.DEFAULT = Color("default", None)
Color.BLACK = Color("named", 0)
Color.RED = Color("named", 1)
Color.GREEN = Color("named", 2)
Color.YELLOW = Color("named", 3)
Color.BLUE = Color("named", 4)
Color.MAGENTA = Color("named", 5)
Color.CYAN = Color("named", 6)
Color.WHITE = Color("named", 7)
Color.BRIGHT_BLACK = Color("named", 8)
Color.BRIGHT_RED = Color("named", 9)
Color.BRIGHT_GREEN = Color("named", 10)
Color.BRIGHT_YELLOW = Color("named", 11)
Color.BRIGHT_BLUE = Color("named", 12)
Color.BRIGHT_MAGENTA = Color("named", 13)
Color.BRIGHT_CYAN = Color("named", 14)
Color.BRIGHT_WHITE = Color("named", 15)

# Populate reverse map for __repr__
for _attr in dir(Color):
    _obj = getattr(Color, _attr)
    if isinstance(_obj, Color) and _obj._kind == "named":
        Color._NAMED_REPRS[_obj._value] = "Color." + _attr
del _attr, _obj

# Map color names to Color constants (used for command-line color options)
NAMED_COLORS = {
    "black": Color.BLACK,
    "red": Color.RED,
    "green": Color.GREEN,
    "yellow": Color.YELLOW,
    "blue": Color.BLUE,
    "magenta": Color.MAGENTA,
    "cyan": Color.CYAN,
    "white": Color.WHITE,
    "purple": Color.MAGENTA,
    "brightblack": Color.BRIGHT_BLACK,
    "brightred": Color.BRIGHT_RED,
    "brightgreen": Color.BRIGHT_GREEN,
    "brightyellow": Color.BRIGHT_YELLOW,
    "brightblue": Color.BRIGHT_BLUE,
    "brightmagenta": Color.BRIGHT_MAGENTA,
    "brightcyan": Color.BRIGHT_CYAN,
    "brightwhite": Color.BRIGHT_WHITE,
    "brightpurple": Color.BRIGHT_MAGENTA,
}


class Attr:
    """Attribute bits for Cell.attrs. Combine with |."""

    NONE = 0
    BOLD = 1
    UNDERLINE = 2
    REVERSE = 4
    BLINK = 8


# ---------------------------------------------------------------------------
# Cell
# ---------------------------------------------------------------------------


class Cell:
    """
    One character position: character, foreground and background color, and
    Attr bits. Immutable: buffers share Cell objects (BLANK in particular),
    so a cell changes only through CellBuffer.set(). Use replace() to derive
    a modified cell.
    """

    __slots__ = ("_ch", "_fg", "_bg", "_attrs")

    def __init__(self, ch=" ", fg=None, bg=None, attrs=Attr.NONE):
        if len(ch) != 1:
            raise ValueError(f"a cell holds exactly one character, not {ch!r}")
        # C0, DEL and C1 controls
        if ch < " " or "\x7f" <= ch <= "\x9f":
            raise ValueError(f"control character {ch!r} can't be displayed")

        self._ch = ch
        self._fg = fg if fg is not None else Color.DEFAULT
        self._bg = bg if bg is not None else Color.DEFAULT
        self._attrs = attrs

    @property
    def ch(self):
        return self._ch

    @property
    def fg(self):
        return self._fg

    @property
    def bg(self):
        return self._bg

    @property
    def attrs(self):
        return self._attrs

    def replace(self, **changes):
        """Return a copy with the given fields (ch, fg, bg, attrs) changed."""
        return Cell(
            changes.get("ch", self.ch),
            changes.get("fg", self.fg),
            changes.get("bg", self.bg),
            changes.get("attrs", self.attrs),
        )

    def same_style(self, other):
        return (
            self._fg == other._fg
            and self._bg == other._bg
            and self._attrs == other._attrs
        )

    def __eq__(self, other):
        if not isinstance(other, Cell):
            return NotImplemented
        return (
            self._ch == other._ch
            and self._fg == other._fg
            and self._bg == other._bg
            and self._attrs == other._attrs
        )

    def __hash__(self):
        return hash((self._ch, self._fg, self._bg, self._attrs))

    def __repr__(self):
        parts = [repr(self.ch)]
        if self.fg != Color.DEFAULT:
            parts.append(f"fg={self.fg}")
        if self.bg != Color.DEFAULT:
            parts.append(f"bg={self.bg}")
        if self.attrs:
            parts.append(f"attrs={self.attrs}")
        return "Cell({})".format(", ".join(parts))


# Default cell (space, terminal default colors, no attributes)
BLANK = Cell()


# ---------------------------------------------------------------------------
# Character width
# ---------------------------------------------------------------------------


def _char_width(ch):
    """Return the display width of a character in terminal cells.

    - ASCII printable (0x20-0x7E): 1 cell (fast path)
    - East Asian Wide/Fullwidth: 2 cells
    - Combining marks: 0 cells
    - Everything else: 1 cell
    """
    o = ord(ch)

    # Fast path for ASCII
    if 0x20 <= o <= 0x7E:
        return 1

    # Check east asian width
    eaw = unicodedata.east_asian_width(ch)
    if eaw in ("W", "F"):
        return 2

    # Combining marks
    cat = unicodedata.category(ch)
    if cat.startswith("M"):
        return 0

    return 1


def _str_width(s):
    """Return the display width of a string in terminal cells."""
    return sum(_char_width(ch) for ch in s)


# ---------------------------------------------------------------------------
# CellBuffer
# ---------------------------------------------------------------------------


class CellBuffer:
    """
    cols x rows grid of Cells, addressed as (x, y) with x the column.

    Every coordinate inside the grid holds a cell. Access outside it raises
    OutOfBoundsError; nothing is clamped.
    """

    def __init__(self, cols, rows, cell=BLANK):
        if cols < 0 or rows < 0:
            raise ValueError(f"invalid buffer size {cols}x{rows}")
        self._cols = cols
        self._rows = rows
        # List of rows, each row a list of Cells
        self._cells = [[cell] * cols for _ in range(rows)]

    @property
    def cols(self):
        return self._cols

    @property
    def rows(self):
        return self._rows

    @property
    def size(self):
        """(cols, rows)"""
        return (self._cols, self._rows)

    def _check(self, x, y):
        if not (0 <= x < self._cols and 0 <= y < self._rows):
            raise OutOfBoundsError(
                f"({x}, {y}) is outside the {self._cols}x{self._rows} buffer"
            )

    def get(self, x, y):
        self._check(x, y)
        return self._cells[y][x]

    def set(self, x, y, cell):
        if not isinstance(cell, Cell):
            raise TypeError(f"expected a Cell, got {type(cell).__name__}")
        self._check(x, y)
        self._cells[y][x] = cell

    def __getitem__(self, xy):
        x, y = xy
        return self.get(x, y)

    def __setitem__(self, xy, cell):
        x, y = xy
        self.set(x, y, cell)

    def write(self, x, y, text, fg=None, bg=None, attrs=Attr.NONE):
        """
        Write 'text' left to right starting at (x, y), one character per cell.
        Raises OutOfBoundsError if the text does not fit on the row.

        Returns the number of cells written.
        """
        if not text:
            self._check(x, y)
            return 0

        self._check(x, y)
        self._check(x + len(text) - 1, y)

        row = self._cells[y]
        for i, ch in enumerate(text):
            row[x + i] = Cell(ch, fg, bg, attrs)
        return len(text)

    def fill(self, cell):
        """Set every cell to 'cell'."""
        for row in self._cells:
            row[:] = [cell] * self._cols

    def clear(self, cell=None):
        """Reset every cell to 'cell' (default: a blank default-style cell)."""
        self.fill(cell if cell is not None else BLANK)

    def resize(self, cols, rows):
        """
        Change the dimensions. The overlapping region keeps its cells, cells
        outside the new bounds are dropped, and new cells are blank.
        """
        if cols < 0 or rows < 0:
            raise ValueError(f"invalid buffer size {cols}x{rows}")

        if cols != self._cols:
            for row in self._cells:
                if cols < len(row):
                    del row[cols:]
                else:
                    row.extend([BLANK] * (cols - len(row)))

        if rows < self._rows:
            del self._cells[rows:]
        else:
            self._cells.extend([BLANK] * cols for _ in range(rows - self._rows))

        self._cols = cols
        self._rows = rows

    def copy(self):
        buf = CellBuffer(0, 0)
        buf._cols = self._cols
        buf._rows = self._rows
        buf._cells = [row[:] for row in self._cells]
        return buf

    def __eq__(self, other):
        if not isinstance(other, CellBuffer):
            return NotImplemented
        return self.size == other.size and self._cells == other._cells

    __hash__ = None

    def __repr__(self):
        return f"<CellBuffer {self._cols}x{self._rows}>"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TermConfig:
    """
    Terminal settings.

    size:
      (cols, rows) to use instead of the size the device reports, or None

    show_cursor:
      If True, the cursor starts out visible at (0, 0). See
      Terminal.set_cursor().

    alt_screen:
      Draw on the alternate screen, so the shell's screen contents come back
      on exit

    mouse:
      Ask the terminal for SGR mouse reports (MouseEvent)

    esc_delay:
      Seconds to wait for the rest of an escape sequence before a lone Esc
      is reported as a keypress

    match_policy:
      termevents.MATCH_LONGEST or MATCH_SHORTEST. Decides between a complete
      key sequence and a longer sequence it is a prefix of.

    queue_limit:
      Maximum number of queued events (oldest dropped first), or None for no
      limit

    term:
      Terminal type for the terminfo lookup. None means $TERM.

    use_terminfo:
      If False, always use the built-in ANSI sequences

    keep_signals:
      If True, Ctrl-C still raises KeyboardInterrupt. Otherwise it arrives
      as the key "\\x03".
    """

    __slots__ = (
        "size",
        "show_cursor",
        "alt_screen",
        "mouse",
        "esc_delay",
        "match_policy",
        "queue_limit",
        "term",
        "use_terminfo",
        "keep_signals",
    )

    def __init__(
        self,
        size=None,
        show_cursor=False,
        alt_screen=True,
        mouse=False,
        esc_delay=ESC_DELAY,
        match_policy=MATCH_LONGEST,
        queue_limit=None,
        term=None,
        use_terminfo=True,
        keep_signals=True,
    ):
        if size is not None:
            cols, rows = size
            if cols < 1 or rows < 1:
                raise ValueError(f"invalid terminal size {cols}x{rows}")
            size = (cols, rows)
        if esc_delay < 0:
            raise ValueError("esc_delay can't be negative")
        if match_policy not in (MATCH_LONGEST, MATCH_SHORTEST):
            raise ValueError(f"unknown match policy {match_policy!r}")

        self.size = size
        self.show_cursor = show_cursor
        self.alt_screen = alt_screen
        self.mouse = mouse
        self.esc_delay = esc_delay
        self.match_policy = match_policy
        self.queue_limit = queue_limit
        self.term = term
        self.use_terminfo = use_terminfo
        self.keep_signals = keep_signals

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """
        Build a TermConfig from the environment, with keyword arguments taking
        precedence:

          ESCDELAY        escape delay in milliseconds (as in ncurses)
          CELLTERM_MATCH  "longest" or "shortest"
          TERM            terminal type

        Invalid values are logged and ignored.
        """
        if environ is None:
            environ = os.environ

        kwargs = {}

        if "ESCDELAY" in environ:
            try:
                ms = int(environ["ESCDELAY"])
                if ms < 0:
                    raise ValueError
            except ValueError:
                _log.warning("ignoring invalid ESCDELAY %r", environ["ESCDELAY"])
            else:
                kwargs["esc_delay"] = ms / 1000

        if "CELLTERM_MATCH" in environ:
            policy = environ["CELLTERM_MATCH"].strip().lower()
            if policy in (MATCH_LONGEST, MATCH_SHORTEST):
                kwargs["match_policy"] = policy
            else:
                _log.warning(
                    "ignoring invalid CELLTERM_MATCH %r", environ["CELLTERM_MATCH"]
                )

        if environ.get("TERM"):
            kwargs["term"] = environ["TERM"]

        kwargs.update(overrides)
        return cls(**kwargs)

    def __repr__(self):
        return "TermConfig({})".format(
            ", ".join(f"{name}={getattr(self, name)!r}" for name in self.__slots__)
        )


# ---------------------------------------------------------------------------
# Terminal
# ---------------------------------------------------------------------------


class Terminal:
    """
    Owns the terminal for one UI session: the front and back buffers, the
    raw-mode lease, and the input thread.

    config:
      TermConfig. Defaults to TermConfig.from_env().

    device:
      Device to draw on and read from. Defaults to TtyDevice(), i.e.
      /dev/tty. The Terminal closes a device it opened itself.

    caps:
      termcaps.Capabilities. Defaults to the terminfo entry for config.term,
      or termcaps.ANSI if config.use_terminfo is False.

    Raises DeviceError if the device is not a terminal, another Terminal is
    active, or the mode switch fails. Use as a context manager, or call
    close(), to restore the terminal.
    """

    def __init__(self, config=None, device=None, caps=None):
        self._config = config if config is not None else TermConfig.from_env()
        self._closed = False
        self._owns_device = device is None

        self._device = None
        self._lease = None
        self._stream = None
        self._reader = None
        self._old_sigwinch = None
        self._sigwinch_installed = False

        try:
            self._device = device if device is not None else TtyDevice()
            self._setup(caps)
        except BaseException:
            self._closed = True
            self._teardown()
            raise

        # Safety net for exits that skip close()
        atexit.register(self.close)

    def _setup(self, caps):
        config = self._config
        device = self._device

        if caps is None:
            if config.use_terminfo:
                caps = termcaps.load(config.term, device.output_fileno())
            else:
                caps = termcaps.ANSI
        self._caps = caps

        cols, rows = config.size if config.size else device.get_size()
        self._front = CellBuffer(cols, rows)
        self._back = CellBuffer(cols, rows)
        # False when the front buffer can't be trusted to match the screen
        self._baseline_valid = True
        self._style_cache = {}

        # Requested cursor position, or None for hidden
        self._cursor = (0, 0) if config.show_cursor else None
        # Cursor visibility on the device (None: unknown)
        self._cursor_shown = None
        # Where the cursor was last explicitly placed
        self._cursor_at = None

        self._lease = RawMode(device, config.keep_signals)

        init = []
        if config.alt_screen:
            init.append(caps.get("smcup"))
        init.append(caps.get("smkx"))
        if config.mouse:
            init.append(caps.get("mouse_on"))
        init.append(caps.get("sgr0"))
        init.append(caps.get("clear"))
        if config.show_cursor:
            init.append(caps.get("cup", 0, 0))
            init.append(caps.get("cnorm"))
        else:
            init.append(caps.get("civis"))
        try:
            self._write("".join(init))
        except OSError as e:
            raise DeviceError(f"cannot write to terminal: {e}") from e
        self._cursor_shown = config.show_cursor
        self._cursor_at = self._cursor

        self._stream = EventStream(config.queue_limit)
        self._decoder = EventDecoder(caps.key_sequences(), config.match_policy)
        self._reader = InputReader(
            device, self._decoder, self._stream, config.esc_delay
        )

        if threading.current_thread() is threading.main_thread():
            self._old_sigwinch = signal.getsignal(signal.SIGWINCH)
            signal.signal(signal.SIGWINCH, self._sigwinch_handler)
            self._sigwinch_installed = True
        else:
            _log.debug("not on the main thread, resize notifications disabled")

        self._reader.start()

    def _sigwinch_handler(self, signum, frame):
        """SIGWINCH: let the input thread query the size and queue the event."""
        self._reader.notify_resize()

    # --- Teardown ---

    def close(self):
        """
        Stop the input thread and restore the terminal. Safe to call more
        than once; only the first call does anything.
        """
        if self._closed:
            return
        self._closed = True
        atexit.unregister(self.close)
        self._teardown()

    def _teardown(self):
        # The input thread must be gone before the terminal leaves raw mode.
        # stop() wakes the thread through its pipe, so the join is unbounded.
        try:
            if self._reader is not None:
                self._reader.stop()
            if self._stream is not None:
                self._stream.close()
            if self._lease is not None and not self._lease.released:
                self._restore_screen()
        finally:
            try:
                if self._lease is not None:
                    self._lease.release()
            finally:
                try:
                    self._restore_sigwinch()
                finally:
                    if self._owns_device and self._device is not None:
                        self._device.close()

    def _restore_sigwinch(self):
        if not self._sigwinch_installed:
            return
        if threading.current_thread() is not threading.main_thread():
            # signal.signal() only works on the main thread. The handler left
            # behind only wakes the stopped reader, which does nothing.
            _log.debug("closed off the main thread, SIGWINCH handler kept")
            return
        self._sigwinch_installed = False
        signal.signal(signal.SIGWINCH, self._old_sigwinch)

    def _restore_screen(self):
        caps = self._caps
        seq = [caps.get("cnorm"), caps.get("sgr0")]
        if self._config.mouse:
            seq.append(caps.get("mouse_off"))
        seq.append(caps.get("rmkx"))
        if self._config.alt_screen:
            seq.append(caps.get("rmcup"))
        else:
            seq.append(caps.get("clear"))
        try:
            self._write("".join(seq))
        except OSError as e:
            _log.warning("could not reset terminal screen state: %s", e)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # --- Properties ---

    @property
    def closed(self):
        return self._closed

    @property
    def config(self):
        return self._config

    @property
    def caps(self):
        return self._caps

    @property
    def events(self):
        """The EventStream fed by the input thread."""
        return self._stream

    @property
    def cols(self):
        return self._back.cols

    @property
    def rows(self):
        return self._back.rows

    @property
    def size(self):
        """(cols, rows)"""
        return self._back.size

    # --- Buffers ---

    def back_buffer(self):
        """The buffer to draw the next frame into."""
        return self._back

    def front_buffer(self):
        """A copy of what the terminal is showing (as of the last render)."""
        return self._front.copy()

    def __getitem__(self, xy):
        return self._back[xy]

    def __setitem__(self, xy, cell):
        self._back[xy] = cell

    def clear(self, cell=None):
        """Clear the back buffer."""
        self._back.clear(cell)

    def resize(self, cols, rows):
        """
        Resize both buffers. The screen contents are not trusted after a
        geometry change, so the next render() clears and repaints everything.
        """
        self._back.resize(cols, rows)
        self._front.resize(cols, rows)
        self._baseline_valid = False
        if self._cursor is not None:
            x, y = self._cursor
            if x >= cols or y >= rows:
                _log.debug("cursor (%d, %d) outside %dx%d, hiding it", x, y, cols, rows)
                self._cursor = None

    def set_cursor(self, x, y):
        """Show the cursor at (x, y) after each render()."""
        if not (0 <= x < self.cols and 0 <= y < self.rows):
            raise OutOfBoundsError(
                f"cursor ({x}, {y}) is outside the {self.cols}x{self.rows} screen"
            )
        self._cursor = (x, y)

    def hide_cursor(self):
        self._cursor = None

    # --- Output ---

    def _write(self, s):
        if s:
            self._device.write(s.encode("utf-8", "surrogateescape"))

    def _style_seq(self, fg, bg, attrs):
        """Control sequence selecting a style, starting from a reset."""
        key = (fg, bg, attrs)
        seq = self._style_cache.get(key)
        if seq is not None:
            return seq

        caps = self._caps
        parts = [caps.get("sgr0")]
        if attrs & Attr.BOLD:
            parts.append(caps.get("bold"))
        if attrs & Attr.UNDERLINE:
            parts.append(caps.get("smul"))
        if attrs & Attr.REVERSE:
            parts.append(caps.get("rev"))
        if attrs & Attr.BLINK:
            parts.append(caps.get("blink"))
        parts.append(self._color_seq(fg, "setaf"))
        parts.append(self._color_seq(bg, "setab"))

        seq = "".join(parts)
        self._style_cache[key] = seq
        return seq

    def _color_seq(self, color, cap):
        if color.kind == "default":
            # sgr0 already selected the default color
            return ""
        if color.kind == "rgb":
            return self._caps.get(cap + "_rgb", *color.value)
        return self._caps.get(cap, color.value)

    def render(self):
        """
        Bring the screen up to date with the back buffer.

        Cells are compared row by row against the front buffer. Each run of
        adjacent changed cells with the same style costs one cursor move, and
        the style sequence is only sent when it differs from the previous
        run's. Nothing is written if nothing changed.

        Raises TermIOError if writing fails. The buffers are left as they
        were, and the next render() repaints the whole screen.
        """
        if self._closed:
            raise TermError("render() on a closed terminal")

        caps = self._caps
        back = self._back
        front = self._front
        full = not self._baseline_valid
        cols = back.cols

        out = []
        # (row, start, end) of each emitted run
        runs = []

        if full:
            out.append(caps.get("sgr0"))
            out.append(caps.get("clear"))

        last_style = None
        # Where the cursor ends up after the previous run (-1: unknown)
        cur_row = cur_col = -1

        for y in range(back.rows):
            brow = back._cells[y]
            frow = front._cells[y]
            x = 0
            while x < cols:
                cell = brow[x]
                if not full and cell == frow[x]:
                    x += 1
                    continue

                start = x
                chars = [cell.ch]
                x += 1
                while x < cols:
                    nxt = brow[x]
                    if not full and nxt == frow[x]:
                        break
                    if not nxt.same_style(cell):
                        break
                    chars.append(nxt.ch)
                    x += 1

                if y != cur_row or start != cur_col:
                    out.append(caps.get("cup", y, start))

                style = (cell.fg, cell.bg, cell.attrs)
                if style != last_style:
                    out.append(self._style_seq(*style))
                    last_style = style

                text = "".join(chars)
                out.append(text)
                runs.append((y, start, x))

                if _str_width(text) == len(text):
                    cur_row, cur_col = y, x
                else:
                    # Wide or combining characters: let the next run
                    # reposition
                    cur_row = cur_col = -1

        # Cursor
        cursor = self._cursor
        cursor_shown = self._cursor_shown
        if cursor is None:
            if cursor_shown is not False:
                out.append(caps.get("civis"))
                cursor_shown = False
        else:
            if out or cursor != self._cursor_at:
                out.append(caps.get("cup", cursor[1], cursor[0]))
            if cursor_shown is not True:
                out.append(caps.get("cnorm"))
                cursor_shown = True

        if out:
            try:
                self._write("".join(out))
            except OSError as e:
                self._baseline_valid = False
                self._cursor_shown = None
                _log.warning("frame write failed, next render repaints: %s", e)
                raise TermIOError(e.errno, f"writing to terminal failed: {e}") from e

        self._cursor_shown = cursor_shown
        self._cursor_at = cursor

        # The back buffer becomes the front buffer. The old front buffer is
        # brought up to date by copying over just the cells that were sent.
        self._front, self._back = back, front
        if full:
            front._cells = [row[:] for row in back._cells]
        else:
            for y, start, end in runs:
                front._cells[y][start:end] = back._cells[y][start:end]
        self._baseline_valid = True

    # --- Input ---

    def receive(self, timeout=None):
        """
        Return the next input event, waiting up to 'timeout' seconds (None:
        forever). Returns NO_EVENT on timeout.

        A ResizeEvent resizes the buffers before it is returned.
        """
        return self._handle(self._stream.receive(timeout))

    def try_receive(self):
        """Return the next input event if one is queued, else None."""
        return self._handle(self._stream.try_receive())

    def _handle(self, event):
        if isinstance(event, ResizeEvent):
            self.resize(event.cols, event.rows)
        return event


# ---------------------------------------------------------------------------
# Safe entry point
# ---------------------------------------------------------------------------


def run(fn, config=None):
    """Safe wrapper: init terminal, call fn(terminal), restore on exit.

    Catches KeyboardInterrupt (Ctrl-C via SIGINT) and always restores
    terminal state. Returns what fn returned, or None after Ctrl-C.
    """
    term = None
    try:
        term = Terminal(config)
        return fn(term)
    except KeyboardInterrupt:
        return None
    finally:
        if term:
            term.close()


__all__ = (
    "Attr",
    "BLANK",
    "Cell",
    "CellBuffer",
    "Color",
    "DeviceError",
    "ESC_DELAY",
    "Key",
    "KeyEvent",
    "MATCH_LONGEST",
    "MATCH_SHORTEST",
    "Mouse",
    "MouseEvent",
    "NAMED_COLORS",
    "NO_EVENT",
    "OutOfBoundsError",
    "OverflowEvent",
    "ResizeEvent",
    "TermConfig",
    "TermError",
    "TermIOError",
    "Terminal",
    "TtyDevice",
    "run",
)

# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC

"""
termevents -- terminal input as a stream of events

EventDecoder turns raw input bytes into KeyEvent/MouseEvent objects. Escape
sequences are matched against a trie of known key sequences. A bare Esc and
the first byte of a sequence look the same, so a partial sequence is only
resolved once another byte arrives or the caller reports a timeout.

EventStream is the FIFO that carries decoded events from the input thread
(InputReader) to the application thread.
"""

import codecs
import collections
import logging
import os
import select
import threading

from termdev import TermIOError

_log = logging.getLogger(__name__)

# Seconds to wait for the rest of an escape sequence before treating the
# bytes received so far as a literal Esc keypress
ESC_DELAY = 0.025

# Lead-byte collision policies. With MATCH_LONGEST, a complete sequence that
# is also the prefix of a longer one is held back until the longer one fails
# to match or the escape delay runs out. With MATCH_SHORTEST, the first
# complete sequence wins immediately.
MATCH_LONGEST = "longest"
MATCH_SHORTEST = "shortest"


# ---------------------------------------------------------------------------
# Input constants
# ---------------------------------------------------------------------------


class Key:
    """Named constants for special keys."""

    UP = "key_up"
    DOWN = "key_down"
    LEFT = "key_left"
    RIGHT = "key_right"
    PAGE_UP = "key_page_up"
    PAGE_DOWN = "key_page_down"
    HOME = "key_home"
    END = "key_end"
    INSERT = "key_insert"
    DELETE = "key_delete"
    BACKSPACE = "key_backspace"
    BACKTAB = "key_backtab"
    F1 = "key_f1"
    F2 = "key_f2"
    F3 = "key_f3"
    F4 = "key_f4"
    F5 = "key_f5"
    F6 = "key_f6"
    F7 = "key_f7"
    F8 = "key_f8"
    F9 = "key_f9"
    F10 = "key_f10"
    F11 = "key_f11"
    F12 = "key_f12"
    # Literal Esc, and any escape sequence that matched nothing
    ESCAPE = "\x1b"


class Mouse:
    """Button numbers reported in MouseEvent.button (SGR encoding)."""

    LEFT = 0
    MIDDLE = 1
    RIGHT = 2
    WHEEL_UP = 64
    WHEEL_DOWN = 65


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class KeyEvent:
    """
    A keypress. 'code' is a Key constant or the character typed. 'raw' is
    the input text the event was decoded from.

    Events are immutable, like the rest of the values delivered through
    EventStream.
    """

    __slots__ = ("_code", "_raw")

    def __init__(self, code, raw=None):
        self._code = code
        self._raw = raw if raw is not None else code

    @property
    def code(self):
        return self._code

    @property
    def raw(self):
        return self._raw

    def __eq__(self, other):
        if not isinstance(other, KeyEvent):
            return NotImplemented
        return self._code == other._code and self._raw == other._raw

    def __hash__(self):
        return hash((KeyEvent, self._code, self._raw))

    def __repr__(self):
        if self._raw == self._code:
            return f"KeyEvent({self._code!r})"
        return f"KeyEvent({self._code!r}, raw={self._raw!r})"


class ResizeEvent:
    __slots__ = ("_cols", "_rows")

    def __init__(self, cols, rows):
        self._cols = cols
        self._rows = rows

    @property
    def cols(self):
        return self._cols

    @property
    def rows(self):
        return self._rows

    def __eq__(self, other):
        if not isinstance(other, ResizeEvent):
            return NotImplemented
        return self._cols == other._cols and self._rows == other._rows

    def __hash__(self):
        return hash((ResizeEvent, self._cols, self._rows))

    def __repr__(self):
        return f"ResizeEvent({self._cols}, {self._rows})"


class MouseEvent:
    """Pointer report with 0-based cell coordinates."""

    __slots__ = ("_x", "_y", "_button", "_pressed")

    def __init__(self, x, y, button, pressed=True):
        self._x = x
        self._y = y
        self._button = button
        self._pressed = pressed

    @property
    def x(self):
        return self._x

    @property
    def y(self):
        return self._y

    @property
    def button(self):
        return self._button

    @property
    def pressed(self):
        return self._pressed

    def __eq__(self, other):
        if not isinstance(other, MouseEvent):
            return NotImplemented
        return (
            self._x == other._x
            and self._y == other._y
            and self._button == other._button
            and self._pressed == other._pressed
        )

    def __hash__(self):
        return hash((MouseEvent, self._x, self._y, self._button, self._pressed))

    def __repr__(self):
        return "MouseEvent({}, {}, button={}, {})".format(
            self._x, self._y, self._button, "pressed" if self._pressed else "released"
        )


class OverflowEvent:
    """
    Delivered in place of events dropped from a capped EventStream.
    'dropped' is how many events were lost at this point of the stream.
    """

    __slots__ = ("_dropped",)

    def __init__(self, dropped):
        self._dropped = dropped

    @property
    def dropped(self):
        return self._dropped

    def __eq__(self, other):
        if not isinstance(other, OverflowEvent):
            return NotImplemented
        return self._dropped == other._dropped

    def __hash__(self):
        return hash((OverflowEvent, self._dropped))

    def __repr__(self):
        return f"OverflowEvent({self._dropped})"


class _NoEvent:
    __slots__ = ()

    def __bool__(self):
        return False

    def __repr__(self):
        return "NO_EVENT"


# Returned by EventStream.receive() on timeout. Falsy, so 'if event:' works.
NO_EVENT = _NoEvent()


# ---------------------------------------------------------------------------
# Key sequence trie
# ---------------------------------------------------------------------------

# Map input sequences to key codes. Multiple entries per key to handle
# terminal variants (xterm, rxvt, tmux, linux console, application mode).
_KEY_SEQUENCES = {
    # Arrow keys
    "\x1b[A": Key.UP,
    "\x1bOA": Key.UP,  # application mode
    "\x1b[B": Key.DOWN,
    "\x1bOB": Key.DOWN,
    "\x1b[C": Key.RIGHT,
    "\x1bOC": Key.RIGHT,
    "\x1b[D": Key.LEFT,
    "\x1bOD": Key.LEFT,
    # Page Up / Page Down
    "\x1b[5~": Key.PAGE_UP,
    "\x1b[6~": Key.PAGE_DOWN,
    # Home
    "\x1b[H": Key.HOME,  # xterm
    "\x1bOH": Key.HOME,  # application mode
    "\x1b[1~": Key.HOME,  # tmux/linux
    "\x1b[7~": Key.HOME,  # rxvt
    # End
    "\x1b[F": Key.END,  # xterm
    "\x1bOF": Key.END,  # application mode
    "\x1b[4~": Key.END,  # tmux/linux
    "\x1b[8~": Key.END,  # rxvt
    # Insert / Delete
    "\x1b[2~": Key.INSERT,
    "\x1b[3~": Key.DELETE,
    # Shift-Tab
    "\x1b[Z": Key.BACKTAB,
    # Function keys
    "\x1bOP": Key.F1,
    "\x1bOQ": Key.F2,
    "\x1bOR": Key.F3,
    "\x1bOS": Key.F4,
    "\x1b[11~": Key.F1,  # rxvt
    "\x1b[12~": Key.F2,
    "\x1b[13~": Key.F3,
    "\x1b[14~": Key.F4,
    "\x1b[[A": Key.F1,  # linux console
    "\x1b[[B": Key.F2,
    "\x1b[[C": Key.F3,
    "\x1b[[D": Key.F4,
    "\x1b[[E": Key.F5,
    "\x1b[15~": Key.F5,
    "\x1b[17~": Key.F6,
    "\x1b[18~": Key.F7,
    "\x1b[19~": Key.F8,
    "\x1b[20~": Key.F9,
    "\x1b[21~": Key.F10,
    "\x1b[23~": Key.F11,
    "\x1b[24~": Key.F12,
    # Single characters with a fixed meaning. CR is normalized to LF so
    # callers can check "\n" for Enter.
    "\x7f": Key.BACKSPACE,
    "\r": "\n",
}

# Trie key under which a node stores the code of the sequence ending there
_VALUE = None


def _build_trie(sequences):
    """
    Build a trie (nested dict) from a sequence table. A node may both end a
    sequence (_VALUE key) and continue into longer ones.
    """
    root = {}
    for seq, code in sequences.items():
        node = root
        for ch in seq:
            node = node.setdefault(ch, {})
        node[_VALUE] = code
    return root


def _is_csi_param(ch):
    # Parameter (0x30-0x3F) and intermediate (0x20-0x2F) bytes
    return "\x20" <= ch <= "\x3f"


def _is_csi_final(ch):
    return "\x40" <= ch <= "\x7e"


def _csi_event(raw):
    """Event for a complete CSI sequence missing from the key table."""
    if raw.startswith("\x1b[<") and raw[-1] in "Mm":
        # SGR mouse report: ESC [ < button ; x ; y M (press) / m (release)
        try:
            b, x, y = (int(p) for p in raw[3:-1].split(";"))
        except ValueError:
            return KeyEvent(Key.ESCAPE, raw)
        # Strip the shift/meta/ctrl (4/8/16) and motion (32) bits
        return MouseEvent(x - 1, y - 1, b & ~0x3C, raw[-1] == "M")

    return KeyEvent(Key.ESCAPE, raw)


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class EventDecoder:
    """
    Byte-stream state machine producing input events.

    keymap:
      Extra {sequence: code} entries, merged over the built-in table. Used for
      the key sequences from the terminal's capability table.

    policy:
      MATCH_LONGEST or MATCH_SHORTEST, for a complete sequence that is also a
      prefix of a longer one.

    feed() returns the events completed by a chunk of input. While 'pending'
    is True, the decoder holds a partial escape sequence; call timeout() if
    nothing else arrives within the escape delay.
    """

    def __init__(self, keymap=None, policy=MATCH_LONGEST):
        if policy not in (MATCH_LONGEST, MATCH_SHORTEST):
            raise ValueError(f"unknown match policy {policy!r}")

        sequences = dict(_KEY_SEQUENCES)
        if keymap:
            sequences.update(keymap)

        self._trie = _build_trie(sequences)
        self._policy = policy
        self._utf8 = codecs.getincrementaldecoder("utf-8")("replace")
        self._reset()

    def _reset(self):
        # Characters of the sequence being matched
        self._buf = []
        # Current trie node, or None when idle
        self._node = None
        # (length, code) of the longest complete sequence at the start of _buf
        self._match = None
        # True while skipping through an unknown CSI sequence
        self._csi = False

    @property
    def policy(self):
        return self._policy

    @property
    def pending(self):
        """True if a partial sequence is waiting for more input."""
        return bool(self._buf)

    def feed(self, data):
        """Decode a chunk of input bytes. Returns a list of events."""
        events = []
        for ch in self._utf8.decode(data):
            self._feed_char(ch, events)
        return events

    def timeout(self):
        """
        Resolve a pending partial sequence after the escape delay ran out.
        Returns a list of events (empty if nothing was pending).
        """
        events = []
        if self._match is not None:
            self._emit_match(events)
        elif self._buf:
            raw = "".join(self._buf)
            self._reset()
            events.append(KeyEvent(Key.ESCAPE, raw))
        return events

    def _feed_char(self, ch, events):
        if self._csi:
            self._feed_csi(ch, events)
            return

        if self._node is None:
            node = self._trie.get(ch)
            if node is None:
                events.append(KeyEvent(ch))
                return
            self._buf = [ch]
            self._enter(node, events)
            return

        node = self._node.get(ch)
        if node is not None:
            self._buf.append(ch)
            self._enter(node, events)
            return

        # Dead end. Prefer the longest complete sequence seen so far.
        if self._match is not None:
            self._emit_match(events)
            self._feed_char(ch, events)
            return

        buf = self._buf
        if (
            len(buf) >= 2
            and buf[0] == "\x1b"
            and buf[1] == "["
            and all(_is_csi_param(c) for c in buf[2:])
        ):
            if _is_csi_param(ch):
                buf.append(ch)
                self._node = None
                self._csi = True
                return
            if _is_csi_final(ch):
                raw = "".join(buf) + ch
                self._reset()
                events.append(_csi_event(raw))
                return

        raw = "".join(buf)
        self._reset()
        events.append(KeyEvent(Key.ESCAPE, raw))
        self._feed_char(ch, events)

    def _enter(self, node, events):
        self._node = node
        if _VALUE in node:
            self._match = (len(self._buf), node[_VALUE])
            if len(node) == 1 or self._policy == MATCH_SHORTEST:
                self._emit_match(events)

    def _emit_match(self, events):
        length, code = self._match
        raw = "".join(self._buf[:length])
        rest = self._buf[length:]
        self._reset()
        events.append(KeyEvent(code, raw))
        # Anything past the match starts over from the idle state
        for ch in rest:
            self._feed_char(ch, events)

    def _feed_csi(self, ch, events):
        if _is_csi_param(ch):
            self._buf.append(ch)
            return

        if _is_csi_final(ch):
            raw = "".join(self._buf) + ch
            self._reset()
            events.append(_csi_event(raw))
            return

        # Something that can't be part of a CSI sequence (e.g. a new Esc)
        # cut it short
        raw = "".join(self._buf)
        self._reset()
        events.append(KeyEvent(Key.ESCAPE, raw))
        self._feed_char(ch, events)


# ---------------------------------------------------------------------------
# Event stream
# ---------------------------------------------------------------------------


class EventStream:
    """
    Thread-safe FIFO of events with one producer and one consumer.

    maxlen:
      None for an unbounded queue. Otherwise, pushing into a full queue drops
      the oldest event, and the consumer gets an OverflowEvent before the
      next surviving event.
    """

    def __init__(self, maxlen=None):
        if maxlen is not None and maxlen < 1:
            raise ValueError("maxlen must be at least 1")

        self._queue = collections.deque()
        self._maxlen = maxlen
        self._cond = threading.Condition()
        self._dropped = 0
        self._closed = False
        self._error = None

    def __len__(self):
        with self._cond:
            return len(self._queue)

    @property
    def closed(self):
        return self._closed

    def push(self, event):
        with self._cond:
            if self._closed:
                _log.debug("discarding %r pushed after close", event)
                return

            if self._maxlen is not None and len(self._queue) >= self._maxlen:
                self._queue.popleft()
                self._dropped += 1
                _log.warning(
                    "event queue full (%d), dropped oldest event", self._maxlen
                )

            self._queue.append(event)
            self._cond.notify()

    def receive(self, timeout=None):
        """
        Return the next event, blocking until one arrives. 'timeout' is in
        seconds (None blocks indefinitely); NO_EVENT is returned when it
        expires, or right away if the stream is closed and drained.

        Raises TermIOError once drained if the stream was closed because
        reading from the device failed.
        """
        with self._cond:
            if not self._cond.wait_for(self._ready, timeout):
                return NO_EVENT
            return self._next()

    def try_receive(self):
        """Return the next event without blocking, or None."""
        with self._cond:
            if not self._ready():
                return None
            event = self._next()
            return event if event is not NO_EVENT else None

    def close(self, error=None):
        """
        Stop accepting events and wake a blocked consumer. Events already
        queued can still be received.
        """
        with self._cond:
            self._closed = True
            if error is not None and self._error is None:
                self._error = error
            self._cond.notify_all()

    def _ready(self):
        return bool(self._queue) or self._dropped > 0 or self._closed

    def _next(self):
        # Called with the lock held and _ready() true
        if self._dropped:
            event = OverflowEvent(self._dropped)
            self._dropped = 0
            return event

        if self._queue:
            return self._queue.popleft()

        if self._error is not None:
            raise self._error
        return NO_EVENT


# ---------------------------------------------------------------------------
# Input thread
# ---------------------------------------------------------------------------


class InputReader(threading.Thread):
    """
    Reads the device on a dedicated thread, feeding 'decoder' and pushing the
    results onto 'stream'.

    The thread sleeps in poll(2) on the device and on a self-pipe. stop() and
    notify_resize() write to the pipe to wake it. notify_resize() is safe to
    call from a signal handler; the size is then queried with get_size() and
    pushed as a ResizeEvent.
    """

    def __init__(self, device, decoder, stream, esc_delay=ESC_DELAY, get_size=None):
        super().__init__(name="cellterm-input", daemon=True)
        self._device = device
        self._decoder = decoder
        self._stream = stream
        self._esc_delay_ms = max(0, int(esc_delay * 1000))
        self._get_size = get_size if get_size is not None else device.get_size

        self._stopping = threading.Event()
        self._resize_pending = False

        self._wake_r, self._wake_w = os.pipe()
        os.set_blocking(self._wake_r, False)
        os.set_blocking(self._wake_w, False)
        self._pipe_open = True

    def notify_resize(self):
        self._resize_pending = True
        self._wake()

    def stop(self, timeout=None):
        """Ask the thread to exit, and wait for it."""
        self._stopping.set()
        self._wake()
        if self.is_alive():
            self.join(timeout)
            if self.is_alive():
                _log.error("input thread did not stop within %s s", timeout)
                return

        if self._pipe_open:
            self._pipe_open = False
            os.close(self._wake_r)
            os.close(self._wake_w)

    def _wake(self):
        if not self._pipe_open:
            return
        try:
            os.write(self._wake_w, b"\0")
        except BlockingIOError:
            # Pipe full, so a wakeup is already pending
            pass

    def _drain_wake(self):
        try:
            while os.read(self._wake_r, 512):
                pass
        except BlockingIOError:
            pass

    def run(self):
        try:
            self._loop()
        except OSError as e:
            _log.error("reading terminal input failed: %s", e)
            if not isinstance(e, TermIOError):
                e = TermIOError(e.errno, f"reading terminal input failed: {e}")
            self._stream.close(e)
        else:
            _log.debug("input thread stopped")

    def _loop(self):
        in_fd = self._device.fileno()
        poller = select.poll()
        poller.register(in_fd, select.POLLIN)
        poller.register(self._wake_r, select.POLLIN)

        while not self._stopping.is_set():
            timeout = self._esc_delay_ms if self._decoder.pending else None
            ready = poller.poll(timeout)

            if self._stopping.is_set():
                break

            if not ready:
                # Escape delay ran out with a partial sequence buffered
                self._push_all(self._decoder.timeout())
                continue

            for fd, mask in ready:
                if fd == self._wake_r:
                    self._drain_wake()
                    continue

                if mask & select.POLLNVAL:
                    raise TermIOError("terminal descriptor closed")

                data = self._device.read(1024)
                if not data:
                    raise TermIOError("end of file on terminal")
                self._push_all(self._decoder.feed(data))

            if self._resize_pending:
                self._resize_pending = False
                cols, rows = self._get_size()
                self._stream.push(ResizeEvent(cols, rows))

    def _push_all(self, events):
        for event in events:
            self._stream.push(event)

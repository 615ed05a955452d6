#!/usr/bin/env python3

# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC

"""
Interactive cellterm demo.

Shows a title bar, a marker that follows the arrow keys (and mouse clicks
with --mouse), and a log of the most recent input events. Resize the window
to see the screen adapt.

Press 'q' or Esc to quit.

Sample usage:

  $ celldemo --mouse --color cyan
  $ ESCDELAY=100 celldemo --log /tmp/celldemo.log

The ESCDELAY environment variable (milliseconds) sets how long a lone Esc is
given to turn into an escape sequence. CELLTERM_MATCH can be set to
"shortest" to make ambiguous key sequences resolve immediately.
"""

import argparse
import collections
import logging
import sys

import cellterm
import cellui
from cellterm import Attr, Cell, Color, Key, KeyEvent, MouseEvent

_TITLE = " cellterm demo -- arrows move, q/Esc quits "

# Number of events kept in the on-screen log
_LOG_LINES = 50


def _main():
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawDescriptionHelpFormatter, description=__doc__
    )

    parser.add_argument(
        "--mouse", action="store_true", help="Report mouse clicks as events"
    )

    parser.add_argument(
        "--no-terminfo",
        dest="use_terminfo",
        action="store_false",
        help="Use built-in ANSI sequences instead of the terminfo database",
    )

    parser.add_argument(
        "--color",
        default="green",
        choices=sorted(cellterm.NAMED_COLORS),
        help="Marker color (default: green)",
    )

    parser.add_argument(
        "--log", metavar="FILE", help="Write debug logging to FILE"
    )

    args = parser.parse_args()

    if args.log:
        logging.basicConfig(
            filename=args.log,
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )

    config = cellterm.TermConfig.from_env(
        mouse=args.mouse, use_terminfo=args.use_terminfo
    )

    try:
        count = cellterm.run(
            lambda term: demo(term, cellterm.NAMED_COLORS[args.color]), config
        )
    except cellterm.TermError as e:
        sys.exit(f"error: {e}")

    if count is not None:
        print(f"{count} events received")


def demo(term, accent):
    """
    Run the demo loop on 'term' until q or Esc. Returns the number of events
    received.
    """
    x, y = term.cols // 2, term.rows // 2
    log = collections.deque(maxlen=_LOG_LINES)
    count = 0

    while True:
        _draw(term, x, y, log, accent)
        term.render()

        event = term.receive()
        if not event:
            continue
        count += 1
        log.appendleft(repr(event))

        if isinstance(event, KeyEvent):
            # Unknown escape sequences also decode as Key.ESCAPE, so only a
            # lone Esc quits
            if event.code == "q" or event.raw == "\x1b":
                return count
            if event.code == Key.UP:
                y -= 1
            elif event.code == Key.DOWN:
                y += 1
            elif event.code == Key.LEFT:
                x -= 1
            elif event.code == Key.RIGHT:
                x += 1
        elif isinstance(event, MouseEvent):
            if event.pressed:
                x, y = event.x, event.y

        # Keep the marker on screen and off the title bar. ResizeEvent
        # needs no handling beyond this: the buffers are already resized.
        x = max(0, min(x, term.cols - 1))
        y = max(1, min(y, term.rows - 1))


def _draw(term, x, y, log, accent):
    buf = term.back_buffer()
    buf.clear()

    title = Cell(" ", attrs=Attr.REVERSE | Attr.BOLD)
    cellui.printline(buf, 0, 0, _TITLE.ljust(buf.cols), title)

    size = f"{buf.cols}x{buf.rows}"
    cellui.printline(buf, 2, 2, size, Cell(" ", Color.YELLOW))
    # Event reprs escape control characters, so they are safe to print
    for i, line in enumerate(log, 4):
        if i >= buf.rows:
            break
        cellui.printline(buf, 2, i, line)

    if 0 <= x < buf.cols and 0 <= y < buf.rows:
        buf.set(x, y, Cell("@", Color.BLACK, accent, Attr.BOLD))


if __name__ == "__main__":
    _main()

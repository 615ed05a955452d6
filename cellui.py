# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC

"""
Drawing helpers and simple widgets on top of cellterm.CellBuffer.

The painter functions (printline(), halign_line(), valign_line(),
repeat_cell(), draw_box()) work on any CellBuffer, including
Terminal.back_buffer() and widget frames. They clip to the buffer instead of
raising OutOfBoundsError, so partly visible text is fine.

Widgets draw into their own Frame, a CellBuffer with a position. pack()
aligns a widget against a parent (anything with a 'size', e.g. a Terminal,
a CellBuffer or another widget), and draw() copies the frame into a target
buffer at that position:

  dlg = Dialog(40, 7)
  dlg.draw_box()
  label = Label.from_text("Save changes?")
  label.pack(dlg, HAlign.MIDDLE, VAlign.TOP, (0, 2))
  label.draw(dlg.frame)
  dlg.add_layout(HorizontalLayout([
      StdButton("Yes", "y", ButtonResult.OK),
      StdButton("No", "n", ButtonResult.CANCEL)], 1))
  ...
  dlg.pack(term, HAlign.MIDDLE, VAlign.MIDDLE)
  dlg.draw(term.back_buffer())
  term.render()
  result = dlg.result_for_key(term.receive().code)
"""

from cellterm import BLANK, Attr, CellBuffer


class Box:
    HLINE = "\u2500"  # ─
    VLINE = "\u2502"  # │
    ULCORNER = "\u250c"  # ┌
    URCORNER = "\u2510"  # ┐
    LLCORNER = "\u2514"  # └
    LRCORNER = "\u2518"  # ┘
    LTEE = "\u251c"  # ├
    RTEE = "\u2524"  # ┤
    DARROW = "\u2193"  # ↓
    UARROW = "\u2191"  # ↑
    RARROW = "\u2192"  # →


class HAlign:
    LEFT = "left"
    MIDDLE = "middle"
    RIGHT = "right"


class VAlign:
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


# repeat_cell() directions
HORIZONTAL = "horizontal"
VERTICAL = "vertical"


class ButtonResult:
    """
    Standard button results. Any other hashable value (typically an int)
    works as a custom result.
    """

    OK = "ok"
    CANCEL = "cancel"


# ---------------------------------------------------------------------------
# Painter
# ---------------------------------------------------------------------------


def _put(buf, x, y, cell):
    if 0 <= x < buf.cols and 0 <= y < buf.rows:
        buf.set(x, y, cell)
        return True
    return False


def printline(buf, x, y, line, cell=BLANK):
    """
    Print 'line' left to right from (x, y), one character per cell, with the
    colors and attributes of 'cell'. Characters outside the buffer are
    dropped.

    Returns the number of cells written.
    """
    written = 0
    for i, ch in enumerate(line):
        if x + i >= buf.cols:
            break
        if _put(buf, x + i, y, cell.replace(ch=ch)):
            written += 1
    return written


def _align(space, length, align, margin, start, middle, end):
    if align == start:
        pos = margin
    elif align == middle:
        pos = (space - length) // 2
    elif align == end:
        pos = space - length - margin
    else:
        raise ValueError(f"unknown alignment {align!r}")
    return max(pos, 0)


def halign_line(buf, line, halign, margin=0):
    """
    Return the x at which printline() should start 'line' to align it in
    'buf'. 'margin' is the number of cells to keep free next to the left or
    right edge.
    """
    return _align(
        buf.cols, len(line), halign, margin, HAlign.LEFT, HAlign.MIDDLE, HAlign.RIGHT
    )


def valign_line(buf, line, valign, margin=0):
    """
    Return the row for 'line' aligned vertically in 'buf'. Each "\\n"
    separated line of 'line' takes a row, and the returned row is the first.
    """
    height = line.count("\n") + 1
    return _align(
        buf.rows, height, valign, margin, VAlign.TOP, VAlign.MIDDLE, VAlign.BOTTOM
    )


def repeat_cell(buf, x, y, orientation, count, cell):
    """
    Set 'count' cells starting at (x, y) to 'cell', going right
    (HORIZONTAL) or down (VERTICAL). Cells outside the buffer are skipped.
    """
    if orientation == HORIZONTAL:
        dx, dy = 1, 0
    elif orientation == VERTICAL:
        dx, dy = 0, 1
    else:
        raise ValueError(f"unknown orientation {orientation!r}")

    for i in range(count):
        _put(buf, x + i * dx, y + i * dy, cell)


def draw_box(buf, cell=BLANK, x=0, y=0, cols=None, rows=None):
    """
    Outline a rectangle with line-drawing characters in the style of 'cell'.
    The rectangle defaults to the whole buffer. The interior is left alone.
    """
    if cols is None:
        cols = buf.cols - x
    if rows is None:
        rows = buf.rows - y
    if cols < 2 or rows < 2:
        raise ValueError(f"a box needs at least 2x2 cells, not {cols}x{rows}")

    last_col = x + cols - 1
    last_row = y + rows - 1

    _put(buf, x, y, cell.replace(ch=Box.ULCORNER))
    _put(buf, last_col, y, cell.replace(ch=Box.URCORNER))
    _put(buf, x, last_row, cell.replace(ch=Box.LLCORNER))
    _put(buf, last_col, last_row, cell.replace(ch=Box.LRCORNER))

    hline = cell.replace(ch=Box.HLINE)
    vline = cell.replace(ch=Box.VLINE)
    repeat_cell(buf, x + 1, y, HORIZONTAL, cols - 2, hline)
    repeat_cell(buf, x + 1, last_row, HORIZONTAL, cols - 2, hline)
    repeat_cell(buf, x, y + 1, VERTICAL, rows - 2, vline)
    repeat_cell(buf, last_col, y + 1, VERTICAL, rows - 2, vline)


def draw_separator(buf, y, cell=BLANK):
    """Draw a ├───┤ line across row 'y', joining a box drawn on the buffer."""
    if buf.cols < 2:
        raise ValueError("a separator needs at least 2 columns")
    _put(buf, 0, y, cell.replace(ch=Box.LTEE))
    repeat_cell(buf, 1, y, HORIZONTAL, buf.cols - 2, cell.replace(ch=Box.HLINE))
    _put(buf, buf.cols - 1, y, cell.replace(ch=Box.RTEE))


# ---------------------------------------------------------------------------
# Frame
# ---------------------------------------------------------------------------


class Frame(CellBuffer):
    """
    CellBuffer with an origin: the position of its top-left cell inside
    whatever it gets drawn into.
    """

    def __init__(self, cols, rows):
        super().__init__(cols, rows)
        self._origin = (0, 0)

    @property
    def origin(self):
        """(x, y)"""
        return self._origin

    def move(self, x, y):
        if x < 0 or y < 0:
            raise ValueError(f"invalid origin ({x}, {y})")
        self._origin = (x, y)

    def halign(self, parent, halign, margin=0):
        parent_cols, _ = parent.size
        x = _align(
            parent_cols,
            self.cols,
            halign,
            margin,
            HAlign.LEFT,
            HAlign.MIDDLE,
            HAlign.RIGHT,
        )
        self._origin = (x, self._origin[1])

    def valign(self, parent, valign, margin=0):
        _, parent_rows = parent.size
        y = _align(
            parent_rows,
            self.rows,
            valign,
            margin,
            VAlign.TOP,
            VAlign.MIDDLE,
            VAlign.BOTTOM,
        )
        self._origin = (self._origin[0], y)

    def align(self, parent, halign, valign, margin=(0, 0)):
        """Position the frame in 'parent'. 'margin' is (horizontal, vertical)."""
        self.halign(parent, halign, margin[0])
        self.valign(parent, valign, margin[1])

    def draw_into(self, target):
        """
        Copy the frame's cells into 'target' at the frame's origin, dropping
        whatever falls outside 'target'.
        """
        ox, oy = self._origin
        cols = min(self.cols, target.cols - ox)
        for iy in range(min(self.rows, target.rows - oy)):
            row = self._cells[iy]
            for ix in range(cols):
                target.set(ox + ix, oy + iy, row[ix])

    def __repr__(self):
        return "<Frame {}x{} at {}>".format(self.cols, self.rows, self._origin)


# ---------------------------------------------------------------------------
# Widgets
# ---------------------------------------------------------------------------


class Widget:
    """Base class: a Frame plus drawing and packing."""

    def __init__(self, cols, rows):
        self._frame = Frame(cols, rows)

    @property
    def frame(self):
        return self._frame

    @property
    def size(self):
        return self._frame.size

    def draw(self, target):
        """Copy the widget into the CellBuffer 'target'."""
        self._frame.draw_into(target)

    def pack(self, parent, halign, valign, margin=(0, 0)):
        """Align the widget inside 'parent'. See Frame.align()."""
        self._frame.align(parent, halign, valign, margin)

    def draw_box(self, cell=BLANK):
        draw_box(self._frame, cell)

    def resize(self, cols, rows):
        self._frame.resize(cols, rows)


class Label(Widget):
    """
    Text inside a cols x rows area. Text longer than a row continues on the
    next one, and the block of lines is aligned as a whole (see
    align_text()). Left and vertically centered by default.
    """

    def __init__(self, cols, rows, text=""):
        super().__init__(cols, rows)
        self._text = ""
        self._halign = HAlign.LEFT
        self._valign = VAlign.MIDDLE
        self._margin = (0, 0)
        self.set_text(text)

    @classmethod
    def from_text(cls, text):
        """Label exactly as wide as 'text', one row high."""
        return cls(len(text), 1, text)

    @property
    def text(self):
        return self._text

    def set_text(self, text):
        """
        Change the text, clearing the label. If it doesn't fit in cols x rows
        cells, the label grows horizontally until it does.
        """
        self._text = text
        self._frame.clear()
        cols, rows = self._frame.size
        if rows and len(text) > cols * rows:
            # Ceiling of the overflow spread over the rows
            extra = -(-(len(text) - cols * rows) // rows)
            self._frame.resize(cols + extra, rows)

    def align_text(self, halign, valign, margin=(0, 0)):
        self._frame.clear()
        self._halign = halign
        self._valign = valign
        self._margin = margin

    def _lines(self):
        cols = self._frame.cols
        if not cols or not self._text:
            return []
        return [self._text[i : i + cols] for i in range(0, len(self._text), cols)]

    def draw(self, target):
        frame = self._frame
        lines = self._lines()
        if lines:
            y = valign_line(frame, "\n".join(lines), self._valign, self._margin[1])
            for i, line in enumerate(lines):
                x = halign_line(frame, line, self._halign, self._margin[0])
                printline(frame, x, y + i, line)
        frame.draw_into(target)


def find_accel_char_index(text, accel):
    """
    Return the index of the first character of 'text' matching 'accel'
    case-insensitively, or None.
    """
    accel = accel.lower()
    for i, ch in enumerate(text):
        if ch.lower() == accel:
            return i
    return None


class Button(Widget):
    """
    Widget bound to an accelerator key and a result. Dialog maps the key to
    the result.
    """

    def __init__(self, cols, rows, accel, result):
        super().__init__(cols, rows)
        self._accel = accel.lower()
        self._result = result

    @property
    def accel(self):
        return self._accel

    @property
    def result(self):
        return self._result

    @property
    def state(self):
        return False

    def pressed(self):
        """Called by Dialog.button_pressed(). Plain buttons have no state."""

    def _highlight_accel(self, text, offset):
        i = find_accel_char_index(text, self._accel)
        if i is not None:
            cell = self._frame.get(i + offset, 0)
            self._frame.set(i + offset, 0, cell.replace(attrs=cell.attrs | Attr.BOLD))


class StdButton(Button):
    """'< text >', with the accelerator character in bold."""

    def __init__(self, text, accel, result):
        label = f"< {text} >"
        super().__init__(len(label), 1, accel, result)
        self._text = text
        printline(self._frame, 0, 0, label)
        self._highlight_accel(text, 2)

    @property
    def text(self):
        return self._text


BALLOT = "\u2610"  # ☐
BALLOT_CHECKED = "\u2611"  # ☑


class CheckButton(Button):
    """A ballot box and a label. pressed() toggles the box."""

    def __init__(self, text, accel, result):
        super().__init__(len(text) + 2, 1, accel, result)
        self._text = text
        self._checked = False
        self._paint()

    @property
    def text(self):
        return self._text

    @property
    def state(self):
        return self._checked

    def pressed(self):
        self._checked = not self._checked
        self._paint()

    def _paint(self):
        box = BALLOT_CHECKED if self._checked else BALLOT
        printline(self._frame, 0, 0, f"{box} {self._text}")
        self._highlight_accel(self._text, 2)


class _Layout(Widget):
    def __init__(self, buttons, inner_margin, cols, rows):
        super().__init__(cols, rows)
        self._buttons = buttons
        self._inner_margin = inner_margin

    @property
    def buttons(self):
        return list(self._buttons)

    def align_elems(self):
        """Lay the buttons out inside the layout's frame and draw them there."""
        pos = 0
        for button in self._buttons:
            pos = self._place(button, pos)
            button.draw(self._frame)

    def forward_keys(self, mapping):
        """Add each button's accelerator -> result to 'mapping'."""
        for button in self._buttons:
            mapping[button.accel] = button.result


class HorizontalLayout(_Layout):
    """Buttons side by side, 'inner_margin' cells apart."""

    def __init__(self, buttons, inner_margin=0):
        if not buttons:
            raise ValueError("a layout needs at least one button")
        buttons = list(buttons)
        cols = sum(b.size[0] for b in buttons) + inner_margin * (len(buttons) - 1)
        rows = max(b.size[1] for b in buttons)
        super().__init__(buttons, inner_margin, cols, rows)

    def _place(self, button, x):
        button.frame.move(x, 0)
        return x + button.size[0] + self._inner_margin


class VerticalLayout(_Layout):
    """Buttons stacked top to bottom, 'inner_margin' rows apart."""

    def __init__(self, buttons, inner_margin=0):
        if not buttons:
            raise ValueError("a layout needs at least one button")
        buttons = list(buttons)
        cols = max(b.size[0] for b in buttons)
        rows = sum(b.size[1] for b in buttons) + inner_margin * (len(buttons) - 1)
        super().__init__(buttons, inner_margin, cols, rows)

    def _place(self, button, y):
        button.frame.move(0, y)
        return y + button.size[1] + self._inner_margin


class Dialog(Widget):
    """
    Window holding buttons and layouts. Keys are looked up with
    result_for_key(), which is case-insensitive.
    """

    def __init__(self, cols, rows):
        super().__init__(cols, rows)
        self._buttons = []
        self._layouts = []
        self._accel2result = {}

    def add_button(self, button):
        """Add an already packed button and draw it into the dialog."""
        self._accel2result[button.accel] = button.result
        self._buttons.append(button)
        button.draw(self._frame)

    def add_layout(self, layout):
        """Add an already packed layout and draw its buttons into the dialog."""
        layout.align_elems()
        layout.forward_keys(self._accel2result)
        self._layouts.append(layout)
        layout.draw(self._frame)

    def result_for_key(self, key):
        """
        Return the result of the button whose accelerator is 'key' (a
        KeyEvent.code), or None.
        """
        if not isinstance(key, str) or len(key) != 1:
            return None
        return self._accel2result.get(key.lower())

    def button_pressed(self, result):
        """Call pressed() on every button bound to 'result', and redraw."""
        for button in self._buttons:
            if button.result == result:
                button.pressed()
                button.draw(self._frame)
        for layout in self._layouts:
            hit = [b for b in layout.buttons if b.result == result]
            for button in hit:
                button.pressed()
            if hit:
                layout.align_elems()
                layout.draw(self._frame)


class Canvas(Widget):
    """Widget giving direct cell access to its frame."""

    def get(self, x, y):
        return self._frame.get(x, y)

    def set(self, x, y, cell):
        self._frame.set(x, y, cell)

    def __getitem__(self, xy):
        return self._frame[xy]

    def __setitem__(self, xy, cell):
        self._frame[xy] = cell

    def clear(self, cell=None):
        self._frame.clear(cell)


__all__ = [
    "BALLOT",
    "BALLOT_CHECKED",
    "HORIZONTAL",
    "VERTICAL",
    "Box",
    "Button",
    "ButtonResult",
    "Canvas",
    "CheckButton",
    "Dialog",
    "Frame",
    "HAlign",
    "HorizontalLayout",
    "Label",
    "StdButton",
    "VAlign",
    "VerticalLayout",
    "Widget",
    "draw_box",
    "draw_separator",
    "find_accel_char_index",
    "halign_line",
    "printline",
    "repeat_cell",
    "valign_line",
]

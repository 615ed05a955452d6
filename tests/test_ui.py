# Copyright (c) 2026 cellterm contributors
# SPDX-License-Identifier: ISC
#
# cellui: painter functions, Frame alignment and drawing, and the widgets.

import pytest

import cellui
from cellterm import BLANK, Attr, Cell, CellBuffer, Color
from cellui import (
    BALLOT,
    BALLOT_CHECKED,
    HORIZONTAL,
    VERTICAL,
    Box,
    ButtonResult,
    Canvas,
    CheckButton,
    Dialog,
    Frame,
    HAlign,
    HorizontalLayout,
    Label,
    StdButton,
    VAlign,
    VerticalLayout,
)
from conftest import make_terminal


def row_text(buf, y):
    return "".join(buf.get(x, y).ch for x in range(buf.cols))


def screen(buf):
    return [row_text(buf, y) for y in range(buf.rows)]


# -- Painter -----------------------------------------------------------------


def test_printline_copies_style():
    buf = CellBuffer(8, 2)
    style = Cell(" ", Color.RED, Color.BLUE, Attr.BOLD)
    assert cellui.printline(buf, 1, 1, "abc", style) == 3
    assert row_text(buf, 1) == " abc    "
    assert buf.get(2, 1) == Cell("b", Color.RED, Color.BLUE, Attr.BOLD)


def test_printline_clips():
    buf = CellBuffer(4, 1)
    assert cellui.printline(buf, 2, 0, "xyz") == 2
    assert row_text(buf, 0) == "  xy"
    assert cellui.printline(buf, 0, 1, "xyz") == 0
    assert cellui.printline(buf, 9, 0, "xyz") == 0


def test_printline_default_style():
    buf = CellBuffer(3, 1)
    buf.clear(Cell(".", bg=Color.GREEN))
    cellui.printline(buf, 0, 0, "ab")
    assert buf.get(0, 0) == Cell("a")
    assert buf.get(2, 0) == Cell(".", bg=Color.GREEN)


def test_printline_rejects_control_characters():
    with pytest.raises(ValueError):
        cellui.printline(CellBuffer(5, 1), 0, 0, "a\tb")


@pytest.mark.parametrize(
    "halign, margin, x",
    [
        (HAlign.LEFT, 0, 0),
        (HAlign.LEFT, 2, 2),
        (HAlign.MIDDLE, 0, 3),
        (HAlign.MIDDLE, 5, 3),
        (HAlign.RIGHT, 0, 6),
        (HAlign.RIGHT, 1, 5),
    ],
)
def test_halign_line(halign, margin, x):
    assert cellui.halign_line(CellBuffer(10, 1), "abcd", halign, margin) == x


def test_halign_line_too_long_starts_at_left_edge():
    buf = CellBuffer(3, 1)
    assert cellui.halign_line(buf, "abcdef", HAlign.RIGHT) == 0
    assert cellui.halign_line(buf, "abcdef", HAlign.MIDDLE) == 0


@pytest.mark.parametrize(
    "line, valign, margin, y",
    [
        ("a", VAlign.TOP, 0, 0),
        ("a", VAlign.TOP, 1, 1),
        ("a", VAlign.MIDDLE, 0, 3),
        ("a", VAlign.BOTTOM, 0, 6),
        ("a", VAlign.BOTTOM, 2, 4),
        ("a\nb\nc", VAlign.MIDDLE, 0, 2),
        ("a\nb\nc", VAlign.BOTTOM, 0, 4),
    ],
)
def test_valign_line(line, valign, margin, y):
    assert cellui.valign_line(CellBuffer(1, 7), line, valign, margin) == y


def test_unknown_alignment():
    with pytest.raises(ValueError):
        cellui.halign_line(CellBuffer(3, 3), "a", VAlign.TOP)


def test_repeat_cell():
    buf = CellBuffer(4, 3)
    star = Cell("*", Color.YELLOW)
    cellui.repeat_cell(buf, 1, 0, HORIZONTAL, 10, star)
    cellui.repeat_cell(buf, 0, 1, VERTICAL, 2, star)
    assert screen(buf) == [" ***", "*   ", "*   "]
    assert buf.get(3, 0) is star


def test_repeat_cell_orientation():
    with pytest.raises(ValueError):
        cellui.repeat_cell(CellBuffer(2, 2), 0, 0, "diagonal", 2, BLANK)


def test_draw_box():
    buf = CellBuffer(5, 3)
    buf.write(1, 1, "abc")
    cellui.draw_box(buf, Cell(" ", fg=Color.CYAN))
    assert screen(buf) == ["┌───┐", "│abc│", "└───┘"]
    assert buf.get(0, 0) == Cell(Box.ULCORNER, fg=Color.CYAN)
    assert buf.get(4, 1) == Cell(Box.VLINE, fg=Color.CYAN)
    # The interior is left alone
    assert buf.get(2, 1) == Cell("b")


def test_draw_box_inside_buffer():
    buf = CellBuffer(6, 4)
    cellui.draw_box(buf, x=1, y=1, cols=3, rows=2)
    assert screen(buf) == ["      ", " ┌─┐  ", " └─┘  ", "      "]


def test_draw_box_too_small():
    with pytest.raises(ValueError):
        cellui.draw_box(CellBuffer(1, 5))


def test_draw_separator():
    buf = CellBuffer(4, 3)
    cellui.draw_box(buf)
    cellui.draw_separator(buf, 1)
    assert screen(buf) == ["┌──┐", "├──┤", "└──┘"]


def test_painter_on_terminal(term, device):
    buf = term.back_buffer()
    cellui.draw_box(buf)
    x = cellui.halign_line(buf, "hi", HAlign.MIDDLE)
    cellui.printline(buf, x, 2, "hi")
    term.render()
    out = device.take()
    assert "┌".encode() in out
    assert b"\x1b[3;10H" in out
    assert term.back_buffer().get(9, 2).ch == "h"


# -- Frame -------------------------------------------------------------------


def test_frame_is_cell_buffer():
    frame = Frame(3, 2)
    assert isinstance(frame, CellBuffer)
    assert frame.origin == (0, 0)
    frame.move(4, 1)
    assert frame.origin == (4, 1)
    with pytest.raises(ValueError):
        frame.move(-1, 0)


@pytest.mark.parametrize(
    "halign, valign, margin, origin",
    [
        (HAlign.LEFT, VAlign.TOP, (0, 0), (0, 0)),
        (HAlign.LEFT, VAlign.TOP, (2, 1), (2, 1)),
        (HAlign.MIDDLE, VAlign.MIDDLE, (0, 0), (3, 2)),
        (HAlign.RIGHT, VAlign.BOTTOM, (0, 0), (6, 4)),
        (HAlign.RIGHT, VAlign.BOTTOM, (1, 1), (5, 3)),
    ],
)
def test_frame_align(halign, valign, margin, origin):
    frame = Frame(4, 2)
    frame.align(CellBuffer(10, 6), halign, valign, margin)
    assert frame.origin == origin


def test_frame_align_on_terminal(term):
    frame = Frame(4, 1)
    frame.align(term, HAlign.RIGHT, VAlign.BOTTOM)
    assert frame.origin == (16, 4)


def test_frame_draw_into():
    frame = Frame(2, 2)
    frame.write(0, 0, "ab")
    frame.write(0, 1, "cd")
    frame.move(1, 1)
    target = CellBuffer(4, 3)
    frame.draw_into(target)
    assert screen(target) == ["    ", " ab ", " cd "]


def test_frame_draw_into_clips():
    frame = Frame(3, 3)
    frame.fill(Cell("#"))
    frame.move(2, 1)
    target = CellBuffer(4, 2)
    frame.draw_into(target)
    assert screen(target) == ["    ", "  ##"]


# -- Label -------------------------------------------------------------------


def test_label_from_text():
    label = Label.from_text("hello")
    assert label.size == (5, 1)
    target = CellBuffer(7, 1)
    label.pack(target, HAlign.RIGHT, VAlign.TOP)
    label.draw(target)
    assert row_text(target, 0) == "  hello"


def test_label_text_alignment():
    label = Label(10, 3, "mid")
    label.align_text(HAlign.MIDDLE, VAlign.BOTTOM)
    target = CellBuffer(10, 3)
    label.draw(target)
    assert screen(target) == [" " * 10, " " * 10, "   mid    "]


def test_label_default_alignment_is_left_middle():
    label = Label(6, 3, "ab")
    target = CellBuffer(6, 3)
    label.draw(target)
    assert screen(target) == ["      ", "ab    ", "      "]


def test_label_wraps_long_text():
    label = Label(4, 2, "abcdef")
    label.align_text(HAlign.LEFT, VAlign.TOP)
    target = CellBuffer(4, 2)
    label.draw(target)
    assert screen(target) == ["abcd", "ef  "]


def test_label_grows_to_fit():
    label = Label(4, 2)
    label.set_text("Too big to fit!")
    assert label.size == (8, 2)

    label = Label.from_text("too small")
    label.set_text("This is too big")
    assert label.size == (15, 1)
    assert label.text == "This is too big"


def test_label_set_text_clears_old_text():
    label = Label(6, 1, "longer")
    label.align_text(HAlign.LEFT, VAlign.TOP)
    target = CellBuffer(6, 1)
    label.draw(target)
    label.set_text("ab")
    label.draw(target)
    assert row_text(target, 0) == "ab    "


# -- Buttons -----------------------------------------------------------------


def test_find_accel_char_index():
    assert cellui.find_accel_char_index("Quit", "q") == 0
    assert cellui.find_accel_char_index("Foo!", "O") == 1
    assert cellui.find_accel_char_index("Bar", "z") is None


def test_std_button():
    button = StdButton("Quit", "Q", ButtonResult.OK)
    assert button.size == (8, 1)
    assert button.accel == "q"
    assert button.result == ButtonResult.OK
    assert row_text(button.frame, 0) == "< Quit >"
    assert button.frame.get(2, 0).attrs == Attr.BOLD
    assert button.frame.get(3, 0).attrs == Attr.NONE
    assert not button.state


def test_std_button_without_accel_in_text():
    button = StdButton("Go", "x", 1)
    assert all(button.frame.get(x, 0).attrs == Attr.NONE for x in range(6))


def test_check_button_toggles():
    button = CheckButton("Foo", "o", ButtonResult.OK)
    assert row_text(button.frame, 0) == BALLOT + " Foo"
    assert button.frame.get(3, 0).attrs == Attr.BOLD
    assert not button.state

    button.pressed()
    assert button.state
    assert row_text(button.frame, 0) == BALLOT_CHECKED + " Foo"
    assert button.frame.get(3, 0).attrs == Attr.BOLD

    button.pressed()
    assert not button.state


# -- Layouts -----------------------------------------------------------------


def buttons():
    return [
        StdButton("Quit", "q", ButtonResult.OK),
        StdButton("Foo!", "f", 1),
        StdButton("Bar!", "b", 2),
    ]


def test_horizontal_layout():
    layout = HorizontalLayout(buttons(), 1)
    assert layout.size == (26, 1)
    layout.align_elems()
    assert row_text(layout.frame, 0) == "< Quit > < Foo! > < Bar! >"
    assert [b.frame.origin for b in layout.buttons] == [(0, 0), (9, 0), (18, 0)]


def test_vertical_layout():
    layout = VerticalLayout(buttons(), 1)
    assert layout.size == (8, 5)
    layout.align_elems()
    assert screen(layout.frame) == [
        "< Quit >",
        "        ",
        "< Foo! >",
        "        ",
        "< Bar! >",
    ]


def test_layout_forward_keys():
    mapping = {}
    VerticalLayout(buttons()).forward_keys(mapping)
    assert mapping == {"q": ButtonResult.OK, "f": 1, "b": 2}


def test_empty_layout():
    with pytest.raises(ValueError):
        HorizontalLayout([])
    with pytest.raises(ValueError):
        VerticalLayout([])


# -- Dialog ------------------------------------------------------------------


def make_dialog():
    dlg = Dialog(30, 6)
    dlg.draw_box()
    label = Label.from_text("Save changes?")
    label.pack(dlg, HAlign.MIDDLE, VAlign.TOP, (0, 1))
    label.draw(dlg.frame)

    layout = HorizontalLayout(
        [
            StdButton("Yes", "y", ButtonResult.OK),
            StdButton("No", "n", ButtonResult.CANCEL),
        ],
        2,
    )
    layout.pack(dlg, HAlign.MIDDLE, VAlign.BOTTOM, (0, 1))
    dlg.add_layout(layout)
    return dlg


def test_dialog_layout():
    dlg = make_dialog()
    inner = " " * 28
    assert screen(dlg.frame) == [
        Box.ULCORNER + Box.HLINE * 28 + Box.URCORNER,
        Box.VLINE + " " * 7 + "Save changes?" + " " * 8 + Box.VLINE,
        Box.VLINE + inner + Box.VLINE,
        Box.VLINE + inner + Box.VLINE,
        Box.VLINE + " " * 6 + "< Yes >  < No >" + " " * 7 + Box.VLINE,
        Box.LLCORNER + Box.HLINE * 28 + Box.LRCORNER,
    ]


def test_dialog_result_for_key():
    dlg = make_dialog()
    assert dlg.result_for_key("y") == ButtonResult.OK
    assert dlg.result_for_key("N") == ButtonResult.CANCEL
    assert dlg.result_for_key("x") is None
    # Key constants never match an accelerator
    assert dlg.result_for_key("up") is None


def test_dialog_add_button():
    dlg = Dialog(20, 3)
    button = CheckButton("Bold", "b", 7)
    button.pack(dlg, HAlign.LEFT, VAlign.MIDDLE, (1, 0))
    dlg.add_button(button)
    assert dlg.result_for_key("B") == 7
    assert row_text(dlg.frame, 1).startswith(" " + BALLOT + " Bold")

    dlg.button_pressed(7)
    assert button.state
    assert row_text(dlg.frame, 1).startswith(" " + BALLOT_CHECKED + " Bold")


def test_dialog_button_pressed_in_layout():
    dlg = Dialog(20, 3)
    check = CheckButton("Wrap", "w", 3)
    layout = VerticalLayout([check])
    layout.pack(dlg, HAlign.LEFT, VAlign.TOP)
    dlg.add_layout(layout)

    dlg.button_pressed(3)
    assert check.state
    assert dlg.frame.get(0, 0).ch == BALLOT_CHECKED
    # Results no button has are ignored
    dlg.button_pressed(99)
    assert check.state


def test_dialog_on_terminal(device):
    with make_terminal(device, size=(40, 10)) as term:
        dlg = make_dialog()
        dlg.pack(term, HAlign.MIDDLE, VAlign.MIDDLE)
        assert dlg.frame.origin == (5, 2)
        dlg.draw(term.back_buffer())
        term.render()
        assert term.back_buffer().get(5, 2).ch == Box.ULCORNER
        # The space between the words matches the blank screen
        out = device.take()
        assert b"Save" in out and b"changes?" in out

        device.send(b"n")
        event = term.receive(timeout=5)
        assert dlg.result_for_key(event.code) == ButtonResult.CANCEL


# -- Canvas ------------------------------------------------------------------


def test_canvas_cell_access():
    canvas = Canvas(3, 2)
    canvas[1, 1] = Cell("x")
    canvas.set(0, 0, Cell("y"))
    assert canvas.get(1, 1).ch == "x"
    assert canvas[0, 0].ch == "y"

    canvas.pack(CellBuffer(5, 4), HAlign.RIGHT, VAlign.BOTTOM)
    target = CellBuffer(5, 4)
    canvas.draw(target)
    assert target.get(2, 2).ch == "y"
    assert target.get(3, 3).ch == "x"

    canvas.clear()
    assert canvas.get(1, 1) == BLANK

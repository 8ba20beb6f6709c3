import io

import pytest

from debug_console import ViewerModel, listen, CLEAR_SCREEN, CURRENT_LINE, BREAKPOINT, RESET
from viewer import ViewerState


@pytest.fixture
def model():
    m = ViewerModel()
    for message in ("a:20:20 PRINT 2", "a:10:10 PRINT 1", "a:30:30 END"):
        m.apply(message)
    return m


def test_lines_are_kept_in_label_order(model):
    assert model.labels == [10, 20, 30]
    assert model.lines == ["10 PRINT 1", "20 PRINT 2", "30 END"]


def test_update_and_remove(model):
    model.apply("u:1:20 PRINT 22")
    assert model.lines[1] == "20 PRINT 22"
    model.apply("r:0\n")
    assert model.labels == [20, 30]
    model.apply("a:30:30 RETURN")
    assert model.lines == ["20 PRINT 22", "30 RETURN"]


def test_print_requests_redraw(model):
    assert model.apply("print")
    assert not model.apply("c:1")


def test_render_marks_cursor_and_breakpoints(model):
    model.apply("b:30")
    model.apply("c:1")
    assert model.render() == [
        "10 PRINT 1",
        f"{CURRENT_LINE}20 PRINT 2{RESET}",
        f"{BREAKPOINT}30 END{RESET}",
    ]
    model.apply("b:30")
    assert model.breakpoints == set()


def test_clear(model):
    model.apply("b:10")
    model.apply("clear")
    assert model.labels == []
    assert model.breakpoints == set()


@pytest.mark.parametrize("message", ["x:1", "a:10", "c:abc", "r:7", "u:5:text", "nonsense"])
def test_malformed_messages(model, message):
    with pytest.raises(ValueError):
        model.apply(message)


def test_listen_replays_a_recorded_session(tmp_path, viewer):
    viewer.send_state(ViewerState([(10, "10 PRINT 1"), (20, "20 END")], {20}, 0))
    viewer.send("garbage")
    viewer.set_current_line(1)
    viewer.force_redraw()

    path = tmp_path / "pipe"
    path.write_text("".join(message + "\n" for message in viewer.messages))
    output = io.StringIO()
    model = listen(str(path), output=output)

    assert model.current_line == 1
    screens = output.getvalue().split(CLEAR_SCREEN)
    assert screens[0] == ""
    assert len(screens) == 3
    assert screens[2] == f"10 PRINT 1\n{CURRENT_LINE}20 END{RESET}\n"

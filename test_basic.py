import pytest

from basic import BasicCLI
from config import load_settings
from debugger import GREETING
from file_manager import FileManager


@pytest.fixture
def cli(fake_io, viewer, tmp_path):
    return BasicCLI(fake_io, settings=load_settings(path=None, environ={}),
                    file_manager=FileManager(str(tmp_path)), viewer_factory=lambda: viewer)


def test_direct_lines_go_to_interpreter(cli, fake_io):
    cli.handle("10 PRINT 7")
    cli.handle("LIST")
    cli.handle("   ")
    assert fake_io.text == "10 PRINT 7\n"


def test_save_and_load(cli, fake_io, tmp_path):
    cli.handle("10 PRINT 1")
    cli.handle("20 END")
    cli.handle("save prog.bas")
    assert (tmp_path / "prog.bas").read_text() == "10 PRINT 1\n20 END\n"

    cli.handle("CLEAR")
    cli.handle("load prog.bas")
    cli.handle("RUN")
    assert fake_io.text.splitlines() == ["Saved to prog.bas", "Loaded 2 lines", "1"]


def test_save_defaults_to_last_path(cli, fake_io, tmp_path):
    cli.handle("10 END")
    cli.handle("save")
    assert fake_io.text == "Please specify a *.bas path\n"

    cli.handle("save prog.bas")
    cli.handle("20 END")
    cli.handle("save")
    assert "File prog.bas already exists. Use -o to overwrite it" in fake_io.text
    cli.handle("save -o")
    assert (tmp_path / "prog.bas").read_text() == "10 END\n20 END\n"


def test_save_argument_errors(cli, fake_io):
    cli.handle("save a.bas b.bas")
    cli.handle("save notes.txt")
    assert fake_io.text.splitlines() == [
        "Expected overwrite flag as a second argument",
        "Invalid *.bas path: notes.txt",
    ]


def test_load_errors(cli, fake_io, tmp_path):
    cli.handle("load")
    cli.handle("load missing.bas")
    (tmp_path / "bad.bas").write_text("10 LET X\n")
    cli.handle("load bad.bas")
    lines = fake_io.text.splitlines()
    assert lines[0] == "Please specify a path to a *.bas file."
    assert lines[1] == "File missing.bas does not exist"
    assert lines[2].startswith("Line 10: Syntax error: Error parsing LET statement")
    assert cli.last_path is None


def test_help(cli, fake_io):
    cli.handle("help GOSUB")
    assert fake_io.text.startswith("GOSUB <expression>")
    fake_io.output.clear()
    cli.handle("help FOR")
    assert fake_io.text == "Unknown argument for help\n"


def test_repl_with_debug_session(cli, fake_io, viewer, tmp_path):
    (tmp_path / "count.bas").write_text("10 LET X = 1\n20 PRINT X\n30 END\n")
    fake_io.inputs = ["debug count.bas", "step", "step", "exit", "PRINT X + 1", "exit"]
    cli.run_repl()

    assert fake_io.text.splitlines() == [
        "TinyBasic interpreter. Type 'help' for commands.",
        "Loaded 3 lines",
        GREETING,
        "1",
        "Execution terminated",
        "2",
    ]
    assert fake_io.prompts == ["(APP)> ", "(DEBUG)> ", "(DEBUG)> ", "(DEBUG)> ", "(APP)> ", "(APP)> "]
    assert 'a:20:20 PRINT X' in viewer.messages
    assert viewer.closed
    assert not cli.running


def test_repl_ends_at_end_of_input(cli, fake_io):
    cli.run_repl()
    assert fake_io.text == "TinyBasic interpreter. Type 'help' for commands.\n"


def test_debug_help_explains_viewer_terminal(cli, fake_io):
    cli.handle("help debug")
    assert "VIEWER=xterm -e python -m debug_console" in fake_io.text.splitlines()

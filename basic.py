import logging
import sys

from config import load_settings
from debugger import Debugger, DebugShell
from errors import ProgramFileError
from file_manager import FileManager
from interpreter import TinyBasicInterpreter
from viewer import PipeViewer

logger = logging.getLogger(__name__)

OVERWRITE_FLAGS = ('-o', '--overwrite')

HELP = {
    None: [
        "Commands:",
        "* help [<command> | <keyword>] - prints help;",
        "* load <path>.bas - loads a program;",
        "* save [<path>.bas] [-o | --overwrite] - saves the program, by default to the last used path;",
        "* debug [<path>.bas] - starts the debugger on the current or the given program;",
        "* exit - leaves the interpreter.",
        "Anything else is a line of TinyBasic. Lines starting with a number (1-32767) are",
        "stored in the program, a number alone deletes that line, other lines run immediately.",
        "Keywords: PRINT, LET, INPUT, IF, GOTO, GOSUB, RETURN, CLEAR, LIST, RUN, END, REM, RND.",
    ],
    'load': [
        "load <path>.bas",
        "Replaces the program with the file. Lines without a number get the previous number + 1;",
        "they can't be jumped to and are replaced by a numbered line with the same number.",
    ],
    'save': ["save [<path>.bas] [-o | --overwrite]", "Writes the program, one line per statement."],
    'debug': [
        "debug [<path>.bas]",
        "Starts the debugger. Type 'help' at the (DEBUG)> prompt for its commands.",
        "The viewer is started with the VIEWER setting and redraws the whole screen;",
        "point VIEWER at a command that opens its own terminal, e.g.",
        "VIEWER=xterm -e python -m debug_console",
    ],
    'PRINT': ["PRINT <expression or \"string\"> [, ...]", "Prints the items on one line."],
    'LET': ["LET <A-Z> = <expression>", "Stores the value of the expression in the variable."],
    'INPUT': ["INPUT <A-Z> [, ...]", "Reads comma separated expressions; extra values are kept for the next INPUT."],
    'IF': ["IF <expression> {< | <= | > | >= | = | <>} <expression> THEN <statement>"],
    'GOTO': ["GOTO <expression>", "Continues at the numbered line."],
    'GOSUB': ["GOSUB <expression>", "Calls the subroutine at the numbered line."],
    'RETURN': ["RETURN", "Continues after the last GOSUB."],
    'CLEAR': ["CLEAR", "Erases the program, variables and the call stack."],
    'LIST': ["LIST", "Prints the program."],
    'RUN': ["RUN", "Runs the program from its first line."],
    'END': ["END", "Stops the program."],
    'REM': ["REM <anything>", "A comment."],
    'RND': ["RND(<expression>)", "A random number from 0 up to, but not including, the argument."],
}


class ConsoleIOHandler:
    def write(self, text):
        print(text, end="", flush=True)

    def input(self, prompt=""):
        return input(prompt)


class BasicCLI:
    def __init__(self, io_handler, settings=None, file_manager=None, viewer_factory=None):
        self.settings = settings if settings is not None else load_settings()
        self.interpreter = TinyBasicInterpreter(io_handler=io_handler)
        self.io_handler = io_handler
        self.file_manager = file_manager if file_manager is not None else FileManager()
        self.viewer_factory = viewer_factory if viewer_factory is not None else self._make_viewer
        self.last_path = None
        self.running = False
        self.commands = {
            'help': self.do_help,
            'load': self.do_load,
            'save': self.do_save,
            'debug': self.do_debug,
            'exit': self.do_exit,
        }

    def print(self, text):
        self.io_handler.write(text + "\n")

    def input(self, prompt):
        return self.io_handler.input(prompt)

    def _make_viewer(self):
        return PipeViewer(self.settings['PIPE'], self.settings['VIEWER'], self.settings['CONNECT_TIMEOUT'])

    def load_program(self, filename):
        try:
            source = self.file_manager.read(filename)
        except ProgramFileError as e:
            self.print(str(e))
            return False
        except OSError as e:
            self.print(f"Error loading: {e}")
            return False
        if source is None:
            self.print(f"File {filename} does not exist")
            return False
        if not self.interpreter.load_program(source):
            return False
        self.last_path = filename
        self.print(f"Loaded {len(self.interpreter.line_numbers)} lines")
        return True

    def do_help(self, args):
        topic = args[0] if args else None
        if topic not in HELP:
            self.print("Unknown argument for help")
            return
        for text in HELP[topic]:
            self.print(text)

    def do_load(self, args):
        if not args:
            self.print("Please specify a path to a *.bas file.")
            return
        self.load_program(args[0])

    def do_save(self, args):
        overwrite = bool(args) and args[-1] in OVERWRITE_FLAGS
        paths = args[:-1] if overwrite else args
        if len(paths) > 1:
            self.print("Expected overwrite flag as a second argument")
            return
        path = paths[0] if paths else self.last_path
        if path is None:
            self.print("Please specify a *.bas path")
            return
        try:
            self.file_manager.save(path, self.interpreter.program_lines(), overwrite=overwrite)
        except ProgramFileError as e:
            self.print(str(e))
            return
        except OSError as e:
            self.print(f"Error saving: {e}")
            return
        self.last_path = path
        self.print(f"Saved to {path}")

    def do_debug(self, args):
        if args and not self.load_program(args[0]):
            return
        debugger = Debugger(self.interpreter, self.viewer_factory())
        DebugShell(debugger, self.io_handler, self.settings['DEBUG_PROMPT']).run()

    def do_exit(self, args):
        self.running = False
        self.interpreter.terminate()

    def handle(self, line):
        parts = line.split()
        if not parts:
            return
        handler = self.commands.get(parts[0])
        if handler is None:
            self.interpreter.execute_direct(line)
        else:
            handler(parts[1:])

    def run_repl(self):
        self.print("TinyBasic interpreter. Type 'help' for commands.")
        self.running = True
        while self.running:
            try:
                line = self.input(self.settings['PROMPT'])
            except EOFError:
                break
            except KeyboardInterrupt:
                self.print("")
                continue

            try:
                self.handle(line)
            except KeyboardInterrupt:
                self.interpreter.terminate()
                self.print("Execution terminated")


def main():
    settings = load_settings()
    logging.basicConfig(level=settings['LOG_LEVEL'], format="%(levelname)s %(name)s: %(message)s")

    cli = BasicCLI(ConsoleIOHandler(), settings)
    if len(sys.argv) > 1 and cli.load_program(sys.argv[1]):
        cli.interpreter.run_program()
    cli.run_repl()


if __name__ == "__main__":
    main()

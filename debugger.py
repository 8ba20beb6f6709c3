import logging

from errors import TinyBasicError, BasicRuntimeError, DebugCommandError, describe_error
from evaluator import VARIABLES
from interpreter import OUT_OF_LINES, ResumeFrame
from viewer import ViewerSink, ViewerState

logger = logging.getLogger(__name__)

STEP_MODES = ('in', 'over', 'out')
FORCE_FLAGS = ('-f', '--force')


class Debugger:
    """
    Stepping engine over a TinyBasicInterpreter.

    The debugger drives the interpreter one statement at a time through its
    cursor (current_line_idx) and call stack, keeps the breakpoint set, and
    mirrors every change to a viewer sink.
    """

    def __init__(self, interpreter, viewer=None):
        self.interpreter = interpreter
        self.viewer = viewer if viewer is not None else ViewerSink()
        self.breakpoints = set()

    @property
    def cursor(self):
        return self.interpreter.current_line_idx

    @cursor.setter
    def cursor(self, value):
        self.interpreter.current_line_idx = value

    def snapshot(self):
        it = self.interpreter
        lines = [(label, str(it.program[label][0])) for label in it.line_numbers]
        return ViewerState(lines, set(self.breakpoints), self.cursor)

    def _sync(self):
        self.viewer.ensure_connected(self.snapshot)

    def _publish_cursor(self):
        self._sync()
        self.viewer.set_current_line(self.cursor)

    def can_run(self):
        return self.interpreter.running and self.cursor < len(self.interpreter.line_numbers)

    def _is_comment(self, idx):
        return self.interpreter.statement_at(idx).type == 'REM'

    def _skip_comments(self):
        while self.cursor < len(self.interpreter.line_numbers) and self._is_comment(self.cursor):
            self.cursor += 1

    def _label_at_cursor(self):
        return self.interpreter.line_numbers[self.cursor]

    def _at_breakpoint(self):
        return self.cursor < len(self.interpreter.line_numbers) and self._label_at_cursor() in self.breakpoints

    def _require_running(self):
        if not self.can_run():
            raise DebugCommandError("Program is not running")

    def _resolve_line(self, label, action):
        idx = self.interpreter.index_of(label)
        if idx is None:
            raise DebugCommandError(f"Line {label} does not exist")
        if self._is_comment(idx):
            raise DebugCommandError(f"Can't {action} a comment line")
        return idx

    def start(self):
        """Pauses on the first statement of the program."""
        it = self.interpreter
        it.reset_runtime()
        self.cursor = 0
        it.running = True
        self._skip_comments()
        if not self.can_run():
            it.terminate()
            raise DebugCommandError("Program does not contain any executable statements")
        self._publish_cursor()

    def close(self):
        self.viewer.close()

    # Stepping

    def step(self, mode='in', force=False):
        """
        Executes one statement.

        'over' runs a subroutine entered by the statement to completion, 'out'
        runs until the current subroutine returns (nothing outside one). Both
        stop early at a breakpoint unless forced.
        """
        if mode not in STEP_MODES:
            raise ValueError(f"Unknown step mode: {mode}")
        self._require_running()
        stack = self.interpreter.stack

        if mode == 'in':
            self.interpreter.execute_current()
        elif mode == 'over':
            depth = len(stack)
            self.interpreter.execute_current()
            if len(stack) > depth:
                self._run_frame(depth, force)
        elif stack:
            depth = len(stack) - 1
            self.interpreter.execute_current()
            self._run_frame(depth, force)

        self._skip_comments()
        self._publish_cursor()

    def _run_frame(self, depth, force):
        """Runs until the call stack is back to `depth` entries."""
        stack = self.interpreter.stack
        while self.can_run() and len(stack) > depth:
            if not force and self._at_breakpoint():
                return
            self.interpreter.execute_current()

    def run_to_breakpoint(self):
        """Executes the current statement, then runs until a breakpoint or the end."""
        self._require_running()
        self.interpreter.execute_current()
        while self.can_run() and not self._at_breakpoint():
            self.interpreter.execute_current()
        self._publish_cursor()

    def run_to(self, label, force=False):
        """Runs until the cursor reaches the line `label`."""
        self._require_running()
        target = self._resolve_line(label, "run to")
        while self.can_run() and self.cursor != target:
            self.interpreter.execute_current()
            if not force and self._at_breakpoint():
                break
        self._publish_cursor()

    # Breakpoints

    def toggle_breakpoint(self, label):
        """Adds the breakpoint if absent, removes it otherwise; returns whether it is set."""
        self._resolve_line(label, "place a breakpoint on")
        self._sync()
        if label in self.breakpoints:
            self.breakpoints.remove(label)
        else:
            self.breakpoints.add(label)
        self.viewer.toggle_breakpoint(label)
        return label in self.breakpoints

    def breakpoint_lines(self):
        return [f"Breakpoint at: {label}" for label in sorted(self.breakpoints)]

    # Editing while paused

    def edit(self, statement):
        if statement.label is None:
            raise ValueError("Provided statement should be labeled")
        if statement.type == 'NEWLINE':
            self.remove_line(statement.label)
        else:
            self.add_or_update_line(statement)

    def add_or_update_line(self, statement):
        self._sync()
        label = statement.label
        idx, inserted = self.interpreter.store_line(label, statement)
        if inserted:
            self.viewer.add_line(label, str(statement))
            self._shift_stack(idx, 1)
            if idx <= self.cursor:
                self.cursor += 1
                self.viewer.set_current_line(self.cursor)
        else:
            self.viewer.update_line(idx, str(statement))
            if statement.type == 'REM':
                if label in self.breakpoints:
                    self.breakpoints.remove(label)
                    self.viewer.toggle_breakpoint(label)
                if idx == self.cursor:
                    self._skip_comments()
                    self.viewer.set_current_line(self.cursor)
        self.viewer.force_redraw()

    def remove_line(self, label):
        if self.interpreter.index_of(label) is None:
            return
        self._sync()
        if label in self.breakpoints:
            self.breakpoints.remove(label)
            self.viewer.toggle_breakpoint(label)

        idx = self.interpreter.delete_line(label)
        self.viewer.remove_line(idx)
        self._shift_stack(idx, -1)
        if idx < self.cursor:
            self.cursor -= 1
            self.viewer.set_current_line(self.cursor)
        elif idx == self.cursor:
            # The successor slid under the cursor
            self._skip_comments()
            self.viewer.set_current_line(self.cursor)
        self.viewer.force_redraw()

    def _shift_stack(self, idx, delta):
        stack = self.interpreter.stack
        for i, caller in enumerate(stack):
            if isinstance(caller, ResumeFrame):
                # Follows the statement it resumes at, like the cursor does
                if caller.index > idx or (delta > 0 and caller.index == idx):
                    stack[i] = ResumeFrame(caller.index + delta)
            elif caller is not None and caller >= idx:
                stack[i] = caller + delta

    def execute_direct(self, line):
        """
        Handles a line typed at the debug prompt.

        Labeled lines edit the paused program. Other statements run as if they
        sat just before the cursor, so jumps and GOSUB move it and everything
        else leaves it where it was.
        """
        it = self.interpreter
        try:
            statement = it.parse(line)
        except TinyBasicError as err:
            it.print(f"Syntax error: {describe_error(err)}")
            return

        if statement.label is not None:
            self.edit(statement)
            return
        if statement.type == 'NEWLINE':
            return

        cursor = self.cursor
        depth = len(it.stack)
        self.cursor = cursor - 1
        try:
            it.execute_statement(statement)
        except BasicRuntimeError as err:
            self.cursor = cursor
            it.print(f"Runtime error: {describe_error(err)}")
            return
        if len(it.stack) > depth:
            # RETURN comes back to the paused statement
            it.stack[-1] = ResumeFrame(cursor)

        if statement.type == 'CLEAR':
            self.breakpoints.clear()
            self._sync()
            self.viewer.clear()
        elif self.cursor != cursor:
            self._skip_comments()
            self._publish_cursor()

    # Inspection

    def memory_lines(self, name=None):
        memory = self.interpreter.memory
        if name is None:
            names = VARIABLES
        elif name in VARIABLES and len(name) == 1:
            names = name
        else:
            raise DebugCommandError("Invalid address as an argument")
        lines = []
        for variable in names:
            value = memory.get(variable)
            lines.append(f"{variable}: {'Uninitialized' if value is None else value}")
        return lines

    def stack_lines(self):
        """Pending GOSUB calls, innermost first."""
        it = self.interpreter
        lines = []
        for caller in reversed(it.stack):
            if caller is None or isinstance(caller, ResumeFrame):
                lines.append("Direct mode")
            else:
                lines.append(f"Line {it.line_numbers[caller]}: {it.statement_at(caller)}")
        return lines

    def force_redraw(self):
        self._sync()
        self.viewer.force_redraw()


HELP = {
    None: [
        "Currently this debugger supports the following commands:",
        "* step;",
        "* run;",
        "* break;",
        "* memory;",
        "* stack;",
        "* update;",
        "* exit.",
        "Type 'help <command>' to learn more about each command.",
        "Any other input is treated as a line of TinyBasic: labeled lines edit the program,",
        "other statements are executed at the current line.",
    ],
    'step': [
        "step [ {in | out | over} ] [ {-f | --force} ]",
        "* in, out, over - step mode;",
        "* -f, --force - ignore breakpoints.",
        "* IN - performs a single step; on a GOSUB moves inside the subroutine. Default mode.",
        "* OUT - inside a subroutine, runs the rest of it and stops after the GOSUB call.",
        "* OVER - on a GOSUB, runs the whole subroutine and stops after the call.",
    ],
    'run': [
        "run [<1-32767>] [ {-f | --force} ]",
        "* <1-32767> - line number where execution will stop;",
        "* -f, --force - ignore breakpoints.",
        "Runs multiple lines. If no line is specified, runs to the next breakpoint.",
    ],
    'break': [
        "break { <1-32767> | { -a | --all } }",
        "* <1-32767> - line number where a breakpoint should be set or removed;",
        "* -a, --all - prints all breakpoints.",
    ],
    'memory': [
        "memory [ {A | B | ... Z} ]",
        "Prints the values of all variables, or only of the given one.",
    ],
    'stack': ["Prints the GOSUB call stack."],
    'update': ["Forces a redraw of the viewer."],
    'exit': ["Stops the program and leaves the debugger."],
}

GREETING = "Welcome to the TinyBasic debugger! Type 'help' to get started."


def _parse_label(text):
    try:
        return int(text)
    except ValueError:
        raise DebugCommandError(f"Expected a valid line number, got: {text}") from None


class DebugShell:
    """The (DEBUG)> prompt: debugger commands, or TinyBasic lines."""

    def __init__(self, debugger, io_handler=None, prompt="(DEBUG)> "):
        self.debugger = debugger
        self.io_handler = io_handler
        self.prompt = prompt
        self.commands = {
            'help': self.do_help,
            'step': self.do_step,
            'run': self.do_run,
            'break': self.do_break,
            'memory': self.do_memory,
            'stack': self.do_stack,
            'update': self.do_update,
            'exit': self.do_exit,
        }

    def print(self, text):
        if self.io_handler:
            self.io_handler.write(text + "\n")
        else:
            print(text)

    def input(self, prompt):
        if self.io_handler:
            return self.io_handler.input(prompt)
        return input(prompt)

    def run(self):
        interpreter = self.debugger.interpreter
        try:
            try:
                self.debugger.start()
            except DebugCommandError as err:
                self.print(str(err))
                return

            self.print(GREETING)
            while self.debugger.can_run():
                try:
                    line = self.input(self.prompt)
                except EOFError:
                    interpreter.terminate()
                    break
                try:
                    self.handle(line)
                except DebugCommandError as err:
                    self.print(str(err))
                except BasicRuntimeError as err:
                    self.print(f"Line {err.label}: Runtime error: {describe_error(err)}")
                    interpreter.terminate()
                except KeyboardInterrupt:
                    interpreter.terminate()
                    self.print("Execution terminated")

            if interpreter.running:
                self.print(f"Runtime error: {OUT_OF_LINES}")
                interpreter.terminate()
        finally:
            self.debugger.close()

    def handle(self, line):
        parts = line.split()
        if not parts:
            return
        handler = self.commands.get(parts[0])
        if handler is None:
            self.debugger.execute_direct(line)
        else:
            handler(parts[1:])

    def do_help(self, args):
        topic = args[0] if args else None
        if topic not in HELP:
            raise DebugCommandError("Unknown argument for help")
        for text in HELP[topic]:
            self.print(text)

    def do_step(self, args):
        mode = 'in'
        force = False
        if len(args) > 2:
            raise DebugCommandError("Too many arguments for step")
        if args and args[0].lower() in STEP_MODES:
            mode = args[0].lower()
            args = args[1:]
        if args:
            if args[0] not in FORCE_FLAGS:
                raise DebugCommandError(f"Unknown argument provided: {args[0]}")
            force = True
        self.debugger.step(mode, force)

    def do_run(self, args):
        if not args:
            self.debugger.run_to_breakpoint()
            return
        if len(args) > 2:
            raise DebugCommandError("Too many arguments for run")
        label = _parse_label(args[0])
        if len(args) == 2 and args[1] not in FORCE_FLAGS:
            raise DebugCommandError("Expected a force mode as a valid second argument")
        self.debugger.run_to(label, force=len(args) == 2)

    def do_break(self, args):
        if not args:
            raise DebugCommandError("Expected an argument")
        if args[0] in ('-a', '--all'):
            for text in self.debugger.breakpoint_lines():
                self.print(text)
            return
        self.debugger.toggle_breakpoint(_parse_label(args[0]))

    def do_memory(self, args):
        for text in self.debugger.memory_lines(args[0] if args else None):
            self.print(text)

    def do_stack(self, args):
        for text in self.debugger.stack_lines():
            self.print(text)

    def do_update(self, args):
        self.debugger.force_redraw()

    def do_exit(self, args):
        self.debugger.interpreter.terminate()
        self.print("Execution terminated")

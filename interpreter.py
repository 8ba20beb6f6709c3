import bisect
import logging
import random
import re
from collections import deque, namedtuple

from errors import (TinyBasicError, BasicRuntimeError, InvalidLabelError,
                    ReturnWithoutGosubError, LabelNotFoundError, InvalidInputError, describe_error)
from evaluator import Memory, ExpressionEvaluator
from expressions import parse_expression_list
from lexer import Lexer
from line_parser import LineParser, parse_line, MAX_LABEL

logger = logging.getLogger(__name__)

OUT_OF_LINES = "Run out of lines. Possibly missed the END or RETURN keyword?"

COMPARISONS = {
    '=': lambda a, b: a == b,
    '<>': lambda a, b: a != b,
    '<': lambda a, b: a < b,
    '<=': lambda a, b: a <= b,
    '>': lambda a, b: a > b,
    '>=': lambda a, b: a >= b,
}

_LEADING_LABEL = re.compile(r'\s*(\d+)')

# Call stack entry that RETURN resumes at `index` itself rather than after a caller
ResumeFrame = namedtuple('ResumeFrame', ['index'])


class TinyBasicInterpreter:
    def __init__(self, io_handler=None, rng=random):
        self.io_handler = io_handler # Can be None for stdout/stdin fallback
        self.lexer = Lexer()
        self.memory = Memory()
        self.evaluator = ExpressionEvaluator(self.memory, rng)

        # label -> (statement, user_labeled); line_numbers keeps the labels sorted
        self.program = {}
        self.line_numbers = []
        self.current_line_idx = 0
        self.running = False

        # Index of the calling GOSUB for every pending subroutine, None for direct mode.
        # The debugger also pushes ResumeFrame entries.
        self.stack = []
        self.input_queue = deque()

    def print(self, text):
        if self.io_handler:
            self.io_handler.write(text + "\n")
        else:
            print(text)

    def input(self, prompt):
        if self.io_handler:
            return self.io_handler.input(prompt)
        return input(prompt)

    # Program store

    def index_of(self, label):
        idx = bisect.bisect_left(self.line_numbers, label)
        if idx < len(self.line_numbers) and self.line_numbers[idx] == label:
            return idx
        return None

    def statement_at(self, idx):
        return self.program[self.line_numbers[idx]][0]

    def store_line(self, label, statement, user_labeled=True):
        """Adds or replaces the line under `label`; returns (index, inserted)."""
        inserted = label not in self.program
        self.program[label] = (statement, user_labeled)
        if inserted:
            bisect.insort(self.line_numbers, label)
        return self.index_of(label), inserted

    def delete_line(self, label):
        """Removes the line under `label`; returns its former index or None."""
        idx = self.index_of(label)
        if idx is None:
            return None
        del self.program[label]
        del self.line_numbers[idx]
        return idx

    def update_program(self, statement):
        if statement.label is None:
            raise ValueError("Can't add a statement without a label")
        if statement.type == 'NEWLINE':
            self.delete_line(statement.label)
        else:
            self.store_line(statement.label, statement)

    def program_lines(self):
        """The stored program as text, one entry per line in label order."""
        return [str(self.program[label][0]) for label in self.line_numbers]

    def find_target(self, label):
        entry = self.program.get(label)
        if entry is None or not entry[1]:
            raise LabelNotFoundError(label)
        return self.index_of(label)

    # Lifecycle

    def reset_runtime(self):
        self.memory.reset()
        self.stack.clear()
        self.input_queue.clear()

    def clear(self):
        self.terminate()
        self.reset_runtime()
        self.program = {}
        self.line_numbers = []

    def terminate(self):
        self.running = False

    # Parsing entry points

    def parse(self, line):
        """Tokenizes and parses one line of source text into a Statement."""
        return parse_line(list(self.lexer.tokenize(line)))

    def execute_direct(self, line):
        """Runs an unlabeled line immediately; labeled lines edit the program."""
        try:
            statement = self.parse(line)
        except TinyBasicError as err:
            self.print(f"Syntax error: {describe_error(err)}")
            return

        if statement.label is not None:
            self.update_program(statement)
            return
        if statement.type == 'NEWLINE':
            return
        try:
            self.execute_statement(statement)
        except BasicRuntimeError as err:
            self.print(f"Runtime error: {describe_error(err)}")

    def load_program(self, source):
        """
        Replaces the program with the lines of `source`.

        Lines without a label are numbered after the previous line; such lines
        can't be jump targets and are overwritten by a later explicit label
        that lands on them. Stops at the first bad line and reports it.
        """
        self.clear()
        next_label = 1
        for raw in source.splitlines():
            if not raw.strip():
                continue
            match = _LEADING_LABEL.match(raw)
            label = int(match.group(1)) if match else next_label
            error = None
            try:
                statement, error = LineParser(self.lexer.tokenize(raw)).parse_line()
                if error is None:
                    if statement.label is not None:
                        self.update_program(statement)
                    elif label > MAX_LABEL:
                        raise InvalidLabelError(label)
                    else:
                        self.store_line(label, statement, user_labeled=False)
            except TinyBasicError as err:
                error = describe_error(err)
            if error:
                self.print(f"Line {label}: Syntax error: {error}")
                self.clear()
                return False
            next_label = max(next_label, label + 1)
        logger.info("Loaded program with %d lines", len(self.line_numbers))
        return True

    def run_file(self, source):
        if self.load_program(source):
            self.run_program()

    # Execution

    def run_program(self):
        """Starts program mode from the first stored line."""
        self.reset_runtime()
        self.current_line_idx = 0
        self.running = True
        self.execute()

    def execute(self):
        while self.running:
            if self.current_line_idx >= len(self.line_numbers):
                self.print(f"Runtime error: {OUT_OF_LINES}")
                break
            try:
                self.execute_current()
            except BasicRuntimeError as err:
                self.print(f"Line {err.label}: Runtime error: {describe_error(err)}")
                break
            except KeyboardInterrupt:
                self.print("Execution terminated")
                break
        self.terminate()

    def execute_current(self):
        label = self.line_numbers[self.current_line_idx]
        statement = self.program[label][0]
        try:
            self.execute_statement(statement)
        except BasicRuntimeError as err:
            if err.label is None:
                err.label = label
            raise

    def execute_statement(self, statement):
        """Executes one statement; every handler leaves the cursor on what runs next."""
        cmd = statement.type
        args = statement.arguments

        if cmd == 'LET':
            self.memory.write(args[0].value, self.evaluator.evaluate(args[2]))
            self.current_line_idx += 1

        elif cmd == 'PRINT':
            text = []
            for item in args[::2]:
                if item.type == 'STRING':
                    text.append(item.value)
                else:
                    text.append(str(self.evaluator.evaluate(item)))
            self.print("".join(text))
            self.current_line_idx += 1

        elif cmd == 'INPUT':
            for variable in args[::2]:
                while not self.input_queue:
                    self._request_input()
                self.memory.write(variable.value, self.input_queue.popleft())
            self.current_line_idx += 1

        elif cmd == 'IF':
            left = self.evaluator.evaluate(args[0])
            right = self.evaluator.evaluate(args[2])
            if COMPARISONS[args[1].value](left, right):
                self.execute_statement(args[4])
            else:
                self.current_line_idx += 1

        elif cmd == 'GOTO':
            self._jump(self.find_target(self.evaluator.evaluate(args[0])))

        elif cmd == 'GOSUB':
            target = self.find_target(self.evaluator.evaluate(args[0]))
            self.stack.append(self.current_line_idx if self.running else None)
            self._jump(target)

        elif cmd == 'RETURN':
            if not self.stack:
                raise ReturnWithoutGosubError()
            caller = self.stack.pop()
            if caller is None:
                # Subroutine entered from direct mode
                self.terminate()
            elif isinstance(caller, ResumeFrame):
                self.current_line_idx = caller.index
            else:
                self.current_line_idx = caller + 1

        elif cmd == 'END':
            self.terminate()

        elif cmd == 'CLEAR':
            self.clear()

        elif cmd == 'LIST':
            for line in self.program_lines():
                self.print(line)
            self.current_line_idx += 1

        elif cmd == 'RUN':
            self.reset_runtime()
            self._jump(0)

        elif cmd in ('REM', 'NEWLINE'):
            self.current_line_idx += 1

        else:
            raise ValueError(f"Unknown statement type: {cmd}")

    def _jump(self, idx):
        self.current_line_idx = idx
        if not self.running:
            # Jumping from direct mode starts the program there
            self.running = True
            self.execute()

    def _request_input(self):
        try:
            line = self.input("? ")
        except EOFError as err:
            raise InvalidInputError("No more input available") from err
        if not line.strip():
            return

        try:
            expressions = parse_expression_list(list(self.lexer.tokenize(line)))
        except TinyBasicError as err:
            raise InvalidInputError(f"Invalid input: {line.strip()}") from err

        values = []
        for expression in expressions:
            try:
                values.append(self.evaluator.evaluate(expression))
            except BasicRuntimeError as err:
                raise InvalidInputError(f"Invalid input: {line.strip()}") from err
        self.input_queue.extend(values)

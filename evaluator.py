import random

from errors import BasicRuntimeError, UninitializedVariableError, DivisionByZeroError

VARIABLES = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ'


def wrap16(value):
    """Wraps an integer to the signed 16-bit range."""
    return ((value + 0x8000) & 0xFFFF) - 0x8000


def divide(dividend, divisor):
    if divisor == 0:
        raise DivisionByZeroError(dividend)
    quotient = abs(dividend) // abs(divisor)
    if (dividend < 0) != (divisor < 0):
        quotient = -quotient
    return wrap16(quotient)


class Memory:
    """Variables A..Z, each either unset (None) or a 16-bit integer."""

    def __init__(self):
        self.cells = [None] * len(VARIABLES)

    @staticmethod
    def _address(name):
        if not isinstance(name, str) or len(name) != 1 or name not in VARIABLES:
            raise ValueError(f"Invalid memory address: {name!r}")
        return VARIABLES.index(name)

    def get(self, name):
        return self.cells[self._address(name)]

    def read(self, name):
        value = self.get(name)
        if value is None:
            raise UninitializedVariableError(name)
        return value

    def write(self, name, value):
        self.cells[self._address(name)] = wrap16(value)

    def reset(self):
        self.cells = [None] * len(VARIABLES)

    def items(self):
        return list(zip(VARIABLES, self.cells))


class ExpressionEvaluator:
    """
    Evaluates the flat EXPRESSION tokens produced by the expression parser.

    The operator precedence is recovered by walking the parts again with the
    same expression/term/factor recursion. Parts are assumed to be valid.
    """

    def __init__(self, memory, rng=random):
        self.memory = memory
        self.rng = rng

    def evaluate(self, expression):
        parts = expression.parts
        value, _ = self._expression(parts, 0)
        return value

    def _expression(self, parts, pos):
        value, pos = self._term(parts, pos)
        while pos < len(parts) and parts[pos].type == 'OP' and parts[pos].value in '+-':
            op = parts[pos].value
            right, pos = self._term(parts, pos + 1)
            value = wrap16(value + right if op == '+' else value - right)
        return value, pos

    def _term(self, parts, pos):
        value, pos = self._factor(parts, pos)
        while pos < len(parts) and parts[pos].type == 'OP' and parts[pos].value in '*/':
            op = parts[pos].value
            right, pos = self._factor(parts, pos + 1)
            value = wrap16(value * right) if op == '*' else divide(value, right)
        return value, pos

    def _factor(self, parts, pos):
        negations = 0
        while parts[pos].type == 'OP':
            if parts[pos].value == '-':
                negations += 1
            pos += 1

        token = parts[pos]
        if token.type == 'NUMBER':
            value = wrap16(token.value)
            pos += 1
        elif token.type == 'WORD':
            value = self.memory.read(token.value)
            pos += 1
        elif token.type == 'FUNCTION':
            value = self.call_function(token)
            pos += 1
        elif token.type == 'LPAREN':
            value, pos = self._expression(parts, pos + 1)
            pos += 1 # closing parenthesis
        else:
            raise ValueError(f"Malformed expression part: {token!r}")

        for _ in range(negations % 2):
            value = wrap16(-value)
        return value, pos

    def call_function(self, token):
        if token.value == 'RND':
            limit = self.evaluate(token.parts[0])
            if limit <= 0:
                raise BasicRuntimeError(f"Argument for RND function should be more than 0, got: {limit}")
            return self.rng.randrange(limit)
        raise ValueError(f"Unknown function: {token.value}")

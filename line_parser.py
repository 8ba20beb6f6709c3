"""
Statement parsing.

A line is an optional NUMBER label followed by one keyword statement and the end
of the line. Each keyword has its own sub-parser; sub-parsers take the token list
and the position of the keyword, check the statement grammar up to the end of
the line, and return the statement together with the position they stopped at.
"""
from errors import ParsingError, UnexpectedTokenError, InvalidLabelError, describe_error
from expressions import select_expression, parse_expression
from lexer import is_variable

MAX_LABEL = 32767


class Statement:
    __slots__ = ('type', 'arguments', 'label')

    def __init__(self, type, arguments=(), label=None):
        self.type = type
        self.arguments = tuple(arguments)
        self.label = label

    def with_label(self, label):
        return Statement(self.type, self.arguments, label)

    def __eq__(self, other):
        if not isinstance(other, Statement):
            return NotImplemented
        return (self.type, self.arguments, self.label) == (other.type, other.arguments, other.label)

    def __hash__(self):
        return hash((self.type, self.arguments, self.label))

    def __repr__(self):
        return f"Statement({self.type}, {list(self.arguments)}, label={self.label})"

    def __str__(self):
        if self.type == 'NEWLINE':
            return '' if self.label is None else str(self.label)
        text = self.type
        if self.arguments:
            text += ' ' + render_tokens(self.arguments)
        if self.label is not None:
            text = f"{self.label} {text}"
        return text


def render_tokens(tokens):
    out = []
    for token in tokens:
        if token.type == 'COMMA' and out:
            out[-1] += ','
        else:
            out.append(str(token))
    return ' '.join(out)


def _at_line_end(tokens, pos):
    return pos >= len(tokens) or tokens[pos].type == 'NEWLINE'


def _token_at(tokens, pos):
    """Token at pos, or None at the end of the line."""
    return None if _at_line_end(tokens, pos) else tokens[pos]


def _describe(token):
    return 'nothing' if token is None else str(token)


def _expect_line_end(tokens, pos):
    if not _at_line_end(tokens, pos):
        raise UnexpectedTokenError(f"Expected a newline or EOF at the end of the statement, got: {tokens[pos]}")


def _expect_expression(tokens, pos, context):
    """Selects and parses the expression at pos; returns it and the position after it."""
    token = _token_at(tokens, pos)
    span = select_expression(tokens, pos) if token is not None else []
    if not span:
        raise UnexpectedTokenError(f"Expected an expression {context}, got: {_describe(token)}")
    return parse_expression(span), pos + len(span)


def parse_label(token):
    if token.type != 'NUMBER':
        raise UnexpectedTokenError(f"Label {token} should be a number")
    if not 1 <= token.value <= MAX_LABEL:
        raise InvalidLabelError(token.value)
    return token.value


def parse_let(tokens, pos):
    pos += 1
    variable = _token_at(tokens, pos)
    if variable is None or not is_variable(variable):
        raise UnexpectedTokenError(f"Expected a valid variable name after LET keyword, got: {_describe(variable)}")
    pos += 1

    assignment = _token_at(tokens, pos)
    if assignment is None or assignment.type != 'RELOP' or assignment.value != '=':
        raise UnexpectedTokenError(f"Expected an assignment operator, got: {_describe(assignment)}")
    pos += 1

    expression, pos = _expect_expression(tokens, pos, "after assignment operator")
    _expect_line_end(tokens, pos)
    return Statement('LET', [variable, assignment, expression]), pos


def parse_print(tokens, pos):
    pos += 1
    if _at_line_end(tokens, pos):
        raise UnexpectedTokenError("Expected at least one argument, got nothing")

    arguments = []
    while True:
        token = tokens[pos]
        if token.type == 'STRING':
            arguments.append(token)
            pos += 1
        else:
            span = select_expression(tokens, pos)
            if not span:
                raise UnexpectedTokenError(f"Expected a quoted string or an expression, got: {token}")
            arguments.append(parse_expression(span))
            pos += len(span)

        if _at_line_end(tokens, pos):
            break
        if tokens[pos].type != 'COMMA':
            raise UnexpectedTokenError(f"Expected a newline, EOF or a comma, got: {tokens[pos]}")
        arguments.append(tokens[pos])
        pos += 1
        if _at_line_end(tokens, pos):
            raise UnexpectedTokenError("Expected a quoted string or an expression after comma, got nothing")
    return Statement('PRINT', arguments), pos


def parse_input(tokens, pos):
    pos += 1
    if _at_line_end(tokens, pos):
        raise UnexpectedTokenError("Expected at least one variable, got nothing")

    arguments = []
    while True:
        variable = _token_at(tokens, pos)
        if variable is None or not is_variable(variable):
            raise UnexpectedTokenError(f"Expected a valid variable name, got: {_describe(variable)}")
        arguments.append(variable)
        pos += 1

        if _at_line_end(tokens, pos):
            break
        if tokens[pos].type != 'COMMA':
            raise UnexpectedTokenError(f"Expected a newline, comma or EOF, got: {tokens[pos]}")
        arguments.append(tokens[pos])
        pos += 1
    return Statement('INPUT', arguments), pos


def parse_if(tokens, pos):
    pos += 1
    left, pos = _expect_expression(tokens, pos, "after IF")

    comparison = _token_at(tokens, pos)
    if comparison is None or comparison.type != 'RELOP':
        raise UnexpectedTokenError(f"Expected a comparison operator, got: {_describe(comparison)}")
    pos += 1

    right, pos = _expect_expression(tokens, pos, "after comparison operator")

    then = _token_at(tokens, pos)
    if then is None or then.type != 'WORD' or then.value != 'THEN':
        raise UnexpectedTokenError(f"Expected a THEN keyword, got: {_describe(then)}")
    pos += 1
    if _at_line_end(tokens, pos):
        raise UnexpectedTokenError("Expected a statement after THEN keyword, got nothing")

    nested, pos = parse_statement(tokens, pos)
    return Statement('IF', [left, comparison, right, then, nested]), pos


def parse_jump(tokens, pos):
    keyword = tokens[pos].value
    expression, pos = _expect_expression(tokens, pos + 1, f"after {keyword}")
    _expect_line_end(tokens, pos)
    return Statement(keyword, [expression]), pos


def parse_single(tokens, pos):
    keyword = tokens[pos].value
    pos += 1
    _expect_line_end(tokens, pos)
    return Statement(keyword), pos


def parse_rem(tokens, pos):
    pos += 1
    start = pos
    while not _at_line_end(tokens, pos):
        pos += 1
    return Statement('REM', tokens[start:pos]), pos


# Keyword -> sub-parser. Built once; keywords are case-sensitive.
STATEMENT_PARSERS = {
    'LET': parse_let,
    'IF': parse_if,
    'PRINT': parse_print,
    'INPUT': parse_input,
    'GOTO': parse_jump,
    'GOSUB': parse_jump,
    'END': parse_single,
    'RETURN': parse_single,
    'CLEAR': parse_single,
    'LIST': parse_single,
    'RUN': parse_single,
    'REM': parse_rem,
}


def parse_statement(tokens, pos=0):
    """Parses the keyword statement at pos; returns it and the position of the line end."""
    token = _token_at(tokens, pos)
    if token is None or token.type != 'WORD' or token.value not in STATEMENT_PARSERS:
        raise UnexpectedTokenError(f"Unrecognized keyword: {_describe(token)}")
    try:
        return STATEMENT_PARSERS[token.value](tokens, pos)
    except ParsingError as err:
        raise ParsingError(f"Error parsing {token.value} statement") from err


def parse_line(tokens):
    """
    Parses the tokens of one line into a Statement.

    A label with nothing after it, or an empty line, gives a NEWLINE statement;
    stored under a label it means "delete that line".
    """
    if _at_line_end(tokens, 0):
        return Statement('NEWLINE')

    label = None
    pos = 0
    if tokens[0].type == 'NUMBER':
        label = parse_label(tokens[0])
        pos = 1
        if _at_line_end(tokens, pos):
            return Statement('NEWLINE', label=label)

    statement, pos = parse_statement(tokens, pos)
    return statement.with_label(label)


class LineParser:
    """Cursor over a token stream that parses it one line at a time."""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.pointer = 0

    def can_read_line(self):
        return self.pointer < len(self.tokens)

    def parse_line(self):
        """
        Parses the next line and moves past its newline.

        Returns (statement, None) on success and (None, message) on a syntax
        error; the message ends with the offending line.
        """
        start = self.pointer
        end = start
        while end < len(self.tokens) and self.tokens[end].type != 'NEWLINE':
            end += 1
        line = self.tokens[start:end]
        self.pointer = end + 1

        try:
            return parse_line(line), None
        except ParsingError as err:
            return None, f"{describe_error(err)}\n in line: {render_tokens(line)}"

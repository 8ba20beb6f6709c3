"""
Expression selection and parsing.

An expression is kept flat: parsing validates the token order against

    expression := term (('+'|'-') term)*
    term       := factor (('*'|'/') factor)*
    factor     := ('+'|'-')* (NUMBER | VARIABLE | FUNCTION | '(' expression ')')

and returns a single EXPRESSION token holding the same operators and operands in
order. Function calls are folded into FUNCTION tokens. Every helper takes the
token list and a position and returns the position after what it consumed.
"""
from errors import ParsingError, EmptyExpressionError, UnexpectedTokenError, InvalidVariableNameError
from lexer import Token, is_variable, render_expression


def select_expression(tokens, start=0):
    """
    Returns the longest run of tokens from `start` that may form an expression.

    Comparison operators, commas, quoted strings, newlines and multi-letter
    words end the run; the caller decides whether what follows is legal.
    """
    pos = start
    while pos < len(tokens):
        token = tokens[pos]
        if token.type in ('NUMBER', 'LPAREN', 'RPAREN', 'OP') or is_variable(token):
            pos += 1
        elif token.type == 'WORD' and token.value in FUNCTIONS:
            pos += len(select_function(tokens, pos))
        else:
            break
    return tokens[start:pos]


def select_function(tokens, start):
    """Function name plus its parenthesised argument list, up to the matching ')'."""
    pos = start + 1
    if pos >= len(tokens) or tokens[pos].type != 'LPAREN':
        return tokens[start:pos]
    depth = 0
    while pos < len(tokens):
        token = tokens[pos]
        if token.type == 'NEWLINE':
            break
        if token.type == 'LPAREN':
            depth += 1
        elif token.type == 'RPAREN':
            depth -= 1
            if depth == 0:
                return tokens[start:pos + 1]
        pos += 1
    return tokens[start:pos]


def parse_expression(tokens):
    if not tokens:
        raise EmptyExpressionError("Tried to parse an empty expression")

    parts = []
    pos = _parse_expression(tokens, 0, parts)
    if pos < len(tokens):
        raise UnexpectedTokenError(
            f"Unexpected token {tokens[pos]} at the end of expression {render_expression(parts)}")
    return Token('EXPRESSION', parts=parts)


def _parse_expression(tokens, pos, parts):
    pos = _parse_term(tokens, pos, parts)
    while pos < len(tokens) and tokens[pos].type == 'OP' and tokens[pos].value in '+-':
        parts.append(tokens[pos])
        pos += 1
        if pos >= len(tokens):
            raise UnexpectedTokenError(f"Expected a term after operator: {render_expression(parts)}")
        pos = _parse_term(tokens, pos, parts)
    return pos


def _parse_term(tokens, pos, parts):
    pos = _parse_factor(tokens, pos, parts)
    while pos < len(tokens) and tokens[pos].type == 'OP' and tokens[pos].value in '*/':
        parts.append(tokens[pos])
        pos += 1
        if pos >= len(tokens):
            raise UnexpectedTokenError(f"Expected a factor after operator: {render_expression(parts)}")
        pos = _parse_factor(tokens, pos, parts)
    return pos


def _parse_factor(tokens, pos, parts):
    token = tokens[pos]
    # Unary signs are kept as they are; the evaluator folds them
    while token.type == 'OP' and token.value in '+-':
        parts.append(token)
        pos += 1
        if pos >= len(tokens):
            raise UnexpectedTokenError(f"Unmatched unary operator: {render_expression(parts)}")
        token = tokens[pos]

    if token.type == 'NUMBER':
        parts.append(token)
        return pos + 1

    if token.type == 'LPAREN':
        parts.append(token)
        pos += 1
        if pos >= len(tokens):
            raise UnexpectedTokenError(f"Expected an expression after parenthesis: {render_expression(parts)}")
        pos = _parse_expression(tokens, pos, parts)
        if pos >= len(tokens) or tokens[pos].type != 'RPAREN':
            raise UnexpectedTokenError(f"Expected a closing parenthesis: {render_expression(parts)}")
        parts.append(tokens[pos])
        return pos + 1

    if token.type == 'WORD':
        if is_variable(token):
            parts.append(token)
            return pos + 1
        if token.value in FUNCTIONS:
            span = select_function(tokens, pos)
            parts.append(parse_function(span))
            return pos + len(span)
        raise InvalidVariableNameError(f"Expected a valid variable name, got: {token}")

    raise UnexpectedTokenError(f"Got unexpected token: {token}")


def parse_expression_list(tokens):
    """Parses `expr (',' expr)*`, the shape of a line typed in answer to INPUT."""
    expressions = []
    pos = 0
    while pos < len(tokens):
        if expressions:
            if tokens[pos].type != 'COMMA':
                raise UnexpectedTokenError(f"Expected a comma between values, got: {tokens[pos]}")
            pos += 1
            if pos >= len(tokens):
                raise UnexpectedTokenError("Expected next expression after the comma")
        span = select_expression(tokens, pos)
        if not span:
            raise UnexpectedTokenError(f"Expected an expression, got: {tokens[pos]}")
        expressions.append(parse_expression(span))
        pos += len(span)
    return expressions


def parse_function(tokens):
    """Parses `NAME ( args )` into a FUNCTION token."""
    name = tokens[0].value
    if len(tokens) < 2 or tokens[1].type != 'LPAREN':
        raise UnexpectedTokenError(f"Expected an open parenthesis after function name {name}")
    if len(tokens) < 3 or tokens[-1].type != 'RPAREN':
        raise UnexpectedTokenError(f"Expected a closing parenthesis after arguments for function {name}")
    if name not in FUNCTIONS:
        raise UnexpectedTokenError(f"Unknown function name {name}")

    arguments = split_arguments(tokens[2:-1])
    try:
        return FUNCTIONS[name](name, arguments)
    except ParsingError as err:
        raise ParsingError(f"Error parsing arguments for {name} function") from err


def split_arguments(tokens):
    """Splits an argument list on top level commas."""
    if not tokens:
        return []
    arguments = []
    current = []
    depth = 0
    for token in tokens:
        if token.type == 'LPAREN': depth += 1
        elif token.type == 'RPAREN': depth -= 1
        if depth == 0 and token.type == 'COMMA':
            if not current:
                raise UnexpectedTokenError("Expected an argument before comma")
            arguments.append(current)
            current = []
        else:
            current.append(token)
    if not current:
        raise UnexpectedTokenError("Expected next argument after comma")
    arguments.append(current)
    return arguments


def _parse_random(name, arguments):
    if len(arguments) != 1:
        raise UnexpectedTokenError(f"Expected one argument for {name} function, got: {len(arguments)}")
    return Token('FUNCTION', name, parts=[parse_expression(arguments[0])])


# Built-in functions, keyed by name
FUNCTIONS = {
    'RND': _parse_random,
}

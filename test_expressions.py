import pytest

from errors import ParsingError, EmptyExpressionError, UnexpectedTokenError, InvalidVariableNameError
from expressions import select_expression, parse_expression, parse_expression_list
from lexer import tokenize


@pytest.mark.parametrize("text, length", [
    ("X + 1 < 5", 3),
    ("10 * X THEN", 3),
    ("(1 + 2), 3", 5),
    ('"A" + 1', 0),
    ("RND(10) + 1, 5", 6),
    ("RND(RND(2)) THEN", 7),
    ("-(-X) = Y", 5),
])
def test_select_expression(text, length):
    assert len(select_expression(tokenize(text))) == length


def test_select_expression_from_offset():
    tokens = tokenize("LET X = 2 * Y")
    assert select_expression(tokens, 3) == tokens[3:]


@pytest.mark.parametrize("text", [
    "-10 + ----(---10)",
    "10 * (10 * (10 + 30) / 2)",
    "X",
    "RND(10) + -RND(X * 2)",
    "(X + 1) * 2",
])
def test_parse_renders_back(text):
    expression = parse_expression(tokenize(text))
    assert expression.type == 'EXPRESSION'
    assert str(expression) == text


def test_parse_function_token():
    expression = parse_expression(tokenize("RND(10)"))
    function = expression.parts[0]
    assert function.type == 'FUNCTION'
    assert function.value == 'RND'
    assert str(function.parts[0]) == "10"


def test_empty_expression():
    with pytest.raises(EmptyExpressionError):
        parse_expression([])


@pytest.mark.parametrize("text", [
    "(1 + 2",
    "1 +",
    "()",
    "1 2",
    "-",
    "2 * * 3",
    "1 + 2)",
    "RND 10",
])
def test_malformed_expressions(text):
    with pytest.raises(UnexpectedTokenError):
        parse_expression(tokenize(text))


def test_invalid_variable_name():
    with pytest.raises(InvalidVariableNameError):
        parse_expression(tokenize("AB + 1"))


def test_function_argument_count():
    with pytest.raises(ParsingError) as excinfo:
        parse_expression(tokenize("RND(1, 2)"))
    assert "RND" in str(excinfo.value)
    assert "Expected one argument" in str(excinfo.value.__cause__)


def test_parse_expression_list():
    expressions = parse_expression_list(tokenize("1, 2 + 3, X"))
    assert [str(e) for e in expressions] == ["1", "2 + 3", "X"]


@pytest.mark.parametrize("text", ["1,,2", "1,", "HELLO", ", 1"])
def test_parse_expression_list_errors(text):
    with pytest.raises(ParsingError):
        parse_expression_list(tokenize(text))

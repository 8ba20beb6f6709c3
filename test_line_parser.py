import pytest

from errors import ParsingError, InvalidLabelError
from lexer import tokenize
from line_parser import LineParser, Statement, parse_line


def parse(text):
    return parse_line(tokenize(text))


def test_print_with_label():
    statement = parse('10 PRINT "A", X')
    assert statement.type == 'PRINT'
    assert statement.label == 10
    assert str(statement) == '10 PRINT "A", X'


@pytest.mark.parametrize("text", [
    "LET X = 1 + 2",
    "INPUT A, B, C",
    "GOTO (10 * X + 5)",
    "GOSUB 100",
    "IF X <> 10 THEN PRINT X",
    "RETURN",
    "END",
    "LIST",
    "CLEAR",
    "RUN",
    'REM HELLO, "WORLD"',
    "LET X = 1000000000000",
])
def test_statements_render_back(text):
    assert str(parse(text)) == text


def test_if_chain():
    statement = parse('IF X = 10 THEN IF Y <> 15 THEN IF Z < (10 * X + (X * 235 + (2555))) THEN PRINT "HELLO"')
    assert statement.type == 'IF'
    nested = statement.arguments[4]
    assert nested.type == 'IF'
    assert nested.arguments[4].type == 'IF'
    assert nested.arguments[4].arguments[4].type == 'PRINT'


def test_if_arguments():
    left, comparison, right, then, nested = parse("IF X >< 10 THEN END").arguments
    assert str(left) == "X"
    assert comparison.value == '<>'
    assert str(right) == "10"
    assert then.value == 'THEN'
    assert nested == Statement('END')


def test_label_alone_is_a_newline_statement():
    assert parse("100") == Statement('NEWLINE', label=100)
    assert parse("") == Statement('NEWLINE')


def test_rem_never_fails():
    statement = parse("REM LET = ( , 5")
    assert statement.type == 'REM'
    assert len(statement.arguments) == 5


@pytest.mark.parametrize("text", [
    "100 let X = 100",
    "830921839 LET X = 0",
    '100 IF (X + 10) <> (X + 20) THEN 101 PRINT "HELLO"',
    "100 PRINT ,",
    "100 PRINT 100, LET,",
    '100 PRINT 100,"HELLO",',
    "100 INPUT X,Xyz",
    "100 INPUT X,",
    '100 LET X = "HELLO"',
    "100 LET X = 100,",
    "100 LET XY = 1",
    "100 LET X 1",
    '100 GOTO "HELLO"',
    "100 GOTO",
    "100 PRINT X 101 PRINT Y",
    "100 IF X THEN END",
    "100 IF X = 1 END",
    "100 IF X = 1 THEN",
    "100 END 10",
    "100 RETURN X",
    "X = 10",
])
def test_syntax_errors(text):
    statement, error = LineParser(tokenize(text)).parse_line()
    assert statement is None
    assert error


def test_error_message_names_statement_and_line():
    _, error = LineParser(tokenize("10 LET X 5")).parse_line()
    assert error.startswith("Error parsing LET statement")
    assert "Expected an assignment operator, got: 5" in error
    assert error.endswith("in line: 10 LET X 5")


def test_label_range():
    with pytest.raises(InvalidLabelError):
        parse("0 END")
    with pytest.raises(InvalidLabelError):
        parse("32768 END")
    assert parse("32767 END").label == 32767


def test_keywords_are_case_sensitive():
    with pytest.raises(ParsingError) as excinfo:
        parse("print 1")
    assert "Unrecognized keyword: print" in str(excinfo.value)


def test_line_parser_reads_line_by_line():
    parser = LineParser(tokenize("10 PRINT 1\nLET X\n20 END\n"))
    results = []
    while parser.can_read_line():
        results.append(parser.parse_line())

    assert len(results) == 3
    assert str(results[0][0]) == "10 PRINT 1"
    assert results[1][0] is None and "LET" in results[1][1]
    assert results[2] == (Statement('END', label=20), None)

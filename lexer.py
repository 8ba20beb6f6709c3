import re

from errors import UnmatchedQuotationError


class Token:
    """
    A single token of TinyBasic source.

    `type` is one of the tags below, `value` carries the literal (int for
    NUMBER, text for WORD/STRING/OP/RELOP, function name for FUNCTION) and
    `parts` holds the sub-tokens of composite EXPRESSION and FUNCTION tokens.
    """

    __slots__ = ('type', 'value', 'parts')

    def __init__(self, type, value=None, parts=()):
        self.type = type
        self.value = value
        self.parts = tuple(parts)

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return (self.type, self.value, self.parts) == (other.type, other.value, other.parts)

    def __hash__(self):
        return hash((self.type, self.value, self.parts))

    def __repr__(self):
        if self.parts:
            return f"Token({self.type}, {self.value}, {list(self.parts)})"
        return f"Token({self.type}, {self.value})"

    def __str__(self):
        if self.type == 'EXPRESSION':
            return render_expression(self.parts)
        if self.type == 'FUNCTION':
            return f"{self.value}({', '.join(str(p) for p in self.parts)})"
        if self.type == 'STRING':
            return f'"{self.value}"'
        if self.type in FIXED_TEXT:
            return FIXED_TEXT[self.type]
        return str(self.value)


FIXED_TEXT = {
    'COMMA': ',',
    'NEWLINE': '\n',
    'LPAREN': '(',
    'RPAREN': ')',
}

NEWLINE = Token('NEWLINE')
COMMA = Token('COMMA')


def render_expression(parts):
    # Parentheses hug their contents and unary signs hug their operand
    out = []
    glue = True
    operand_expected = True
    for token in parts:
        if token.type == 'RPAREN':
            out.append(')')
            glue = operand_expected = False
            continue
        if not glue:
            out.append(' ')
        out.append(str(token))
        if token.type == 'LPAREN':
            glue = operand_expected = True
        elif token.type == 'OP':
            glue = operand_expected
            operand_expected = True
        else:
            glue = operand_expected = False
    return "".join(out)


def is_variable(token):
    return token.type == 'WORD' and len(token.value) == 1 and 'A' <= token.value <= 'Z'


class Lexer:
    def __init__(self):
        # Token specification, tried in order at every position
        self.token_specification = [
            ('NEWLINE',   r'\r\n|\n\r|\r|\n'),
            ('SKIP',      r'[^\S\r\n]+'),         # Whitespace other than line breaks
            ('COMMA',     r','),
            ('STRING',    r'"[^"\r\n]*"'),        # Quoted string
            ('UNMATCHED', r'"[^"\r\n]*'),         # Quote without a partner on this line
            ('LPAREN',    r'\('),
            ('RPAREN',    r'\)'),
            ('RELOP',     r'<>|><|<=|>=|[<>=]'),
            ('OP',        r'[+\-*/]'),
            ('NUMBER',    r'\d+'),
            ('WORD',      r'[^\s",()+\-*/<>=]+'),  # Keywords and variable names
        ]
        self._regex = re.compile('|'.join('(?P<%s>%s)' % pair for pair in self.token_specification))

    def tokenize(self, text):
        for mo in self._regex.finditer(text):
            kind = mo.lastgroup
            value = mo.group()
            if kind == 'SKIP':
                continue
            elif kind == 'UNMATCHED':
                raise UnmatchedQuotationError(f"Failed to find matching quotation mark for the string: {value}")
            elif kind == 'NEWLINE':
                yield NEWLINE
            elif kind == 'COMMA':
                yield COMMA
            elif kind in ('LPAREN', 'RPAREN'):
                yield Token(kind)
            elif kind == 'NUMBER':
                yield Token(kind, int(value))
            elif kind == 'STRING':
                yield Token(kind, value[1:-1])
            elif kind == 'RELOP':
                yield Token(kind, '<>' if value == '><' else value)
            else:
                yield Token(kind, value)


_default_lexer = Lexer()


def tokenize(text):
    """Tokenizes the whole text into a list of tokens."""
    return list(_default_lexer.tokenize(text))

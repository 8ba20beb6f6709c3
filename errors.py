class TinyBasicError(Exception):
    """Root of every error the interpreter reports to the user."""


class TokenizationError(TinyBasicError): pass
class UnmatchedQuotationError(TokenizationError): pass


class ParsingError(TinyBasicError): pass
class EmptyExpressionError(ParsingError): pass
class UnexpectedTokenError(ParsingError): pass
class InvalidVariableNameError(UnexpectedTokenError): pass

class InvalidLabelError(ParsingError):
    def __init__(self, value):
        super().__init__(f"Label should be greater than 0 and less than 32768: {value}")
        self.value = value


class BasicRuntimeError(TinyBasicError):
    def __init__(self, message):
        super().__init__(message)
        self.label = None # filled in by the executor

class UninitializedVariableError(BasicRuntimeError):
    def __init__(self, address):
        super().__init__(f"Tried to use an uninitialized variable: {address}")
        self.address = address

class DivisionByZeroError(BasicRuntimeError):
    def __init__(self, value):
        super().__init__(f"Tried to divide {value} by zero")

class ReturnWithoutGosubError(BasicRuntimeError):
    def __init__(self):
        super().__init__("Tried to return without invoking a subroutine")

class LabelNotFoundError(BasicRuntimeError):
    def __init__(self, label):
        super().__init__(f"Label {label} does not exist")
        self.target = label

class InvalidInputError(BasicRuntimeError): pass


class DebugCommandError(TinyBasicError): pass
class ProgramFileError(TinyBasicError): pass


def describe_error(err):
    """Message of the error followed by one ' >' line per chained cause."""
    lines = [str(err)]
    cause = err.__cause__
    while cause is not None:
        lines.append(f" >{cause}")
        cause = cause.__cause__
    return "\n".join(lines)

"""
Error handling for the Kaleidoscope parser.

Every syntax problem is raised as a ParseError; the read loop catches it,
reports the diagnostic and resynchronizes at the next statement boundary.

Author: xwest
"""

from typing import Optional, List, Union

from ..lexer.tokens import Token, TokenType, SourceLocation
from ..diagnostics import CompilerError, ErrorKind


class ParseError(CompilerError):
    """
    Exception raised when the parser encounters a syntax error.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation],
        token: Optional[Token] = None,
        kind: ErrorKind = ErrorKind.PARSE_ERROR,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(
            message,
            kind,
            location=location,
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )
        self.token = token


class SyntaxErrorRecovery:
    """
    Utilities for error recovery in the parser.

    Lets the read loop continue after a syntax error instead of giving up
    on the rest of the input.
    """

    # Tokens that start or end a top-level form
    STATEMENT_BOUNDARIES = {
        TokenType.DEF,
        TokenType.EXTERN,
        TokenType.EOF,
    }

    @staticmethod
    def is_statement_boundary(token: Token) -> bool:
        return token.type in SyntaxErrorRecovery.STATEMENT_BOUNDARIES or token.is_char(";")

    @staticmethod
    def synchronize_to_statement_boundary(parser) -> int:
        """
        Discard tokens until the parser sits on a statement boundary.

        The boundary token itself is left for the read loop to dispatch on.
        Returns the number of tokens discarded.
        """
        skipped = 0
        while not SyntaxErrorRecovery.is_statement_boundary(parser.current):
            parser.next_token()
            skipped += 1
        return skipped

    @staticmethod
    def suggest_missing_token(expected: str) -> List[str]:
        """
        Suggest what token might be missing.

        `expected` may carry context after the token, as in "')' in prototype".
        """
        token_suggestions = {
            "')'": ["Add a closing parenthesis ')'"],
            "'('": ["Add an opening parenthesis '(' before the parameter list"],
            "'then'": ["An if expression needs 'then' and 'else' branches"],
            "'else'": ["An if expression needs an 'else' branch"],
            "'in'": ["Finish the loop or var header with 'in' followed by the body"],
            "'='": ["Loop variables need a start value: for i = 1, i < n in ..."],
            "','": ["Separate the loop start and end values with ','"],
        }
        token = expected.split(" ", 1)[0]
        return token_suggestions.get(token, [])


# Common parser error codes for categorization
PARSER_ERROR_CODES = {
    "P001": "Unexpected token",
    "P002": "Invalid number of operands for operator",
    "P003": "Invalid precedence",
    "P004": "Built-in or reserved operator cannot be redefined",
}


def _describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of input"
    if token.type in (TokenType.CHAR, TokenType.NUMBER, TokenType.IDENTIFIER):
        return f"'{token.lexeme}'"
    return f"keyword '{token.lexeme}'"


# Helper functions for creating common parser errors

def create_unexpected_token_error(expected: Union[TokenType, str], found: Token) -> ParseError:
    """Create an error for an unexpected token."""
    expected_str = expected.name.lower() if isinstance(expected, TokenType) else expected
    found_str = _describe(found)

    return ParseError(
        message=f"Expected {expected_str}, found {found_str}",
        location=found.location,
        token=found,
        code="P001",
        help_text=f"The parser expected to see {expected_str} at this position, but found {found_str} instead.",
        suggestions=SyntaxErrorRecovery.suggest_missing_token(expected_str)
    )


def create_unknown_expression_error(found: Token) -> ParseError:
    """Create an error for a token that cannot start an expression."""
    return ParseError(
        message=f"Unknown token {_describe(found)} when expecting an expression",
        location=found.location,
        token=found,
        code="P001",
        help_text="Expressions start with a number, an identifier, '(', 'if', 'for', 'var' or a unary operator."
    )


def create_invalid_arity_error(name: str, expected: int, found: int,
                               location: SourceLocation) -> ParseError:
    """Create an error for an operator prototype with the wrong parameter count."""
    return ParseError(
        message=f"Invalid number of operands for operator '{name}': expected {expected}, found {found}",
        location=location,
        kind=ErrorKind.INVALID_OPERATOR_ARITY,
        code="P002",
        help_text="Unary operators take exactly one parameter and binary operators exactly two."
    )


def create_invalid_precedence_error(precedence: float, token: Token) -> ParseError:
    """Create an error for a binary precedence outside 1..100."""
    return ParseError(
        message=f"Invalid precedence {precedence!r}: must be 1..100",
        location=token.location,
        token=token,
        kind=ErrorKind.INVALID_PRECEDENCE,
        code="P003",
        help_text="Higher numbers bind tighter; '*' is 40 and '<' is 10."
    )


def create_reserved_operator_error(symbol: str, token: Token) -> ParseError:
    """Create an error for an attempt to redefine a built-in or structural operator."""
    return ParseError(
        message=f"Operator '{symbol}' cannot be redefined",
        location=token.location,
        token=token,
        code="P004",
        help_text="Built-in operators and the characters '(', ')', ',' and ';' are reserved.",
        suggestions=["Pick another character for the operator"]
    )

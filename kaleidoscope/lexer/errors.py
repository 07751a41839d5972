"""
Error handling for the Kaleidoscope lexer.

The lexer itself never fails: any character it does not recognise becomes
a CHAR token. Suspicious input is reported as a LexerWarning instead.

Author: xwest
"""

from typing import Optional, List

from .tokens import SourceLocation
from ..diagnostics import Diagnostic, ErrorKind


class LexerWarning:
    """
    Represents a lexer warning that doesn't stop compilation.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
        kind: ErrorKind = ErrorKind.LEXICAL_AMBIGUITY,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        self.kind = kind
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="warning",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )

    def __str__(self) -> str:
        return str(self.diagnostic)


# Lexer diagnostic codes
ERROR_CODES = {
    "L001": "Ambiguous numeric literal",
}


def create_ambiguous_number_warning(lexeme: str, value: float,
                                    location: SourceLocation) -> LexerWarning:
    """Create a warning for a numeric literal with more than one decimal point."""
    return LexerWarning(
        message=f"Ambiguous numeric literal: '{lexeme}'",
        location=location,
        code="L001",
        help_text=f"Only the leading part is used; the literal evaluates to {value!r}.",
        suggestions=["Use at most one decimal point in a number"]
    )

"""
Diagnostics shared by every Kaleidoscope compiler stage.

Each stage raises a subclass of CompilerError. The error carries an
ErrorKind and a Diagnostic record, which the driver prints to the
error stream before resuming the read loop.

Author: xwest
"""

from typing import Optional, List, TYPE_CHECKING
from dataclasses import dataclass
from enum import Enum

if TYPE_CHECKING:
    from .lexer.tokens import SourceLocation


class ErrorKind(Enum):
    """Closed set of failure categories reported by the compiler."""

    LEXICAL_AMBIGUITY = "LexicalAmbiguity"
    PARSE_ERROR = "ParseError"
    INVALID_OPERATOR_ARITY = "InvalidOperatorArity"
    INVALID_PRECEDENCE = "InvalidPrecedence"
    UNBOUND_NAME = "UnboundName"
    UNKNOWN_CALLEE = "UnknownCallee"
    UNKNOWN_OPERATOR = "UnknownOperator"
    ARITY_MISMATCH = "ArityMismatch"
    SIGNATURE_MISMATCH = "SignatureMismatch"
    REDEFINITION = "Redefinition"
    INVALID_ASSIGNMENT = "InvalidAssignment"
    VERIFICATION_FAILED = "VerificationFailed"
    UNRESOLVED_SYMBOL = "UnresolvedSymbol"


@dataclass
class Diagnostic:
    """A single error, warning or note attached to a source location."""
    message: str
    location: Optional["SourceLocation"]
    severity: str  # "error", "warning", "info"
    code: Optional[str] = None
    help_text: Optional[str] = None
    suggestions: Optional[List[str]] = None

    def __str__(self) -> str:
        severity_prefix = self.severity.upper()
        if self.code:
            severity_prefix += f"[{self.code}]"
        result = f"{severity_prefix}: {self.message}\n"
        if self.location is not None:
            result += f"  --> {self.location}\n"

        if self.help_text:
            result += f"  help: {self.help_text}\n"

        if self.suggestions:
            result += "  suggestions:\n"
            for suggestion in self.suggestions:
                result += f"    - {suggestion}\n"

        return result


class CompilerError(Exception):
    """
    Base exception for every recoverable compiler failure.

    A CompilerError aborts the current top-level form only; the session
    stays usable afterwards.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        location: Optional["SourceLocation"] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )

    @property
    def message(self) -> str:
        return self.diagnostic.message

    def __str__(self) -> str:
        return str(self.diagnostic)

"""
Error handling for Kaleidoscope code generation.

Author: xwest
"""

from typing import Optional, List

from ..lexer.tokens import SourceLocation
from ..diagnostics import CompilerError, ErrorKind


class CodegenError(CompilerError):
    """Exception raised when an AST cannot be lowered to IR."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        location: Optional[SourceLocation] = None,
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


CODEGEN_ERROR_CODES = {
    "C001": "Unknown variable name",
    "C002": "Unknown function referenced",
    "C003": "Unknown operator",
    "C004": "Incorrect number of arguments passed",
    "C005": "Function redeclared with a different signature",
    "C006": "Function cannot be redefined",
    "C007": "Destination of '=' must be a variable",
}


def create_unbound_name_error(name: str, location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        message=f"Unknown variable name '{name}'",
        kind=ErrorKind.UNBOUND_NAME,
        location=location,
        code="C001",
        help_text="Only parameters, loop variables and 'var' bindings are in scope."
    )


def create_unknown_callee_error(name: str, location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        message=f"Unknown function referenced: '{name}'",
        kind=ErrorKind.UNKNOWN_CALLEE,
        location=location,
        code="C002",
        help_text="Define the function with 'def' or declare it with 'extern' first.",
        suggestions=[f"extern {name}(...)"]
    )


def create_unknown_operator_error(name: str, location: Optional[SourceLocation]) -> CodegenError:
    kind = "unary" if name.startswith("unary") else "binary"
    return CodegenError(
        message=f"Unknown {kind} operator '{name[len(kind):]}'",
        kind=ErrorKind.UNKNOWN_OPERATOR,
        location=location,
        code="C003",
        help_text=f"Define it first, e.g. 'def {name}(...) ...'."
    )


def create_arity_mismatch_error(name: str, expected: int, found: int,
                                location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        message=f"Incorrect number of arguments passed to '{name}': expected {expected}, found {found}",
        kind=ErrorKind.ARITY_MISMATCH,
        location=location,
        code="C004"
    )


def create_signature_mismatch_error(name: str, expected: int, found: int,
                                    location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        message=(f"Function '{name}' redeclared with {found} parameter(s), "
                 f"previously declared with {expected}"),
        kind=ErrorKind.SIGNATURE_MISMATCH,
        location=location,
        code="C005"
    )


def create_redefinition_error(name: str, location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        message=f"Function '{name}' cannot be redefined",
        kind=ErrorKind.REDEFINITION,
        location=location,
        code="C006",
        help_text="A function body can only be given once per session."
    )


def create_invalid_assignment_error(location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        message="Destination of '=' must be a variable",
        kind=ErrorKind.INVALID_ASSIGNMENT,
        location=location,
        code="C007"
    )


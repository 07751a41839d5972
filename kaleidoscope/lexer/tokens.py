"""
Token definitions for the Kaleidoscope lexer.

The token set is deliberately small:
- EOF
- Keywords (def, extern, if, then, else, for, in, var, unary, binary)
- Identifiers and numeric literals
- CHAR, a catch-all for every other single character (operators, parentheses,
  commas, semicolons)

Author: xwest
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """Enumeration of all token types in Kaleidoscope."""

    # ========================================================================
    # Special Tokens
    # ========================================================================
    EOF = auto()                    # End of input

    # ========================================================================
    # Keywords
    # ========================================================================
    DEF = auto()                    # def
    EXTERN = auto()                 # extern
    IF = auto()                     # if
    THEN = auto()                   # then
    ELSE = auto()                   # else
    FOR = auto()                    # for
    IN = auto()                     # in
    VAR = auto()                    # var
    UNARY = auto()                  # unary
    BINARY = auto()                 # binary

    # ========================================================================
    # Primaries
    # ========================================================================
    IDENTIFIER = auto()             # [A-Za-z][A-Za-z0-9]*
    NUMBER = auto()                 # [0-9.]+

    # Any other single character, returned as itself
    CHAR = auto()


@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Used for error reporting and dev-mode tracing.
    """
    filename: str
    line: int
    column: int
    offset: int  # Character offset from start of input

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"

    def __repr__(self) -> str:
        return f"SourceLocation({self.filename!r}, {self.line}, {self.column}, {self.offset})"


@dataclass(frozen=True)
class Token:
    """
    Represents a lexical token.

    `value` holds the identifier name for IDENTIFIER, the parsed float for
    NUMBER and the code point for CHAR.
    """
    type: TokenType
    lexeme: str                     # Raw text from source
    value: Any                      # Parsed/semantic value
    location: SourceLocation        # Source location

    def __str__(self) -> str:
        if self.value is not None and self.value != self.lexeme:
            return f"{self.type.name}({self.lexeme!r} -> {self.value!r})"
        return f"{self.type.name}({self.lexeme!r})"

    def __repr__(self) -> str:
        return (f"Token({self.type.name}, {self.lexeme!r}, "
                f"{self.value!r}, {self.location!r})")

    @property
    def char(self) -> Optional[str]:
        """The character of a CHAR token, None for every other type."""
        if self.type == TokenType.CHAR:
            return self.lexeme
        return None

    def is_char(self, char: str) -> bool:
        return self.type == TokenType.CHAR and self.lexeme == char


# Keyword mappings
KEYWORDS = {
    "def": TokenType.DEF,
    "extern": TokenType.EXTERN,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "var": TokenType.VAR,
    "unary": TokenType.UNARY,
    "binary": TokenType.BINARY,
}

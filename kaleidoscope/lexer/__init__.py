"""
Kaleidoscope Lexer Package

Streaming tokenizer for the Kaleidoscope language. Recognises keywords,
identifiers, numeric literals and `#` comments; every other character is
handed to the parser as a CHAR token so user-defined operators need no
lexer support.

Author: xwest
"""

from .tokens import Token, TokenType, SourceLocation
from .lexer import Lexer, tokenize_string
from .errors import LexerWarning

__all__ = [
    "Lexer",
    "Token",
    "TokenType",
    "SourceLocation",
    "LexerWarning",
    "tokenize_string",
]

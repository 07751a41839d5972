"""
Kaleidoscope Lexer - turns a character stream into tokens

Reads forward only, one character at a time, so it works the same on an
interactive stdin as on an in-memory string. next_token() is what the
parser pulls from; tokenize() is a convenience for tests and tracing.

Author: xwest
"""

import io
import logging
import re
import sys
from typing import List, Optional, TextIO, Union

from .tokens import Token, TokenType, SourceLocation, KEYWORDS
from .errors import LexerWarning, create_ambiguous_number_warning

LOG = logging.getLogger(__name__)

# Longest prefix of a [0-9.]+ run that a C strtod would accept
_FLOAT_PREFIX = re.compile(r'\d*\.?\d*')


def parse_number_prefix(lexeme: str) -> float:
    """
    Parse the longest leading part of `lexeme` that is a valid float.

    `1.2.3` gives 1.2 and a lone `.` gives 0.0.
    """
    match = _FLOAT_PREFIX.match(lexeme)
    text = match.group(0) if match else ""
    if not text or text == ".":
        return 0.0
    return float(text)


class Lexer:
    """
    Kaleidoscope lexical analyzer.

    Keeps a single character of lookahead (`last_char`) between calls,
    exactly like the classic getchar-driven tokenizer.
    """

    def __init__(self, source: Union[str, TextIO, None] = None, filename: str = "<stdin>"):
        """
        Initialize the lexer.

        Args:
            source: Source text, or a readable text stream. Defaults to stdin.
            filename: Name used in source locations
        """
        if source is None:
            source = sys.stdin
        elif isinstance(source, str):
            source = io.StringIO(source)
        self.stream: TextIO = source
        self.filename = filename

        self.offset = 0
        self.line = 1
        self.column = 0
        self.last_char: Optional[str] = " "
        self.warnings: List[LexerWarning] = []

    def _read_char(self) -> Optional[str]:
        """Read the next character, or None at end of input."""
        char = self.stream.read(1)
        if not char:
            return None

        self.offset += 1
        if char == "\n":
            self.line += 1
            self.column = 0
        else:
            self.column += 1
        return char

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, max(self.column, 1), self.offset)

    def next_token(self) -> Token:
        """Return the next token from the input."""
        token = self._scan()
        LOG.debug("token %s at %s", token, token.location)
        return token

    def _scan(self) -> Token:
        # Skip any whitespace
        while self.last_char is not None and self.last_char.isspace():
            self.last_char = self._read_char()

        if self.last_char is None:
            return Token(TokenType.EOF, "", None, self._location())

        location = self._location()

        # identifier: [a-zA-Z][a-zA-Z0-9]*
        if self.last_char.isascii() and self.last_char.isalpha():
            chars = [self.last_char]
            self.last_char = self._read_char()
            while self.last_char is not None and self.last_char.isascii() and self.last_char.isalnum():
                chars.append(self.last_char)
                self.last_char = self._read_char()

            identifier = "".join(chars)
            keyword = KEYWORDS.get(identifier)
            if keyword is not None:
                return Token(keyword, identifier, None, location)
            return Token(TokenType.IDENTIFIER, identifier, identifier, location)

        # number: [0-9.]+
        if (self.last_char.isascii() and self.last_char.isdigit()) or self.last_char == ".":
            chars = []
            while self.last_char is not None and (
                    self.last_char == "." or (self.last_char.isascii() and self.last_char.isdigit())):
                chars.append(self.last_char)
                self.last_char = self._read_char()

            lexeme = "".join(chars)
            value = parse_number_prefix(lexeme)
            if lexeme.count(".") > 1:
                warning = create_ambiguous_number_warning(lexeme, value, location)
                self.warnings.append(warning)
                LOG.debug("%s", warning.diagnostic.message)
            return Token(TokenType.NUMBER, lexeme, value, location)

        # Comment until end of line
        if self.last_char == "#":
            while self.last_char is not None and self.last_char not in ("\n", "\r"):
                self.last_char = self._read_char()

            if self.last_char is not None:
                return self._scan()
            return Token(TokenType.EOF, "", None, self._location())

        # Otherwise, just return the character as its own token
        char = self.last_char
        self.last_char = self._read_char()
        return Token(TokenType.CHAR, char, ord(char), location)

    def tokenize(self) -> List[Token]:
        """
        Tokenize the rest of the input.

        Returns:
            List of tokens ending with a single EOF token
        """
        tokens = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                return tokens


def tokenize_string(source: str, filename: str = "<string>") -> List[Token]:
    """Tokenize a source string."""
    return Lexer(source, filename).tokenize()

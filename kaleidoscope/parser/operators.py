"""
Binary operator precedence table.

The table is owned by a compilation session and grows as `binary`
prototypes are parsed. Only single-character operators exist.

Author: xwest
"""

from typing import Dict, Iterator, Optional, Tuple

# Built-in binary operators and their precedence (1 is lowest)
BUILTIN_BINARY_OPERATORS: Dict[str, int] = {
    "=": 2,
    "<": 10,
    "+": 20,
    "-": 20,
    "*": 40,
}

# Unary operators lowered directly to instructions
BUILTIN_UNARY_OPERATORS = frozenset({"-"})

# Characters the grammar needs for itself
RESERVED_OPERATOR_CHARS = frozenset({"(", ")", ",", ";"})

DEFAULT_BINARY_PRECEDENCE = 30
MIN_PRECEDENCE = 1
MAX_PRECEDENCE = 100


class OperatorTable:
    """Maps an operator symbol to its binary precedence."""

    def __init__(self, precedences: Optional[Dict[str, int]] = None):
        self._precedences: Dict[str, int] = dict(precedences or {})

    @classmethod
    def with_defaults(cls) -> "OperatorTable":
        """Create a table holding the built-in operators."""
        return cls(BUILTIN_BINARY_OPERATORS)

    def precedence(self, symbol: Optional[str]) -> int:
        """
        Precedence of `symbol` as a binary operator.

        Returns -1 when the symbol is not a binary operator, so the
        precedence-climbing loop stops on it.
        """
        if symbol is None:
            return -1
        precedence = self._precedences.get(symbol, -1)
        if precedence <= 0:
            return -1
        return precedence

    def install(self, symbol: str, precedence: int):
        self._precedences[symbol] = precedence

    def snapshot(self) -> Dict[str, int]:
        """Copy of the current table, for restore()."""
        return dict(self._precedences)

    def restore(self, snapshot: Dict[str, int]):
        self._precedences = dict(snapshot)

    @staticmethod
    def is_builtin(symbol: str, unary: bool = False) -> bool:
        if unary:
            return symbol in BUILTIN_UNARY_OPERATORS
        return symbol in BUILTIN_BINARY_OPERATORS

    @staticmethod
    def is_valid_precedence(precedence: float) -> bool:
        return MIN_PRECEDENCE <= precedence <= MAX_PRECEDENCE

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(sorted(self._precedences.items()))

    def __contains__(self, symbol: str) -> bool:
        return self.precedence(symbol) > 0

    def __len__(self) -> int:
        return len(self._precedences)

    def __repr__(self) -> str:
        entries = ", ".join(f"{symbol!r}: {prec}" for symbol, prec in self.items())
        return f"OperatorTable({{{entries}}})"

"""
Kaleidoscope Parser Package

Operator-precedence parser producing an immutable AST. Binary operator
precedences live in an OperatorTable that user `binary` definitions extend
at parse time.

Author: xwest
"""

from .ast_nodes import (
    ANONYMOUS_FUNCTION_NAME, ASTNodeType, BinaryOp, Call, EXPRESSION_NODES, For,
    FunctionDef, If, Let, NumberLiteral, Prototype, PrototypeKind, UnaryOp,
    VariableRef, format_node,
)
from .operators import OperatorTable
from .parser import Parser, parse_expression_string
from .errors import ParseError, SyntaxErrorRecovery

__all__ = [
    "Parser",
    "parse_expression_string",
    "OperatorTable",
    "ParseError",
    "SyntaxErrorRecovery",
    "ANONYMOUS_FUNCTION_NAME",
    "ASTNodeType",
    "EXPRESSION_NODES",
    "NumberLiteral",
    "VariableRef",
    "UnaryOp",
    "BinaryOp",
    "Call",
    "If",
    "For",
    "Let",
    "Prototype",
    "PrototypeKind",
    "FunctionDef",
    "format_node",
]

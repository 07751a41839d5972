"""
Abstract Syntax Tree node definitions for Kaleidoscope.

Nodes are immutable dataclasses forming a strict tree: children are
held in tuples and never shared. The set of expression variants is
closed; consumers dispatch on the node class (see EXPRESSION_NODES).

Author: xwest
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from ..lexer.tokens import SourceLocation

# Name of the synthetic function wrapping a top-level expression
ANONYMOUS_FUNCTION_NAME = "__anon_expr"


class ASTNodeType(Enum):
    """Enumeration of all AST node types."""

    # Expressions
    NUMBER_LITERAL = "NumberLiteral"
    VARIABLE_REF = "VariableRef"
    UNARY_OP = "UnaryOp"
    BINARY_OP = "BinaryOp"
    CALL = "Call"
    IF = "If"
    FOR = "For"
    LET = "Let"

    # Top-level
    PROTOTYPE = "Prototype"
    FUNCTION_DEF = "FunctionDef"


class PrototypeKind(Enum):
    """What a prototype declares."""
    FUNCTION = "function"
    UNARY = "unary"
    BINARY = "binary"


# ============================================================================
# Expressions
# ============================================================================

@dataclass(frozen=True)
class NumberLiteral:
    """Numeric literal such as `1.5`."""
    node_type: ClassVar[ASTNodeType] = ASTNodeType.NUMBER_LITERAL
    value: float
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class VariableRef:
    """Reference to a parameter, loop variable or `var` binding."""
    node_type: ClassVar[ASTNodeType] = ASTNodeType.VARIABLE_REF
    name: str
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class UnaryOp:
    node_type: ClassVar[ASTNodeType] = ASTNodeType.UNARY_OP
    operator: str
    operand: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class BinaryOp:
    node_type: ClassVar[ASTNodeType] = ASTNodeType.BINARY_OP
    operator: str
    left: "Expression"
    right: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Call:
    """Function call `callee(args...)`."""
    node_type: ClassVar[ASTNodeType] = ASTNodeType.CALL
    callee: str
    args: Tuple["Expression", ...] = ()
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class If:
    """`if cond then a else b`, an expression yielding the taken branch."""
    node_type: ClassVar[ASTNodeType] = ASTNodeType.IF
    condition: "Expression"
    then_branch: "Expression"
    else_branch: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class For:
    """
    `for var = start, end, step in body`.

    The body runs before `end` is tested, so it always runs at least once.
    `step` defaults to 1.0 when omitted. The loop always yields 0.0.
    """
    node_type: ClassVar[ASTNodeType] = ASTNodeType.FOR
    var_name: str
    start: "Expression"
    end: "Expression"
    step: Optional["Expression"]
    body: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Let:
    """`var a = 1, b in body`; bindings without an initializer start at 0.0."""
    node_type: ClassVar[ASTNodeType] = ASTNodeType.LET
    bindings: Tuple[Tuple[str, Optional["Expression"]], ...]
    body: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


Expression = Union[NumberLiteral, VariableRef, UnaryOp, BinaryOp, Call, If, For, Let]

EXPRESSION_NODES = (NumberLiteral, VariableRef, UnaryOp, BinaryOp, Call, If, For, Let)


# ============================================================================
# Top-level nodes
# ============================================================================

@dataclass(frozen=True)
class Prototype:
    """
    Function signature: name and parameter names.

    Operator prototypes are named `unary<sym>` or `binary<sym>` and a
    binary one records its precedence.
    """
    node_type: ClassVar[ASTNodeType] = ASTNodeType.PROTOTYPE
    name: str
    params: Tuple[str, ...] = ()
    kind: PrototypeKind = PrototypeKind.FUNCTION
    precedence: int = 0
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def is_operator(self) -> bool:
        return self.kind != PrototypeKind.FUNCTION

    @property
    def operator_symbol(self) -> Optional[str]:
        """The operator character of a unary/binary prototype."""
        if not self.is_operator:
            return None
        return self.name[-1]

    @property
    def is_anonymous(self) -> bool:
        return self.name == ANONYMOUS_FUNCTION_NAME


@dataclass(frozen=True)
class FunctionDef:
    """A prototype together with its body expression."""
    node_type: ClassVar[ASTNodeType] = ASTNodeType.FUNCTION_DEF
    prototype: Prototype
    body: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.prototype.name


TopLevelForm = Union[FunctionDef, Prototype]


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(value)


def format_node(node) -> str:
    """
    Render a node as a compact S-expression.

    Used for dev-mode tracing and in tests, e.g. `1+2*3` renders as
    `(+ 1 (* 2 3))`.
    """
    if isinstance(node, NumberLiteral):
        return _format_number(node.value)
    if isinstance(node, VariableRef):
        return node.name
    if isinstance(node, UnaryOp):
        return f"({node.operator} {format_node(node.operand)})"
    if isinstance(node, BinaryOp):
        return f"({node.operator} {format_node(node.left)} {format_node(node.right)})"
    if isinstance(node, Call):
        args = "".join(f" {format_node(arg)}" for arg in node.args)
        return f"(call {node.callee}{args})"
    if isinstance(node, If):
        return (f"(if {format_node(node.condition)} {format_node(node.then_branch)} "
                f"{format_node(node.else_branch)})")
    if isinstance(node, For):
        step = format_node(node.step) if node.step is not None else "1"
        return (f"(for {node.var_name} {format_node(node.start)} {format_node(node.end)} "
                f"{step} {format_node(node.body)})")
    if isinstance(node, Let):
        bindings = " ".join(
            f"({name} {format_node(init) if init is not None else '0'})"
            for name, init in node.bindings
        )
        return f"(var ({bindings}) {format_node(node.body)})"
    if isinstance(node, Prototype):
        return f"(proto {node.name} ({' '.join(node.params)}))"
    if isinstance(node, FunctionDef):
        return f"(def {format_node(node.prototype)} {format_node(node.body)})"
    raise TypeError(f"Not an AST node: {node!r}")

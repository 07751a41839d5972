"""
Kaleidoscope Operator-Precedence Parser

Recursive descent for primaries and top-level forms, precedence climbing
for binary operators. Binary precedences come from an OperatorTable that
`binary` prototypes extend while parsing, so a newly defined operator is
usable from the very next token on.

Author: xwest
"""

import logging
from typing import Callable, Dict, List, Optional

from ..lexer.lexer import Lexer
from ..lexer.tokens import Token, TokenType
from .ast_nodes import (
    ANONYMOUS_FUNCTION_NAME, BinaryOp, Call, Expression, For, FunctionDef, If, Let,
    NumberLiteral, Prototype, PrototypeKind, UnaryOp, VariableRef, format_node,
)
from .errors import (
    create_unexpected_token_error, create_unknown_expression_error,
    create_invalid_arity_error, create_invalid_precedence_error,
    create_reserved_operator_error,
)
from .operators import (
    OperatorTable, DEFAULT_BINARY_PRECEDENCE, RESERVED_OPERATOR_CHARS,
)

LOG = logging.getLogger(__name__)


class Parser:
    """
    Kaleidoscope parser.

    Pulls tokens from a lexer one at a time and keeps exactly one token of
    lookahead in `current`. The read loop calls next_token() once to prime
    it, then dispatches to parse_definition(), parse_extern() or
    parse_top_level_expr() depending on `current`.
    """

    def __init__(self, lexer: Lexer, operators: Optional[OperatorTable] = None):
        """
        Initialize the parser.

        Args:
            lexer: Token source
            operators: Operator table to read and extend; a fresh table with
                the built-in operators is used when omitted
        """
        self.lexer = lexer
        self.operators = operators if operators is not None else OperatorTable.with_defaults()
        self.current: Optional[Token] = None

        self.prefix_parsers: Dict[TokenType, Callable[[], Expression]] = {
            TokenType.NUMBER: self._parse_number,
            TokenType.IDENTIFIER: self._parse_identifier_expr,
            TokenType.IF: self._parse_if,
            TokenType.FOR: self._parse_for,
            TokenType.VAR: self._parse_var,
        }

    def next_token(self) -> Token:
        """Advance to the next token and return it."""
        self.current = self.lexer.next_token()
        return self.current

    # ========================================================================
    # Top-level forms
    # ========================================================================

    def parse_definition(self) -> FunctionDef:
        """definition ::= 'def' prototype expression"""
        location = self.current.location
        self.next_token()  # eat def
        prototype = self._parse_prototype()
        body = self.parse_expression()
        function = FunctionDef(prototype, body, location)
        LOG.debug("parsed definition %s", format_node(function))
        return function

    def parse_extern(self) -> Prototype:
        """external ::= 'extern' prototype"""
        self.next_token()  # eat extern
        prototype = self._parse_prototype()
        LOG.debug("parsed extern %s", format_node(prototype))
        return prototype

    def parse_top_level_expr(self) -> FunctionDef:
        """toplevelexpr ::= expression, wrapped in a zero-argument function"""
        location = self.current.location
        body = self.parse_expression()
        prototype = Prototype(ANONYMOUS_FUNCTION_NAME, (), location=location)
        LOG.debug("parsed top-level expression %s", format_node(body))
        return FunctionDef(prototype, body, location)

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expression(self) -> Expression:
        """expression ::= unary binoprhs"""
        left = self._parse_unary()
        return self._parse_binop_rhs(0, left)

    def _parse_binop_rhs(self, floor: int, left: Expression) -> Expression:
        """
        binoprhs ::= (binop unary)*

        Only operators binding at least as tight as `floor` are consumed.
        Equal precedence associates left; a tighter operator to the right
        takes the right operand first.
        """
        while True:
            precedence = self._current_precedence()
            if precedence < floor:
                return left

            operator = self.current
            self.next_token()  # eat binop

            right = self._parse_unary()

            next_precedence = self._current_precedence()
            if precedence < next_precedence:
                right = self._parse_binop_rhs(precedence + 1, right)

            left = BinaryOp(operator.lexeme, left, right, operator.location)

    def _current_precedence(self) -> int:
        return self.operators.precedence(self.current.char)

    def _parse_unary(self) -> Expression:
        """unary ::= primary | op unary"""
        token = self.current
        # A primary, a parenthesised expression or a comma cannot be an operator
        if token.type != TokenType.CHAR or token.lexeme in RESERVED_OPERATOR_CHARS:
            return self._parse_primary()

        self.next_token()  # eat the operator
        operand = self._parse_unary()
        return UnaryOp(token.lexeme, operand, token.location)

    def _parse_primary(self) -> Expression:
        if self.current.is_char("("):
            return self._parse_paren()

        parser = self.prefix_parsers.get(self.current.type)
        if parser is None:
            raise create_unknown_expression_error(self.current)
        return parser()

    def _parse_number(self) -> NumberLiteral:
        """numberexpr ::= number"""
        token = self.current
        self.next_token()
        return NumberLiteral(token.value, token.location)

    def _parse_paren(self) -> Expression:
        """parenexpr ::= '(' expression ')'"""
        self.next_token()  # eat (
        expr = self.parse_expression()
        self._expect_char(")")
        return expr

    def _parse_identifier_expr(self) -> Expression:
        """
        identifierexpr
          ::= identifier
          ::= identifier '(' expression* ')'
        """
        token = self.current
        self.next_token()  # eat identifier

        if not self.current.is_char("("):
            return VariableRef(token.value, token.location)

        self.next_token()  # eat (
        args: List[Expression] = []
        if not self.current.is_char(")"):
            while True:
                args.append(self.parse_expression())
                if self.current.is_char(")"):
                    break
                if not self.current.is_char(","):
                    raise create_unexpected_token_error("')' or ',' in argument list", self.current)
                self.next_token()

        self.next_token()  # eat )
        return Call(token.value, tuple(args), token.location)

    def _parse_if(self) -> If:
        """ifexpr ::= 'if' expression 'then' expression 'else' expression"""
        location = self.current.location
        self.next_token()  # eat if

        condition = self.parse_expression()
        self._expect(TokenType.THEN, "'then'")
        then_branch = self.parse_expression()
        self._expect(TokenType.ELSE, "'else'")
        else_branch = self.parse_expression()

        return If(condition, then_branch, else_branch, location)

    def _parse_for(self) -> For:
        """forexpr ::= 'for' identifier '=' expr ',' expr (',' expr)? 'in' expression"""
        location = self.current.location
        self.next_token()  # eat for

        if self.current.type != TokenType.IDENTIFIER:
            raise create_unexpected_token_error("identifier after 'for'", self.current)
        var_name = self.current.value
        self.next_token()

        self._expect_char("=")
        start = self.parse_expression()
        self._expect_char(",", "',' after for start value")
        end = self.parse_expression()

        step = None
        if self.current.is_char(","):
            self.next_token()
            step = self.parse_expression()

        self._expect(TokenType.IN, "'in'")
        body = self.parse_expression()

        return For(var_name, start, end, step, body, location)

    def _parse_var(self) -> Let:
        """
        varexpr ::= 'var' identifier ('=' expression)?
                          (',' identifier ('=' expression)?)* 'in' expression
        """
        location = self.current.location
        self.next_token()  # eat var

        if self.current.type != TokenType.IDENTIFIER:
            raise create_unexpected_token_error("identifier after 'var'", self.current)

        bindings = []
        while True:
            name = self.current.value
            self.next_token()  # eat identifier

            init = None
            if self.current.is_char("="):
                self.next_token()
                init = self.parse_expression()
            bindings.append((name, init))

            if not self.current.is_char(","):
                break
            self.next_token()  # eat ,
            if self.current.type != TokenType.IDENTIFIER:
                raise create_unexpected_token_error("identifier list after 'var'", self.current)

        self._expect(TokenType.IN, "'in'")
        body = self.parse_expression()
        return Let(tuple(bindings), body, location)

    # ========================================================================
    # Prototypes
    # ========================================================================

    def _parse_prototype(self) -> Prototype:
        """
        prototype
          ::= identifier '(' identifier* ')'
          ::= 'unary' LETTER '(' identifier ')'
          ::= 'binary' LETTER number? '(' identifier identifier ')'
        """
        token = self.current
        precedence = DEFAULT_BINARY_PRECEDENCE

        if token.type == TokenType.IDENTIFIER:
            kind = PrototypeKind.FUNCTION
            name = token.value
            self.next_token()
        elif token.type in (TokenType.UNARY, TokenType.BINARY):
            kind = PrototypeKind.UNARY if token.type == TokenType.UNARY else PrototypeKind.BINARY
            self.next_token()
            operator = self.current
            if operator.type != TokenType.CHAR:
                raise create_unexpected_token_error(f"{kind.value} operator", operator)
            symbol = operator.lexeme
            if (symbol in RESERVED_OPERATOR_CHARS
                    or self.operators.is_builtin(symbol, unary=kind == PrototypeKind.UNARY)):
                raise create_reserved_operator_error(symbol, operator)
            name = f"{kind.value}{symbol}"
            self.next_token()

            if kind == PrototypeKind.BINARY and self.current.type == TokenType.NUMBER:
                if not self.operators.is_valid_precedence(self.current.value):
                    raise create_invalid_precedence_error(self.current.value, self.current)
                precedence = int(self.current.value)
                self.next_token()
        else:
            raise create_unexpected_token_error("function name in prototype", token)

        self._expect_char("(", "'(' in prototype")
        params: List[str] = []
        while self.current.type == TokenType.IDENTIFIER:
            params.append(self.current.value)
            self.next_token()
        self._expect_char(")", "')' in prototype")

        if kind == PrototypeKind.UNARY and len(params) != 1:
            raise create_invalid_arity_error(name, 1, len(params), token.location)
        if kind == PrototypeKind.BINARY and len(params) != 2:
            raise create_invalid_arity_error(name, 2, len(params), token.location)

        if kind == PrototypeKind.BINARY:
            # Usable inside the body that follows
            self.operators.install(name[-1], precedence)
        else:
            precedence = 0

        return Prototype(name, tuple(params), kind, precedence, token.location)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _expect(self, token_type: TokenType, description: str) -> Token:
        token = self.current
        if token.type != token_type:
            raise create_unexpected_token_error(description, token)
        self.next_token()
        return token

    def _expect_char(self, char: str, description: Optional[str] = None) -> Token:
        token = self.current
        if not token.is_char(char):
            raise create_unexpected_token_error(description or f"'{char}'", token)
        self.next_token()
        return token


def parse_expression_string(source: str, operators: Optional[OperatorTable] = None) -> Expression:
    """Parse a single expression from a string."""
    parser = Parser(Lexer(source, "<string>"), operators)
    parser.next_token()
    expr = parser.parse_expression()
    if parser.current.type != TokenType.EOF and not parser.current.is_char(";"):
        raise create_unexpected_token_error("end of expression", parser.current)
    return expr

"""
Kaleidoscope Code Generator

Lowers the AST into llvmlite IR, one function at a time, inside the
compilation unit the session currently has open. Every value is a double.
Mutable locals (parameters, loop variables, `var` bindings) live in
entry-block allocas; the optimizer promotes them to registers later.

Author: xwest
"""

import logging
from typing import Callable, Dict, List, Optional

import llvmlite.ir as ll

from ..backend.llvm_backend import CompilationUnit, DOUBLE
from ..diagnostics import CompilerError
from ..parser.ast_nodes import (
    BinaryOp, Call, For, FunctionDef, If, Let, NumberLiteral, Prototype, UnaryOp,
    VariableRef,
)
from .errors import (
    create_unbound_name_error, create_unknown_callee_error, create_unknown_operator_error,
    create_arity_mismatch_error, create_signature_mismatch_error, create_redefinition_error,
    create_invalid_assignment_error,
)
from .prototypes import PrototypeCache
from .scope import ScopeStack

LOG = logging.getLogger(__name__)

ZERO = ll.Constant(DOUBLE, 0.0)
ONE = ll.Constant(DOUBLE, 1.0)


class CodeGenerator:
    """
    AST to IR lowering.

    Args:
        prototypes: Prototype cache used to re-declare functions that live
            in earlier units
        is_defined: Predicate telling whether a function body was already
            handed to the backend in an earlier unit
    """

    def __init__(self, prototypes: Optional[PrototypeCache] = None,
                 is_defined: Optional[Callable[[str], bool]] = None):
        self.prototypes = prototypes if prototypes is not None else PrototypeCache()
        self.is_defined = is_defined or (lambda name: False)
        self.unit: Optional[CompilationUnit] = None
        self.builder: Optional[ll.IRBuilder] = None
        self.scope = ScopeStack()

        self._generators: Dict[type, Callable] = {
            NumberLiteral: self._generate_number,
            VariableRef: self._generate_variable,
            UnaryOp: self._generate_unary,
            BinaryOp: self._generate_binary,
            Call: self._generate_call,
            If: self._generate_if,
            For: self._generate_for,
            Let: self._generate_let,
        }

    # ========================================================================
    # Entry points
    # ========================================================================

    def generate(self, node) -> ll.Value:
        """Generate the value of an expression at the builder's position."""
        generator = self._generators.get(type(node))
        if generator is None:
            raise TypeError(f"Cannot generate code for {type(node).__name__}")
        return generator(node)

    def generate_prototype(self, prototype: Prototype, unit: CompilationUnit) -> ll.Function:
        """Declare `prototype` in `unit`, reusing an identical declaration."""
        self.unit = unit
        return self._declare(prototype)

    def generate_function(self, function_def: FunctionDef, unit: CompilationUnit) -> ll.Function:
        """
        Generate a complete function into `unit`.

        On failure the function is removed from the unit again, so nothing
        half-built is ever handed to the backend.
        """
        self.unit = unit
        prototype = function_def.prototype

        if self.is_defined(prototype.name):
            raise create_redefinition_error(prototype.name, prototype.location)
        function = self._declare(prototype)
        if not function.is_declaration:
            raise create_redefinition_error(prototype.name, prototype.location)

        LOG.debug("generating function %s", prototype.name)
        try:
            self.builder = ll.IRBuilder(function.append_basic_block("entry"))
            self.scope.reset()
            with self.scope.frame():
                for arg, name in zip(function.args, prototype.params):
                    slot = self._create_entry_alloca(name)
                    self.builder.store(arg, slot)
                    self.scope.bind(name, slot)
                value = self.generate(function_def.body)
            self.builder.ret(value)
            unit.verify()
        except CompilerError:
            LOG.debug("discarding function %s", prototype.name)
            unit.discard_function(prototype.name)
            raise
        finally:
            self.builder = None

        unit.mark_finished(prototype.name)
        LOG.debug("generated IR:\n%s", function)
        return function

    # ========================================================================
    # Functions and calls
    # ========================================================================

    def _declare(self, prototype: Prototype) -> ll.Function:
        existing = self.unit.get_function(prototype.name)
        if existing is not None:
            if len(existing.args) != prototype.arity:
                raise create_signature_mismatch_error(
                    prototype.name, len(existing.args), prototype.arity, prototype.location
                )
            return existing

        function_type = ll.FunctionType(DOUBLE, [DOUBLE] * prototype.arity)
        function = ll.Function(self.unit.module, function_type, name=prototype.name)
        for arg, name in zip(function.args, prototype.params):
            arg.name = name
        LOG.debug("declared %s(%s) in %s", prototype.name, ", ".join(prototype.params), self.unit.name)
        return function

    def _get_function(self, name: str) -> Optional[ll.Function]:
        """Find `name` in the open unit, else declare it from the prototype cache."""
        function = self.unit.get_function(name)
        if function is not None:
            return function

        prototype = self.prototypes.get(name)
        if prototype is not None:
            return self._declare(prototype)
        return None

    def _emit_call(self, function: ll.Function, args: List[ll.Value], location, name: str) -> ll.Value:
        if len(function.args) != len(args):
            raise create_arity_mismatch_error(function.name, len(function.args), len(args), location)
        return self.builder.call(function, args, name)

    def _create_entry_alloca(self, name: str) -> ll.Value:
        """Create a stack slot in the current function's entry block."""
        # goto_entry_block puts the builder back at the end of its current block
        with self.builder.goto_entry_block():
            return self.builder.alloca(DOUBLE, name=name)

    # ========================================================================
    # Expressions
    # ========================================================================

    def _generate_number(self, node: NumberLiteral) -> ll.Value:
        return ll.Constant(DOUBLE, node.value)

    def _generate_variable(self, node: VariableRef) -> ll.Value:
        slot = self.scope.lookup(node.name)
        if slot is None:
            raise create_unbound_name_error(node.name, node.location)
        return self.builder.load(slot, name=node.name, typ=DOUBLE)

    def _generate_unary(self, node: UnaryOp) -> ll.Value:
        operand = self.generate(node.operand)
        if node.operator == "-":
            return self.builder.fneg(operand, "negtmp")

        name = f"unary{node.operator}"
        function = self._get_function(name)
        if function is None:
            raise create_unknown_operator_error(name, node.location)
        return self._emit_call(function, [operand], node.location, "unop")

    def _generate_binary(self, node: BinaryOp) -> ll.Value:
        if node.operator == "=":
            return self._generate_assignment(node)

        left = self.generate(node.left)
        right = self.generate(node.right)

        if node.operator == "+":
            return self.builder.fadd(left, right, "addtmp")
        if node.operator == "-":
            return self.builder.fsub(left, right, "subtmp")
        if node.operator == "*":
            return self.builder.fmul(left, right, "multmp")
        if node.operator == "<":
            comparison = self.builder.fcmp_unordered("<", left, right, "cmptmp")
            # Convert bool 0/1 to double 0.0 or 1.0
            return self.builder.uitofp(comparison, DOUBLE, "booltmp")

        name = f"binary{node.operator}"
        function = self._get_function(name)
        if function is None:
            raise create_unknown_operator_error(name, node.location)
        return self._emit_call(function, [left, right], node.location, "binop")

    def _generate_assignment(self, node: BinaryOp) -> ll.Value:
        if not isinstance(node.left, VariableRef):
            raise create_invalid_assignment_error(node.location)

        value = self.generate(node.right)
        slot = self.scope.lookup(node.left.name)
        if slot is None:
            raise create_unbound_name_error(node.left.name, node.left.location)
        self.builder.store(value, slot)
        return value

    def _generate_call(self, node: Call) -> ll.Value:
        function = self._get_function(node.callee)
        if function is None:
            raise create_unknown_callee_error(node.callee, node.location)
        if len(function.args) != len(node.args):
            raise create_arity_mismatch_error(node.callee, len(function.args), len(node.args), node.location)

        args = [self.generate(arg) for arg in node.args]
        return self._emit_call(function, args, node.location, "calltmp")

    def _generate_if(self, node: If) -> ll.Value:
        condition = self.generate(node.condition)
        condition = self.builder.fcmp_ordered("!=", condition, ZERO, "ifcond")

        function = self.builder.function
        then_block = function.append_basic_block("then")
        else_block = function.append_basic_block("else")
        merge_block = function.append_basic_block("ifcont")
        self.builder.cbranch(condition, then_block, else_block)

        self.builder.position_at_end(then_block)
        then_value = self.generate(node.then_branch)
        self.builder.branch(merge_block)
        # Nested control flow may have moved the builder to another block
        then_block = self.builder.block

        self.builder.position_at_end(else_block)
        else_value = self.generate(node.else_branch)
        self.builder.branch(merge_block)
        else_block = self.builder.block

        self.builder.position_at_end(merge_block)
        phi = self.builder.phi(DOUBLE, "iftmp")
        phi.add_incoming(then_value, then_block)
        phi.add_incoming(else_value, else_block)
        return phi

    def _generate_for(self, node: For) -> ll.Value:
        """
        Lower a for loop:

            entry:     slot = start
            loop:      body; slot += step; br (end != 0.0), loop, afterloop
            afterloop: ...
        """
        start = self.generate(node.start)
        slot = self._create_entry_alloca(node.var_name)
        self.builder.store(start, slot)

        function = self.builder.function
        loop_block = function.append_basic_block("loop")
        self.builder.branch(loop_block)
        self.builder.position_at_end(loop_block)

        with self.scope.frame():
            self.scope.bind(node.var_name, slot)

            # The body's value is ignored
            self.generate(node.body)

            step = self.generate(node.step) if node.step is not None else ONE
            current = self.builder.load(slot, name=node.var_name, typ=DOUBLE)
            self.builder.store(self.builder.fadd(current, step, "nextvar"), slot)

            end = self.generate(node.end)
            end_condition = self.builder.fcmp_ordered("!=", end, ZERO, "loopcond")

            after_block = function.append_basic_block("afterloop")
            self.builder.cbranch(end_condition, loop_block, after_block)
            self.builder.position_at_end(after_block)

        return ZERO

    def _generate_let(self, node: Let) -> ll.Value:
        with self.scope.frame():
            for name, init in node.bindings:
                # Evaluated before `name` is bound, so `var a = a in ...` sees the outer a
                value = self.generate(init) if init is not None else ZERO
                slot = self._create_entry_alloca(name)
                self.builder.store(value, slot)
                self.scope.bind(name, slot)

            return self.generate(node.body)

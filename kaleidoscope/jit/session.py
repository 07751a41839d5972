"""
Incremental compilation session.

A Session turns each top-level form into native code as soon as it is
read. Definitions land in their own unit which is linked into the JIT;
bare expressions are compiled into a throwaway unit, run, and evicted.
All state (operator table, prototype cache, unit sequence) belongs to
the session, so independent sessions never interfere.

Author: xwest
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from ..backend.llvm_backend import CompilationUnit, LLVMBackend
from ..codegen.generator import CodeGenerator
from ..codegen.prototypes import PrototypeCache
from ..config import CompilerConfig
from ..diagnostics import CompilerError
from ..parser.ast_nodes import ANONYMOUS_FUNCTION_NAME, FunctionDef, Prototype
from ..parser.operators import OperatorTable

LOG = logging.getLogger(__name__)


class FormKind(Enum):
    """The three kinds of top-level form."""
    DEFINITION = "definition"
    EXTERN = "extern"
    EXPRESSION = "expression"


@dataclass
class SubmitResult:
    """Outcome of submitting one top-level form."""
    kind: FormKind
    name: Optional[str] = None
    value: Optional[float] = None
    error: Optional[CompilerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.error is not None:
            return f"{self.kind.value} failed: {self.error.message}"
        if self.kind == FormKind.EXPRESSION:
            return f"Evaluated to {self.value:f}"
        return f"{self.kind.value} {self.name}"


def classify(form: Union[FunctionDef, Prototype]) -> FormKind:
    if isinstance(form, Prototype):
        return FormKind.EXTERN
    if form.prototype.is_anonymous:
        return FormKind.EXPRESSION
    return FormKind.DEFINITION


class Session:
    """
    Owns everything one compilation session needs.

    Example:
        session = Session()
        session.run("def double(x) x*2; double(21);")[-1].value  # 42.0
    """

    def __init__(self, backend: Optional[LLVMBackend] = None, config: Optional[CompilerConfig] = None):
        self.config = config if config is not None else CompilerConfig()
        self.backend = backend if backend is not None else LLVMBackend(self.config.optimization_level)
        self.operators = OperatorTable.with_defaults()
        self.prototypes = PrototypeCache()
        self.generator = CodeGenerator(self.prototypes, self.backend.is_defined)

        self._unit_counter = 0
        self.unit = self._open_unit()

    def _open_unit(self) -> CompilationUnit:
        name = f"unit{self._unit_counter}"
        self._unit_counter += 1
        LOG.debug("opening %s", name)
        return self.backend.new_unit(name)

    def _rotate_unit(self) -> CompilationUnit:
        """Close the current unit and open a fresh one; returns the closed unit."""
        finished = self.unit
        self.unit = self._open_unit()
        return finished

    # ========================================================================
    # Top-level forms
    # ========================================================================

    def submit(self, form: Union[FunctionDef, Prototype]) -> SubmitResult:
        """
        Compile one top-level form.

        Failures are reported through the returned SubmitResult; the session
        stays usable either way.
        """
        kind = classify(form)
        result = SubmitResult(kind, name=form.name)
        try:
            if kind == FormKind.EXTERN:
                self.handle_extern(form)
            elif kind == FormKind.DEFINITION:
                self.handle_definition(form)
            else:
                result.value = self.handle_expression(form)
        except CompilerError as exc:
            LOG.debug("%s %s failed: %s", kind.value, form.name, exc.message)
            result.error = exc
        return result

    def handle_definition(self, function_def: FunctionDef):
        prototype = function_def.prototype
        previous = self.prototypes.register(prototype)
        try:
            self.generator.generate_function(function_def, self.unit)
            self.backend.add_unit(self._rotate_unit())
        except CompilerError:
            self.prototypes.restore(prototype.name, previous)
            raise

    def handle_extern(self, prototype: Prototype):
        previous = self.prototypes.register(prototype)
        try:
            function = self.generator.generate_prototype(prototype, self.unit)
        except CompilerError:
            self.prototypes.restore(prototype.name, previous)
            raise
        LOG.debug("read extern:\n%s", function)

    def handle_expression(self, function_def: FunctionDef) -> float:
        """Compile, run and evict a top-level expression, returning its value."""
        self.generator.generate_function(function_def, self.unit)
        handle = self.backend.add_unit(self._rotate_unit(), removable=True)
        try:
            address = self.backend.lookup(ANONYMOUS_FUNCTION_NAME)
            return self.backend.call_double(address)
        finally:
            self.backend.remove(handle)

    # ========================================================================
    # Convenience
    # ========================================================================

    def run(self, source: str, filename: str = "<string>") -> List[SubmitResult]:
        """Read and submit every form in `source`, without prompts or output."""
        from .driver import Driver
        from ..lexer.lexer import Lexer

        driver = Driver(self, Lexer(source, filename), show_prompt=False, quiet=True)
        driver.run()
        return driver.results

    def evaluate(self, source: str) -> Optional[float]:
        """
        Run `source` and return the value of its last expression.

        Raises the first CompilerError encountered, if any.
        """
        value = None
        for result in self.run(source):
            if result.error is not None:
                raise result.error
            if result.kind == FormKind.EXPRESSION:
                value = result.value
        return value

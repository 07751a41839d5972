"""
LLVM Backend for Kaleidoscope.

Wraps llvmlite for everything below the code generator:
- compilation units (llvmlite.ir modules) the generator writes into
- verification and the per-function optimization pipeline
- an MCJIT execution engine that links units incrementally, resolves
  symbols to addresses and evicts units again

Author: xwest
"""

import ctypes
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import llvmlite.binding as llvm
import llvmlite.ir as ll
from llvmlite.ir.instructions import CallInstr

from ..diagnostics import CompilerError, ErrorKind
from .runtime import HostRuntime

LOG = logging.getLogger(__name__)

DOUBLE = ll.DoubleType()

_native_initialized = False


def initialize_native_target():
    """Initialize LLVM's native target and asm printer once per process."""
    global _native_initialized
    if _native_initialized:
        return
    llvm.initialize_native_target()
    llvm.initialize_native_asmprinter()
    _native_initialized = True


class BackendError(CompilerError):
    """Exception raised when a unit cannot be verified, linked or executed."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNRESOLVED_SYMBOL,
                 code: str = "B001", help_text: Optional[str] = None):
        super().__init__(message, kind, code=code, help_text=help_text)


BACKEND_ERROR_CODES = {
    "B001": "Unresolved symbol",
    "B002": "Module failed verification",
}


class CompilationUnit:
    """
    A named IR module that receives generated functions.

    A unit holds at most one function body at a time; everything else in it
    is a declaration. The session hands the unit to the backend as soon as
    that body is finished.
    """

    def __init__(self, name: str, triple: str = "", data_layout: str = ""):
        self.name = name
        self.triple = triple
        self.data_layout = data_layout
        self.module = self._new_module()
        self.finished: List[str] = []

    def _new_module(self) -> ll.Module:
        module = ll.Module(name=self.name)
        if self.triple:
            module.triple = self.triple
        if self.data_layout:
            module.data_layout = self.data_layout
        return module

    @property
    def functions(self) -> List[ll.Function]:
        return [value for value in self.module.global_values if isinstance(value, ll.Function)]

    def get_function(self, name: str) -> Optional[ll.Function]:
        value = self.module.globals.get(name)
        if isinstance(value, ll.Function):
            return value
        return None

    def defined_names(self) -> Set[str]:
        return {function.name for function in self.functions if not function.is_declaration}

    def external_references(self) -> Set[str]:
        """Names of declared-only functions that a body in this unit calls."""
        references = set()
        for function in self.functions:
            for block in function.blocks:
                for instruction in block.instructions:
                    if isinstance(instruction, CallInstr) and isinstance(instruction.callee, ll.Function):
                        if instruction.callee.is_declaration:
                            references.add(instruction.callee.name)
        return references

    def mark_finished(self, name: str):
        """Record that `name` is complete and ready for optimization."""
        if name not in self.finished:
            self.finished.append(name)

    def discard_function(self, name: str):
        """
        Remove `name` from the unit entirely.

        llvmlite modules cannot drop a global, so the module is rebuilt with
        every other (declaration-only) function re-declared.
        """
        old_module = self.module
        self.module = self._new_module()
        for function in [value for value in old_module.global_values if isinstance(value, ll.Function)]:
            if function.name == name:
                continue
            if not function.is_declaration:
                raise ValueError(f"Cannot discard '{name}': unit {self.name} also defines '{function.name}'")
            clone = ll.Function(self.module, function.ftype, name=function.name)
            for arg, original in zip(clone.args, function.args):
                arg.name = original.name
        self.finished = [finished for finished in self.finished if finished != name]

    def verify(self) -> llvm.ModuleRef:
        """Parse and verify the unit, returning the binding-level module."""
        try:
            module = llvm.parse_assembly(str(self.module))
            module.verify()
        except RuntimeError as exc:
            raise BackendError(
                f"Unit {self.name} failed verification",
                kind=ErrorKind.VERIFICATION_FAILED,
                code="B002",
                help_text=str(exc).strip() or None
            ) from exc
        module.name = self.name
        return module

    def __str__(self) -> str:
        return str(self.module)


@dataclass(eq=False)
class UnitHandle:
    """A unit that has been handed to the backend."""
    name: str
    module: llvm.ModuleRef
    defines: Set[str] = field(default_factory=set)
    references: Set[str] = field(default_factory=set)
    removable: bool = False
    linked: bool = False


class LLVMBackend:
    """
    LLVM backend for Kaleidoscope.

    Units are verified and optimized on arrival, then linked into a single
    MCJIT engine. A unit that calls a function nobody has defined yet stays
    pending, and is linked once its dependencies are available, so forward
    declarations with `extern` work as expected.
    """

    def __init__(self, optimization_level: int = 2, runtime: Optional[HostRuntime] = None):
        """
        Initialize the LLVM backend.

        Args:
            optimization_level: 0 disables the function pipeline, 1-3 select
                the pipeline's speed level
            runtime: Host functions exposed to JIT code; a default one
                writing to stderr is installed when omitted
        """
        initialize_native_target()

        self.optimization_level = max(0, min(3, optimization_level))
        target = llvm.Target.from_default_triple()
        self.target_machine = target.create_target_machine(opt=self.optimization_level)
        self.triple = self.target_machine.triple
        self.data_layout = str(self.target_machine.target_data)

        self.engine = llvm.create_mcjit_compiler(llvm.parse_assembly(""), self.target_machine)

        self.pass_builder = None
        if self.optimization_level > 0:
            tuning = llvm.create_pipeline_tuning_options(speed_level=self.optimization_level)
            self.pass_builder = llvm.create_pass_builder(self.target_machine, tuning)

        self.runtime = runtime if runtime is not None else HostRuntime()
        self.runtime.install()

        self._pending: List[UnitHandle] = []
        self._linked: Dict[str, UnitHandle] = {}

    # ========================================================================
    # Units
    # ========================================================================

    def new_unit(self, name: str) -> CompilationUnit:
        return CompilationUnit(name, self.triple, self.data_layout)

    def add_unit(self, unit: CompilationUnit, removable: bool = False) -> UnitHandle:
        """
        Hand a finished unit to the JIT.

        Args:
            unit: Unit to verify, optimize and link
            removable: Whether the caller will remove() the unit again

        Returns:
            Handle identifying the unit for remove()
        """
        module = unit.verify()
        self.optimize(module, unit.finished)

        defines = unit.defined_names()
        handle = UnitHandle(
            name=unit.name,
            module=module,
            defines=defines,
            references=unit.external_references() - defines,
            removable=removable,
        )
        LOG.debug("adding unit %s defining %s", unit.name, sorted(defines))
        self._pending.append(handle)
        self._link_pending()
        return handle

    def optimize(self, module: llvm.ModuleRef, function_names: List[str]):
        """Run the function pipeline over each named function of `module`."""
        if self.pass_builder is None:
            return

        pass_manager = self.pass_builder.getFunctionPassManager()
        for name in function_names:
            pass_manager.run(module.get_function(name), self.pass_builder)
            LOG.debug("optimized %s:\n%s", name, module.get_function(name))

    def remove(self, handle: UnitHandle):
        """Evict a unit and the symbols it defined."""
        if handle.linked:
            self.engine.remove_module(handle.module)
            handle.linked = False
            for name in handle.defines:
                if self._linked.get(name) is handle:
                    del self._linked[name]
        elif handle in self._pending:
            self._pending.remove(handle)
        LOG.debug("removed unit %s", handle.name)

    def is_defined(self, name: str) -> bool:
        """Whether a unit handed over earlier defines `name`."""
        if name in self._linked:
            return True
        return any(name in handle.defines for handle in self._pending)

    # ========================================================================
    # Linking
    # ========================================================================

    def _resolvable(self, name: str, provided: Set[str]) -> bool:
        return name in provided or llvm.address_of_symbol(name) is not None

    def _link_pending(self):
        """Link every pending unit whose references can all be resolved."""
        ready = list(self._pending)
        changed = True
        while changed:
            changed = False
            provided = set(self._linked)
            for handle in ready:
                provided |= handle.defines
            for handle in list(ready):
                if not all(self._resolvable(name, provided) for name in handle.references):
                    ready.remove(handle)
                    changed = True

        if not ready:
            return

        for handle in ready:
            self._pending.remove(handle)
            self.engine.add_module(handle.module)
            handle.linked = True
            for name in handle.defines:
                self._linked[name] = handle
        self.engine.finalize_object()

    def _missing_symbols(self, handle: UnitHandle) -> List[str]:
        return sorted(
            name for name in handle.references
            if name not in self._linked and llvm.address_of_symbol(name) is None
        )

    def lookup(self, name: str) -> int:
        """
        Resolve `name` to the address of its compiled code.

        Raises:
            BackendError: The symbol is unknown, or its unit still depends on
                functions that were declared but never defined
        """
        self._link_pending()

        handle = self._linked.get(name)
        if handle is None:
            for pending in self._pending:
                if name in pending.defines:
                    missing = self._missing_symbols(pending)
                    raise BackendError(
                        f"Unresolved external symbol(s) {', '.join(repr(m) for m in missing)} needed by '{name}'",
                        help_text="Define the missing functions before calling this code."
                    )
            raise BackendError(f"Symbol '{name}' not found")

        address = self.engine.get_function_address(name)
        if not address:
            raise BackendError(f"Symbol '{name}' has no address")
        return address

    @staticmethod
    def call_double(address: int) -> float:
        """Call a `double ()` function at `address`."""
        function = ctypes.CFUNCTYPE(ctypes.c_double)(address)
        return function()

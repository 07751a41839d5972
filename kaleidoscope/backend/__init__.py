"""
Backend Package

llvmlite-based IR backend: compilation units, optimization and MCJIT linking.
"""

from .llvm_backend import LLVMBackend, CompilationUnit, UnitHandle, BackendError
from .runtime import HostRuntime

__all__ = [
    "LLVMBackend",
    "CompilationUnit",
    "UnitHandle",
    "BackendError",
    "HostRuntime",
]

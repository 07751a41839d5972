"""
Kaleidoscope Compiler Package

A small expression language with user-defined operators, compiled
incrementally to native code through llvmlite.

Architecture:
    kaleidoscope/
    ├── lexer/           # Streaming tokenizer
    ├── parser/          # Operator-precedence parser and AST
    ├── codegen/         # AST to LLVM IR lowering
    ├── backend/         # llvmlite units, optimization and MCJIT linking
    └── jit/             # Incremental session and read loop

Author: xwest
License: MIT
"""

__version__ = "0.1.0"
__author__ = "xwest"
__license__ = "MIT"

from .lexer import Lexer
from .parser import Parser, OperatorTable
from .codegen import CodeGenerator
from .jit import Session, Driver
from .config import CompilerConfig
from .diagnostics import CompilerError, Diagnostic, ErrorKind

__all__ = [
    # Core classes
    "Lexer",
    "Parser",
    "OperatorTable",
    "CodeGenerator",
    "Session",
    "Driver",
    "CompilerConfig",

    # Diagnostics
    "CompilerError",
    "Diagnostic",
    "ErrorKind",

    # Version info
    "__version__",
]

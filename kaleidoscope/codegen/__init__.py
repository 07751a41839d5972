"""
Kaleidoscope Code Generation Package

Lowers parsed functions into llvmlite IR inside a compilation unit.

Author: xwest
"""

from .generator import CodeGenerator
from .prototypes import PrototypeCache
from .scope import ScopeStack
from .errors import CodegenError

__all__ = [
    "CodeGenerator",
    "PrototypeCache",
    "ScopeStack",
    "CodegenError",
]

"""
JIT Package

Incremental compilation session and the top-level read loop that feeds it.
"""

from .session import Session, SubmitResult, FormKind
from .driver import Driver

__all__ = [
    "Session",
    "SubmitResult",
    "FormKind",
    "Driver",
]

"""
Host functions callable from JIT-compiled Kaleidoscope code.

`extern putchard(c)` and `extern printd(x)` resolve to the callbacks here.
The C math library is loaded as well, so `extern sin(x)` and friends work.

Author: xwest
"""

import ctypes
import ctypes.util
import logging
import math
import sys
from typing import Dict, Optional, TextIO

import llvmlite.binding as llvm

LOG = logging.getLogger(__name__)

DOUBLE_FUNCTION = ctypes.CFUNCTYPE(ctypes.c_double, ctypes.c_double)

_libm_loaded = False


def load_math_library():
    """Make libm's symbols visible to the JIT."""
    global _libm_loaded
    if _libm_loaded:
        return
    libm = ctypes.util.find_library("m")
    if libm:
        try:
            llvm.load_library_permanently(libm)
        except RuntimeError as exc:
            LOG.warning("could not load math library %s: %s", libm, exc)
    _libm_loaded = True


class HostRuntime:
    """putchard/printd callbacks writing to `stream` (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        # Callbacks must stay referenced for as long as JIT code can call them
        self._callbacks: Dict[str, DOUBLE_FUNCTION] = {
            "putchard": DOUBLE_FUNCTION(self.putchard),
            "printd": DOUBLE_FUNCTION(self.printd),
        }

    def _output(self) -> TextIO:
        return self.stream if self.stream is not None else sys.stderr

    def putchard(self, value: float) -> float:
        """Write the character with code `value`; returns 0."""
        if math.isfinite(value):
            self._output().write(chr(int(value) % 256))
        return 0.0

    def printd(self, value: float) -> float:
        """Write `value` formatted like printf("%f\\n"); returns 0."""
        self._output().write(f"{value:f}\n")
        return 0.0

    def install(self):
        """Register the callbacks (and libm) with the JIT symbol table."""
        for name, callback in self._callbacks.items():
            llvm.add_symbol(name, ctypes.cast(callback, ctypes.c_void_p).value)
        load_math_library()

    @property
    def symbols(self):
        return sorted(self._callbacks)

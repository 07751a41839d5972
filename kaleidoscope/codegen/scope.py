"""
Lexical scope tracking for code generation.

Names map to storage slots (allocas). Entering a `for` or `var` pushes a
record of whatever the name was bound to before; leaving the construct
pops the records in reverse, so the outer binding comes back even when
generation of the body fails.

Author: xwest
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

# Marks a name that had no binding before it was shadowed
_ABSENT = object()


class ScopeStack:
    """Name -> slot map with shadow/restore records."""

    def __init__(self):
        self._bindings: Dict[str, Any] = {}
        self._records: List[Tuple[str, Any]] = []

    def lookup(self, name: str) -> Optional[Any]:
        return self._bindings.get(name)

    def bind(self, name: str, slot: Any):
        """Bind `name` to `slot`, remembering the binding it shadows."""
        self._records.append((name, self._bindings.get(name, _ABSENT)))
        self._bindings[name] = slot

    @contextmanager
    def frame(self) -> Iterator["ScopeStack"]:
        """Undo every bind() made inside the block on exit."""
        mark = len(self._records)
        try:
            yield self
        finally:
            self._unwind(mark)

    def _unwind(self, mark: int):
        while len(self._records) > mark:
            name, previous = self._records.pop()
            if previous is _ABSENT:
                del self._bindings[name]
            else:
                self._bindings[name] = previous

    def reset(self):
        """Forget every binding, as at the start of a function body."""
        self._bindings.clear()
        self._records.clear()

    @property
    def depth(self) -> int:
        return len(self._records)

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

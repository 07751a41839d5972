"""
Session-wide cache of function prototypes.

Every unit starts empty, so a call to a function that lives in an earlier
unit is resolved by re-declaring it from the prototype recorded here.

Author: xwest
"""

from typing import Dict, Iterator, Optional

from ..parser.ast_nodes import Prototype
from .errors import create_signature_mismatch_error


class PrototypeCache:
    """Most recent prototype for each function name."""

    def __init__(self):
        self._prototypes: Dict[str, Prototype] = {}

    def get(self, name: str) -> Optional[Prototype]:
        return self._prototypes.get(name)

    def register(self, prototype: Prototype) -> Optional[Prototype]:
        """
        Record `prototype`, replacing any earlier one of the same name.

        Raises a SignatureMismatch CodegenError when the earlier prototype
        has a different number of parameters. Returns the replaced entry so
        the caller can restore() it if the form fails later on.
        """
        previous = self._prototypes.get(prototype.name)
        if previous is not None and previous.arity != prototype.arity:
            raise create_signature_mismatch_error(
                prototype.name, previous.arity, prototype.arity, prototype.location
            )
        self._prototypes[prototype.name] = prototype
        return previous

    def restore(self, name: str, previous: Optional[Prototype]):
        if previous is None:
            self._prototypes.pop(name, None)
        else:
            self._prototypes[name] = previous

    def __contains__(self, name: str) -> bool:
        return name in self._prototypes

    def __iter__(self) -> Iterator[Prototype]:
        return iter(self._prototypes.values())

    def __len__(self) -> int:
        return len(self._prototypes)

"""
Tests for code generation scoping and the prototype cache.

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleidoscope.codegen.errors import CodegenError
from kaleidoscope.codegen.prototypes import PrototypeCache
from kaleidoscope.codegen.scope import ScopeStack
from kaleidoscope.diagnostics import ErrorKind
from kaleidoscope.parser.ast_nodes import Prototype


class TestScopeStack(unittest.TestCase):

    def setUp(self):
        self.scope = ScopeStack()

    def test_bind_and_lookup(self):
        self.scope.bind("x", "slot-x")
        self.assertEqual(self.scope.lookup("x"), "slot-x")
        self.assertIsNone(self.scope.lookup("y"))
        self.assertIn("x", self.scope)

    def test_frame_restores_shadowed_binding(self):
        self.scope.bind("x", "outer")
        with self.scope.frame():
            self.scope.bind("x", "inner")
            self.scope.bind("y", "local")
            self.assertEqual(self.scope.lookup("x"), "inner")
        self.assertEqual(self.scope.lookup("x"), "outer")
        self.assertNotIn("y", self.scope)

    def test_frame_restores_on_error(self):
        self.scope.bind("x", "outer")
        with self.assertRaises(RuntimeError):
            with self.scope.frame():
                self.scope.bind("x", "inner")
                raise RuntimeError("body failed")
        self.assertEqual(self.scope.lookup("x"), "outer")
        self.assertEqual(self.scope.depth, 1)

    def test_nested_frames(self):
        with self.scope.frame():
            self.scope.bind("i", 1)
            with self.scope.frame():
                self.scope.bind("i", 2)
                self.assertEqual(self.scope.lookup("i"), 2)
            self.assertEqual(self.scope.lookup("i"), 1)
        self.assertNotIn("i", self.scope)

    def test_reset(self):
        self.scope.bind("x", 1)
        self.scope.reset()
        self.assertNotIn("x", self.scope)
        self.assertEqual(self.scope.depth, 0)


class TestPrototypeCache(unittest.TestCase):

    def setUp(self):
        self.cache = PrototypeCache()

    def test_register_and_get(self):
        self.assertIsNone(self.cache.register(Prototype("f", ("x",))))
        self.assertEqual(self.cache.get("f").params, ("x",))
        self.assertIn("f", self.cache)
        self.assertEqual(len(self.cache), 1)

    def test_register_returns_previous(self):
        first = Prototype("f", ("x",))
        self.cache.register(first)
        previous = self.cache.register(Prototype("f", ("y",)))
        self.assertEqual(previous, first)
        self.assertEqual(self.cache.get("f").params, ("y",))

    def test_arity_change_rejected(self):
        self.cache.register(Prototype("f", ("x",)))
        with self.assertRaises(CodegenError) as ctx:
            self.cache.register(Prototype("f", ("x", "y")))
        self.assertEqual(ctx.exception.kind, ErrorKind.SIGNATURE_MISMATCH)
        self.assertEqual(self.cache.get("f").arity, 1)

    def test_restore(self):
        first = Prototype("f", ("x",))
        self.cache.register(first)
        previous = self.cache.register(Prototype("f", ("y",)))
        self.cache.restore("f", previous)
        self.assertEqual(self.cache.get("f"), first)

        self.cache.restore("g", None)
        self.assertNotIn("g", self.cache)
        self.cache.restore("f", None)
        self.assertNotIn("f", self.cache)


if __name__ == '__main__':
    unittest.main()

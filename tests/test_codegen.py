"""
Test suite for IR generation.

Generates functions into a bare CompilationUnit and inspects the IR text;
nothing here is executed.

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleidoscope.backend.llvm_backend import CompilationUnit
from kaleidoscope.codegen.errors import CodegenError
from kaleidoscope.codegen.generator import CodeGenerator
from kaleidoscope.codegen.prototypes import PrototypeCache
from kaleidoscope.diagnostics import ErrorKind
from kaleidoscope.lexer.lexer import Lexer
from kaleidoscope.lexer.tokens import TokenType
from kaleidoscope.parser.ast_nodes import Prototype
from kaleidoscope.parser.parser import Parser


class TestCodeGenerator(unittest.TestCase):
    """Test cases for the code generator."""

    def setUp(self):
        self.prototypes = PrototypeCache()
        self.generator = CodeGenerator(self.prototypes)
        self.unit = CompilationUnit("test")

    def _compile(self, source: str) -> str:
        """Generate every definition and extern in `source`, returning the IR."""
        parser = Parser(Lexer(source, "<test>"))
        parser.next_token()
        while parser.current.type != TokenType.EOF:
            if parser.current.is_char(";"):
                parser.next_token()
            elif parser.current.type == TokenType.EXTERN:
                self.generator.generate_prototype(parser.parse_extern(), self.unit)
            else:
                self.generator.generate_function(parser.parse_definition(), self.unit)
        return str(self.unit)

    def _compile_error(self, source: str) -> CodegenError:
        with self.assertRaises(CodegenError) as ctx:
            self._compile(source)
        return ctx.exception

    def test_arithmetic(self):
        ir = self._compile("def f(a b) a * b + a - b")
        self.assertIn("fmul", ir)
        self.assertIn("fadd", ir)
        self.assertIn("fsub", ir)
        self.assertIn("ret double", ir)

    def test_comparison_yields_double(self):
        ir = self._compile("def lt(a b) a < b")
        self.assertIn("fcmp ult", ir)
        self.assertIn("uitofp", ir)

    def test_negation(self):
        ir = self._compile("def neg(x) -x")
        self.assertIn("fneg", ir)

    def test_if_merges_with_phi(self):
        ir = self._compile("def choose(x) if x then 1 else 2")
        self.assertIn("fcmp one", ir)
        self.assertIn("phi double", ir)

    def test_for_loop_blocks(self):
        ir = self._compile("def count(n) for i = 0, i < n in i")
        self.assertIn("loop:", ir)
        self.assertIn("afterloop:", ir)

    def test_locals_use_entry_allocas(self):
        self._compile("def f(x) var a = x, b in for i = 1, i < 3 in a + b")
        entry = self.unit.get_function("f").blocks[0]
        allocas = [inst for inst in entry.instructions if inst.opname == "alloca"]
        self.assertEqual(len(allocas), 4)  # x, a, b, i

    def test_function_is_verified_and_finished(self):
        self._compile("def id(x) x")
        self.unit.verify()
        self.assertEqual(self.unit.finished, ["id"])
        self.assertEqual(self.unit.defined_names(), {"id"})

    def test_locals_verify(self):
        """Parameter, var and for slots produce a unit that parses and verifies."""
        self._compile("def f(x) var a = x in (for i = 1, i < a in a = a + i) + a")
        self._compile("def g(x y) if x < y then (var t = y in t) else x")
        self.unit.verify()
        self.assertEqual(self.unit.finished, ["f", "g"])

    def test_slots_precede_their_stores(self):
        self._compile("def f(x y) var a = x in a * y")
        entry = self.unit.get_function("f").blocks[0]
        seen = set()
        for inst in entry.instructions:
            if inst.opname == "alloca":
                seen.add(id(inst))
            elif inst.opname == "store":
                self.assertIn(id(inst.operands[1]), seen)
        self.assertEqual(entry.instructions[-1].opname, "ret")

    def test_call_declares_cached_prototype(self):
        self.prototypes.register(Prototype("ext", ("x",)))
        self._compile("def f(x) ext(x) + 1")
        self.assertTrue(self.unit.get_function("ext").is_declaration)
        self.assertEqual(self.unit.external_references(), {"ext"})

    def test_user_operator_call(self):
        self.prototypes.register(Prototype("binary|", ("a", "b")))
        ir = self._compile("def binary| 5 (a b) a; def g(x) x | 1")
        self.assertIn('call double @"binary|"', ir)

    def test_unbound_name(self):
        error = self._compile_error("def f(x) y")
        self.assertEqual(error.kind, ErrorKind.UNBOUND_NAME)
        self.assertEqual(error.diagnostic.code, "C001")

    def test_failed_function_is_discarded(self):
        with self.assertRaises(CodegenError):
            self._compile("extern sin(x); def f(x) sin(y)")
        self.assertIsNone(self.unit.get_function("f"))
        self.assertTrue(self.unit.get_function("sin").is_declaration)
        self.assertEqual(self.unit.finished, [])

    def test_loop_variable_out_of_scope_after_loop(self):
        error = self._compile_error("def f(x) (for i = 1, i < x in 0) + i")
        self.assertEqual(error.kind, ErrorKind.UNBOUND_NAME)

    def test_unknown_callee(self):
        error = self._compile_error("def f(x) g(x)")
        self.assertEqual(error.kind, ErrorKind.UNKNOWN_CALLEE)

    def test_unknown_operator(self):
        error = self._compile_error("def f(x) !x")
        self.assertEqual(error.kind, ErrorKind.UNKNOWN_OPERATOR)
        self.assertIn("unary!", error.message)

    def test_arity_mismatch(self):
        error = self._compile_error("extern g(a b); def f(x) g(x)")
        self.assertEqual(error.kind, ErrorKind.ARITY_MISMATCH)

    def test_signature_mismatch_in_unit(self):
        error = self._compile_error("extern g(a); def g(a b) a")
        self.assertEqual(error.kind, ErrorKind.SIGNATURE_MISMATCH)

    def test_redefinition_in_unit(self):
        error = self._compile_error("def g(a) a; def g(a) a + 1")
        self.assertEqual(error.kind, ErrorKind.REDEFINITION)

    def test_redefinition_of_linked_function(self):
        generator = CodeGenerator(self.prototypes, is_defined=lambda name: name == "old")
        parser = Parser(Lexer("def old(x) x"))
        parser.next_token()
        with self.assertRaises(CodegenError) as ctx:
            generator.generate_function(parser.parse_definition(), self.unit)
        self.assertEqual(ctx.exception.kind, ErrorKind.REDEFINITION)
        self.assertIsNone(self.unit.get_function("old"))

    def test_assignment_target_must_be_variable(self):
        error = self._compile_error("def f(x) (x + 1) = 2")
        self.assertEqual(error.kind, ErrorKind.INVALID_ASSIGNMENT)

    def test_unknown_node_rejected(self):
        with self.assertRaises(TypeError):
            self.generator.generate(object())


if __name__ == '__main__':
    unittest.main()

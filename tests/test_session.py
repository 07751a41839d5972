"""
End-to-end JIT tests for Kaleidoscope.

Every test compiles and runs real native code through a fresh Session, so
sessions never share operators, prototypes or linked units.

Author: xwest
"""

import io
import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleidoscope.backend.llvm_backend import LLVMBackend
from kaleidoscope.backend.runtime import HostRuntime
from kaleidoscope.diagnostics import CompilerError, ErrorKind
from kaleidoscope.jit.session import FormKind, Session


class SessionTestCase(unittest.TestCase):
    """Base class providing a fresh session with captured host output."""

    optimization_level = 2

    def setUp(self):
        self.output = io.StringIO()
        backend = LLVMBackend(self.optimization_level, runtime=HostRuntime(self.output))
        self.session = Session(backend=backend)

    def evaluate(self, source: str) -> float:
        return self.session.evaluate(source)

    def assertFails(self, source: str, kind: ErrorKind):
        """Run `source` and check that its last form failed with `kind`."""
        results = self.session.run(source)
        self.assertFalse(results[-1].ok, f"expected {kind.value}, got {results[-1]}")
        self.assertEqual(results[-1].error.kind, kind)
        return results[-1].error


class TestEvaluation(SessionTestCase):
    """Expressions, control flow and locals."""

    def test_arithmetic(self):
        self.assertEqual(self.evaluate("1+2*3;"), 7.0)
        self.assertEqual(self.evaluate("(1+2)*3;"), 9.0)
        self.assertEqual(self.evaluate("10-2-3;"), 5.0)
        self.assertEqual(self.evaluate("-4 + 1;"), -3.0)

    def test_comparison_yields_zero_or_one(self):
        self.assertEqual(self.evaluate("2 < 3;"), 1.0)
        self.assertEqual(self.evaluate("3 < 2;"), 0.0)

    def test_successive_expressions(self):
        results = self.session.run("1+1; 2+2;")
        self.assertEqual([r.kind for r in results], [FormKind.EXPRESSION] * 2)
        self.assertEqual([r.value for r in results], [2.0, 4.0])

    def test_if(self):
        self.evaluate("def max(a b) if a < b then b else a;")
        self.assertEqual(self.evaluate("max(3, 8);"), 8.0)
        self.assertEqual(self.evaluate("max(9, 8);"), 9.0)

    def test_recursion(self):
        self.evaluate("def fib(x) if x < 3 then 1 else fib(x-1)+fib(x-2);")
        self.assertEqual(self.evaluate("fib(10);"), 55.0)

    def test_var_shadows_parameter(self):
        self.evaluate("def shadow(x) var x = x + 2 in x;")
        self.assertEqual(self.evaluate("shadow(1);"), 3.0)

    def test_var_restores_outer_binding(self):
        self.evaluate("def outer(x) (var x = 5 in x) + x;")
        self.assertEqual(self.evaluate("outer(1);"), 6.0)

    def test_nested_var_shadowing(self):
        self.assertEqual(self.evaluate("var x = 1 in (var x = x+1 in x) + x;"), 3.0)

    def test_var_inside_loop_shadows_loop_variable(self):
        source = "def g(i) var c = 0 in (for i = 1, i < 4 in var i = 0 in c = c + 1) + c * 10 + i;"
        self.evaluate(source)
        # three iterations, then the parameter i is visible again
        self.assertEqual(self.evaluate("g(7);"), 37.0)

    def test_parameters_are_mutable(self):
        self.evaluate("def bump(x) (x = x + 1) * 0 + x;")
        self.assertEqual(self.evaluate("bump(4);"), 5.0)

    def test_var_default_is_zero(self):
        self.assertEqual(self.evaluate("var a, b = 2 in a + b;"), 2.0)

    def test_for_loop_runs_body_before_test(self):
        source = "var n = 0 in (for i = 1, i < 5, 1 in n = n + 1) + n;"
        self.assertEqual(self.evaluate(source), 4.0)
        # The body runs once even when the condition starts out false
        self.assertEqual(self.evaluate("var n = 0 in (for i = 1, 0 in n = n + 1) + n;"), 1.0)

    def test_for_loop_value_is_zero(self):
        self.assertEqual(self.evaluate("for i = 1, i < 3 in i;"), 0.0)

    def test_assignment_returns_value(self):
        self.assertEqual(self.evaluate("var a = 1 in (a = 7) + a;"), 14.0)


class TestUserOperators(SessionTestCase):

    def test_binary_operator(self):
        self.evaluate("def binary | 5 (LHS RHS) if LHS then 1 else if RHS then 1 else 0;")
        self.assertEqual(self.evaluate("0 | 1;"), 1.0)
        self.assertEqual(self.evaluate("0 | 0;"), 0.0)
        self.assertEqual(self.evaluate("0 | 0 | 1;"), 1.0)

    def test_binary_operator_precedence(self):
        self.evaluate("def binary ~ 50 (a b) a - b;")
        # ~ binds tighter than *
        self.assertEqual(self.evaluate("2 * 5 ~ 3;"), 4.0)

    def test_unary_operator(self):
        self.evaluate("def unary!(v) if v then 0 else 1;")
        self.assertEqual(self.evaluate("!0;"), 1.0)
        self.assertEqual(self.evaluate("!5;"), 0.0)

    def test_operator_before_definition(self):
        self.assertFails("!1;", ErrorKind.UNKNOWN_OPERATOR)

    def test_precedence_rolled_back_after_failed_definition(self):
        self.assertFails("def binary% 50 (a b) a * c;", ErrorKind.UNBOUND_NAME)
        self.assertNotIn("%", self.session.operators)
        self.assertNotIn("binary%", self.session.prototypes)

    def test_operator_table_is_per_session(self):
        self.evaluate("def binary& 6 (a b) a * b;")
        other = Session(backend=LLVMBackend(runtime=HostRuntime(io.StringIO())))
        self.assertNotIn("&", other.operators)


class TestLinking(SessionTestCase):
    """Externs, forward references and the host runtime."""

    def test_extern_then_definition(self):
        self.evaluate("extern twice(x); def twice(x) x*2;")
        self.assertEqual(self.evaluate("twice(4);"), 8.0)

    def test_forward_reference(self):
        self.evaluate("extern later(x); def useit(x) later(x) + 1;")
        self.evaluate("def later(x) x*10;")
        self.assertEqual(self.evaluate("useit(2);"), 21.0)

    def test_zero_argument_forward_reference(self):
        self.evaluate("extern f(); def g() f();")
        self.evaluate("def f() 7;")
        self.assertEqual(self.evaluate("g();"), 7.0)

    def test_unresolved_symbol(self):
        error = self.assertFails("extern missing(x); missing(1);", ErrorKind.UNRESOLVED_SYMBOL)
        self.assertIn("missing", error.message)
        # The session is still usable
        self.assertEqual(self.evaluate("1+1;"), 2.0)

    def test_math_library(self):
        self.evaluate("extern sin(x); extern cos(x);")
        self.assertEqual(self.evaluate("sin(0);"), 0.0)
        self.assertEqual(self.evaluate("cos(0);"), 1.0)

    def test_printd(self):
        self.evaluate("extern printd(x);")
        self.assertEqual(self.evaluate("printd(42);"), 0.0)
        self.assertEqual(self.output.getvalue(), "42.000000\n")

    def test_putchard(self):
        self.evaluate("extern putchard(c);")
        self.evaluate("putchard(72) + putchard(105);")
        self.assertEqual(self.output.getvalue(), "Hi")

    def test_loop_with_side_effects(self):
        self.evaluate("extern printd(x);")
        self.evaluate("for i = 1, i < 4 in printd(i);")
        self.assertEqual(self.output.getvalue(), "1.000000\n2.000000\n3.000000\n")


class TestErrors(SessionTestCase):
    """Every failure aborts only the form it happened in."""

    def test_redefinition(self):
        self.evaluate("def f(x) x;")
        self.assertFails("def f(x) x + 1;", ErrorKind.REDEFINITION)
        self.assertEqual(self.evaluate("f(3);"), 3.0)

    def test_signature_mismatch(self):
        self.evaluate("def g(x) x;")
        self.assertFails("extern g(a b);", ErrorKind.SIGNATURE_MISMATCH)
        self.assertEqual(self.session.prototypes.get("g").arity, 1)

    def test_failed_definition_is_forgotten(self):
        self.assertFails("def bad(x) y;", ErrorKind.UNBOUND_NAME)
        self.assertNotIn("bad", self.session.prototypes)
        self.assertEqual(self.evaluate("def good(x) x; good(5);"), 5.0)
        # A failed name can be defined properly afterwards
        self.assertEqual(self.evaluate("def bad(x) x * 3; bad(2);"), 6.0)

    def test_unknown_callee(self):
        self.assertFails("nosuch(1);", ErrorKind.UNKNOWN_CALLEE)

    def test_arity_mismatch(self):
        self.evaluate("def one(x) x;")
        self.assertFails("one(1, 2);", ErrorKind.ARITY_MISMATCH)

    def test_parse_error_reported(self):
        self.assertFails("def (x) 1;", ErrorKind.PARSE_ERROR)

    def test_evaluate_raises_first_error(self):
        with self.assertRaises(CompilerError) as ctx:
            self.evaluate("y; 1;")
        self.assertEqual(ctx.exception.kind, ErrorKind.UNBOUND_NAME)

    def test_submit_result_text(self):
        results = self.session.run("def h(x) x; h(2); q;")
        self.assertEqual(str(results[0]), "definition h")
        self.assertEqual(str(results[1]), "Evaluated to 2.000000")
        self.assertTrue(str(results[2]).startswith("expression failed"))


class TestBackendLevels(unittest.TestCase):
    """Every optimization level builds a working backend."""

    def test_levels(self):
        for level in range(4):
            backend = LLVMBackend(level, runtime=HostRuntime(io.StringIO()))
            self.assertEqual(backend.pass_builder is None, level == 0)
            session = Session(backend=backend)
            self.assertEqual(session.evaluate("def sq(x) x*x; sq(3);"), 9.0)


class TestUnoptimized(TestEvaluation):
    """The same programs behave identically without optimization."""

    optimization_level = 0


if __name__ == '__main__':
    unittest.main()

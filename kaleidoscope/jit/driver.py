"""
Top-level read loop.

Reads forms one at a time from a lexer and submits them to a Session:

    top ::= definition | external | expression | ';'

A form that fails to parse is reported and the loop skips ahead to the
next statement boundary. A form that fails later (codegen, linking) has
already been consumed, so the loop just carries on.

Author: xwest
"""

import logging
import sys
from typing import Callable, List, Optional, TextIO

from ..lexer.lexer import Lexer
from ..lexer.tokens import TokenType
from ..parser.errors import ParseError, SyntaxErrorRecovery
from ..parser.parser import Parser
from .session import FormKind, Session, SubmitResult

LOG = logging.getLogger(__name__)


class Driver:
    """
    Interactive (or batch) driver for a Session.

    Args:
        session: Session receiving the forms
        lexer: Token source; stdin when omitted
        show_prompt: Write the prompt to `err` on start and after each form; defaults
            to the session config
        quiet: Suppress results and diagnostics (they are still collected
            in `results`)
        out: Stream for expression results
        err: Stream for prompts and diagnostics
    """

    def __init__(self, session: Session, lexer: Optional[Lexer] = None,
                 show_prompt: Optional[bool] = None, quiet: bool = False,
                 out: Optional[TextIO] = None, err: Optional[TextIO] = None):
        self.session = session
        self.lexer = lexer if lexer is not None else Lexer()
        self.parser = Parser(self.lexer, session.operators)
        self.show_prompt = session.config.show_prompt if show_prompt is None else show_prompt
        self.prompt = session.config.prompt
        self.quiet = quiet
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.results: List[SubmitResult] = []
        self._reported_warnings = 0

    def run(self) -> List[SubmitResult]:
        """Process forms until end of input."""
        self._write_prompt()
        self.parser.next_token()

        while True:
            token = self.parser.current
            if token.type == TokenType.EOF:
                return self.results
            if token.is_char(";"):
                # ignore top-level semicolons
                self.parser.next_token()
            elif token.type == TokenType.DEF:
                self._handle(FormKind.DEFINITION, self.parser.parse_definition)
            elif token.type == TokenType.EXTERN:
                self._handle(FormKind.EXTERN, self.parser.parse_extern)
            else:
                self._handle(FormKind.EXPRESSION, self.parser.parse_top_level_expr)
            self._write_prompt()

    def _handle(self, kind: FormKind, parse: Callable):
        operators = self.session.operators
        snapshot = operators.snapshot()

        try:
            form = parse()
        except ParseError as exc:
            operators.restore(snapshot)
            self._report_warnings()
            self._report(exc.diagnostic)
            self.results.append(SubmitResult(kind, error=exc))
            skipped = SyntaxErrorRecovery.synchronize_to_statement_boundary(self.parser)
            LOG.debug("skipped %d token(s) after parse error", skipped)
            return

        self._report_warnings()
        result = self.session.submit(form)
        if not result.ok:
            operators.restore(snapshot)
            self._report(result.error.diagnostic)
        elif kind == FormKind.EXPRESSION and not self.quiet:
            self.out.write(f"Evaluated to {result.value:f}\n")
            self.out.flush()
        self.results.append(result)

    def _report(self, diagnostic):
        if not self.quiet:
            self.err.write(str(diagnostic))

    def _report_warnings(self):
        for warning in self.lexer.warnings[self._reported_warnings:]:
            self._report(warning.diagnostic)
        self._reported_warnings = len(self.lexer.warnings)

    def _write_prompt(self):
        if self.show_prompt and not self.quiet:
            self.err.write(self.prompt)
            self.err.flush()

"""
Command-line entry point for the Kaleidoscope JIT.

Examples:
    kaleidoscope                  # interactive session on stdin
    kaleidoscope prog.ks          # run a file
    kaleidoscope -d prog.ks       # dev mode: trace tokens, parsing and IR

Author: xwest
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import CompilerConfig, configure_logging
from .jit.driver import Driver
from .jit.session import Session
from .lexer.lexer import Lexer


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kaleidoscope",
        description="Incrementally compile and run Kaleidoscope programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    kaleidoscope                  # Interactive session
    kaleidoscope lib.ks main.ks   # Run files in order, sharing one session
    kaleidoscope --dev            # Trace tokens, parse steps and generated IR
        """
    )

    parser.add_argument('files', nargs='*', metavar='FILE',
                        help='Source files to run (stdin when omitted)')
    parser.add_argument('-d', '--dev', action='store_true',
                        help='Enable dev mode tracing (also KALEIDOSCOPE_DEV=1)')
    parser.add_argument('-O', dest='optimization_level', type=int, choices=range(0, 4),
                        help='Optimization level 0-3 (default 2)')
    parser.add_argument('--no-prompt', action='store_true',
                        help='Never write the interactive prompt')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def build_config(args: argparse.Namespace, interactive: bool) -> CompilerConfig:
    config = CompilerConfig.from_env()
    if args.dev:
        config.dev_mode = True
    if args.optimization_level is not None:
        config.optimization_level = args.optimization_level
    config.show_prompt = interactive and not args.no_prompt
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    args = build_arg_parser().parse_args(argv)

    interactive = not args.files and sys.stdin.isatty()
    try:
        config = build_config(args, interactive)
    except ValueError as exc:
        print(f"kaleidoscope: {exc}", file=sys.stderr)
        return 2
    configure_logging(config)

    session = Session(config=config)
    failures = 0

    if not args.files:
        failures += _run(session, Lexer(sys.stdin, "<stdin>"))
    for path in args.files:
        try:
            with open(path, encoding="utf-8") as source:
                failures += _run(session, Lexer(source, path))
        except OSError as exc:
            print(f"kaleidoscope: cannot read {path}: {exc.strerror}", file=sys.stderr)
            return 2

    if interactive:
        sys.stderr.write("\n")
    return 1 if failures and not interactive else 0


def _run(session: Session, lexer: Lexer) -> int:
    results = Driver(session, lexer).run()
    return sum(1 for result in results if not result.ok)


if __name__ == "__main__":
    sys.exit(main())

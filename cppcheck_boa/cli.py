#!/usr/bin/env python3
"""cppcheck_boa/cli.py — command line and cppcheck addon entry point.

Usage examples
--------------
    # Analyse one or more dump files and print the buffer report
    boa project.c.dump

    # Run as a cppcheck addon (JSON findings on stdout)
    cppcheck --dump project.c && boa --cli project.c.dump

    # Treat xmalloc(n) and my_realloc(p, n) as allocators
    boa --allocator xmalloc --allocator my_realloc:1 project.c.dump

    # GCC-style one-liners for editors
    boa --format gcc project.c.dump

Exit codes
----------
    0   No overruns possible.
    1   At least one buffer could not be proven safe.
    2   Infrastructure failure (missing cppcheckdata, bad dump, bad option).

The module doubles as ``python -m cppcheck_boa`` via the companion
``cppcheck_boa/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from typing import List, Optional, Sequence, TextIO

from termcolor import colored

from cppcheck_boa import __version__
from cppcheck_boa.config import AnalysisConfig
from cppcheck_boa.driver import BufferOverrunAnalyzer, UnitResult
from cppcheck_boa.errors import BoaError

_log = logging.getLogger("cppcheck_boa")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_OVERRUN: int = 1
EXIT_INFRA: int = 2

VERDICT_SAFE = "boa[0]"
VERDICT_UNSAFE = "boa[1]"


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``cppcheck_boa`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("cppcheck_boa")
    root.setLevel(level)
    # repeated main() calls in one process must not stack handlers
    for old in list(root.handlers):
        if getattr(old, "_boa_cli", False):
            root.removeHandler(old)
    handler._boa_cli = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def _paint(text: str, color: Optional[str], use_color: bool,
           attrs: Optional[List[str]] = None) -> str:
    if not use_color:
        return text
    return colored(text, color, attrs=attrs)


def _build_config(args: argparse.Namespace) -> AnalysisConfig:
    config = AnalysisConfig(
        strict_bounds=args.strict_bounds,
        check_negative_index=args.check_negative_index,
        track_assignments=not args.no_assignments,
    )
    if args.allocator:
        config = config.with_allocators(args.allocator)
    return config


# ===========================================================================
# Reports
# ===========================================================================

def write_text_report(results: Sequence[UnitResult], stream: TextIO,
                      use_color: bool = True) -> None:
    """The human-readable buffer report with the ``boa[N]`` verdict line."""
    stream.write(_paint("The buffers we have found -", "cyan", use_color,
                        ["bold"]) + "\n")
    for result in results:
        for storage in result.buffers:
            stream.write(f"  {storage.unique_name} ({storage.location.text})\n")

    stream.write(_paint("Constraint solver output -", "cyan", use_color,
                        ["bold"]) + "\n")
    unsafe = [v for r in results for v in r.verdicts if not v.safe]
    if not unsafe:
        stream.write(_paint("No overruns possible", "green", use_color) + "\n")
        stream.write(VERDICT_SAFE + "\n")
        return

    stream.write(_paint("Possible buffer overruns on -", "red", use_color,
                        ["bold"]) + "\n")
    for verdict in unsafe:
        name = _paint(verdict.storage.unique_name, "red", use_color)
        stream.write(f"  {name}\n")
        for reason in verdict.reasons:
            stream.write(_paint(f"    {reason}", None, use_color, ["dark"]) + "\n")
    stream.write(VERDICT_UNSAFE + "\n")


def write_diagnostics(results: Sequence[UnitResult], fmt: str,
                      stream: TextIO) -> int:
    """Write one line per unsafe buffer; returns the number written."""
    count = 0
    for result in results:
        for diag in result.diagnostics():
            if fmt == "json":
                stream.write(diag.to_json_str() + "\n")
            else:
                stream.write(diag.to_gcc_format() + "\n")
            count += 1
    return count


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boa",
        description=(
            "BOA — static buffer-overrun analysis of cppcheck dump files.\n\n"
            "Each character buffer is proven safe by bounding its allocated\n"
            "size and its used indices; anything unprovable is reported."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              boa project.c.dump
              boa --cli project.c.dump
              boa --allocator xmalloc --strict-bounds project.c.dump
        """),
    )
    parser.add_argument(
        "dump_files",
        nargs="+",
        metavar="DUMP",
        help="cppcheck .dump file(s) to analyse.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug with every constraint).",
    )
    parser.add_argument(
        "--cli",
        action="store_true",
        help="cppcheck addon mode: JSON findings on stdout, no text report.",
    )
    parser.add_argument(
        "-f", "--format",
        choices=["text", "json", "gcc"],
        default="text",
        help="Output format (default: text).",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable coloured output.",
    )

    g = parser.add_argument_group("analysis")
    g.add_argument(
        "--allocator",
        action="append",
        default=[],
        metavar="NAME[:INDEX]",
        help=("Treat NAME as an allocator whose byte count is argument INDEX "
              "(default 0). Repeatable; adds to malloc, alloca, realloc:1."),
    )
    g.add_argument(
        "--strict-bounds",
        action="store_true",
        help="Require the allocation to exceed the maximum used index "
             "(reports buf[N] on a buffer of N elements).",
    )
    g.add_argument(
        "--check-negative-index",
        action="store_true",
        help="Also require the minimum used index to be non-negative.",
    )
    g.add_argument(
        "--no-assignments",
        action="store_true",
        help="Do not derive bounds from assignments to integer variables.",
    )
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the BOA CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = _build_config(args)
        analyzer = BufferOverrunAnalyzer(config)
        results: List[UnitResult] = []
        for path in args.dump_files:
            _log.info("Analysing %s", path)
            results.extend(analyzer.analyze_dump(path))
    except BoaError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130

    if args.cli:
        write_diagnostics(results, "json", sys.stdout)
    elif args.format == "text":
        use_color = not args.no_color and sys.stderr.isatty()
        write_text_report(results, sys.stderr, use_color)
    else:
        write_diagnostics(results, args.format, sys.stdout)

    if any(not r.safe for r in results):
        return EXIT_OVERRUN
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

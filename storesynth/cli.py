# File: storesynth/cli.py
"""
storesynth - Command-Line Interface
====================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Synthesize every package under ./stores
    python -m storesynth

    # Point at another tree, with DEBUG logging
    python -m storesynth --root ../espal-core -vv

    # Parse and render only: nothing is deleted or written
    python -m storesynth --dry-run --manifest manifest.json

    # Conventions from a file, formatter off
    python -m storesynth --config storesynth.yaml --no-format

Exit codes:
    0  success
    1  configuration error
    2  structural parse error
    3  ordering error
    4  invariant violation
    5  I/O error
    6  formatter failure
    7  unexpected error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from storesynth.errors import (
    ConfigurationError,
    FormatterError,
    InvariantViolation,
    OrderingError,
    StructuralParseError,
    SynthesisError,
    SynthesisIOError,
)

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_CONFIGURATION_ERROR: int = ConfigurationError.exit_code
EXIT_PARSE_ERROR: int = StructuralParseError.exit_code
EXIT_ORDERING_ERROR: int = OrderingError.exit_code
EXIT_INVARIANT_ERROR: int = InvariantViolation.exit_code
EXIT_IO_ERROR: int = SynthesisIOError.exit_code
EXIT_FORMATTER_ERROR: int = FormatterError.exit_code
EXIT_UNEXPECTED_ERROR: int = SynthesisError.exit_code


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root storesynth logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt=datefmt)
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("storesynth")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from storesynth import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="storesynth",
        description=(
            "storesynth: synthesizes entity accessors, interfaces, constructors,\n"
            "fetch routines and tests for annotated Go store packages."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s\n"
            "  %(prog)s --root ../espal-core -v\n"
            "  %(prog)s --dry-run --manifest manifest.json\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"storesynth v{__version__}",
    )

    # --- Input ---
    parser.add_argument(
        "-r", "--root",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Directory holding the stores tree, or the stores directory "
            "itself (default: current directory)."
        ),
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Conventions file (YAML or JSON).",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--import-root",
        type=str,
        default=None,
        metavar="PATH",
        help="Import path of the stores directory.",
    )
    config_group.add_argument(
        "--generator-name",
        type=str,
        default=None,
        metavar="NAME",
        help="Name written into the generated-code header.",
    )
    config_group.add_argument(
        "--no-format",
        action="store_true",
        default=False,
        help="Do not run the formatter after writing.",
    )
    config_group.add_argument(
        "--no-meta",
        action="store_true",
        default=False,
        help="Do not rebuild the storesmeta scaffold.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Parse and render everything, but delete and write nothing.",
    )
    mode_group.add_argument(
        "--manifest",
        type=str,
        default=None,
        metavar="PATH",
        help="Write a JSON manifest of every generated file.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.import_root is not None:
        overrides["import_root"] = args.import_root

    if args.generator_name is not None:
        overrides["generator_name"] = args.generator_name

    if args.no_format:
        overrides["run_formatter"] = False

    if args.no_meta:
        overrides["build_meta"] = False

    return overrides


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


def _run_synthesis(args: argparse.Namespace) -> int:
    """
    Run the full pipeline.

    Returns the appropriate exit code.
    """
    from storesynth.generator import StoreSynthesizer, SynthesisReport, load_config

    root: Path = Path(args.root) if args.root else Path.cwd()
    config_path: Optional[Path] = Path(args.config) if args.config else None
    manifest_path: Optional[Path] = Path(args.manifest) if args.manifest else None

    try:
        config = load_config(config_path, _build_config_overrides(args))
        synthesizer: StoreSynthesizer = StoreSynthesizer(config, dry_run=args.dry_run)
        report: SynthesisReport = synthesizer.run(root, manifest_path=manifest_path)
    except FormatterError as exc:
        logger.error("%s", exc, exc_info=True)
        if exc.output:
            print(exc.output, file=sys.stderr)
        return exc.exit_code
    except SynthesisError as exc:
        logger.error("%s", exc, exc_info=True)
        return exc.exit_code
    except Exception:
        logger.critical("Unexpected failure", exc_info=True)
        return EXIT_UNEXPECTED_ERROR

    if not args.quiet:
        print(report.summary())
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)
    if args.quiet:
        logging.getLogger("storesynth").setLevel(logging.ERROR)

    if args.dry_run:
        logger.info("Dry-run mode: files will not be deleted or written.")

    exit_code: int = _run_synthesis(args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Synthesis completed successfully.")
    else:
        logger.error("Synthesis failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_CONFIGURATION_ERROR",
    "EXIT_PARSE_ERROR",
    "EXIT_ORDERING_ERROR",
    "EXIT_INVARIANT_ERROR",
    "EXIT_IO_ERROR",
    "EXIT_FORMATTER_ERROR",
    "EXIT_UNEXPECTED_ERROR",
]

logger.debug("storesynth.cli loaded.")

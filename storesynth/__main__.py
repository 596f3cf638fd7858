# File: storesynth/__main__.py
"""
storesynth - Module entry point.

Allows running the synthesizer directly via::

    python -m storesynth --verbose

This module simply delegates to the CLI entry point defined in ``storesynth.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from storesynth.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()

# File: storesynth/utils.py
"""
storesynth - Utility Functions & Helpers
=========================================
Identifier transformations, a checksum helper and a small timing context manager
shared by the builder, the synthesis engine and the exporter.

All identifier helpers are pure and decorated with
``@lru_cache(maxsize=None)``; the same field and type names are looked up
many times while a package is synthesized.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import re
import time
from typing import List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_LOWER_CASE_RE: re.Pattern[str] = re.compile(r"[a-z]")


# ---------------------------------------------------------------------------
# Cached identifier transformations
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_title(name: str) -> str:
    """
    Upper-case the first character of an identifier, leaving the rest alone.

    Underscores are part of an identifier, so ``"_type"`` is returned as-is.

    Examples:
        >>> to_title("firstName")
        'FirstName'
        >>> to_title("_type")
        '_type'
    """
    if not name:
        return ""
    return name[0].upper() + name[1:]


@functools.lru_cache(maxsize=None)
def first_letter_lower(name: str) -> str:
    """Return the lower-cased first character of *name* (empty for empty)."""
    if not name:
        return ""
    return name[0].lower()


@functools.lru_cache(maxsize=None)
def strip_lower_case(name: str) -> str:
    """
    Drop every lower-case ASCII letter, then lower-case what remains.

    Examples:
        >>> strip_lower_case("UserAccount")
        'ua'
    """
    return _LOWER_CASE_RE.sub("", name).lower()


def is_standard_library_import(import_path: str) -> bool:
    """Go standard-library paths never carry a dot in their first segment."""
    return "." not in import_path.split("/", 1)[0]


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string. O(n)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling synthesis steps.

    Usage:
        with Timer("synthesize user") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug(
            "Timer [%s]: %.4f seconds",
            self.label,
            self.elapsed,
        )

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


__all__: List[str] = [
    "to_title",
    "first_letter_lower",
    "strip_lower_case",
    "is_standard_library_import",
    "sha256_hex",
    "Timer",
]

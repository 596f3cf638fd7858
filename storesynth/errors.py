# File: storesynth/errors.py
"""
storesynth - Error Taxonomy
============================

Every failure the synthesizer can raise derives from ``SynthesisError``.
The subclasses mirror the five failure categories of a run:

    ConfigurationError    required canonical file missing, bad config file
    StructuralParseError  marker count, ambiguous comment, malformed shapes
    OrderingError         store built before its primary entity is known
    InvariantViolation    aggregation-time cross checks failed
    SynthesisIOError      read / write / delete failures

None of them are retried.  The orchestrator stops at the first one and the
CLI maps the class to an exit code.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union


class SynthesisError(Exception):
    """Base class for every fatal synthesizer error."""

    exit_code: int = 7

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Union[str, Path]] = None,
    ) -> None:
        self.message: str = message
        self.path: Optional[str] = str(path) if path is not None else None
        super().__init__(message)

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (at `{self.path}`)"
        return self.message


class ConfigurationError(SynthesisError):
    """A package lacks a canonical file, or the config file is unusable."""

    exit_code = 1


class StructuralParseError(SynthesisError):
    """Source text does not have the shape the pattern matcher expects."""

    exit_code = 2


class OrderingError(SynthesisError):
    """A build step ran before the step it depends on."""

    exit_code = 3


class InvariantViolation(SynthesisError):
    """An aggregation-time invariant does not hold."""

    exit_code = 4


class SynthesisIOError(SynthesisError):
    """Reading, writing or deleting a file failed."""

    exit_code = 5


class FormatterError(SynthesisError):
    """The post-run formatter exited unsuccessfully."""

    exit_code = 6

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Union[str, Path]] = None,
        output: str = "",
    ) -> None:
        super().__init__(message, path=path)
        self.output: str = output


__all__: List[str] = [
    "SynthesisError",
    "ConfigurationError",
    "StructuralParseError",
    "OrderingError",
    "InvariantViolation",
    "SynthesisIOError",
    "FormatterError",
]

# File: storesynth/__init__.py
"""
storesynth - Store & Entity Boilerplate Synthesizer
====================================================

Scans a tree of annotated Go store packages and writes the derived
boilerplate next to the hand-written code: entity accessors and interfaces,
table identity methods, constructors, a default row-fetch routine and a
matching test file per entity.

Architecture overview::

    ┌──────────────┐     ┌──────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ StoreSynthesizer │────▶│ SynthesisEngine  │
    │   (cli.py)   │     │  (generator.py)  │     │  (templates.py)  │
    └──────────────┘     └────────┬─────────┘     └──────────────────┘
                                  │
                 ┌────────────────┼────────────────┐
                 ▼                ▼                ▼
        ┌─────────────────┐ ┌───────────┐   ┌───────────┐
        │PackageAggregator│ │  models   │   │ exporters │
        │  (packages.py)  │ │  (.py)    │   │  (.py)    │
        └────────┬────────┘ └───────────┘   └───────────┘
                 ▼
        ┌─────────────────┐     ┌─────────────┐
        │  ModelBuilder   │────▶│  patterns   │
        │  (builder.py)   │     │   (.py)     │
        └─────────────────┘     └─────────────┘

Usage::

    # As a library
    from storesynth import StoreSynthesizer, load_config
    report = StoreSynthesizer(load_config()).run(Path.cwd())

    # From the command line (inside the directory holding `stores/`)
    python -m storesynth -v
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from storesynth.builder import ModelBuilder
from storesynth.errors import (
    ConfigurationError,
    FormatterError,
    InvariantViolation,
    OrderingError,
    StructuralParseError,
    SynthesisError,
    SynthesisIOError,
)
from storesynth.exporters import ExportManifest, FileExporter
from storesynth.generator import StoreSynthesizer, SynthesisReport, load_config
from storesynth.models import (
    Entity,
    Function,
    FunctionParameter,
    FunctionReturnValue,
    GeneratedFile,
    Package,
    Property,
    Service,
    Store,
    SynthesisConfig,
)
from storesynth.packages import PackageAggregator, discover_packages
from storesynth.templates import SynthesisEngine
from storesynth.validators import ValidationResult, validate_package

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Orchestrator
    "StoreSynthesizer",
    "SynthesisReport",
    "load_config",
    # Pipeline stages
    "ModelBuilder",
    "PackageAggregator",
    "discover_packages",
    "SynthesisEngine",
    "FileExporter",
    "ExportManifest",
    # Models
    "SynthesisConfig",
    "Entity",
    "Property",
    "Function",
    "FunctionParameter",
    "FunctionReturnValue",
    "Service",
    "Store",
    "Package",
    "GeneratedFile",
    # Validation
    "validate_package",
    "ValidationResult",
    # Errors
    "SynthesisError",
    "ConfigurationError",
    "StructuralParseError",
    "OrderingError",
    "InvariantViolation",
    "SynthesisIOError",
    "FormatterError",
]

# File: storesynth/validators.py
"""
storesynth - Package Validators
================================
Cross-model checks run once a package has been aggregated, before anything
is rendered.

Pattern matching and pydantic already guarantee that each model is
well-formed on its own.  This module checks what only holds across models:
secondary entities are not primary, generated file names do not collide,
every testable property has a test literal and a test name of its own, the
store is linked to its primary entity.

All checks accumulate into a ``ValidationResult``; the aggregator turns
errors into an ``InvariantViolation``.

Usage:
    from storesynth.validators import validate_package
    result = validate_package(package, config)
    if not result.is_valid:
        raise InvariantViolation(result.format_report())
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

from storesynth.models import IDENTITY_FIELD, Entity, Package, SynthesisConfig
from storesynth.templates import FIXED_TEST_SUFFIXES, round_trip_literal

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def is_valid(self) -> bool:
        return not any(e.is_error for e in self._items)

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def format_report(self) -> str:
        """One line per error, for exception messages."""
        return "; ".join(e.message for e in self.errors)

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Entity checks
# ---------------------------------------------------------------------------


def validate_entity(entity: Entity, config: SynthesisConfig) -> ValidationResult:
    """Per-entity checks: identity field, duplicate fields, generated tests."""
    result: ValidationResult = ValidationResult()
    context: Dict[str, Any] = {"entity": entity.name, "path": entity.source_path}

    if entity.get_property(IDENTITY_FIELD) is None:
        result.add_warning(
            "MISSING_IDENTITY_FIELD",
            f"Entity `{entity.name}` has no `{IDENTITY_FIELD}` field; "
            f"the generated ID test will not compile.",
            context,
        )

    counts: Counter = Counter(p.name for p in entity.properties)
    for name, count in counts.items():
        if count > 1:
            result.add_error(
                "DUPLICATE_FIELD",
                f"Field `{name}` is declared {count} times in `{entity.name}`",
                context,
            )

    for prop in entity.properties:
        if prop.name == IDENTITY_FIELD or config.no_db_field_directive in prop.comment:
            continue
        if round_trip_literal(prop.type) is None:
            result.add_error(
                "NO_TEST_LITERAL",
                f"No test literal for type `{prop.type}` of `{entity.name}.{prop.name}`",
                context,
            )
        if prop.getter_name in FIXED_TEST_SUFFIXES:
            result.add_error(
                "TEST_NAME_CLASH",
                f"Field `{entity.name}.{prop.name}` would generate "
                f"`Test{entity.name}{prop.getter_name}`, which is a fixed test",
                context,
            )
    return result


# ---------------------------------------------------------------------------
# Package checks
# ---------------------------------------------------------------------------


def validate_secondary_entities(package: Package, config: SynthesisConfig) -> ValidationResult:
    """Every secondary entity must NOT be primary."""
    result: ValidationResult = ValidationResult()
    for entity in package.entities:
        if entity.is_primary:
            result.add_error(
                "SECONDARY_IS_PRIMARY",
                f"Expected a non-primary entity for `{entity.name}` at `{package.path}`",
                {"entity": entity.name, "path": entity.source_path},
            )
    return result


def validate_output_names(package: Package, config: SynthesisConfig) -> ValidationResult:
    """Two entities whose lower-cased names match would write the same file."""
    result: ValidationResult = ValidationResult()
    counts: Counter = Counter(e.name.lower() for e in package.all_entities)
    for name, count in counts.items():
        if count > 1:
            result.add_error(
                "DUPLICATE_OUTPUT",
                f"{count} entities in `{package.path}` would write "
                f"`{name}{config.generated_marker}.{config.source_extension}`",
                {"entity": name},
            )
    if config.store_file_name in counts:
        result.add_error(
            "STORE_OUTPUT_CLASH",
            f"Entity `{config.store_file_name}` in `{package.path}` would overwrite "
            f"the synthesized store file",
            {"entity": config.store_file_name},
        )
    return result


def validate_store_link(package: Package, config: SynthesisConfig) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    if package.store is None or package.main_entity is None:
        result.add_error(
            "INCOMPLETE_PACKAGE",
            f"Package `{package.name}` lacks a store or a primary entity",
            {"path": package.path},
        )
    elif (
        package.store.main_entity is None
        or package.store.main_entity.name != package.main_entity.name
    ):
        result.add_error(
            "STORE_NOT_LINKED",
            f"Store `{package.store.struct_name}` is not linked to the primary entity",
            {"path": package.path},
        )
    return result


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------

ValidatorFn = Callable[[Package, SynthesisConfig], ValidationResult]


def validate_package(package: Package, config: SynthesisConfig) -> ValidationResult:
    """
    **Master validation entry point** for one aggregated package.

    Runs the package-level validators, then the entity validators for the
    primary and every secondary entity.
    """
    result: ValidationResult = ValidationResult()

    validators: List[ValidatorFn] = [
        validate_store_link,
        validate_secondary_entities,
        validate_output_names,
    ]
    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(package, config))

    for entity in package.all_entities:
        result.merge(validate_entity(entity, config))

    for warning in result.warnings:
        logger.warning("%s", warning)
    if result.is_valid:
        logger.debug("Package %s valid. %s", package.name, result.summary())
    else:
        logger.error("Package %s invalid. %s", package.name, result.summary())
    return result


__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_entity",
    "validate_secondary_entities",
    "validate_output_names",
    "validate_store_link",
    "validate_package",
]

logger.debug("storesynth.validators loaded: %d public symbols.", len(__all__))

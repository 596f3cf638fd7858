"""
tests/test_validators.py
Unit tests for storesynth.validators.

Tests cover:
- The ValidationResult accumulator
- Per-entity checks (identity field, duplicate fields, test literals)
- Secondary entities that claim to be primary
- Generated file name collisions
- Store / primary entity linkage
- The composite validate_package entry point
"""

from __future__ import annotations

from typing import List

import pytest

from storesynth.models import Entity, Package, Property, Store, SynthesisConfig
from storesynth.validators import (
    ValidationError,
    ValidationResult,
    validate_entity,
    validate_output_names,
    validate_package,
    validate_secondary_entities,
    validate_store_link,
)


# ===========================================================================
# Helpers
# ===========================================================================


def _entity(name: str, package: str, props: List[tuple] | None = None) -> Entity:
    properties = [
        Property(name=n, type=t, comment=c) for n, t, c in (props or [("id", "string", "")])
    ]
    return Entity(name=name, package_name=package, properties=properties)


def _package(
    main: Entity,
    secondary: List[Entity] | None = None,
    store: Store | None = None,
) -> Package:
    if store is None:
        store = Store(struct_name="ThingsStore", package_name=main.package_name, main_entity=main)
    return Package(
        name=main.package_name,
        path=f"stores/{main.package_name}",
        import_path=f"example.com/stores/{main.package_name}",
        store=store,
        main_entity=main,
        entities=secondary or [],
    )


# ===========================================================================
# ValidationResult
# ===========================================================================


class TestValidationResult:
    def test_empty_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert bool(result)
        assert len(result) == 0

    def test_error_makes_invalid(self) -> None:
        result = ValidationResult()
        result.add_error("CODE", "broken")
        assert not result.is_valid
        assert not bool(result)
        assert result.errors[0].code == "CODE"

    def test_warning_keeps_valid(self) -> None:
        result = ValidationResult()
        result.add_warning("WARN", "careful")
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_merge_and_summary(self) -> None:
        first = ValidationResult()
        first.add_error("A", "a")
        second = ValidationResult()
        second.add_warning("B", "b")
        first.merge(second)
        assert first.summary() == "Validation: 1 error(s), 1 warning(s)."

    def test_format_report_lists_errors_only(self) -> None:
        result = ValidationResult()
        result.add_error("A", "first")
        result.add_warning("W", "ignored")
        result.add_error("B", "second")
        assert result.format_report() == "first; second"

    def test_error_repr(self) -> None:
        error = ValidationError("error", "CODE", "message")
        assert str(error) == "[ERROR] CODE: message"
        assert error.is_error and not error.is_warning


# ===========================================================================
# Entity checks
# ===========================================================================


class TestValidateEntity:
    def test_valid_entity(self, config: SynthesisConfig) -> None:
        entity = _entity("Thing", "thing", [("id", "string", ""), ("name", "*string", "")])
        result = validate_entity(entity, config)
        assert result.is_valid
        assert len(result) == 0

    def test_missing_identity_is_warning(self, config: SynthesisConfig) -> None:
        entity = _entity("Thing", "thing", [("name", "string", "")])
        result = validate_entity(entity, config)
        assert result.is_valid
        assert result.warnings[0].code == "MISSING_IDENTITY_FIELD"

    def test_duplicate_field(self, config: SynthesisConfig) -> None:
        entity = _entity(
            "Thing", "thing", [("id", "string", ""), ("a", "int", ""), ("a", "int", "")]
        )
        result = validate_entity(entity, config)
        assert [e.code for e in result.errors] == ["DUPLICATE_FIELD"]

    def test_unsupported_type(self, config: SynthesisConfig) -> None:
        entity = _entity("Thing", "thing", [("id", "string", ""), ("tags", "[]string", "")])
        result = validate_entity(entity, config)
        assert [e.code for e in result.errors] == ["NO_TEST_LITERAL"]

    @pytest.mark.parametrize("comment", ["@synthesize-no-db-field", "cache @synthesize-no-db-field"])
    def test_unsupported_type_on_no_db_field(self, config: SynthesisConfig, comment: str) -> None:
        entity = _entity("Thing", "thing", [("id", "string", ""), ("tags", "[]string", comment)])
        assert validate_entity(entity, config).is_valid

    @pytest.mark.parametrize("name", ["table", "tableAlias", "isUpdated", "iD"])
    def test_field_named_like_fixed_test(self, config: SynthesisConfig, name: str) -> None:
        entity = _entity("Thing", "thing", [("id", "string", ""), (name, "string", "")])
        result = validate_entity(entity, config)
        assert [e.code for e in result.errors] == ["TEST_NAME_CLASH"]

    def test_fixed_test_name_free_for_no_db_field(self, config: SynthesisConfig) -> None:
        entity = _entity(
            "Thing", "thing", [("id", "string", ""), ("table", "string", "@synthesize-no-db-field")]
        )
        assert validate_entity(entity, config).is_valid

    def test_identity_type_not_checked(self, config: SynthesisConfig) -> None:
        entity = _entity("Thing", "thing", [("id", "uuid.UUID", "")])
        assert validate_entity(entity, config).is_valid


# ===========================================================================
# Package checks
# ===========================================================================


class TestValidateSecondaryEntities:
    def test_non_primary_secondary_passes(self, config: SynthesisConfig) -> None:
        package = _package(_entity("Thing", "thing"), [_entity("ThingTranslation", "thing")])
        assert validate_secondary_entities(package, config).is_valid

    def test_primary_secondary_fails(self, config: SynthesisConfig) -> None:
        package = _package(_entity("Thing", "thing"), [_entity("Thing", "thing")])
        result = validate_secondary_entities(package, config)
        assert [e.code for e in result.errors] == ["SECONDARY_IS_PRIMARY"]


class TestValidateOutputNames:
    def test_distinct_names_pass(self, config: SynthesisConfig) -> None:
        package = _package(_entity("Thing", "thing"), [_entity("Part", "thing")])
        assert validate_output_names(package, config).is_valid

    def test_case_insensitive_collision(self, config: SynthesisConfig) -> None:
        package = _package(
            _entity("Thing", "thing"), [_entity("Part", "thing"), _entity("PART", "thing")]
        )
        result = validate_output_names(package, config)
        assert [e.code for e in result.errors] == ["DUPLICATE_OUTPUT"]
        assert "part_synthesized.go" in result.errors[0].message

    def test_entity_named_store(self, config: SynthesisConfig) -> None:
        package = _package(_entity("Thing", "thing"), [_entity("Store", "thing")])
        result = validate_output_names(package, config)
        assert [e.code for e in result.errors] == ["STORE_OUTPUT_CLASH"]


class TestValidateStoreLink:
    def test_linked(self, config: SynthesisConfig) -> None:
        assert validate_store_link(_package(_entity("Thing", "thing")), config).is_valid

    def test_not_linked(self, config: SynthesisConfig) -> None:
        main = _entity("Thing", "thing")
        store = Store(struct_name="ThingsStore", package_name="thing")
        result = validate_store_link(_package(main, store=store), config)
        assert [e.code for e in result.errors] == ["STORE_NOT_LINKED"]

    def test_incomplete_package(self, config: SynthesisConfig) -> None:
        package = Package(name="thing", path="stores/thing", import_path="example.com/thing")
        result = validate_store_link(package, config)
        assert [e.code for e in result.errors] == ["INCOMPLETE_PACKAGE"]


class TestValidatePackage:
    def test_valid_package(self, config: SynthesisConfig) -> None:
        package = _package(
            _entity("Thing", "thing", [("id", "string", ""), ("name", "string", "")]),
            [_entity("ThingTranslation", "thing")],
        )
        assert validate_package(package, config).is_valid

    def test_collects_every_error(self, config: SynthesisConfig) -> None:
        package = _package(
            _entity("Thing", "thing", [("id", "string", ""), ("tags", "[]int", "")]),
            [_entity("Thing", "thing")],
        )
        codes = sorted(e.code for e in validate_package(package, config).errors)
        assert codes == ["DUPLICATE_OUTPUT", "NO_TEST_LITERAL", "SECONDARY_IS_PRIMARY"]

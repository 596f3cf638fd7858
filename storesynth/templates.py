# File: storesynth/templates.py
"""
storesynth - Synthesis Engine
==============================
Turns built ``Entity`` and ``Store`` models into Go source text.

Three emission targets:
    1. ``<entity>_synthesized.go``: interface, accessors, table identity,
       constructors
    2. ``<entity>_synthesized_test.go``: one round-trip test per testable
       property plus four fixed tests
    3. ``store_synthesized.go``: store interface, ``New`` constructor and the
       default ``fetch`` routine

**Determinism contract:**
    - Output depends only on the model and the config; no timestamps, no
      set/dict iteration without an explicit order.
    - Imports are grouped (standard library first) and sorted inside a
      group, the order ``go fmt`` leaves untouched.
    - Every file is assembled from sections joined by one blank line.

The engine never writes files; it returns strings and lets the exporter
handle the filesystem.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from storesynth.errors import OrderingError, StructuralParseError
from storesynth.models import (
    IDENTITY_FIELD,
    Entity,
    Function,
    Property,
    Store,
    SynthesisConfig,
)
from storesynth.patterns import ImportStatement, find_qualified_tokens
from storesynth.utils import is_standard_library_import, to_title

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_TAB: str = "\t"

_TIME_QUALIFIER_RE: re.Pattern[str] = re.compile(r"(?<![\w.])time\.")

# Go literal assigned to `testValue` in a generated round-trip test, keyed by
# the property type with any pointer prefix removed.
TEST_LITERALS: Dict[str, str] = {
    "float32": "float32(3.14)",
    "float64": "6.28",
    "int": "int(1e8)",
    "int8": "int8(127)",
    "int16": "int16(32000)",
    "int32": "int32(1e6)",
    "int64": "int64(1e12)",
    "uint": "uint(1e9)",
    "uint8": "uint8(255)",
    "uint16": "uint16(65000)",
    "uint32": "uint32(1e6)",
    "uint64": "uint64(1e12)",
    "string": '"testValue"',
    "bool": "true",
    "time.Time": "time.Now()",
    "time.Duration": "time.Second*8",
}

# Name suffixes of the fixed tests every entity test file carries.
FIXED_TEST_SUFFIXES: Tuple[str, ...] = ("Table", "TableAlias", "IsUpdated", "ID")

BYTES_TYPE: str = "[]byte"
BYTES_LITERAL: str = '[]byte("testData")'


def round_trip_literal(type_: str) -> Optional[str]:
    """
    Return the test literal for a property type, or ``None`` if unsupported.

    Pointer types share the literal of their base type; the byte sequence is
    only supported as a value type.
    """
    if type_ == BYTES_TYPE:
        return BYTES_LITERAL
    return TEST_LITERALS.get(type_[1:] if type_.startswith("*") else type_)


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def render_import_block(paths: Sequence[str], aliases: Optional[Dict[str, str]] = None) -> str:
    """
    Render a Go ``import ( ... )`` block.

    Standard-library paths come first, then a blank line, then the rest;
    each group is sorted.  Returns ``""`` when there is nothing to import.
    """
    aliases = aliases or {}
    if not paths:
        return ""
    standard: List[str] = sorted(p for p in paths if is_standard_library_import(p))
    others: List[str] = sorted(p for p in paths if not is_standard_library_import(p))

    def _line(path: str) -> str:
        alias: str = aliases.get(path, "")
        return f'{_TAB}{alias} "{path}"' if alias else f'{_TAB}"{path}"'

    lines: List[str] = ["import ("]
    lines.extend(_line(p) for p in standard)
    if standard and others:
        lines.append("")
    lines.extend(_line(p) for p in others)
    lines.append(")")
    return "\n".join(lines)


def render_signature(function: Function) -> str:
    """
    Render ``Name(params) results`` as it appears in an interface.

    Results are parenthesized when any is named or when there is more than
    one.
    """
    parameters: str = ", ".join(
        f"{p.name} {p.type}" if p.name else p.type for p in function.parameters
    )
    signature: str = f"{function.name}({parameters})"
    if not function.return_values:
        return signature

    results: str = ", ".join(
        f"{rv.name} {rv.type}" if rv.name else rv.type for rv in function.return_values
    )
    if function.has_named_return_values or len(function.return_values) > 1:
        return f"{signature} ({results})"
    return f"{signature} {results}"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class SynthesisEngine:
    """
    Stateless Go code emitter.

    Each ``render_*`` method returns a complete file content string ending
    in a single newline.
    """

    def __init__(self, config: Optional[SynthesisConfig] = None) -> None:
        self._config: SynthesisConfig = config or SynthesisConfig()

    @property
    def config(self) -> SynthesisConfig:
        return self._config

    # -- Shared -------------------------------------------------------------

    def header(self, package_name: str) -> str:
        return (
            f"// Code generated by {self._config.generator_name}. DO NOT EDIT.\n"
            f"package {package_name}"
        )

    def interface_properties(self, entity: Entity) -> List[Property]:
        """Properties exposed on the generated interface, in declaration order."""
        cfg: SynthesisConfig = self._config
        skipped: List[str] = list(cfg.interface_skip_fields)
        if entity.is_translation:
            skipped.extend(cfg.translation_skip_fields)
        return [p for p in entity.properties if p.name not in skipped]

    def testable_properties(self, entity: Entity) -> List[Property]:
        """Properties that get a round-trip test."""
        directive: str = self._config.no_db_field_directive
        return [
            p
            for p in entity.properties
            if p.name != IDENTITY_FIELD and directive not in p.comment
        ]

    def has_optional_creator(self, entity: Entity) -> bool:
        creator: Optional[Property] = entity.get_property(self._config.creator_field)
        return creator is not None and creator.type == self._config.optional_creator_type

    # ===================================================================
    # 1. Entity file
    # ===================================================================

    def render_entity(self, entity: Entity) -> str:
        """Generate ``<entity>_synthesized.go``."""
        cfg: SynthesisConfig = self._config
        sections: List[str] = [self.header(entity.package_name)]

        imports: List[str] = [cfg.database_import]
        if any(_TIME_QUALIFIER_RE.search(p.type) for p in entity.properties):
            imports.append("time")
        sections.append(render_import_block(imports))

        sections.append(f"var _ {entity.interface_name} = &{entity.name}{{}}")
        sections.append(self._render_entity_interface(entity))

        if entity.is_primary:
            var: str = entity.variable_name
            if entity.table_name is None:
                sections.append(
                    "// TableName returns the table name that belongs to the current model.\n"
                    f"func ({var} *{entity.name}) TableName() string {{\n"
                    f'{_TAB}return "{entity.name}"\n'
                    "}"
                )
            if entity.table_alias is None:
                sections.append(
                    "// TableAlias returns the unique resolved table alias for use in queries.\n"
                    f"func ({var} *{entity.name}) TableAlias() string {{\n"
                    f'{_TAB}return "{entity.default_table_alias}"\n'
                    "}"
                )

        for prop in entity.properties:
            sections.extend(self._render_accessors(entity, prop))

        if not entity.has_private_constructor:
            sections.append(
                f"func {entity.private_constructor_name}() *{entity.name} {{\n"
                f"{_TAB}return &{entity.name}{{}}\n"
                "}"
            )
        if not entity.has_public_constructor:
            sections.append(
                f"// New returns a new instance of {entity.interface_name}.\n"
                f"func {entity.public_constructor_name}() {entity.interface_name} {{\n"
                f"{_TAB}return {entity.private_constructor_name}()\n"
                "}"
            )

        logger.debug("Rendered entity file for %s", entity.name)
        return "\n\n".join(sections) + "\n"

    def _render_entity_interface(self, entity: Entity) -> str:
        cfg: SynthesisConfig = self._config
        lines: List[str] = [f"type {entity.interface_name} interface {{"]

        if entity.is_translation:
            lines.append(f"{_TAB}{cfg.translation_model_capability}")
        elif self.has_optional_creator(entity):
            lines.append(
                f"{_TAB}{cfg.base_model_capability}{cfg.optional_creator_capability_suffix}"
            )
        else:
            lines.append(f"{_TAB}{cfg.base_model_capability}")

        for prop in self.interface_properties(entity):
            lines.append(f"{_TAB}{prop.getter_name}() {prop.type}")
            if prop.is_identity:
                continue
            lines.append(f"{_TAB}{prop.setter_name}({prop.name} {prop.type})")

        for method in entity.extra_interface_methods:
            lines.append(f"{_TAB}{render_signature(method)}")

        lines.append("}")
        return "\n".join(lines)

    def _render_accessors(self, entity: Entity, prop: Property) -> List[str]:
        """Getter, setter and (after the trigger field) ``IsUpdated``."""
        cfg: SynthesisConfig = self._config
        var: str = entity.variable_name
        blocks: List[str] = [
            f"// {prop.getter_name} returns {prop.name}.\n"
            f"func ({var} *{entity.name}) {prop.getter_name}() {prop.type} {{\n"
            f"{_TAB}return {var}.{prop.name}\n"
            "}"
        ]
        if prop.is_identity:
            return blocks

        # A parameter named like the receiver would shadow it.
        receiver: str = var + "Entity" if prop.name == var else var
        blocks.append(
            f"// {prop.setter_name} sets the {prop.name}.\n"
            f"func ({receiver} *{entity.name}) {prop.setter_name}({prop.name} {prop.type}) {{\n"
            f"{_TAB}{receiver}.{prop.name} = {prop.name}\n"
            "}"
        )

        if prop.name == cfg.updated_trigger_field:
            reference: str = cfg.updated_reference_field
            blocks.append(
                f"// IsUpdated returns true if {to_title(reference)} is set.\n"
                f"func ({var} *{entity.name}) IsUpdated() bool {{\n"
                f"{_TAB}return {var}.{reference} != nil\n"
                "}"
            )
        return blocks

    # ===================================================================
    # 2. Entity test file
    # ===================================================================

    def render_entity_test(self, entity: Entity) -> str:
        """
        Generate ``<entity>_synthesized_test.go``.

        Raises:
            StructuralParseError: a testable property has a type with no
                known test literal.
        """
        properties: List[Property] = self.testable_properties(entity)
        literals: List[Tuple[Property, str]] = []
        for prop in properties:
            literal: Optional[str] = round_trip_literal(prop.type)
            if literal is None:
                raise StructuralParseError(
                    f"No test literal for type `{prop.type}` of "
                    f"`{entity.name}.{prop.name}`",
                    path=entity.source_path,
                )
            literals.append((prop, literal))

        imports: List[str] = ["testing", entity.import_path or entity.package_name]
        if any(prop.type == BYTES_TYPE for prop, _ in literals):
            imports.append("bytes")
        if any(literal.startswith("time.") for _, literal in literals):
            imports.append("time")

        sections: List[str] = [
            self.header(f"{entity.package_name}_test"),
            render_import_block(imports),
        ]
        sections.extend(self._render_fixed_tests(entity))
        for prop, literal in literals:
            sections.append(self._render_round_trip_test(entity, prop, literal))

        logger.debug(
            "Rendered test file for %s (%d round-trip tests)", entity.name, len(literals)
        )
        return "\n\n".join(sections) + "\n"

    def _constructor_call(self, entity: Entity) -> str:
        return (
            f"{_TAB}{entity.test_variable_name} := "
            f"{entity.package_name}.{entity.public_constructor_name}()"
        )

    def _render_fixed_tests(self, entity: Entity) -> List[str]:
        var: str = entity.test_variable_name
        new: str = self._constructor_call(entity)
        return [
            f"func Test{entity.name}Table(t *testing.T) {{\n"
            f"{new}\n"
            f'{_TAB}if {var}.TableName() == "" {{\n'
            f'{_TAB}{_TAB}t.Fatal("TableName shouldn\'t be empty")\n'
            f"{_TAB}}}\n"
            "}",
            f"func Test{entity.name}TableAlias(t *testing.T) {{\n"
            f"{new}\n"
            f'{_TAB}if {var}.TableAlias() == "" {{\n'
            f'{_TAB}{_TAB}t.Fatal("TableAlias shouldn\'t be empty")\n'
            f"{_TAB}}}\n"
            "}",
            f"func Test{entity.name}IsUpdated(t *testing.T) {{\n"
            f"{new}\n"
            f"{_TAB}{var}.IsUpdated()\n"
            "}",
            f"func Test{entity.name}ID(t *testing.T) {{\n"
            f"{new}\n"
            f"{_TAB}{var}.ID()\n"
            "}",
        ]

    def _render_round_trip_test(self, entity: Entity, prop: Property, literal: str) -> str:
        var: str = entity.test_variable_name
        ref: str = "&" if prop.is_pointer else ""
        if prop.type == BYTES_TYPE:
            condition: str = f"!bytes.Equal(testValue, {var}.{prop.getter_name}())"
        else:
            condition = f"{ref}testValue != {var}.{prop.getter_name}()"
        return (
            f"func Test{entity.name}{prop.getter_name}(t *testing.T) {{\n"
            f"{self._constructor_call(entity)}\n"
            f"{_TAB}testValue := {literal}\n"
            f"{_TAB}{var}.{prop.setter_name}({ref}testValue)\n"
            f"{_TAB}if {condition} {{\n"
            f'{_TAB}{_TAB}t.Fatal("Getter did not return the Set value")\n'
            f"{_TAB}}}\n"
            "}"
        )

    # ===================================================================
    # 3. Store file
    # ===================================================================

    def render_store(self, store: Store) -> str:
        """
        Generate ``store_synthesized.go``.

        Raises:
            OrderingError: the store has no primary entity attached.
        """
        cfg: SynthesisConfig = self._config
        entity: Optional[Entity] = store.main_entity
        if entity is None:
            raise OrderingError(
                f"Store {store.struct_name} has no primary entity to fetch",
                path=store.source_path,
            )

        sections: List[str] = []
        if store.methods:
            if store.struct_name == cfg.store_interface_name:
                logger.warning(
                    "Store struct is named %s; not emitting the %s interface",
                    store.struct_name,
                    cfg.store_interface_name,
                )
            else:
                sections.append(
                    f"var _ {cfg.store_interface_name} = &{store.struct_name}{{}}"
                )
                sections.append(self._render_store_interface(store))

        if not store.has_private_constructor and not store.has_public_constructor:
            sections.append(self._render_store_constructor(store))

        if not store.contains_fetch_method():
            sections.append(self._render_fetch(store, entity))

        body: str = "\n\n".join(sections)
        import_block: str = render_import_block(
            self.referenced_imports(store, body), store.import_aliases
        )
        head: List[str] = [self.header(store.package_name)]
        if import_block:
            head.append(import_block)

        logger.debug("Rendered store file for %s", store.struct_name)
        return "\n\n".join(head + sections) + "\n"

    @staticmethod
    def referenced_imports(store: Store, body: str) -> List[str]:
        """
        The store imports whose qualifier *body* actually uses.

        Go rejects unused imports; the interface and constructor sections
        that reference service types are optional.
        """
        used: List[str] = find_qualified_tokens(body)
        kept: List[str] = []
        for path in store.imports:
            statement = ImportStatement(path=path, alias=store.import_aliases.get(path, ""))
            if statement.qualifier in used:
                kept.append(path)
            else:
                logger.debug("Store %s: dropping unused import %s", store.struct_name, path)
        return kept

    def _render_store_interface(self, store: Store) -> str:
        name: str = self._config.store_interface_name
        lines: List[str] = [
            f"// {name} represents a data interaction object.",
            f"type {name} interface {{",
        ]
        lines.extend(f"{_TAB}{render_signature(method)}" for method in store.methods)
        lines.append("}")
        return "\n".join(lines)

    def _render_store_constructor(self, store: Store) -> str:
        var: str = store.variable_name
        parameters: str = ", ".join(f"{s.name} {s.type}" for s in store.services)
        lines: List[str] = [
            f"// New returns a new instance of {store.struct_name}.",
            f"func New({parameters}) (*{store.struct_name}, error) {{",
        ]
        if store.services:
            lines.append(f"{_TAB}{var} := &{store.struct_name}{{")
            lines.extend(f"{_TAB}{_TAB}{s.name}: {s.name}," for s in store.services)
            lines.append(f"{_TAB}}}")
        else:
            lines.append(f"{_TAB}{var} := &{store.struct_name}{{}}")
        if store.has_build_queries_method:
            lines.append(f"{_TAB}if err := {var}.buildQueries(); err != nil {{")
            lines.append(f"{_TAB}{_TAB}return nil, errors.Trace(err)")
            lines.append(f"{_TAB}}}")
        lines.append(f"{_TAB}return {var}, nil")
        lines.append("}")
        return "\n".join(lines)

    def fetch_fields(self, entity: Entity) -> Tuple[List[str], List[str]]:
        """Names of the always-scanned fields and of the creator fields."""
        cfg: SynthesisConfig = self._config
        creator_fields: List[str] = [
            name for name in cfg.creator_scan_fields if entity.get_property(name) is not None
        ]
        mandatory: List[str] = [
            p.name
            for p in entity.properties
            if p.name not in cfg.creator_scan_fields
            and cfg.no_db_field_directive not in p.comment
        ]
        return mandatory, creator_fields

    def _render_fetch(self, store: Store, entity: Entity) -> str:
        cfg: SynthesisConfig = self._config
        var: str = store.variable_name
        item: str = entity.variable_name
        if item == var:
            item = var + "Entity"
        mandatory, creators = self.fetch_fields(entity)
        fields: str = ", ".join(f"&{item}.{name}" for name in mandatory)
        t: str = _TAB

        lines: List[str] = [
            f"func ({var} *{store.struct_name}) fetch(query string, withCreators bool, "
            f"params ...interface{{}}) (result []*{entity.name}, ok bool, err error) {{",
            f"{t}rows, err := {var}.{cfg.store_database_field}.Query(query, params...)",
            f"{t}if err == sql.ErrNoRows {{",
            f"{t}{t}err = nil",
            f"{t}{t}return",
            f"{t}}}",
            f"{t}if err != nil {{",
            f"{t}{t}err = errors.Trace(err)",
            f"{t}{t}return",
            f"{t}}}",
            f"{t}defer func(dbRows database.Rows) {{",
            f"{t}{t}closeErr := dbRows.Close()",
            f"{t}{t}if err != nil && closeErr != nil {{",
            f"{t}{t}{t}err = errors.Wrap(err, closeErr)",
            f"{t}{t}}} else if closeErr != nil {{",
            f"{t}{t}{t}err = errors.Trace(closeErr)",
            f"{t}{t}}}",
            f"{t}}}(rows)",
            f"{t}result = make([]*{entity.name}, 0)",
            f"{t}for rows.Next() {{",
            f"{t}{t}if err := rows.Err(); err != nil {{",
            f"{t}{t}{t}return nil, false, errors.Trace(err)",
            f"{t}{t}}}",
            f"{t}{t}{item} := {entity.private_constructor_name}()",
            f"{t}{t}fields := []interface{{}}{{{fields}}}",
        ]
        if creators:
            lines.append(f"{t}{t}if withCreators {{")
            lines.append(
                f"{t}{t}{t}fields = append(fields, "
                + ", ".join(f"&{item}.{name}" for name in creators)
                + ")"
            )
            lines.append(f"{t}{t}}}")
        lines.extend(
            [
                f"{t}{t}if err := rows.Scan(fields...); err != nil {{",
                f"{t}{t}{t}return nil, false, errors.Trace(err)",
                f"{t}{t}}}",
                f"{t}{t}result = append(result, {item})",
                f"{t}}}",
                f"{t}ok = len(result) > 0",
                f"{t}return",
                "}",
            ]
        )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TEST_LITERALS",
    "BYTES_TYPE",
    "FIXED_TEST_SUFFIXES",
    "round_trip_literal",
    "render_import_block",
    "render_signature",
    "SynthesisEngine",
]

logger.debug("storesynth.templates loaded.")

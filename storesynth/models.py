# File: storesynth/models.py
"""
storesynth - Core Data Models
==============================
Pydantic V2 models for everything the pipeline passes around:

    Source text → Pattern Matcher → **Entity / Store / Package** → Synthesis
    Engine → **GeneratedFile** → Exporter

``SynthesisConfig`` collects every naming and file-layout convention the
builder and the engine rely on (markers, skip-lists, magic audit field
names, canonical file names) so none of them are scattered as literals.

Models are built once per scanned file and only mutated by the builder and
the aggregator while a package is being assembled.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from storesynth.utils import first_letter_lower, strip_lower_case, to_title

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.models")

# ---------------------------------------------------------------------------
# Fixed naming invariants
# ---------------------------------------------------------------------------

IDENTITY_FIELD: str = "id"
IDENTITY_GETTER: str = "ID"
TYPE_FIELD: str = "_type"
TYPE_GETTER: str = "Type"

# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Conventions
# ---------------------------------------------------------------------------


class SynthesisConfig(BaseModel):
    """
    Every domain convention the synthesizer applies, enumerated once.

    The defaults describe the store layout the tool was written for; a YAML
    or JSON file can override any of them (see ``generator.load_config``).
    """

    model_config = _SHARED_CONFIG

    # -- Output -------------------------------------------------------------
    generator_name: str = Field(
        default="storesynth",
        min_length=1,
        description="Name written into the `Code generated by` header.",
    )
    source_extension: str = Field(
        default="go", min_length=1, description="Extension of scanned and written files."
    )
    generated_marker: str = Field(
        default="_synthesized",
        min_length=1,
        description="Substring identifying generated files; used for cleanup.",
    )
    test_file_suffix: str = Field(
        default="_test", min_length=1, description="Suffix of test source files."
    )
    file_mode: int = Field(
        default=0o600, ge=0, le=0o777, description="Permission bits of written files."
    )
    directory_mode: int = Field(
        default=0o700, ge=0, le=0o777, description="Permission bits of created directories."
    )

    # -- Markers ------------------------------------------------------------
    entity_marker: str = Field(
        default="@synthesize",
        min_length=1,
        description="Annotation comment that opts a struct into entity extraction.",
    )
    no_db_field_directive: str = Field(
        default="@synthesize-no-db-field",
        min_length=1,
        description="Field comment directive: not persisted, no generated test.",
    )

    # -- Package layout -----------------------------------------------------
    stores_directory_name: str = Field(
        default="stores", min_length=1, description="Name of the stores root directory."
    )
    store_file_name: str = Field(
        default="store", min_length=1, description="Stem of the canonical store file."
    )
    entity_file_suffix: str = Field(
        default="entity",
        min_length=1,
        description="Alternative primary-entity file stem suffix (`<package>entity`).",
    )
    primary_entity_exceptions: Dict[str, str] = Field(
        default_factory=lambda: {"product": "model"},
        description="Package name → primary-entity file stem for irregular packages.",
    )
    mock_directory_suffixes: List[str] = Field(
        default_factory=lambda: ["mock"],
        description="Directories ending with one of these are never packages.",
    )
    import_root: str = Field(
        default="github.com/espal-digital-development/espal-core/stores",
        min_length=1,
        description="Import path of the stores root directory.",
    )

    # -- Imports used by generated code ---------------------------------------
    database_import: str = Field(
        default="github.com/espal-digital-development/espal-core/database",
        min_length=1,
        description="Core database package every entity file imports.",
    )
    errors_import: str = Field(
        default="github.com/juju/errors",
        min_length=1,
        description="Error-wrapping package used by generated store code.",
    )
    sql_import: str = Field(
        default="database/sql", min_length=1, description="Package providing ErrNoRows."
    )

    # -- Entity naming ------------------------------------------------------
    interface_suffix: str = Field(
        default="Entity", min_length=1, description="Suffix of generated interface names."
    )
    translation_suffix: str = Field(
        default="Translation",
        min_length=1,
        description="Entity name suffix marking a translation variant.",
    )
    base_model_capability: str = Field(
        default="database.Model", description="Interface embedded by regular entities."
    )
    optional_creator_capability_suffix: str = Field(
        default="WithOptionalCreator",
        description="Appended to the base capability when the creator is optional.",
    )
    translation_model_capability: str = Field(
        default="database.TranslationModel",
        description="Interface embedded by translation entities.",
    )

    # -- Audit conventions --------------------------------------------------
    creator_field: str = Field(
        default="createdByID", description="Creator reference field."
    )
    optional_creator_type: str = Field(
        default="*string", description="Type that makes the creator reference optional."
    )
    updated_trigger_field: str = Field(
        default="updatedBySurname",
        description="Field after which the IsUpdated method is emitted.",
    )
    updated_reference_field: str = Field(
        default="updatedByID", description="Field IsUpdated checks for nil."
    )
    interface_skip_fields: List[str] = Field(
        default_factory=lambda: [
            "id",
            "createdByID",
            "updatedByID",
            "createdAt",
            "updatedAt",
            "createdByFirstName",
            "createdBySurname",
            "updatedByFirstName",
            "updatedBySurname",
        ],
        description="Identity/audit fields never exposed on generated interfaces.",
    )
    translation_skip_fields: List[str] = Field(
        default_factory=lambda: ["language", "field", "value"],
        description="Extra fields hidden from translation-variant interfaces.",
    )
    creator_scan_fields: List[str] = Field(
        default_factory=lambda: [
            "createdByFirstName",
            "createdBySurname",
            "updatedByFirstName",
            "updatedBySurname",
        ],
        description="Fields only scanned by fetch when creators are requested.",
    )

    # -- Store conventions --------------------------------------------------
    store_database_field: str = Field(
        default="selecterDatabase",
        min_length=1,
        description="Store struct field holding the query database.",
    )
    store_interface_name: str = Field(
        default="Store", min_length=1, description="Name of the generated store interface."
    )

    # -- Post-processing ----------------------------------------------------
    run_formatter: bool = Field(default=True, description="Run the formatter after writing.")
    formatter_command: List[str] = Field(
        default_factory=lambda: ["go", "fmt", "./..."],
        min_length=1,
        description="Formatter command, executed inside the stores root.",
    )
    build_meta: bool = Field(default=True, description="Rebuild the meta scaffold package.")
    meta_directory_name: str = Field(
        default="storesmeta", min_length=1, description="Directory of the meta scaffold."
    )

    # -- Helpers ------------------------------------------------------------

    @field_validator("source_extension")
    @classmethod
    def _strip_leading_dot(cls, v: str) -> str:
        return v.lstrip(".")

    @model_validator(mode="after")
    def _validate_markers(self) -> "SynthesisConfig":
        if not self.no_db_field_directive.startswith(self.entity_marker):
            logger.warning(
                "no_db_field_directive %r does not start with entity_marker %r; "
                "files carrying it will not be skipped by method harvesting.",
                self.no_db_field_directive,
                self.entity_marker,
            )
        return self

    def file_name(self, stem: str, *, test: bool = False) -> str:
        """Build ``<stem>[_test].<ext>``."""
        suffix: str = self.test_file_suffix if test else ""
        return f"{stem}{suffix}.{self.source_extension}"


# ---------------------------------------------------------------------------
# Properties & functions
# ---------------------------------------------------------------------------


class Property(BaseModel):
    """One field of an entity struct."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Field name as declared.")
    type: str = Field(..., min_length=1, description="Raw type token, e.g. `*string`.")
    comment: str = Field(default="", description="Trailing comment text, if any.")

    @computed_field  # type: ignore[misc]
    @property
    def is_identity(self) -> bool:
        return self.name == IDENTITY_FIELD

    @computed_field  # type: ignore[misc]
    @property
    def is_pointer(self) -> bool:
        return self.type.startswith("*")

    @computed_field  # type: ignore[misc]
    @property
    def getter_name(self) -> str:
        """``ID`` for the identity field, ``Type`` for ``_type``, else Title(name)."""
        if self.name == IDENTITY_FIELD:
            return IDENTITY_GETTER
        if self.name == TYPE_FIELD:
            return TYPE_GETTER
        return to_title(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def setter_name(self) -> str:
        if self.name == TYPE_FIELD:
            return "Set" + TYPE_GETTER
        return "Set" + to_title(self.name)

    def __repr__(self) -> str:
        return f"<Property {self.name} {self.type}>"


class FunctionParameter(BaseModel):
    """A parameter; ``name`` is empty for unnamed interface parameters."""

    model_config = _SHARED_CONFIG

    name: str = Field(default="", description="Parameter name.")
    type: str = Field(..., min_length=1, description="Parameter type.")


class FunctionReturnValue(BaseModel):
    """A return value; a non-empty ``name`` makes it a named return value."""

    model_config = _SHARED_CONFIG

    name: str = Field(default="", description="Return value name.")
    type: str = Field(..., min_length=1, description="Return value type.")


class Function(BaseModel):
    """A callable signature: store methods and extra interface methods."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Function name.")
    parameters: List[FunctionParameter] = Field(default_factory=list)
    return_values: List[FunctionReturnValue] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def has_named_return_values(self) -> bool:
        return any(rv.name for rv in self.return_values)

    def __repr__(self) -> str:
        return (
            f"<Function {self.name} "
            f"({len(self.parameters)} params, {len(self.return_values)} returns)>"
        )


class Service(BaseModel):
    """A store dependency declared as ``name package.Type``."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Struct field name.")
    type: str = Field(..., min_length=1, description="Qualified type, e.g. `database.Database`.")

    @computed_field  # type: ignore[misc]
    @property
    def qualifier(self) -> str:
        """Package qualifier of the type (`database` for `*database.Database`)."""
        return self.type.lstrip("*").split(".", 1)[0]


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


class Entity(BaseModel):
    """
    One data record type recovered from a marked struct.

    Invariant: exactly one marked struct per source file; ``is_primary`` is
    derived from the owning package name, not from the marker.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Struct name.")
    package_name: str = Field(..., min_length=1, description="Owning Go package name.")
    import_path: str = Field(default="", description="Import path of the owning package.")
    interface_suffix: str = Field(default="Entity", min_length=1)
    properties: List[Property] = Field(default_factory=list)
    extra_interface_methods: List[Function] = Field(default_factory=list)
    table_name: Optional[str] = Field(
        default=None, description="Hand-written TableName() value, if any."
    )
    table_alias: Optional[str] = Field(
        default=None, description="Hand-written TableAlias() value, if any."
    )
    has_private_constructor: bool = Field(default=False)
    has_public_constructor: bool = Field(default=False)
    is_translation: bool = Field(default=False)
    source_path: Optional[str] = Field(default=None, description="File it was read from.")

    @computed_field  # type: ignore[misc]
    @property
    def is_primary(self) -> bool:
        return self.name.lower() == self.package_name

    @computed_field  # type: ignore[misc]
    @property
    def interface_name(self) -> str:
        return to_title(self.name) + self.interface_suffix

    @computed_field  # type: ignore[misc]
    @property
    def variable_name(self) -> str:
        """Receiver name used in generated method bodies."""
        return first_letter_lower(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def test_variable_name(self) -> str:
        """Like ``variable_name`` but never ``t`` (reserved for *testing.T)."""
        if self.variable_name == "t":
            return "tt"
        return self.variable_name

    @computed_field  # type: ignore[misc]
    @property
    def public_constructor_name(self) -> str:
        return "New" + self.interface_name

    @computed_field  # type: ignore[misc]
    @property
    def private_constructor_name(self) -> str:
        return "new" + self.name

    @computed_field  # type: ignore[misc]
    @property
    def default_table_alias(self) -> str:
        """Capital letters of the interface name minus its suffix, lower-cased."""
        base: str = self.interface_name
        if base.endswith(self.interface_suffix):
            base = base[: -len(self.interface_suffix)]
        return strip_lower_case(base)

    @computed_field  # type: ignore[misc]
    @property
    def contains_bytes_type(self) -> bool:
        return any(p.type == "[]byte" for p in self.properties)

    def get_property(self, name: str) -> Optional[Property]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def __repr__(self) -> str:
        flag: str = " primary" if self.is_primary else ""
        return f"<Entity {self.name}{flag} ({len(self.properties)} properties)>"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class Store(BaseModel):
    """
    The data-access type of one package.

    ``methods`` holds the public hand-written signatures (they become the
    generated interface); ``method_names`` every hand-written receiver
    method name, public or not, so an existing ``fetch`` can be detected.
    """

    model_config = _SHARED_CONFIG

    struct_name: str = Field(..., min_length=1, description="Store struct name.")
    package_name: str = Field(..., min_length=1)
    methods: List[Function] = Field(default_factory=list)
    method_names: List[str] = Field(default_factory=list)
    services: List[Service] = Field(default_factory=list)
    imports: List[str] = Field(
        default_factory=list, description="Deduplicated, first-seen order preserved."
    )
    import_aliases: Dict[str, str] = Field(
        default_factory=dict, description="Import path → alias, for renamed imports."
    )
    has_private_constructor: bool = Field(default=False)
    has_public_constructor: bool = Field(default=False)
    has_build_queries_method: bool = Field(default=False)
    main_entity: Optional[Entity] = Field(
        default=None, description="Non-owning reference to the primary entity."
    )
    source_path: Optional[str] = Field(default=None)

    @computed_field  # type: ignore[misc]
    @property
    def variable_name(self) -> str:
        return first_letter_lower(self.struct_name)

    def add_import(self, path: str, alias: str = "") -> bool:
        """Append *path* unless already present; return True if it was added."""
        if path in self.imports:
            return False
        self.imports.append(path)
        if alias:
            self.import_aliases[path] = alias
        return True

    def add_method(self, function: Function) -> None:
        self.methods.append(function)
        self.add_method_name(function.name)

    def add_method_name(self, name: str) -> None:
        if name not in self.method_names:
            self.method_names.append(name)

    def contains_fetch_method(self) -> bool:
        return "fetch" in self.method_names

    def __repr__(self) -> str:
        return (
            f"<Store {self.struct_name} ({len(self.methods)} methods, "
            f"{len(self.services)} services, {len(self.imports)} imports)>"
        )


# ---------------------------------------------------------------------------
# Package
# ---------------------------------------------------------------------------


class Package(BaseModel):
    """Unit of generation: one store, one primary entity, secondary entities."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Directory (and Go package) name.")
    path: str = Field(..., min_length=1, description="Package directory on disk.")
    import_path: str = Field(..., min_length=1)
    store: Optional[Store] = Field(default=None)
    main_entity: Optional[Entity] = Field(default=None)
    entities: List[Entity] = Field(
        default_factory=list, description="Secondary entities, main entity excluded."
    )

    @computed_field  # type: ignore[misc]
    @property
    def all_entities(self) -> List[Entity]:
        head: List[Entity] = [self.main_entity] if self.main_entity else []
        return head + list(self.entities)

    def __repr__(self) -> str:
        return f"<Package {self.name} ({len(self.all_entities)} entities)>"


# ---------------------------------------------------------------------------
# Generated output
# ---------------------------------------------------------------------------


class GeneratedFile(BaseModel):
    """Represents a single file produced by the synthesis engine."""

    model_config = _SHARED_CONFIG

    path: str = Field(..., min_length=1, description="File name inside the package directory.")
    content: str = Field(..., description="Full file content.")
    line_count: int = Field(default=0, ge=0, description="Number of lines.")
    size_bytes: int = Field(default=0, ge=0, description="Content size in bytes.")

    @model_validator(mode="after")
    def _compute_metrics(self) -> "GeneratedFile":
        # object.__setattr__ keeps validate_assignment from re-running this hook
        object.__setattr__(self, "line_count", self.content.count("\n"))
        object.__setattr__(self, "size_bytes", len(self.content.encode("utf-8")))
        return self


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "IDENTITY_FIELD",
    "IDENTITY_GETTER",
    "SynthesisConfig",
    "Property",
    "FunctionParameter",
    "FunctionReturnValue",
    "Function",
    "Service",
    "Entity",
    "Store",
    "Package",
    "GeneratedFile",
]

logger.debug("storesynth.models loaded: %d public symbols.", len(__all__))

# File: storesynth/builder.py
"""
storesynth - Model Builder
===========================
Turns pattern-matcher output into ``Entity``, ``Store`` and ``Function``
models, applying the naming conventions of ``SynthesisConfig``.

Build order inside a package is fixed: the primary entity first, then the
store (which keeps a reference to it), then every other file is harvested
for store methods, and finally ``finalize_store`` adds the imports the
generated fetch routine and constructor need.

Import inference
----------------
The store collects candidate imports: the package
qualifier of every service type and every ``package.Symbol`` token in a
harvested signature is looked up in the imports of the file it came from.
The first import whose qualifier matches wins, and a path is never added
twice. The engine later drops the candidates that no emitted section
references.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from storesynth.errors import OrderingError, StructuralParseError
from storesynth.models import (
    Entity,
    Function,
    FunctionParameter,
    FunctionReturnValue,
    Property,
    Service,
    Store,
    SynthesisConfig,
)
from storesynth.patterns import (
    ImportStatement,
    MethodSignature,
    find_entity_struct,
    find_extra_interface_block,
    find_field_lines,
    find_imports,
    find_interface_method_lines,
    find_methods,
    find_qualified_tokens,
    find_service_fields,
    find_store_struct,
    find_table_alias_override,
    find_table_name_override,
    has_function,
    parse_name_type_list,
    parse_return_clause,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.builder")

PathLike = Union[str, Path, None]


class ModelBuilder:
    """
    Builds entity and store models from raw source text.

    Args:
        config: Conventions to apply (markers, suffixes, fixed imports).
    """

    __slots__ = ("config",)

    def __init__(self, config: Optional[SynthesisConfig] = None) -> None:
        self.config: SynthesisConfig = config or SynthesisConfig()

    # -- Functions ----------------------------------------------------------

    def build_function(self, name: str, parameters_text: str, returns_text: str) -> Function:
        """Build a ``Function`` from the textual parts of a signature."""
        parameters: List[FunctionParameter] = [
            FunctionParameter(name=pair.name, type=pair.type)
            for pair in parse_name_type_list(parameters_text)
        ]
        return_values: List[FunctionReturnValue] = [
            FunctionReturnValue(name=pair.name, type=pair.type)
            for pair in parse_return_clause(returns_text)
        ]
        return Function(name=name, parameters=parameters, return_values=return_values)

    # -- Entities -----------------------------------------------------------

    def build_entity(
        self,
        source: str,
        *,
        package_name: str,
        import_path: str = "",
        source_path: PathLike = None,
    ) -> Entity:
        """
        Build the entity declared in *source*.

        Raises:
            StructuralParseError: marker count other than one, ambiguous
                field comment, or a malformed extra interface method.
        """
        try:
            return self._build_entity(source, package_name, import_path, source_path)
        except StructuralParseError as exc:
            if exc.path is not None or source_path is None:
                raise
            raise StructuralParseError(exc.message, path=source_path) from exc

    def _build_entity(
        self,
        source: str,
        package_name: str,
        import_path: str,
        source_path: PathLike,
    ) -> Entity:
        cfg: SynthesisConfig = self.config
        struct = find_entity_struct(source, cfg.entity_marker)

        properties: List[Property] = [
            Property(name=line.name, type=line.type, comment=line.comment)
            for line in find_field_lines(struct.body)
        ]

        entity: Entity = Entity(
            name=struct.name,
            package_name=package_name,
            import_path=import_path,
            interface_suffix=cfg.interface_suffix,
            properties=properties,
            is_translation=struct.name.endswith(cfg.translation_suffix),
            source_path=str(source_path) if source_path is not None else None,
        )

        block: Optional[str] = find_extra_interface_block(source, struct.name.lower())
        if block is not None:
            for parts in find_interface_method_lines(block):
                entity.extra_interface_methods.append(
                    self.build_function(parts.name, parts.parameters_text, parts.returns_text)
                )

        if entity.is_primary:
            entity.table_name = find_table_name_override(source)
            entity.table_alias = find_table_alias_override(source)

        entity.has_private_constructor = has_function(source, entity.private_constructor_name)
        entity.has_public_constructor = has_function(source, entity.public_constructor_name)

        logger.debug(
            "Built %r (extra methods: %d, translation: %s)",
            entity,
            len(entity.extra_interface_methods),
            entity.is_translation,
        )
        return entity

    # -- Stores -------------------------------------------------------------

    def build_store(
        self,
        source: str,
        *,
        package_name: str,
        main_entity: Optional[Entity],
        source_path: PathLike = None,
    ) -> Store:
        """
        Build the store declared in the canonical store file.

        Services and public methods are only harvested when the file has
        any, and does not already define a public ``New`` constructor.

        Raises:
            OrderingError: when *main_entity* is not known yet.
            StructuralParseError: no struct, or a malformed signature.
        """
        if main_entity is None:
            raise OrderingError(
                "Cannot set the store before the main entity is known",
                path=source_path,
            )
        try:
            return self._build_store(source, package_name, main_entity, source_path)
        except StructuralParseError as exc:
            if exc.path is not None or source_path is None:
                raise
            raise StructuralParseError(exc.message, path=source_path) from exc

    def _build_store(
        self,
        source: str,
        package_name: str,
        main_entity: Entity,
        source_path: PathLike,
    ) -> Store:
        struct = find_store_struct(source)
        methods: List[MethodSignature] = [
            m for m in find_methods(source) if m.receiver_type == struct.name
        ]

        store: Store = Store(
            struct_name=struct.name,
            package_name=package_name,
            has_private_constructor=has_function(source, "new"),
            has_public_constructor=has_function(source, "New"),
            has_build_queries_method=any(m.name == "buildQueries" for m in methods),
            main_entity=main_entity,
            source_path=str(source_path) if source_path is not None else None,
        )
        for method in methods:
            store.add_method_name(method.name)

        services = find_service_fields(struct.body)
        public: List[MethodSignature] = [m for m in methods if m.is_public]
        if (not services and not public) or store.has_public_constructor:
            logger.debug(
                "Store %s owns its method set; skipping service/method harvest",
                struct.name,
            )
            return store

        imports: List[ImportStatement] = find_imports(source)
        for pair in services:
            service: Service = Service(name=pair.name, type=pair.type)
            store.services.append(service)
            self._resolve_imports(store, [service.qualifier], imports)

        self._add_public_methods(store, public, imports)
        logger.debug("Built %r", store)
        return store

    def harvest_file(
        self,
        store: Store,
        source: str,
        *,
        collect_public: bool = True,
        source_path: PathLike = None,
    ) -> int:
        """
        Fold the store methods of another package file into *store*.

        Every method name is recorded (so a hand-written ``fetch`` anywhere
        suppresses the generated one); public signatures are only added when
        *collect_public* is set.  Returns the number of signatures added.
        """
        try:
            methods: List[MethodSignature] = [
                m for m in find_methods(source) if m.receiver_type == store.struct_name
            ]
            for method in methods:
                store.add_method_name(method.name)
            if not collect_public:
                return 0
            public: List[MethodSignature] = [m for m in methods if m.is_public]
            self._add_public_methods(store, public, find_imports(source))
        except StructuralParseError as exc:
            if exc.path is not None or source_path is None:
                raise
            raise StructuralParseError(exc.message, path=source_path) from exc
        if public:
            logger.debug("Harvested %d method(s) from %s", len(public), source_path)
        return len(public)

    def finalize_store(self, store: Store) -> None:
        """Add the imports required by the generated store scaffolding."""
        cfg: SynthesisConfig = self.config
        if not store.contains_fetch_method():
            for path in (cfg.errors_import, cfg.database_import, cfg.sql_import):
                store.add_import(path)
        if (
            store.has_build_queries_method
            and not store.has_private_constructor
            and not store.has_public_constructor
        ):
            store.add_import(cfg.errors_import)

    # -- Internal helpers ---------------------------------------------------

    def _add_public_methods(
        self,
        store: Store,
        methods: Iterable[MethodSignature],
        imports: List[ImportStatement],
    ) -> None:
        for method in methods:
            if any(existing.name == method.name for existing in store.methods):
                continue
            store.add_method(
                self.build_function(method.name, method.parameters_text, method.returns_text)
            )
            qualifiers: List[str] = find_qualified_tokens(
                method.parameters_text + " " + method.returns_text
            )
            self._resolve_imports(store, qualifiers, imports)

    @staticmethod
    def _resolve_imports(
        store: Store,
        qualifiers: Iterable[str],
        imports: List[ImportStatement],
    ) -> None:
        for qualifier in qualifiers:
            for statement in imports:
                if statement.qualifier != qualifier:
                    continue
                alias: str = statement.alias if statement.alias not in ("", ".", "_") else ""
                if store.add_import(statement.path, alias):
                    logger.debug("Store %s imports %s", store.struct_name, statement.path)
                break


__all__: List[str] = ["ModelBuilder"]

logger.debug("storesynth.builder loaded.")

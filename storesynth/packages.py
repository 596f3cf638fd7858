# File: storesynth/packages.py
"""
storesynth - Package Aggregator & Discovery
============================================
Groups one store, one primary entity and any secondary entities found in a
package directory into a ``Package``.

Aggregation steps, in order:
    1. Delete every previously synthesized file in the directory.
    2. Resolve the canonical store file (``store.go``) and the canonical
       primary-entity file (``<pkg>.go``, then ``<pkg>entity.go``, then the
       configured per-package exceptions).
    3. Build the primary entity, then the store.
    4. Scan every other hand-written, non-test file: record store methods,
       and build a secondary entity from each file that carries the marker.
    5. Finalize store imports, link store and entity, validate.

Files that do not carry the marker are never parsed as entities; files that
do carry it fail the whole run when they do not parse.
"""

from __future__ import annotations

import logging
import stat
from pathlib import Path
from typing import List, Optional, Tuple

from storesynth.builder import ModelBuilder
from storesynth.errors import (
    ConfigurationError,
    InvariantViolation,
    SynthesisIOError,
)
from storesynth.models import Entity, Package, Store, SynthesisConfig
from storesynth.patterns import declares_entity
from storesynth.validators import ValidationResult, validate_package

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.packages")


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def resolve_stores_root(start: Path, config: SynthesisConfig) -> Path:
    """*start* itself when it is the stores directory, else ``start/<stores>``."""
    if start.name == config.stores_directory_name:
        return start
    return start / config.stores_directory_name


def import_path_for(package_dir: Path, stores_root: Path, config: SynthesisConfig) -> str:
    """``<import_root>/<segments below the stores root>``."""
    try:
        relative: Path = package_dir.resolve().relative_to(stores_root.resolve())
    except ValueError as exc:
        raise ConfigurationError(
            f"`{package_dir}` is not inside the stores root `{stores_root}`",
            path=package_dir,
        ) from exc
    segments: List[str] = [config.import_root.rstrip("/"), *relative.parts]
    return "/".join(segments)


def discover_packages(stores_root: Path, config: SynthesisConfig) -> List[Path]:
    """
    Every immediate subdirectory of *stores_root*, sorted by name.

    Mock directories are skipped, and so are entries that disappear between
    listing and inspection.

    Raises:
        ConfigurationError: *stores_root* does not exist.
        SynthesisIOError: the directory cannot be listed or inspected.
    """
    if not stores_root.is_dir():
        raise ConfigurationError("Stores directory not found", path=stores_root)
    try:
        entries: List[Path] = sorted(stores_root.iterdir())
    except OSError as exc:
        raise SynthesisIOError(f"Cannot list stores directory: {exc}", path=stores_root) from exc

    packages: List[Path] = []
    for entry in entries:
        try:
            is_dir: bool = stat.S_ISDIR(entry.stat().st_mode)
        except FileNotFoundError:
            logger.debug("Skipping vanished entry %s", entry)
            continue
        except OSError as exc:
            raise SynthesisIOError(f"Cannot inspect entry: {exc}", path=entry) from exc
        if not is_dir:
            continue
        if entry.name.endswith(tuple(config.mock_directory_suffixes)):
            logger.debug("Skipping mock directory %s", entry.name)
            continue
        packages.append(entry)

    logger.info("Discovered %d package(s) under %s", len(packages), stores_root)
    return packages


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class PackageAggregator:
    """
    Builds one ``Package`` per directory.

    Args:
        config: Conventions (file names, markers, exceptions).
        builder: Model builder to use; one is created from *config* if omitted.
        dry_run: When True, stale synthesized files are listed but not deleted.
    """

    def __init__(
        self,
        config: Optional[SynthesisConfig] = None,
        builder: Optional[ModelBuilder] = None,
        *,
        dry_run: bool = False,
    ) -> None:
        self._config: SynthesisConfig = config or SynthesisConfig()
        self._builder: ModelBuilder = builder or ModelBuilder(self._config)
        self._dry_run: bool = dry_run

    # -- File classification ------------------------------------------------

    def _source_files(self, directory: Path) -> List[Path]:
        pattern: str = f"*.{self._config.source_extension}"
        try:
            return sorted(p for p in directory.glob(pattern) if p.is_file())
        except OSError as exc:
            raise SynthesisIOError(f"Cannot list package files: {exc}", path=directory) from exc

    def is_generated(self, path: Path) -> bool:
        return self._config.generated_marker in path.name

    def is_test(self, path: Path) -> bool:
        return path.stem.endswith(self._config.test_file_suffix)

    # -- Cleanup ------------------------------------------------------------

    def clean(self, directory: Path) -> List[Path]:
        """
        Delete every synthesized file in *directory*; return what was removed.

        A file that is already gone is not an error.
        """
        stale: List[Path] = [p for p in self._source_files(directory) if self.is_generated(p)]
        if self._dry_run:
            logger.info("Dry run: would remove %d synthesized file(s) in %s", len(stale), directory)
            return stale
        removed: List[Path] = []
        for path in stale:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise SynthesisIOError(f"Cannot delete synthesized file: {exc}", path=path) from exc
            removed.append(path)
        if removed:
            logger.info("Removed %d synthesized file(s) in %s", len(removed), directory)
        return removed

    # -- Canonical files ----------------------------------------------------

    def resolve(self, directory: Path, files: List[Path]) -> Tuple[Path, Path]:
        """
        Return ``(store_file, primary_entity_file)`` for a package directory.

        Raises:
            ConfigurationError: either canonical file is missing.
        """
        cfg: SynthesisConfig = self._config
        name: str = directory.name
        by_name = {p.name: p for p in files}

        store_file: Optional[Path] = by_name.get(cfg.file_name(cfg.store_file_name))
        if store_file is None:
            raise ConfigurationError("Package doesn't have a store file", path=directory)

        candidates: List[str] = [name, name + cfg.entity_file_suffix]
        if name in cfg.primary_entity_exceptions:
            candidates.append(cfg.primary_entity_exceptions[name])
        for stem in candidates:
            entity_file: Optional[Path] = by_name.get(cfg.file_name(stem))
            if entity_file is not None and entity_file != store_file:
                return store_file, entity_file
        raise ConfigurationError("Package doesn't have an entity file", path=directory)

    # -- Reading ------------------------------------------------------------

    @staticmethod
    def _read(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SynthesisIOError(f"Cannot read source file: {exc}", path=path) from exc

    # -- Aggregation --------------------------------------------------------

    def aggregate(self, directory: Path, *, stores_root: Path) -> Package:
        """
        Clean, parse and link one package directory.

        Raises:
            ConfigurationError: canonical files missing.
            StructuralParseError: a canonical or marked file does not parse.
            InvariantViolation: cross-model validation failed.
            SynthesisIOError: reading or deleting failed.
        """
        cfg: SynthesisConfig = self._config
        name: str = directory.name
        import_path: str = import_path_for(directory, stores_root, cfg)
        logger.info("Aggregating package %s (%s)", name, import_path)

        self.clean(directory)
        files: List[Path] = [p for p in self._source_files(directory) if not self.is_generated(p)]
        store_file, entity_file = self.resolve(directory, files)

        main_entity: Entity = self._builder.build_entity(
            self._read(entity_file),
            package_name=name,
            import_path=import_path,
            source_path=entity_file,
        )
        store: Store = self._builder.build_store(
            self._read(store_file),
            package_name=name,
            main_entity=main_entity,
            source_path=store_file,
        )

        entities: List[Entity] = []
        for path in files:
            if path in (store_file, entity_file) or self.is_test(path):
                continue
            try:
                source: str = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                logger.debug("Skipping vanished file %s", path)
                continue
            except OSError as exc:
                raise SynthesisIOError(f"Cannot read source file: {exc}", path=path) from exc

            self._builder.harvest_file(
                store,
                source,
                collect_public=cfg.entity_marker not in source,
                source_path=path,
            )
            if declares_entity(source, cfg.entity_marker):
                entities.append(
                    self._builder.build_entity(
                        source,
                        package_name=name,
                        import_path=import_path,
                        source_path=path,
                    )
                )
            else:
                logger.debug("%s does not declare an entity", path.name)

        self._builder.finalize_store(store)
        package: Package = Package(
            name=name,
            path=str(directory),
            import_path=import_path,
            store=store,
            main_entity=main_entity,
            entities=entities,
        )

        result: ValidationResult = validate_package(package, cfg)
        if not result.is_valid:
            raise InvariantViolation(result.format_report(), path=directory)

        logger.info(
            "Package %s: store %s, %d entit%s",
            name,
            store.struct_name,
            len(package.all_entities),
            "y" if len(package.all_entities) == 1 else "ies",
        )
        return package


__all__: List[str] = [
    "resolve_stores_root",
    "import_path_for",
    "discover_packages",
    "PackageAggregator",
]

logger.debug("storesynth.packages loaded.")

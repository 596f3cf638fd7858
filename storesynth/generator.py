# File: storesynth/generator.py
"""
storesynth - Synthesis Pipeline (Orchestrator)
===============================================

Connects every phase together:

    Discovery → Aggregation → Synthesis → Export → Meta scaffold → Formatter

The ``StoreSynthesizer`` class provides both a programmatic API and the
backend for the CLI.

Workflow::

    1. Resolve the stores root and list its package directories.
    2. For each package (sorted): delete stale synthesized files, build the
       store and entity models, validate them (packages.py).
    3. Render the entity, entity test and store files (templates.py).
    4. Write them with owner-only permissions (exporters.py).
    5. Rebuild the ``storesmeta`` scaffold (meta.py).
    6. Run the formatter over the stores root.

Error handling strategy:
    - The first ``SynthesisError`` stops the run and propagates to the
      caller; nothing is retried.
    - A package whose files were written before a later package failed keeps
      its output; no package is written partially.
    - The report is only produced for a successful run.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from storesynth.errors import ConfigurationError, FormatterError
from storesynth.exporters import ExportManifest, FileExporter
from storesynth.meta import MetaScaffoldBuilder
from storesynth.models import Entity, GeneratedFile, Package, SynthesisConfig
from storesynth.packages import PackageAggregator, discover_packages, resolve_stores_root
from storesynth.templates import SynthesisEngine
from storesynth.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.generator")

CONFIG_SECTION_KEY: str = "storesynth"


# ---------------------------------------------------------------------------
# Synthesis report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class SynthesisReport:
    """Metrics of one successful run, produced by ``StoreSynthesizer.run()``."""

    stores_root: str = ""
    dry_run: bool = False
    packages: List[str] = field(default_factory=list)
    total_entities: int = 0
    total_files: int = 0
    total_bytes: int = 0
    total_elapsed_seconds: float = 0.0
    formatter_ran: bool = False
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        lines.append(f"{'='*60}")
        lines.append("  storesynth - Synthesis Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Stores root:      {self.stores_root}")
        lines.append(f"  Mode:             {'dry run' if self.dry_run else 'write'}")
        lines.append(f"  Packages:         {len(self.packages)}")
        lines.append(f"  Entities:         {self.total_entities}")
        lines.append(f"  Files written:    {self.total_files}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Formatter:        {'ran' if self.formatter_ran else 'skipped'}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        if self.packages:
            lines.append(f"{'─'*60}")
            for name in self.packages:
                lines.append(f"    ✓ {name}")
        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Config loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON: {exc}", path=path) from exc


def _load_yaml_file(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML: {exc}", path=path) from exc


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SynthesisConfig:
    """
    Build the run configuration.

    The file (YAML for ``.yaml``/``.yml``, JSON otherwise) holds a mapping of
    ``SynthesisConfig`` fields, either at top level or under a
    ``storesynth`` key.  *overrides* (from the CLI) win over the file.

    Raises:
        ConfigurationError: unreadable file, bad syntax, unknown keys or
            invalid values.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        if not path.is_file():
            raise ConfigurationError("Config file not found", path=path)
        try:
            raw: Any = (
                _load_yaml_file(path)
                if path.suffix.lower() in (".yaml", ".yml")
                else _load_json_file(path)
            )
        except OSError as exc:
            raise ConfigurationError(f"Cannot read config file: {exc}", path=path) from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Expected a mapping at top level, got {type(raw).__name__}", path=path
            )
        section: Any = raw.get(CONFIG_SECTION_KEY, raw)
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"`{CONFIG_SECTION_KEY}` must be a mapping", path=path
            )
        data.update(section)

    if overrides:
        data.update(overrides)

    try:
        config: SynthesisConfig = SynthesisConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Config validation failed: {exc}", path=path) from exc
    logger.debug("Loaded config (%d explicit setting(s))", len(data))
    return config


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


def run_formatter(stores_root: Path, config: SynthesisConfig) -> str:
    """
    Run the configured formatter inside *stores_root* and return its output.

    Raises:
        FormatterError: the executable is missing or exits non-zero; the
            captured output is attached.
    """
    command: List[str] = list(config.formatter_command)
    logger.info("Running formatter: %s", " ".join(command))
    try:
        completed: subprocess.CompletedProcess = subprocess.run(
            command,
            cwd=str(stores_root),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise FormatterError(
            f"Cannot run formatter `{command[0]}`: {exc}", path=stores_root
        ) from exc

    output: str = (completed.stdout or "") + (completed.stderr or "")
    if completed.returncode != 0:
        raise FormatterError(
            f"Formatter exited with status {completed.returncode}",
            path=stores_root,
            output=output,
        )
    return output


# ---------------------------------------------------------------------------
# StoreSynthesizer - Master orchestrator
# ---------------------------------------------------------------------------


class StoreSynthesizer:
    """
    Master pipeline orchestrator.

    Usage::

        synthesizer = StoreSynthesizer(load_config(Path("storesynth.yaml")))
        report = synthesizer.run(Path.cwd())
        print(report.summary())

    The synthesizer is reusable; each ``run()`` starts a fresh manifest.
    """

    def __init__(
        self,
        config: Optional[SynthesisConfig] = None,
        *,
        dry_run: bool = False,
    ) -> None:
        self._config: SynthesisConfig = config or SynthesisConfig()
        self._dry_run: bool = dry_run
        self._engine: SynthesisEngine = SynthesisEngine(self._config)
        self._aggregator: PackageAggregator = PackageAggregator(self._config, dry_run=dry_run)
        logger.debug(
            "StoreSynthesizer initialised: dry_run=%s, formatter=%s, meta=%s.",
            dry_run,
            self._config.run_formatter,
            self._config.build_meta,
        )

    @property
    def config(self) -> SynthesisConfig:
        return self._config

    # -----------------------------------------------------------------
    # Rendering (pure)
    # -----------------------------------------------------------------

    def entity_file_names(self, entity: Entity) -> List[str]:
        cfg: SynthesisConfig = self._config
        stem: str = entity.name.lower() + cfg.generated_marker
        return [cfg.file_name(stem), cfg.file_name(stem, test=True)]

    def synthesize_package(self, package: Package) -> List[GeneratedFile]:
        """
        Render every output file of an aggregated package.

        Order: primary entity, secondary entities, store.  Nothing is
        written; a rendering error leaves the package without new output.
        """
        cfg: SynthesisConfig = self._config
        files: List[GeneratedFile] = []
        for entity in package.all_entities:
            main_name, test_name = self.entity_file_names(entity)
            files.append(GeneratedFile(path=main_name, content=self._engine.render_entity(entity)))
            files.append(
                GeneratedFile(path=test_name, content=self._engine.render_entity_test(entity))
            )
        if package.store is not None:
            files.append(
                GeneratedFile(
                    path=cfg.file_name(cfg.store_file_name + cfg.generated_marker),
                    content=self._engine.render_store(package.store),
                )
            )
        return files

    # -----------------------------------------------------------------
    # Full run
    # -----------------------------------------------------------------

    def run(self, start: Path, *, manifest_path: Optional[Path] = None) -> SynthesisReport:
        """
        Synthesize every package under the stores root derived from *start*.

        Raises:
            SynthesisError: the first failure of any step, unchanged.
        """
        cfg: SynthesisConfig = self._config
        stores_root: Path = resolve_stores_root(start.resolve(), cfg)
        exporter: FileExporter = FileExporter(cfg, stores_root=stores_root, dry_run=self._dry_run)
        report: SynthesisReport = SynthesisReport(
            stores_root=str(stores_root), dry_run=self._dry_run
        )

        with Timer("synthesis run") as timer:
            for directory in discover_packages(stores_root, cfg):
                with Timer(f"package {directory.name}"):
                    package: Package = self._aggregator.aggregate(
                        directory, stores_root=stores_root
                    )
                    exporter.export(directory, self.synthesize_package(package))
                report.packages.append(package.name)
                report.total_entities += len(package.all_entities)

            if cfg.build_meta:
                MetaScaffoldBuilder(cfg, exporter).build(stores_root, dry_run=self._dry_run)

            if cfg.run_formatter and not self._dry_run:
                output: str = run_formatter(stores_root, cfg)
                if output.strip():
                    logger.info("Formatter output:\n%s", output.rstrip())
                report.formatter_ran = True

        report.manifest = exporter.manifest
        report.total_files = exporter.manifest.total_files
        report.total_bytes = exporter.manifest.total_bytes
        report.total_elapsed_seconds = timer.elapsed

        if manifest_path is not None:
            exporter.write_manifest(manifest_path)

        logger.info(
            "Synthesized %d package(s), %d file(s) in %.3fs.",
            len(report.packages),
            report.total_files,
            timer.elapsed,
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SynthesisReport",
    "StoreSynthesizer",
    "load_config",
    "run_formatter",
]

logger.debug("storesynth.generator loaded.")

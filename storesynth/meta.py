# File: storesynth/meta.py
"""
storesynth - Meta Scaffold Builder
===================================
Rebuilds the ``storesmeta`` Go package that lives next to the stores root.
The directory is removed and recreated on every run, so it never carries
stale files.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List

from storesynth.errors import SynthesisIOError
from storesynth.exporters import FileExporter, FileRecord
from storesynth.models import SynthesisConfig

logger: logging.Logger = logging.getLogger("storesynth.meta")


class MetaScaffoldBuilder:
    """Writes ``<meta>/<meta>.go`` and its (empty) test file."""

    def __init__(self, config: SynthesisConfig, exporter: FileExporter) -> None:
        self._config: SynthesisConfig = config
        self._exporter: FileExporter = exporter

    def meta_directory(self, stores_root: Path) -> Path:
        return stores_root.parent / self._config.meta_directory_name

    def render_source(self) -> str:
        cfg: SynthesisConfig = self._config
        name: str = cfg.meta_directory_name
        lines: List[str] = [
            f"// Code generated by {cfg.generator_name}. DO NOT EDIT.",
            f"package {name}",
            "",
            "// StoresMeta object.",
            "type StoresMeta struct{}",
            "",
            "// New returns a new instance of StoresMeta.",
            "func New() (*StoresMeta, error) {",
            "\treturn &StoresMeta{}, nil",
            "}",
        ]
        return "\n".join(lines) + "\n"

    def render_test_source(self) -> str:
        cfg: SynthesisConfig = self._config
        return (
            f"// Code generated by {cfg.generator_name}. DO NOT EDIT.\n"
            f"package {cfg.meta_directory_name}_test\n"
        )

    def build(self, stores_root: Path, *, dry_run: bool = False) -> List[FileRecord]:
        """
        Remove and recreate the meta directory, then write its two files.

        Raises:
            SynthesisIOError: the directory could not be replaced.
        """
        cfg: SynthesisConfig = self._config
        directory: Path = self.meta_directory(stores_root)
        if not dry_run:
            try:
                if directory.exists():
                    shutil.rmtree(directory)
                directory.mkdir(mode=cfg.directory_mode)
            except OSError as exc:
                raise SynthesisIOError(
                    f"Cannot recreate meta directory: {exc}", path=directory
                ) from exc

        name: str = cfg.meta_directory_name
        records: List[FileRecord] = [
            self._exporter.write_file(directory / cfg.file_name(name), self.render_source()),
            self._exporter.write_file(
                directory / cfg.file_name(name, test=True), self.render_test_source()
            ),
        ]
        logger.info("Rebuilt meta scaffold in %s", directory)
        return records


__all__: List[str] = ["MetaScaffoldBuilder"]

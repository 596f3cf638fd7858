# File: storesynth/exporters.py
"""
storesynth - File Exporter
===========================

Responsible for:
    1. Writing synthesized files into their package directory, replacing
       any existing file of the same name (write-to-temp then rename).
    2. Applying the configured owner-only permission bits.
    3. Recording every write in a manifest with checksums, optionally
       dumped as JSON for reproducibility checks.

Unlike the rest of the pipeline the exporter never interprets content.  A
failed write raises ``SynthesisIOError`` at once; files written before the
failure stay in place.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from storesynth.errors import SynthesisIOError
from storesynth.models import GeneratedFile, SynthesisConfig
from storesynth.utils import sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.exporters")


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single written file."""

    path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Every file written during one run, in write order."""

    generator_name: str = ""
    generator_version: str = ""
    export_timestamp: str = ""
    stores_root: str = ""
    dry_run: bool = False
    files: List[FileRecord] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to a JSON-serialisable dictionary."""
        return {
            "generator_name": self.generator_name,
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "stores_root": self.stores_root,
            "dry_run": self.dry_run,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "files": [
                {
                    "path": f.path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        """Serialise manifest to pretty-printed JSON."""
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Exporter
# ---------------------------------------------------------------------------


class FileExporter:
    """
    Writes ``GeneratedFile`` objects and keeps the run manifest.

    Usage::

        exporter = FileExporter(config, stores_root=Path("stores"))
        exporter.export(Path("stores/user"), files)
        print(exporter.manifest.to_json())

    Thread-safety: NOT thread-safe.  Use one exporter per run.
    """

    def __init__(
        self,
        config: Optional[SynthesisConfig] = None,
        *,
        stores_root: Optional[Path] = None,
        dry_run: bool = False,
    ) -> None:
        from storesynth import __version__

        self._config: SynthesisConfig = config or SynthesisConfig()
        self._dry_run: bool = dry_run
        self._manifest: ExportManifest = ExportManifest(
            generator_name=self._config.generator_name,
            generator_version=__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            stores_root=str(stores_root) if stores_root is not None else "",
            dry_run=dry_run,
        )

    @property
    def manifest(self) -> ExportManifest:
        return self._manifest

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, directory: Path, files: Iterable[GeneratedFile]) -> List[FileRecord]:
        """
        Write *files* into *directory*.

        Raises:
            SynthesisIOError: a file could not be written.
        """
        records: List[FileRecord] = []
        for generated in files:
            records.append(self.write_file(directory / generated.path, generated.content))
        return records

    def write_file(self, target: Path, content: str, mode: Optional[int] = None) -> FileRecord:
        """Write one file (overwrite-if-exists) and record it."""
        file_mode: int = self._config.file_mode if mode is None else mode
        encoded: bytes = content.encode("utf-8")
        record: FileRecord = FileRecord(
            path=str(target),
            size_bytes=len(encoded),
            line_count=content.count("\n"),
            sha256=sha256_hex(content),
        )
        if self._dry_run:
            logger.info("Dry run: would write %s (%d bytes)", target, record.size_bytes)
        else:
            try:
                self._atomic_write(target, encoded, file_mode)
            except OSError as exc:
                raise SynthesisIOError(f"Cannot write file: {exc}", path=target) from exc
            logger.info("Wrote %s (%d bytes)", target, record.size_bytes)
        self._manifest.files.append(record)
        return record

    def write_manifest(self, path: Path) -> None:
        """Dump the manifest as JSON (written even in dry-run mode)."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self._manifest.to_json() + "\n", encoding="utf-8")
        except OSError as exc:
            raise SynthesisIOError(f"Cannot write manifest: {exc}", path=path) from exc
        logger.info("Wrote manifest to %s", path)

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    @staticmethod
    def _atomic_write(target_path: Path, data: bytes, mode: int) -> None:
        """
        Write data to target_path atomically using a temporary file.

        The temp file lives in the target directory so ``os.replace`` never
        crosses filesystems.  It is removed again if anything fails.
        """
        fd, tmp_path = tempfile.mkstemp(
            dir=str(target_path.parent),
            prefix=f".{target_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, str(target_path))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FileExporter",
    "ExportManifest",
    "FileRecord",
]

logger.debug("storesynth.exporters loaded.")

"""
tests/test_generator.py
End-to-end tests for storesynth.generator and storesynth.cli.

Tests cover:
- Config loading (YAML, JSON, section key, overrides, failures)
- The formatter runner
- Full synthesis runs on real package trees (scenarios, idempotence,
  cleanup, dry runs, manifests, meta scaffold)
- CLI exit codes

Run with:
    pytest tests/ -v
"""

from __future__ import annotations

import json
import pathlib
import sys
from typing import Callable, Dict, List

import pytest
import yaml

from storesynth.cli import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_FORMATTER_ERROR,
    EXIT_INVARIANT_ERROR,
    EXIT_PARSE_ERROR,
    EXIT_SUCCESS,
    cli_main,
)
from storesynth.errors import ConfigurationError, FormatterError
from storesynth.generator import StoreSynthesizer, load_config, run_formatter
from storesynth.models import SynthesisConfig

from tests.conftest import THING_ENTITY_SOURCE, THING_STORE_SOURCE

MakePackage = Callable[[str, Dict[str, str]], pathlib.Path]


def _synthesized(root: pathlib.Path) -> Dict[str, str]:
    """Relative path → content of every synthesized file below *root*."""
    return {
        str(p.relative_to(root)): p.read_text(encoding="utf-8")
        for p in sorted(root.rglob("*_synthesized*.go"))
    }


# ===========================================================================
# Config loading
# ===========================================================================


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.generator_name == "storesynth"
        assert config.file_mode == 0o600
        assert config.translation_skip_fields == ["language", "field", "value"]

    def test_yaml_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.yaml"
        path.write_text(
            yaml.safe_dump({"generator_name": "gen", "run_formatter": False}), encoding="utf-8"
        )
        config = load_config(path)
        assert config.generator_name == "gen"
        assert not config.run_formatter

    def test_section_key(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "tools.yml"
        path.write_text(
            yaml.safe_dump({"storesynth": {"import_root": "example.com/app/stores"}}),
            encoding="utf-8",
        )
        assert load_config(path).import_root == "example.com/app/stores"

    def test_json_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.json"
        path.write_text(json.dumps({"source_extension": ".go"}), encoding="utf-8")
        assert load_config(path).source_extension == "go"

    def test_overrides_win(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.yaml"
        path.write_text("generator_name: file\n", encoding="utf-8")
        assert load_config(path, {"generator_name": "cli"}).generator_name == "cli"

    def test_empty_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == SynthesisConfig()

    def test_unknown_key(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.yaml"
        path.write_text("no_such_setting: 1\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(path)

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.yaml"
        path.write_text("a: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_invalid_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)


# ===========================================================================
# Formatter
# ===========================================================================


class TestRunFormatter:
    def test_success_returns_output(self, tmp_path: pathlib.Path) -> None:
        config = SynthesisConfig(formatter_command=[sys.executable, "-c", "print('formatted')"])
        assert run_formatter(tmp_path, config).strip() == "formatted"

    def test_non_zero_exit(self, tmp_path: pathlib.Path) -> None:
        config = SynthesisConfig(
            formatter_command=[
                sys.executable,
                "-c",
                "import sys; sys.stderr.write('bad syntax'); sys.exit(2)",
            ]
        )
        with pytest.raises(FormatterError) as excinfo:
            run_formatter(tmp_path, config)
        assert "status 2" in str(excinfo.value)
        assert "bad syntax" in excinfo.value.output

    def test_missing_executable(self, tmp_path: pathlib.Path) -> None:
        config = SynthesisConfig(formatter_command=["storesynth-no-such-formatter"])
        with pytest.raises(FormatterError, match="Cannot run formatter"):
            run_formatter(tmp_path, config)


# ===========================================================================
# Full runs
# ===========================================================================


class TestSynthesisRun:
    """StoreSynthesizer.run() on real trees."""

    def test_minimal_package(
        self, config: SynthesisConfig, thing_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        report = StoreSynthesizer(config).run(stores_root.parent)
        assert report.packages == ["thing"]
        assert sorted(p.name for p in thing_package.iterdir()) == [
            "store.go",
            "store_synthesized.go",
            "thing.go",
            "thing_synthesized.go",
            "thing_synthesized_test.go",
        ]
        test_source = (thing_package / "thing_synthesized_test.go").read_text(encoding="utf-8")
        # `name` round trip plus the four fixed tests; `active` is not persisted
        assert test_source.count("func Test") == 5
        assert "func TestThingName(" in test_source
        assert "TestThingActive" not in test_source

    def test_entity_accessors_for_unpersisted_field(
        self, config: SynthesisConfig, thing_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        StoreSynthesizer(config).run(stores_root)
        entity_source = (thing_package / "thing_synthesized.go").read_text(encoding="utf-8")
        assert "func (t *Thing) SetActive(active bool) {" in entity_source
        assert "func (t *Thing) SetName(name string) {" in entity_source

    def test_generated_fetch_without_hand_written_one(
        self, config: SynthesisConfig, thing_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        StoreSynthesizer(config).run(stores_root)
        store_source = (thing_package / "store_synthesized.go").read_text(encoding="utf-8")
        assert "func (t *ThingsStore) fetch(" in store_source

    def test_hand_written_fetch_suppresses_generated_one(
        self, config: SynthesisConfig, make_package: MakePackage, stores_root: pathlib.Path
    ) -> None:
        directory = make_package(
            "thing",
            {
                "store.go": THING_STORE_SOURCE
                + "\nfunc (t *ThingsStore) fetch(query string) error {\n\treturn nil\n}\n",
                "thing.go": THING_ENTITY_SOURCE,
            },
        )
        StoreSynthesizer(config).run(stores_root)
        store_source = (directory / "store_synthesized.go").read_text(encoding="utf-8")
        assert "fetch(" not in store_source
        assert "database/sql" not in store_source

    def test_translation_entity(
        self, config: SynthesisConfig, user_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        StoreSynthesizer(config).run(stores_root)
        source = (user_package / "usertranslation_synthesized.go").read_text(encoding="utf-8")
        interface = source.split("interface {", 1)[1].split("}", 1)[0]
        assert "database.TranslationModel" in interface
        assert "Language()" not in interface
        assert "Value()" not in interface
        assert "UserID() string" in interface

    def test_realistic_package_outputs(
        self, config: SynthesisConfig, user_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        report = StoreSynthesizer(config).run(stores_root)
        assert report.total_entities == 2
        assert report.total_files == 5
        assert sorted(_synthesized(stores_root)) == [
            "user/store_synthesized.go",
            "user/user_synthesized.go",
            "user/user_synthesized_test.go",
            "user/usertranslation_synthesized.go",
            "user/usertranslation_synthesized_test.go",
        ]

    def test_idempotent(
        self,
        config: SynthesisConfig,
        user_package: pathlib.Path,
        thing_package: pathlib.Path,
        stores_root: pathlib.Path,
    ) -> None:
        synthesizer = StoreSynthesizer(config)
        synthesizer.run(stores_root)
        first = _synthesized(stores_root)
        synthesizer.run(stores_root)
        assert _synthesized(stores_root) == first

    def test_stale_output_removed(
        self, config: SynthesisConfig, user_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        StoreSynthesizer(config).run(stores_root)
        assert not (user_package / "old_synthesized.go").exists()

    def test_renamed_entity_leaves_no_orphans(
        self, config: SynthesisConfig, make_package: MakePackage, stores_root: pathlib.Path
    ) -> None:
        part = "package thing\n\n// @synthesize\ntype Part struct {\n\tid string\n}\n"
        directory = make_package(
            "thing",
            {"store.go": THING_STORE_SOURCE, "thing.go": THING_ENTITY_SOURCE, "part.go": part},
        )
        StoreSynthesizer(config).run(stores_root)
        assert (directory / "part_synthesized.go").exists()

        (directory / "part.go").write_text(part.replace("Part", "Piece"), encoding="utf-8")
        StoreSynthesizer(config).run(stores_root)
        assert not (directory / "part_synthesized.go").exists()
        assert (directory / "piece_synthesized.go").exists()

    def test_packages_in_sorted_order(
        self,
        config: SynthesisConfig,
        user_package: pathlib.Path,
        thing_package: pathlib.Path,
        stores_root: pathlib.Path,
    ) -> None:
        report = StoreSynthesizer(config).run(stores_root)
        assert report.packages == ["thing", "user"]

    def test_error_stops_run_but_keeps_earlier_packages(
        self, config: SynthesisConfig, make_package: MakePackage, stores_root: pathlib.Path
    ) -> None:
        good = make_package(
            "alpha",
            {
                "store.go": THING_STORE_SOURCE.replace("thing", "alpha"),
                "alpha.go": THING_ENTITY_SOURCE.replace("thing", "alpha").replace(
                    "Thing", "Alpha"
                ),
            },
        )
        bad = make_package("zulu", {"store.go": "package zulu\n"})
        with pytest.raises(ConfigurationError):
            StoreSynthesizer(config).run(stores_root)
        assert (good / "alpha_synthesized.go").exists()
        assert not list(bad.glob("*_synthesized*"))

    def test_dry_run(
        self, config: SynthesisConfig, user_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        report = StoreSynthesizer(config, dry_run=True).run(stores_root)
        assert report.dry_run
        assert report.total_files == 5
        assert (user_package / "old_synthesized.go").exists()
        assert not (user_package / "user_synthesized.go").exists()

    def test_manifest(
        self,
        config: SynthesisConfig,
        thing_package: pathlib.Path,
        stores_root: pathlib.Path,
        tmp_path: pathlib.Path,
    ) -> None:
        manifest_path = tmp_path / "manifest.json"
        StoreSynthesizer(config).run(stores_root, manifest_path=manifest_path)
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
        names: List[str] = [pathlib.Path(f["path"]).name for f in data["files"]]
        assert names == ["thing_synthesized.go", "thing_synthesized_test.go", "store_synthesized.go"]

    def test_meta_scaffold(self, thing_package: pathlib.Path, stores_root: pathlib.Path) -> None:
        config = SynthesisConfig(run_formatter=False, build_meta=True)
        report = StoreSynthesizer(config).run(stores_root)
        meta = stores_root.parent / "storesmeta"
        assert (meta / "storesmeta.go").is_file()
        assert (meta / "storesmeta_test.go").is_file()
        assert report.total_files == 5

    def test_formatter_runs_in_stores_root(
        self, thing_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        script = "import os; open('formatted.txt', 'w').write(os.getcwd())"
        config = SynthesisConfig(
            build_meta=False, formatter_command=[sys.executable, "-c", script]
        )
        report = StoreSynthesizer(config).run(stores_root)
        assert report.formatter_ran
        marker = stores_root / "formatted.txt"
        assert pathlib.Path(marker.read_text()).resolve() == stores_root.resolve()

    def test_summary(
        self, config: SynthesisConfig, thing_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        summary = StoreSynthesizer(config).run(stores_root).summary()
        assert "storesynth - Synthesis Report" in summary
        assert "✓ thing" in summary


# ===========================================================================
# CLI
# ===========================================================================


def _run_cli(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli_main(argv)
    return int(excinfo.value.code or 0)


class TestCli:
    BASE: List[str] = ["--no-format", "--no-meta", "-q"]

    def test_success(self, thing_package: pathlib.Path, stores_root: pathlib.Path) -> None:
        assert _run_cli(["--root", str(stores_root), *self.BASE]) == EXIT_SUCCESS
        assert (thing_package / "thing_synthesized.go").exists()

    def test_prints_summary(
        self,
        thing_package: pathlib.Path,
        stores_root: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _run_cli(["--root", str(stores_root), "--no-format", "--no-meta"])
        assert "Synthesis Report" in capsys.readouterr().out

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli(["--version"]) == 0
        assert "storesynth v" in capsys.readouterr().out

    def test_missing_stores_directory(self, tmp_path: pathlib.Path) -> None:
        assert _run_cli(["--root", str(tmp_path), *self.BASE]) == EXIT_CONFIGURATION_ERROR

    def test_missing_entity_file(self, make_package: MakePackage, stores_root: pathlib.Path) -> None:
        make_package("thing", {"store.go": THING_STORE_SOURCE})
        assert _run_cli(["--root", str(stores_root), *self.BASE]) == EXIT_CONFIGURATION_ERROR

    def test_parse_error(self, make_package: MakePackage, stores_root: pathlib.Path) -> None:
        make_package("thing", {"store.go": THING_STORE_SOURCE, "thing.go": "package thing\n"})
        assert _run_cli(["--root", str(stores_root), *self.BASE]) == EXIT_PARSE_ERROR

    def test_invariant_violation(
        self, make_package: MakePackage, stores_root: pathlib.Path
    ) -> None:
        make_package(
            "thing",
            {
                "store.go": THING_STORE_SOURCE,
                "thing.go": THING_ENTITY_SOURCE.replace("name   string", "name   []string"),
            },
        )
        assert _run_cli(["--root", str(stores_root), *self.BASE]) == EXIT_INVARIANT_ERROR

    def test_bad_config_file(self, stores_root: pathlib.Path, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "storesynth.yaml"
        path.write_text("unknown: true\n", encoding="utf-8")
        argv = ["--root", str(stores_root), "--config", str(path), *self.BASE]
        assert _run_cli(argv) == EXIT_CONFIGURATION_ERROR

    def test_formatter_failure(
        self, thing_package: pathlib.Path, stores_root: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        path = tmp_path / "storesynth.json"
        path.write_text(
            json.dumps(
                {"formatter_command": [sys.executable, "-c", "import sys; sys.exit(1)"]}
            ),
            encoding="utf-8",
        )
        argv = ["--root", str(stores_root), "--config", str(path), "--no-meta", "-q"]
        assert _run_cli(argv) == EXIT_FORMATTER_ERROR

    def test_dry_run(self, thing_package: pathlib.Path, stores_root: pathlib.Path) -> None:
        assert _run_cli(["--root", str(stores_root), "--dry-run", *self.BASE]) == EXIT_SUCCESS
        assert not (thing_package / "thing_synthesized.go").exists()

    def test_generator_name_override(
        self, thing_package: pathlib.Path, stores_root: pathlib.Path
    ) -> None:
        argv = ["--root", str(stores_root), "--generator-name", "espal-gen", *self.BASE]
        assert _run_cli(argv) == EXIT_SUCCESS
        content = (thing_package / "store_synthesized.go").read_text(encoding="utf-8")
        assert content.startswith("// Code generated by espal-gen. DO NOT EDIT.\n")

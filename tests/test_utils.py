"""
tests/test_utils.py
Unit tests for storesynth.utils and storesynth.errors.
"""

from __future__ import annotations

import pytest

from storesynth.errors import (
    ConfigurationError,
    FormatterError,
    StructuralParseError,
    SynthesisError,
)
from storesynth.utils import (
    Timer,
    first_letter_lower,
    is_standard_library_import,
    sha256_hex,
    strip_lower_case,
    to_title,
)


class TestNaming:
    @pytest.mark.parametrize(
        "name, expected",
        [("firstName", "FirstName"), ("id", "Id"), ("URL", "URL"), ("_type", "_type"), ("", "")],
    )
    def test_to_title(self, name: str, expected: str) -> None:
        assert to_title(name) == expected

    def test_first_letter_lower(self) -> None:
        assert first_letter_lower("UsersStore") == "u"
        assert first_letter_lower("") == ""

    @pytest.mark.parametrize(
        "name, expected",
        [("UserAccount", "ua"), ("User", "u"), ("HTTPLog", "httpl"), ("lower", "")],
    )
    def test_strip_lower_case(self, name: str, expected: str) -> None:
        assert strip_lower_case(name) == expected

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("time", True),
            ("database/sql", True),
            ("github.com/juju/errors", False),
            ("gopkg.in/yaml.v3", False),
        ],
    )
    def test_standard_library_import(self, path: str, expected: bool) -> None:
        assert is_standard_library_import(path) is expected


class TestMisc:
    def test_sha256(self) -> None:
        assert sha256_hex("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_timer(self) -> None:
        with Timer("work") as timer:
            sum(range(1000))
        assert timer.elapsed >= 0.0
        assert "work" in repr(timer)


class TestErrors:
    def test_path_in_message(self) -> None:
        error = StructuralParseError("bad field", path="stores/user/user.go")
        assert str(error) == "bad field (at `stores/user/user.go`)"

    def test_without_path(self) -> None:
        assert str(ConfigurationError("missing")) == "missing"

    def test_exit_codes_are_distinct(self) -> None:
        codes = {cls.exit_code for cls in (SynthesisError, *SynthesisError.__subclasses__())}
        assert codes == {1, 2, 3, 4, 5, 6, 7}

    def test_formatter_output(self) -> None:
        assert FormatterError("failed", output="x.go:1: syntax").output == "x.go:1: syntax"

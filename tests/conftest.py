"""
tests/conftest.py
Shared fixtures for the storesynth test suite.

No external mocking libraries are used; real Go package directories are
written inside temporary directories managed by pytest's tmp_path fixture.
The formatter and the meta scaffold are disabled unless a test turns them
back on.
"""

from __future__ import annotations

import pathlib
import textwrap
from typing import Callable, Dict

import pytest

from storesynth.builder import ModelBuilder
from storesynth.models import SynthesisConfig
from storesynth.templates import SynthesisEngine


# ---------------------------------------------------------------------------
# Go sources
# ---------------------------------------------------------------------------

USER_ENTITY_SOURCE: str = textwrap.dedent(
    """\
    package user

    import (
    \t"time"
    )

    // @synthesize
    type User struct {
    \tid                 string
    \tcreatedByID        string
    \tupdatedByID        *string
    \tcreatedAt          time.Time
    \tupdatedAt          *time.Time
    \tcreatedByFirstName *string
    \tcreatedBySurname   *string
    \tupdatedByFirstName *string
    \tupdatedBySurname   *string
    \tfirstName          *string
    \temail              string
    \tactive             bool
    \tavatar             []byte
    \tcached             bool // @synthesize-no-db-field
    }

    type userMethods interface {
    \tFullName() string
    \tHasAvatar() (ok bool)
    }

    // FullName returns the display name.
    func (u *User) FullName() string {
    \treturn u.email
    }

    // HasAvatar reports whether an avatar is stored.
    func (u *User) HasAvatar() (ok bool) {
    \treturn len(u.avatar) > 0
    }
    """
)

USER_TRANSLATION_SOURCE: str = textwrap.dedent(
    """\
    package user

    // @synthesize
    type UserTranslation struct {
    \tid          string
    \tcreatedByID string
    \tuserID      string
    \tlanguage    uint16
    \tfield       uint16
    \tvalue       string
    }
    """
)

USER_STORE_SOURCE: str = textwrap.dedent(
    """\
    package user

    import (
    \t"context"

    \t"github.com/espal-digital-development/espal-core/database"
    \tflt "github.com/espal-digital-development/espal-core/database/filters"
    \t"github.com/juju/errors"
    )

    // UsersStore data store.
    type UsersStore struct {
    \tselecterDatabase       database.Database
    \tdatabaseFiltersFactory flt.Factory
    }

    // GetOne fetches a User by ID.
    func (u *UsersStore) GetOne(id string) (*User, bool, error) {
    \tresult, ok, err := u.fetch(`SELECT 1`, false, id)
    \tif len(result) == 1 {
    \t\treturn result[0], ok, errors.Trace(err)
    \t}
    \treturn nil, ok, errors.Trace(err)
    }

    // Filter runs a filtered query.
    func (u *UsersStore) Filter(ctx context.Context, q flt.QueryContext) (flt.Result, error) {
    \treturn nil, nil
    }

    func (u *UsersStore) buildQueries() error {
    \treturn nil
    }
    """
)

USER_EXTRA_METHODS_SOURCE: str = textwrap.dedent(
    """\
    package user

    import (
    \t"github.com/espal-digital-development/espal-core/stores/user/search"
    )

    // Search finds users by keyword.
    func (u *UsersStore) Search(
    \tkeyword string,
    \topts search.Options,
    ) ([]*User, error) {
    \treturn nil, nil
    }

    func (u *UsersStore) helper() {}

    type unrelated struct {
    \tname string
    }
    """
)

THING_ENTITY_SOURCE: str = textwrap.dedent(
    """\
    package thing

    // @synthesize
    type Thing struct {
    \tid     string
    \tname   string
    \tactive bool // @synthesize-no-db-field
    }
    """
)

THING_STORE_SOURCE: str = textwrap.dedent(
    """\
    package thing

    // ThingsStore data store.
    type ThingsStore struct {
    }
    """
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_package(
    stores_root: pathlib.Path, name: str, files: Dict[str, str]
) -> pathlib.Path:
    """Create ``stores_root/name`` holding *files* and return the directory."""
    directory = stores_root / name
    directory.mkdir(parents=True, exist_ok=True)
    for file_name, content in files.items():
        (directory / file_name).write_text(content, encoding="utf-8")
    return directory


# ---------------------------------------------------------------------------
# Configuration & pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> SynthesisConfig:
    """Default conventions, without formatter or meta scaffold."""
    return SynthesisConfig(run_formatter=False, build_meta=False)


@pytest.fixture()
def builder(config: SynthesisConfig) -> ModelBuilder:
    return ModelBuilder(config)


@pytest.fixture()
def engine(config: SynthesisConfig) -> SynthesisEngine:
    return SynthesisEngine(config)


# ---------------------------------------------------------------------------
# Filesystem fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def stores_root(tmp_path: pathlib.Path) -> pathlib.Path:
    root = tmp_path / "stores"
    root.mkdir()
    return root


@pytest.fixture()
def make_package(stores_root: pathlib.Path) -> Callable[[str, Dict[str, str]], pathlib.Path]:
    """Factory writing a package directory below the stores root."""

    def _make(name: str, files: Dict[str, str]) -> pathlib.Path:
        return write_package(stores_root, name, files)

    return _make


@pytest.fixture()
def user_package(make_package: Callable[[str, Dict[str, str]], pathlib.Path]) -> pathlib.Path:
    """A realistic package: store, primary entity, translation, extra store file."""
    return make_package(
        "user",
        {
            "store.go": USER_STORE_SOURCE,
            "user.go": USER_ENTITY_SOURCE,
            "usertranslation.go": USER_TRANSLATION_SOURCE,
            "search.go": USER_EXTRA_METHODS_SOURCE,
            "user_test.go": "package user_test\n",
            "old_synthesized.go": "package user\n",
        },
    )


@pytest.fixture()
def thing_package(make_package: Callable[[str, Dict[str, str]], pathlib.Path]) -> pathlib.Path:
    """Smallest package: no services, no methods, three properties."""
    return make_package(
        "thing",
        {"store.go": THING_STORE_SOURCE, "thing.go": THING_ENTITY_SOURCE},
    )

"""Pytest fixtures and test utilities."""
import json
import tempfile
from pathlib import Path

import pytest
import git

from elmcoupling.registry import ModuleRegistry


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_elm(path: Path, body: str) -> Path:
    """Write an Elm source file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    return path


@pytest.fixture
def elm_file():
    """Return a helper writing Elm source files."""
    return write_elm


@pytest.fixture
def chain_registry():
    """
    Registry with a simple chain: A imports B, B imports C, C imports nothing.
    """
    return ModuleRegistry.from_imports({"A": ["B"], "B": ["C"], "C": []})


@pytest.fixture
def sample_elm_project(temp_dir):
    """
    Create an Elm application with an installed package cache.

    Creates:
    - src/ with Main, Page.Home, Data.User, a file without a module
      declaration, and a non-Elm file
    - elm.json pinning elm/core, elm/html (direct) and elm/json (indirect)
    - cache/0.19.1/package/ with those packages plus elm/browser, which the
      manifest does not pin
    """
    project = temp_dir / "project"
    src = project / "src"

    write_elm(src / "Main.elm", """module Main exposing (main)

import Html
import Page.Home
import Page.Home exposing (view)


main =
    view
""")
    write_elm(src / "Page" / "Home.elm", """module Page.Home exposing (view)

import Html exposing (Html, text)
import Data.User as User
""")
    write_elm(src / "Data" / "User.elm", """module Data.User exposing (User, decoder)

import Json.Decode as Decode
""")
    write_elm(src / "Broken.elm", """-- Missing declaration on the first line
module Broken exposing (..)
""")
    (src / "notes.txt").write_text("module NotElm exposing (..)\n")

    elm_json = {
        "type": "application",
        "source-directories": ["src"],
        "elm-version": "0.19.1",
        "dependencies": {
            "direct": {"elm/core": "1.0.5", "elm/html": "1.0.0"},
            "indirect": {"elm/json": "1.1.3"},
        },
        "test-dependencies": {"direct": {}, "indirect": {}},
    }
    (project / "elm.json").write_text(json.dumps(elm_json, indent=4))

    packages = temp_dir / "cache" / "0.19.1" / "package"
    write_elm(packages / "elm" / "core" / "1.0.5" / "src" / "Basics.elm", """module Basics exposing (..)

import Elm.Kernel.Basics
""")
    write_elm(packages / "elm" / "core" / "1.0.5" / "src" / "List.elm", """module List exposing (..)

import Basics exposing (..)
import Elm.Kernel.List
""")
    write_elm(packages / "elm" / "html" / "1.0.0" / "src" / "Html.elm", """module Html exposing (..)

import Basics exposing (..)
import List
import VirtualDom
""")
    write_elm(packages / "elm" / "json" / "1.1.3" / "src" / "Json" / "Decode.elm", """module Json.Decode exposing (..)

import List
import Elm.Kernel.Json
""")
    write_elm(packages / "elm" / "browser" / "1.0.2" / "src" / "Browser.elm", """module Browser exposing (..)

import Html
""")

    yield {
        "project": project,
        "src": src,
        "elm_json": project / "elm.json",
        "package_dir": temp_dir / "cache",
    }


@pytest.fixture
def sample_git_repo(temp_dir):
    """
    Create a Git repository of Elm sources with known history.

    Creates a repository with:
    - src/Main.elm changed in 3 commits
    - src/Util.elm changed in 1 commit
    """
    repo_path = temp_dir / "elm_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")

    # Commit 1: Add Main and Util together
    write_elm(repo_path / "src" / "Main.elm", "module Main exposing (main)\n\nimport Util\n")
    write_elm(repo_path / "src" / "Util.elm", "module Util exposing (id)\n")
    repo.index.add(["src/Main.elm", "src/Util.elm"])
    repo.index.commit("Initial commit: add Main and Util")

    # Commit 2: Modify Main alone
    write_elm(repo_path / "src" / "Main.elm", "module Main exposing (main)\n\nimport Util\nimport Html\n")
    repo.index.add(["src/Main.elm"])
    repo.index.commit("Use Html in Main")

    # Commit 3: Modify Main again
    write_elm(repo_path / "src" / "Main.elm", "module Main exposing (main)\n\nimport Html\nimport Util\n")
    repo.index.add(["src/Main.elm"])
    repo.index.commit("Reorder imports")

    yield repo_path

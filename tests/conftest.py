"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from helpers import FakeRegistry, MakeRegistry, WriteWorkspace

from yarn_bump.models import BumpConfig

LOCKFILE = """\
# THIS IS AN AUTOGENERATED FILE. DO NOT EDIT THIS FILE DIRECTLY.
# yarn lockfile v1


"@backstage/core@^1.0.5":
  version "1.0.6"
  dependencies:
    "@backstage/core-api" "^1.0.6"

"@backstage/core@^1.0.3":
  version "1.0.3"
  dependencies:
    "@backstage/core-api" "^1.0.3"

"@backstage/theme@^1.0.0":
  version "1.0.0"

"@backstage/core-api@^1.0.6":
  version "1.0.6"

"@backstage/core-api@^1.0.3":
  version "1.0.3"
"""

REGISTRY_VERSIONS = {
    "@backstage/core": "1.0.6",
    "@backstage/core-api": "1.0.7",
    "@backstage/theme": "2.0.0",
    "@backstage/create-app": "1.4.1",
    "@backstage-extra/custom": "1.1.0",
    "@backstage-extra/custom-two": "2.0.0",
}


@pytest.fixture
def lockfile_text() -> str:
    """A yarn.lock with outdated entries for core, core-api and theme."""
    return LOCKFILE


@pytest.fixture
def write_workspace(tmp_path: Path) -> WriteWorkspace:
    """Return a helper that lays out a lerna workspace under tmp_path.

    Manifests are given as {directory name: package.json content}.
    """

    def _write(
        manifests: dict[str, dict[str, Any]], lockfile: str | None = None
    ) -> Path:
        (tmp_path / "lerna.json").write_text(json.dumps({"packages": ["packages/*"]}))
        for dirname, manifest in manifests.items():
            package_dir = tmp_path / "packages" / dirname
            package_dir.mkdir(parents=True)
            (package_dir / "package.json").write_text(json.dumps(manifest))
        if lockfile is not None:
            (tmp_path / "yarn.lock").write_text(lockfile)
        return tmp_path

    return _write


@pytest.fixture
def make_registry() -> MakeRegistry:
    """Return a factory for fake registries, defaulting to the usual versions."""

    def _make(versions: dict[str, str] | None = None) -> FakeRegistry:
        return FakeRegistry(dict(REGISTRY_VERSIONS if versions is None else versions))

    return _make


@pytest.fixture
def registry(make_registry: MakeRegistry) -> FakeRegistry:
    return make_registry()


@pytest.fixture
def config(tmp_path: Path) -> BumpConfig:
    return BumpConfig(root_dir=tmp_path)

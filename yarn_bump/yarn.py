"""Registry and install collaborators.

The bump pipeline only talks to the outside world through two small
interfaces, `Registry` and `Installer`. The defaults shell out to yarn; tests
and other callers can pass any object with the same methods.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from .shell import capture, run


class PackageNotFoundError(Exception):
    """The registry has no information about a package."""


class RegistryQueryError(Exception):
    """Any registry failure other than a missing package."""


class InstallError(Exception):
    """The install step failed."""


class Registry(Protocol):
    def query_latest(self, name: str) -> str:
        """Return the latest published version of `name`.

        Raises:
            PackageNotFoundError: If the package does not exist.
            RegistryQueryError: On any other failure.
        """
        ...


class Installer(Protocol):
    def run_install(self) -> None: ...


class PackageData(BaseModel):
    name: str
    dist_tags: dict[str, str] = Field(default_factory=dict, alias="dist-tags")


class YarnInfo(BaseModel):
    """Response of `yarn info --json <name>`."""

    type: str
    data: PackageData


class YarnRegistry:
    """Registry backed by `yarn info --json`."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def query_latest(self, name: str) -> str:
        try:
            output = capture("yarn", "info", "--json", name, cwd=self.root_dir)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise RegistryQueryError(
                f"Failed to fetch package info for {name}: {exc}"
            ) from exc

        # yarn prints nothing on stdout for unknown packages
        if not output:
            raise PackageNotFoundError(
                f"No package information found for package {name}"
            )

        try:
            info = YarnInfo.model_validate(json.loads(output))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise RegistryQueryError(
                f"Invalid package information for {name}: {exc}"
            ) from exc
        if info.type != "inspect":
            raise RegistryQueryError(
                f"Received unknown package information type {info.type} "
                f"for package {name}"
            )

        latest = info.data.dist_tags.get("latest")
        if not latest:
            raise RegistryQueryError(f"No latest version published for {name}")
        return latest


class YarnInstaller:
    """Installer running `yarn install` in the workspace root."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def run_install(self) -> None:
        try:
            run("yarn", "install", cwd=self.root_dir)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise InstallError(f"yarn install failed: {exc}") from exc


class VersionFinder:
    """Looks up latest versions, asking the registry once per package.

    Only found versions are cached, so a package that was not found is
    queried again the next time it is asked for.
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry
        self._found: dict[str, str] = {}

    def find(self, name: str) -> str | None:
        """Return the latest version of `name`, or None if it is unknown.

        Raises:
            RegistryQueryError: On registry failures other than not-found.
        """
        if name in self._found:
            return self._found[name]

        print(f"Checking for updates of {name}")
        try:
            latest = self.registry.query_latest(name)
        except PackageNotFoundError:
            print(f"Package info not found, ignoring package {name}")
            return None

        self._found[name] = latest
        return latest

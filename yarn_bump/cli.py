"""CLI entry point for yarn-bump."""

from __future__ import annotations

from pathlib import Path

import click

from yarn_bump.bump import bump_version_file, run_bump
from yarn_bump.config import ConfigError, load_config
from yarn_bump.lockfile import LockfileParseError
from yarn_bump.workspace import WorkspaceDiscoveryError
from yarn_bump.yarn import (
    InstallError,
    RegistryQueryError,
    YarnInstaller,
    YarnRegistry,
)

FATAL_ERRORS = (
    ConfigError,
    InstallError,
    LockfileParseError,
    RegistryQueryError,
    WorkspaceDiscoveryError,
)

root_option = click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Workspace root containing lerna.json or package.json and yarn.lock.",
)


@click.group()
@click.version_option(package_name="yarn-bump")
def cli() -> None:
    """Bump a family of npm packages across a yarn workspace."""


@cli.command()
@root_option
@click.option(
    "--pattern",
    default=None,
    help="Package-name glob to bump, e.g. '@{backstage,backstage-extra}/*'. "
    "Defaults to @backstage/*.",
)
def bump(root: Path, pattern: str | None) -> None:
    """Bump matching dependencies to their latest versions."""
    root = root.resolve()
    try:
        config = load_config(root, pattern)
        run_bump(config, YarnRegistry(root), YarnInstaller(root))
    except FATAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("version-file")
@root_option
def version_file(root: Path) -> None:
    """Update the workspace version file to the latest release."""
    root = root.resolve()
    try:
        config = load_config(root)
        version = bump_version_file(config, YarnRegistry(root))
    except FATAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc
    if version is not None:
        click.echo(f"✓ Set {config.version_file} version to {version}")

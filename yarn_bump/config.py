"""Configuration loading.

Settings default to bumping the Backstage packages. A workspace can override
them in an optional `.yarn-bump.toml` at its root, e.g.:

    default-pattern = "@{backstage,backstage-extra}/*"
    label = "Backstage"
    release-package = "@backstage/create-app"

    [changelog-paths]
    "@backstage/plugin-" = "plugins/"
    "@backstage/" = "packages/"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from .models import BumpConfig

CONFIG_FILE = ".yarn-bump.toml"
_ALLOWED_KEYS = set(BumpConfig.model_fields) - {"root_dir", "pattern"}


class ConfigError(Exception):
    """Raised when `.yarn-bump.toml` is unreadable or invalid."""


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a config file into plain Python values with underscore keys.

    Raises:
        ConfigError: On invalid TOML or unknown keys.
    """
    try:
        doc = tomlkit.parse(path.read_text())
    except TOMLKitError as exc:
        raise ConfigError(f"Invalid {path.name}: {exc}") from exc

    values = {key.replace("-", "_"): value for key, value in doc.unwrap().items()}
    unknown = set(values) - _ALLOWED_KEYS
    if unknown:
        raise ConfigError(
            f"Unknown keys in {path.name}: {', '.join(sorted(unknown))}"
        )
    return values


def load_config(root_dir: Path, pattern: str | None = None) -> BumpConfig:
    """Build the run configuration for a workspace.

    Args:
        root_dir: Workspace root.
        pattern: Package-name glob from the command line, if any.

    Raises:
        ConfigError: If the config file is invalid.
    """
    values: dict[str, Any] = {}
    config_path = root_dir / CONFIG_FILE
    if config_path.exists():
        values = load_config_file(config_path)

    try:
        return BumpConfig(root_dir=root_dir, pattern=pattern, **values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid {CONFIG_FILE}: {exc}") from exc

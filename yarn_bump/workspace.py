"""Workspace discovery and dependency mapping.

Finds every package.json in a lerna/yarn workspace and collects the
references to packages whose names match a glob such as "@backstage/*".
"""

from __future__ import annotations

import glob
import json
import re
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any

from .models import ManifestReference

DEPENDENCY_TYPES = ("dependencies", "devDependencies", "peerDependencies")

_BRACE_RE = re.compile(r"\{([^{}]*)\}")
# Ranges using one of these protocols are not resolved through the registry
_PROTOCOL_RE = re.compile(r"^[a-z+]+:")


class WorkspaceDiscoveryError(Exception):
    """Raised when the workspace root does not describe any packages."""


def load_manifest(path: Path) -> dict[str, Any]:
    """Load a package.json, keeping key order."""
    return json.loads(path.read_text())


def save_manifest(path: Path, manifest: dict[str, Any]) -> None:
    """Write a package.json back with 2-space indentation."""
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False) + "\n")


def get_workspace_member_globs(root_dir: Path) -> list[str]:
    """Extract the package directory globs of a workspace.

    Reads lerna.json `packages` first, then the root package.json
    `workspaces` field (either a list or `{"packages": [...]}`).

    Raises:
        WorkspaceDiscoveryError: If neither file lists any packages.
    """
    lerna = root_dir / "lerna.json"
    if lerna.exists():
        packages = load_manifest(lerna).get("packages")
        if packages:
            return list(packages)

    root_manifest = root_dir / "package.json"
    if root_manifest.exists():
        workspaces = load_manifest(root_manifest).get("workspaces")
        if isinstance(workspaces, dict):
            workspaces = workspaces.get("packages")
        if workspaces:
            return list(workspaces)

    raise WorkspaceDiscoveryError(
        f"No workspace packages defined in {root_dir}.\n"
        "Expected a lerna.json with a `packages` list or a package.json with "
        "`workspaces`. Example:\n\n"
        '  { "packages": ["packages/*", "plugins/*"] }'
    )


def discover_manifests(root_dir: Path) -> list[Path]:
    """Expand the workspace globs into package.json paths, in sorted order."""
    manifests: list[Path] = []
    # The root manifest only describes the workspace
    seen: set[Path] = {root_dir / "package.json"}
    for pattern in get_workspace_member_globs(root_dir):
        for match in sorted(glob.glob(str(root_dir / pattern))):
            manifest = Path(match) / "package.json"
            if manifest.exists() and manifest not in seen:
                manifests.append(manifest)
                seen.add(manifest)
    return manifests


def expand_braces(pattern: str) -> list[str]:
    """Expand "{a,b}" alternatives in a glob.

    Examples:
        "@{backstage,backstage-extra}/*" → ["@backstage/*", "@backstage-extra/*"]
    """
    match = _BRACE_RE.search(pattern)
    if not match:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def matches_pattern(name: str, pattern: str) -> bool:
    """Match a package name (not a path) against a glob.

    `*` and `?` never match the "/" between scope and name, so "@backstage/*"
    matches "@backstage/core" but not "@backstage-extra/core".
    """
    for expanded in expand_braces(pattern):
        name_parts = name.split("/")
        pattern_parts = expanded.split("/")
        if len(name_parts) == len(pattern_parts) and all(
            fnmatchcase(n, p) for n, p in zip(name_parts, pattern_parts)
        ):
            return True
    return False


def map_dependencies(
    root_dir: Path, pattern: str
) -> dict[str, list[ManifestReference]]:
    """Collect all references to packages matching `pattern`.

    Manifests are scanned in sorted path order and the returned mapping keeps
    the order in which each package name was first encountered.

    Args:
        root_dir: Workspace root.
        pattern: Package-name glob, e.g. "@backstage/*".

    Returns:
        Map of package name → references to it across the workspace.

    Raises:
        WorkspaceDiscoveryError: If the root does not list any packages.
    """
    dependency_map: dict[str, list[ManifestReference]] = {}
    for manifest_path in discover_manifests(root_dir):
        manifest = load_manifest(manifest_path)
        owner = manifest.get("name") or manifest_path.parent.name
        for dep_type in DEPENDENCY_TYPES:
            for name, range_str in (manifest.get(dep_type) or {}).items():
                if not matches_pattern(name, pattern):
                    continue
                if _PROTOCOL_RE.match(range_str):
                    continue
                dependency_map.setdefault(name, []).append(
                    ManifestReference(
                        location=manifest_path,
                        owner=owner,
                        name=name,
                        range=range_str,
                        dep_type=dep_type,
                    )
                )
    return dependency_map

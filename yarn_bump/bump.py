"""Version bump pipeline: map → check → unlock → bump → install.

This module orchestrates a bump of a package family across the workspace:
1. Map every manifest reference to packages matching the pattern
2. Ask the registry for the latest version of each package, one at a time
3. Bump manifest ranges the latest version falls outside of to "^<latest>"
4. Unlock yarn.lock entries that pin an older version within range, or whose
   range is no longer declared after bumping
5. Write manifests and yarn.lock, then run the install step
6. Report upgrades that may be breaking

Nothing is written until every registry query has completed, so a failing
query leaves the workspace untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from .lockfile import Lockfile, rewrite_lockfile, save_lockfile
from .models import (
    BreakingChange,
    BumpConfig,
    BumpResult,
    ManifestReference,
    UnlockedRange,
    VersionBump,
)
from .versions import caret_range, is_breaking, min_version, satisfies
from .workspace import load_manifest, map_dependencies, matches_pattern, save_manifest
from .yarn import Installer, PackageNotFoundError, Registry, VersionFinder


def reconcile(
    config: BumpConfig,
    dependency_map: Mapping[str, list[ManifestReference]],
    lockfile: Lockfile,
    finder: VersionFinder,
) -> BumpResult:
    """Decide which references to bump and which lock entries to unlock.

    Runs two sequential passes. The first checks the packages declared in
    the workspace manifests, in the order they were first encountered. If
    none of them could be found it is repeated once, in the same order. The
    second checks every package in the lockfile matching the pattern,
    which catches transitive dependencies. No package is queried again once
    it was found, and packages still missing after the first pass are
    skipped.

    Bumped references are updated in place in `dependency_map`.

    Args:
        config: Run configuration.
        dependency_map: Map of package name → manifest references.
        lockfile: Parsed yarn.lock, not modified.
        finder: Cached registry lookup.

    Returns:
        The bumps, unlocks and breaking changes to apply.

    Raises:
        RegistryQueryError: If a registry query fails for another reason than
            the package not existing.
    """
    bumps: list[VersionBump] = []
    candidates: list[UnlockedRange] = []
    breaking: dict[str, BreakingChange] = {}

    def unlock_if_stale(name: str, range_str: str, target: str) -> None:
        # A range starting at the target can't resolve to anything older
        if min_version(range_str) == target:
            return
        entry = lockfile.entry(name, range_str)
        if entry is not None and entry.version != target:
            candidates.append(UnlockedRange(name=name, range=range_str, target=target))

    def check_references(
        name: str, refs: list[ManifestReference], target: str
    ) -> None:
        for ref in refs:
            if satisfies(target, ref.range):
                # Within range: only the lockfile may be holding it back
                unlock_if_stale(name, ref.range, target)
                continue

            new_range = caret_range(target)
            bumps.append(
                VersionBump(
                    name=name,
                    owner=ref.owner,
                    location=ref.location,
                    dep_type=ref.dep_type,
                    old_range=ref.range,
                    new_range=new_range,
                    target=target,
                )
            )
            previous = lockfile.entry(name, ref.range)
            if previous is not None and is_breaking(previous.version, target):
                breaking[name] = BreakingChange(
                    name=name, from_version=previous.version, to_version=target
                )
            ref.range = new_range

    missing: set[str] = set()

    def check_declared() -> bool:
        resolved = False
        for name, refs in dependency_map.items():
            target = finder.find(name)
            if target is None:
                missing.add(name)
                continue
            missing.discard(name)
            resolved = True
            check_references(name, refs, target)
        return resolved

    if not check_declared():
        # Nothing resolved: query every declared package once more
        check_declared()

    for name in lockfile.names():
        if name in missing or not matches_pattern(name, config.effective_pattern):
            continue
        target = finder.find(name)
        if target is None:
            continue
        for entry in lockfile.get(name):
            # Entries outside the range can't hold the package back
            if satisfies(target, entry.range):
                unlock_if_stale(name, entry.range, target)

    # Ranges bumped away from that no manifest declares any more
    declared = {(ref.name, ref.range) for refs in dependency_map.values() for ref in refs}
    for bump in bumps:
        if (bump.name, bump.old_range) not in declared:
            unlock_if_stale(bump.name, bump.old_range, bump.target)

    unlocked: dict[tuple[str, str], UnlockedRange] = {}
    for candidate in candidates:
        unlocked.setdefault((candidate.name, candidate.range), candidate)

    return BumpResult(
        bumps=bumps,
        unlocked=list(unlocked.values()),
        breaking=sorted(breaking.values(), key=lambda change: change.name),
    )


def apply_changes(config: BumpConfig, lockfile: Lockfile, result: BumpResult) -> None:
    """Write the bumped manifests and the unlocked lockfile.

    yarn.lock is left byte-identical when nothing was unlocked.
    """
    if result.unlocked:
        removed = {(unlock.name, unlock.range) for unlock in result.unlocked}
        surviving = {
            name: [
                entry.range
                for entry in lockfile.get(name)
                if (name, entry.range) not in removed
            ]
            for name, _ in removed
        }
        path = config.lockfile_path
        save_lockfile(path, rewrite_lockfile(path.read_text(), surviving))

    by_manifest: dict[Path, list[VersionBump]] = {}
    for bump in result.bumps:
        by_manifest.setdefault(bump.location, []).append(bump)

    for path, manifest_bumps in by_manifest.items():
        manifest = load_manifest(path)
        for bump in manifest_bumps:
            manifest[bump.dep_type][bump.name] = bump.new_range
        save_manifest(path, manifest)


def changelog_url(name: str, config: BumpConfig) -> str | None:
    """Link to a package's changelog, if its repository path is known.

    Examples:
        "@backstage/theme" → ".../packages/theme/CHANGELOG.md"
        "@backstage/plugin-catalog" → ".../plugins/catalog/CHANGELOG.md"
    """
    for prefix, directory in config.changelog_paths.items():
        if name.startswith(prefix):
            path = directory + name[len(prefix) :]
            return f"{config.changelog_base_url.rstrip('/')}/{path}/CHANGELOG.md"
    return None


def print_breaking_changes(breaking: list[BreakingChange], config: BumpConfig) -> None:
    print()
    print("⚠️  The following packages may have breaking changes:")
    print()
    for change in breaking:
        print(f"  {change.name} : {change.from_version} ~> {change.to_version}")
        url = changelog_url(change.name, config)
        if url:
            print(f"    {url}")
        print()


def fetch_release_version(config: BumpConfig, registry: Registry) -> str | None:
    """Latest version of the release package, or None if it is unknown."""
    try:
        return registry.query_latest(config.release_package)
    except PackageNotFoundError:
        print(f"Package info not found, ignoring package {config.release_package}")
        return None


def write_version_file(config: BumpConfig, version: str) -> None:
    """Set the version in the version-tracking file, creating it if needed."""
    path = config.version_file_path
    data = load_manifest(path) if path.exists() else {}
    data["version"] = version
    save_manifest(path, data)


def bump_version_file(config: BumpConfig, registry: Registry) -> str | None:
    """Update the version-tracking file to the latest release.

    Returns:
        The version written, or None if the release package was not found.
    """
    version = fetch_release_version(config, registry)
    if version is not None:
        write_version_file(config, version)
    return version


def run_bump(
    config: BumpConfig, registry: Registry, installer: Installer
) -> BumpResult:
    """Execute the full bump pipeline.

    Args:
        config: Run configuration (workspace root and pattern).
        registry: Source of latest package versions.
        installer: Runs the package-manager install after files are written.

    Raises:
        WorkspaceDiscoveryError: If the workspace lists no packages.
        LockfileParseError: If yarn.lock is malformed.
        RegistryQueryError: If a registry query fails.
        InstallError: If the install step fails. Files are already written.
    """
    if config.pattern:
        print(f"Using custom pattern glob {config.pattern}")
    else:
        print(f"Using default pattern glob {config.default_pattern}")
    pattern = config.effective_pattern

    lockfile_path = config.lockfile_path
    lockfile = Lockfile.load(lockfile_path) if lockfile_path.exists() else Lockfile([])
    dependency_map = map_dependencies(config.root_dir, pattern)

    result = reconcile(config, dependency_map, lockfile, VersionFinder(registry))
    print()

    if not result.changed:
        print(f"All {config.label} packages are up to date!")
        return result

    print("Some packages are outdated, updating")
    print()
    for unlock in result.unlocked:
        print(f"unlocking {unlock.name}@{unlock.range} ~> {unlock.target}")
    for bump in result.bumps:
        print(f"bumping {bump.name} in {bump.owner} to {bump.new_range}")

    release_version = fetch_release_version(config, registry)

    apply_changes(config, lockfile, result)
    if release_version is not None:
        write_version_file(config, release_version)

    print()
    print("Running yarn install to install new versions")
    print()
    installer.run_install()

    if result.breaking:
        print_breaking_changes(result.breaking, config)

    print()
    print("Version bump complete!")
    return result

"""Data models for yarn-bump.

These Pydantic models represent the core data structures passed between the
workspace mapper, the lockfile rewriter and the bump pipeline.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_PATTERN = "@backstage/*"


class BumpConfig(BaseModel):
    """Settings for a single bump run.

    Attributes:
        root_dir: Workspace root holding lerna.json/package.json and yarn.lock.
        pattern: Package-name glob given by the user, or None for the default.
        default_pattern: Glob used when no pattern is given.
        label: Namespace label used in the "up to date" message.
        lockfile: Lockfile name relative to root_dir.
        version_file: Version-tracking file name relative to root_dir.
        release_package: Package whose latest version is written to the
            version-tracking file.
        changelog_base_url: URL prefix for changelog links of breaking changes.
        changelog_paths: Package-name prefix → repository directory. The first
            matching prefix wins.
    """

    root_dir: Path
    pattern: str | None = None
    default_pattern: str = DEFAULT_PATTERN
    label: str = "Backstage"
    lockfile: str = "yarn.lock"
    version_file: str = "backstage.json"
    release_package: str = "@backstage/create-app"
    changelog_base_url: str = "https://github.com/backstage/backstage/blob/master"
    changelog_paths: dict[str, str] = Field(
        default_factory=lambda: {
            "@backstage/plugin-": "plugins/",
            "@backstage/": "packages/",
        }
    )

    @property
    def effective_pattern(self) -> str:
        return self.pattern or self.default_pattern

    @property
    def lockfile_path(self) -> Path:
        return self.root_dir / self.lockfile

    @property
    def version_file_path(self) -> Path:
        return self.root_dir / self.version_file


class ManifestReference(BaseModel):
    """A single dependency declaration inside a package.json.

    Attributes:
        location: Path to the package.json declaring the dependency.
        owner: Name of the declaring package (falls back to its directory).
        name: Name of the dependency.
        range: Declared semver range.
        dep_type: Manifest section, e.g. "dependencies".
    """

    location: Path
    owner: str
    name: str
    range: str
    dep_type: str = "dependencies"


class LockEntry(BaseModel):
    """A resolved (name, range) pair from yarn.lock."""

    name: str
    range: str
    version: str
    dependencies: dict[str, str] = Field(default_factory=dict)


class VersionBump(BaseModel):
    """Records a range rewrite for one manifest reference.

    Attributes:
        name: Dependency being bumped.
        owner: Package whose manifest is rewritten.
        location: Path to that manifest.
        dep_type: Manifest section holding the reference.
        old_range: Range before bumping.
        new_range: Range after bumping, always "^<target>".
        target: Latest published version.
    """

    name: str
    owner: str
    location: Path
    dep_type: str = "dependencies"
    old_range: str
    new_range: str
    target: str


class UnlockedRange(BaseModel):
    """A lockfile entry removed to force re-resolution to `target`."""

    name: str
    range: str
    target: str


class BreakingChange(BaseModel):
    name: str
    from_version: str
    to_version: str


class BumpResult(BaseModel):
    """Outcome of a bump run."""

    bumps: list[VersionBump] = Field(default_factory=list)
    unlocked: list[UnlockedRange] = Field(default_factory=list)
    breaking: list[BreakingChange] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.bumps or self.unlocked)

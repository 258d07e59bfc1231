"""yarn.lock (v1) reading and writing.

The lockfile is kept as a list of blocks, one per resolution. Each block
starts with a key line listing the "name@range" specs it resolves and keeps
the lines below it verbatim, so untouched entries are written back exactly as
yarn produced them:

    "@backstage/core@^1.0.5", "@backstage/core@^1.0.6":
      version "1.0.6"
      dependencies:
        "@backstage/core-api" "^1.0.6"
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from .models import LockEntry

LOCKFILE_BANNER = (
    "# THIS IS AN AUTOGENERATED FILE. DO NOT EDIT THIS FILE DIRECTLY.\n"
    "# yarn lockfile v1\n"
)

_DEPENDENCY_SECTIONS = ("dependencies", "optionalDependencies")


class LockfileParseError(Exception):
    """Raised when yarn.lock does not have the expected v1 shape."""


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    return text


def split_spec(spec: str) -> tuple[str, str]:
    """Split a lockfile key like "@scope/name@^1.0.0" into (name, range).

    The separator is the first "@" after position 0, so scoped names and
    aliased ranges ("foo@npm:bar@^1") both split correctly.

    Raises:
        LockfileParseError: If the spec has no range part.
    """
    spec = _unquote(spec)
    at = spec.find("@", 1)
    if at == -1:
        raise LockfileParseError(f"Invalid lockfile key {spec!r}")
    return spec[:at], spec[at + 1 :]


class LockBlock(BaseModel):
    """One resolution block of a yarn.lock file.

    Attributes:
        specs: Key tokens exactly as written, quotes included.
        body: Lines below the key line, verbatim.
        version: Resolved version.
        dependencies: Sub-dependency ranges of the resolved version.
    """

    specs: list[str]
    body: list[str] = Field(default_factory=list)
    version: str
    dependencies: dict[str, str] = Field(default_factory=dict)

    @property
    def key_line(self) -> str:
        return ", ".join(self.specs) + ":"

    @property
    def sort_key(self) -> str:
        return ", ".join(_unquote(spec) for spec in self.specs)

    def keys(self) -> list[tuple[str, str]]:
        return [split_spec(spec) for spec in self.specs]

    def render(self) -> str:
        return "\n".join([self.key_line, *self.body]) + "\n"


def _build_block(specs: list[str], body: list[str], lineno: int) -> LockBlock:
    version: str | None = None
    dependencies: dict[str, str] = {}
    section: str | None = None

    for line in body:
        stripped = line.strip()
        indent = len(line) - len(line.lstrip())
        if indent <= 2:
            section = None
            if stripped.startswith("version "):
                version = _unquote(stripped[len("version ") :])
            elif stripped.endswith(":"):
                section = stripped[:-1]
        elif section in _DEPENDENCY_SECTIONS:
            dep_name, _, dep_range = stripped.partition(" ")
            dependencies[_unquote(dep_name)] = _unquote(dep_range)

    if version is None:
        raise LockfileParseError(
            f"line {lineno}: entry {', '.join(specs)} has no version"
        )
    return LockBlock(
        specs=specs, body=body, version=version, dependencies=dependencies
    )


class Lockfile:
    """An editable yarn v1 lockfile."""

    def __init__(self, blocks: list[LockBlock]) -> None:
        self._blocks = blocks

    @classmethod
    def parse(cls, text: str) -> Lockfile:
        """Parse lockfile text into blocks.

        Raises:
            LockfileParseError: On lines that are not part of a valid entry.
        """
        blocks: list[LockBlock] = []
        specs: list[str] | None = None
        body: list[str] = []
        start = 0

        def flush() -> None:
            if specs is not None:
                blocks.append(_build_block(specs, body, start))

        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            if line[0] in " \t":
                if specs is None:
                    raise LockfileParseError(
                        f"line {lineno}: indented line outside of an entry"
                    )
                body.append(line)
                continue
            if line.startswith("#"):
                continue
            if not line.endswith(":"):
                raise LockfileParseError(f"line {lineno}: expected an entry key")

            flush()
            specs = [token.strip() for token in line[:-1].split(",")]
            for spec in specs:
                try:
                    split_spec(spec)
                except LockfileParseError as exc:
                    raise LockfileParseError(f"line {lineno}: {exc}") from exc
            body = []
            start = lineno
        flush()
        return cls(blocks)

    @classmethod
    def load(cls, path: Path) -> Lockfile:
        return cls.parse(path.read_text())

    def names(self) -> list[str]:
        """Package names in the order they first appear in the file."""
        names: dict[str, None] = {}
        for block in self._blocks:
            for name, _ in block.keys():
                names.setdefault(name)
        return list(names)

    def get(self, name: str) -> list[LockEntry]:
        """All resolved entries for a package."""
        return [
            LockEntry(
                name=name,
                range=range_str,
                version=block.version,
                dependencies=block.dependencies,
            )
            for block in self._blocks
            for entry_name, range_str in block.keys()
            if entry_name == name
        ]

    def entry(self, name: str, range_str: str) -> LockEntry | None:
        for entry in self.get(name):
            if entry.range == range_str:
                return entry
        return None

    def remove(self, name: str, range_str: str) -> bool:
        """Drop the resolution of `name@range_str`.

        Other specs sharing the same block are kept.

        Returns:
            True if an entry was removed.
        """
        for block in self._blocks:
            for spec in block.specs:
                if split_spec(spec) == (name, range_str):
                    block.specs.remove(spec)
                    if not block.specs:
                        self._blocks.remove(block)
                    return True
        return False

    def dumps(self) -> str:
        """Serialize with blocks sorted by their "name@range" key."""
        blocks = sorted(self._blocks, key=lambda b: b.sort_key)
        if not blocks:
            return LOCKFILE_BANNER
        return LOCKFILE_BANNER + "\n\n" + "\n".join(b.render() for b in blocks)


def save_lockfile(path: Path, text: str) -> None:
    """Replace the lockfile at `path` atomically."""
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(text)
    os.replace(tmp_path, path)


def rewrite_lockfile(
    existing_text: str, surviving_ranges_by_package: Mapping[str, Iterable[str]]
) -> str:
    """Drop lockfile entries whose range no longer survives.

    Packages absent from `surviving_ranges_by_package` are left untouched;
    for the others only the listed ranges are kept.

    Example:
        rewrite_lockfile(text, {"@backstage/core": ["^1.0.5"]}) drops
        "@backstage/core@^1.0.3" but keeps every other package's entries.
    """
    lockfile = Lockfile.parse(existing_text)
    for name, ranges in surviving_ranges_by_package.items():
        keep = set(ranges)
        for entry in lockfile.get(name):
            if entry.range not in keep:
                lockfile.remove(name, entry.range)
    return lockfile.dumps()

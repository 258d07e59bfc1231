"""Test doubles and small helpers shared by the test modules."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from yarn_bump.yarn import PackageNotFoundError

WriteWorkspace = Callable[..., Path]
MakeRegistry = Callable[..., "FakeRegistry"]


class FakeRegistry:
    """Registry answering from a dict and recording every query."""

    def __init__(self, versions: dict[str, str]) -> None:
        self.versions = versions
        self.calls: list[str] = []

    def query_latest(self, name: str) -> str:
        self.calls.append(name)
        if name not in self.versions:
            raise PackageNotFoundError(name)
        return self.versions[name]


def read_json(path: Path) -> Any:
    return json.loads(path.read_text())


def output_lines(out: str) -> list[str]:
    """Non-blank lines of captured output."""
    return [line for line in out.splitlines() if line]


def checked_packages(out: str) -> list[str]:
    prefix = "Checking for updates of "
    return [line[len(prefix) :] for line in out.splitlines() if line.startswith(prefix)]

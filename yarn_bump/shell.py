"""Subprocess utilities.

Thin wrappers around subprocess calls used by the yarn collaborators.
"""

from __future__ import annotations

import subprocess
from pathlib import Path


def capture(*args: str, cwd: Path | None = None) -> str:
    """Run a command and return its stripped stdout.

    Args:
        *args: Command and arguments (e.g., "yarn", "info", "--json", "pkg").
        cwd: Directory to run the command in. Defaults to the current one.

    Raises:
        subprocess.CalledProcessError: If the command exits non-zero.
    """
    result = subprocess.run(
        args, capture_output=True, text=True, check=True, cwd=cwd
    )
    return result.stdout.strip()


def run(
    *args: str, cwd: Path | None = None, check: bool = True
) -> subprocess.CompletedProcess[bytes]:
    """Run a command, streaming its output to the terminal.

    Unlike capture(), output is not collected so users can follow the
    progress of long-running commands like `yarn install`.
    """
    return subprocess.run(args, check=check, cwd=cwd)

"""Version parsing and npm range evaluation.

Versions are handled as semver objects. Ranges follow npm's semver range
grammar: comparator sets separated by "||", each a space-separated list of
comparators that must all hold. Caret, tilde, x-range and hyphen forms are
desugared into plain comparators before matching:

    "^1.2.3"        → ">=1.2.3 <2.0.0"
    "^0.2.3"        → ">=0.2.3 <0.3.0"
    "~1.2.3"        → ">=1.2.3 <1.3.0"
    "1.x"           → ">=1.0.0 <2.0.0"
    "1.2.3 - 2.3"   → ">=1.2.3 <2.4.0"
"""

from __future__ import annotations

import re

import semver

Comparator = tuple[str, semver.Version]

_PARTIAL_RE = re.compile(
    r"^v?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)
_OPERATOR_RE = re.compile(r"^(<=|>=|<|>|=|\^|~>?)?(.*)$")
_HYPHEN_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_WILDCARDS = {"x", "X", "*"}


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "v1.2.3" → "1.2.3"

    Prerelease and build metadata are preserved.
    """
    return semver.Version.parse(
        version_str.strip().lstrip("v="), optional_minor_and_patch=True
    )


def caret_range(version: str) -> str:
    """Return the range a bumped manifest reference is rewritten to."""
    return f"^{version}"


def _parse_partial(
    text: str,
) -> tuple[int | None, int | None, int | None, str | None]:
    """Split a possibly partial version ("1", "1.2.x", "*") into components.

    Missing or wildcard components come back as None.

    Raises:
        ValueError: If the text is not a (partial) version.
    """
    if text in _WILDCARDS or text == "":
        return None, None, None, None
    match = _PARTIAL_RE.match(text)
    if not match:
        raise ValueError(f"Invalid version {text!r}")

    parts: list[int | None] = []
    for key in ("major", "minor", "patch"):
        value = match.group(key)
        if value is None or value in _WILDCARDS:
            # Anything after a wildcard is a wildcard too
            break
        parts.append(int(value))
    while len(parts) < 3:
        parts.append(None)
    pre = match.group("pre") if parts[2] is not None else None
    return parts[0], parts[1], parts[2], pre


def _version(major: int, minor: int = 0, patch: int = 0, pre: str | None = None):
    return semver.Version(major, minor, patch, prerelease=pre)


def _desugar(token: str) -> list[Comparator]:
    """Turn a single range token into plain comparators."""
    match = _OPERATOR_RE.match(token)
    if match is None:
        raise ValueError(f"Invalid range token {token!r}")
    op, text = match.group(1), match.group(2)
    major, minor, patch, pre = _parse_partial(text)

    if major is None:
        # "*", "x", ">=*" and friends match everything
        return [] if op not in ("<", ">") else [("<", _version(0, 0, 0, "0"))]

    if op == "^":
        if minor is None:
            return [(">=", _version(major)), ("<", _version(major + 1))]
        if patch is None:
            upper = _version(major + 1) if major > 0 else _version(0, minor + 1)
            return [(">=", _version(major, minor)), ("<", upper)]
        if major > 0:
            upper = _version(major + 1)
        elif minor > 0:
            upper = _version(0, minor + 1)
        else:
            upper = _version(0, 0, patch + 1)
        return [(">=", _version(major, minor, patch, pre)), ("<", upper)]

    if op in ("~", "~>"):
        if minor is None:
            return [(">=", _version(major)), ("<", _version(major + 1))]
        return [
            (">=", _version(major, minor, patch or 0, pre)),
            ("<", _version(major, minor + 1)),
        ]

    if op in (None, "="):
        if minor is None:
            return [(">=", _version(major)), ("<", _version(major + 1))]
        if patch is None:
            return [(">=", _version(major, minor)), ("<", _version(major, minor + 1))]
        return [("=", _version(major, minor, patch, pre))]

    if op == ">=":
        return [(">=", _version(major, minor or 0, patch or 0, pre))]
    if op == ">":
        if minor is None:
            return [(">=", _version(major + 1))]
        if patch is None:
            return [(">=", _version(major, minor + 1))]
        return [(">", _version(major, minor, patch, pre))]
    if op == "<":
        return [("<", _version(major, minor or 0, patch or 0, pre))]
    # "<="
    if minor is None:
        return [("<", _version(major + 1))]
    if patch is None:
        return [("<", _version(major, minor + 1))]
    return [("<=", _version(major, minor, patch, pre))]


def _parse_hyphen(low: str, high: str) -> list[Comparator]:
    comparators: list[Comparator] = []
    major, minor, patch, pre = _parse_partial(low)
    if major is not None:
        comparators.append((">=", _version(major, minor or 0, patch or 0, pre)))
    major, minor, patch, pre = _parse_partial(high)
    if major is None:
        return comparators
    if minor is None:
        comparators.append(("<", _version(major + 1)))
    elif patch is None:
        comparators.append(("<", _version(major, minor + 1)))
    else:
        comparators.append(("<=", _version(major, minor, patch, pre)))
    return comparators


def parse_range(range_str: str) -> list[list[Comparator]]:
    """Parse an npm range into comparator sets.

    An empty comparator set matches every version.

    Raises:
        ValueError: If the range is not valid npm semver range syntax.
    """
    sets: list[list[Comparator]] = []
    for alternative in range_str.split("||"):
        alternative = alternative.strip()
        hyphen = _HYPHEN_RE.match(alternative)
        if hyphen:
            sets.append(_parse_hyphen(hyphen.group(1), hyphen.group(2)))
            continue
        # Glue operators to their versions: ">= 1.2" → ">=1.2"
        alternative = re.sub(r"(<=|>=|<|>|=|\^|~>?)\s+", r"\1", alternative)
        comparators: list[Comparator] = []
        for token in alternative.split():
            comparators.extend(_desugar(token))
        sets.append(comparators)
    return sets


def is_valid_range(range_str: str) -> bool:
    try:
        parse_range(range_str)
    except ValueError:
        return False
    return True


def _test(version: semver.Version, comparator: Comparator) -> bool:
    op, bound = comparator
    if op == ">=":
        return version >= bound
    if op == ">":
        return version > bound
    if op == "<":
        return version < bound
    if op == "<=":
        return version <= bound
    return version == bound


def _test_set(version: semver.Version, comparators: list[Comparator]) -> bool:
    if not all(_test(version, c) for c in comparators):
        return False
    if version.prerelease:
        # Prereleases only match when a comparator opts into the same release
        return any(
            bound.prerelease
            and (bound.major, bound.minor, bound.patch)
            == (version.major, version.minor, version.patch)
            for _, bound in comparators
        )
    return True


def satisfies(version: str, range_str: str) -> bool:
    """Check whether a version lies within an npm range.

    Invalid ranges satisfy nothing, like npm's semver.satisfies.

    Examples:
        satisfies("1.0.6", "^1.0.5") → True
        satisfies("2.0.0", "^1.0.0") → False
    """
    try:
        sets = parse_range(range_str)
    except ValueError:
        return False
    parsed = parse_version(version)
    return any(_test_set(parsed, comparators) for comparators in sets)


def min_version(range_str: str) -> str | None:
    """Return the lowest version that satisfies a range.

    Returns None if the range is invalid or nothing satisfies it.

    Examples:
        min_version("^1.0.5") → "1.0.5"
        min_version(">1.2.3") → "1.2.4"
        min_version("*") → "0.0.0"
    """
    try:
        sets = parse_range(range_str)
    except ValueError:
        return None

    lowest: semver.Version | None = None
    for comparators in sets:
        candidate = _version(0)
        for op, bound in comparators:
            if op in (">=", "="):
                floor = bound
            elif op == ">":
                if bound.prerelease:
                    floor = _version(
                        bound.major, bound.minor, bound.patch, f"{bound.prerelease}.0"
                    )
                else:
                    floor = bound.bump_patch()
            else:
                continue
            if floor > candidate:
                candidate = floor
        if _test_set(candidate, comparators) and (lowest is None or candidate < lowest):
            lowest = candidate
    return str(lowest) if lowest is not None else None


def is_breaking(from_version: str, to_version: str) -> bool:
    """Whether upgrading between two versions may break dependents.

    Only a change of the major component counts, so "0.1.0" → "0.2.0" is
    not breaking while "1.4.0" → "2.0.0" is.
    """
    return parse_version(from_version).major != parse_version(to_version).major

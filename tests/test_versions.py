"""Tests for yarn_bump.versions."""

from __future__ import annotations

import pytest

from yarn_bump.versions import (
    caret_range,
    is_breaking,
    is_valid_range,
    min_version,
    parse_range,
    parse_version,
    satisfies,
)


class TestParseVersion:
    def test_full_semver(self) -> None:
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_two_part_version(self) -> None:
        v = parse_version("1.2")
        assert (v.major, v.minor, v.patch) == (1, 2, 0)

    def test_single_part_version(self) -> None:
        v = parse_version("5")
        assert (v.major, v.minor, v.patch) == (5, 0, 0)

    def test_strips_v_prefix(self) -> None:
        assert str(parse_version("v1.4.1")) == "1.4.1"

    def test_keeps_prerelease(self) -> None:
        assert parse_version("1.0.0-next.2").prerelease == "next.2"


class TestSatisfies:
    @pytest.mark.parametrize(
        ("version", "range_str"),
        [
            ("1.0.6", "^1.0.5"),
            ("1.9.0", "^1.0.5"),
            ("0.2.5", "^0.2.3"),
            ("1.2.9", "~1.2.3"),
            ("1.9.9", "~1"),
            ("1.9.0", "1.x"),
            ("1.2.3", "1.2.3"),
            ("5.0.0", "*"),
            ("5.0.0", ""),
            ("1.5.0", ">=1.0.0 <2.0.0"),
            ("1.2.0", ">= 1.2"),
            ("3.1.0", "^1.0.0 || ^3.0.0"),
            ("2.3.9", "1.2.3 - 2.3"),
            ("1.0.0-beta.2", ">=1.0.0-beta.1"),
        ],
    )
    def test_within_range(self, version: str, range_str: str) -> None:
        assert satisfies(version, range_str)

    @pytest.mark.parametrize(
        ("version", "range_str"),
        [
            ("2.0.0", "^1.0.0"),
            ("1.0.4", "^1.0.5"),
            ("0.3.0", "^0.2.3"),
            ("0.0.4", "^0.0.3"),
            ("1.3.0", "~1.2.3"),
            ("2.0.0", "1.x"),
            ("1.2.4", "1.2.3"),
            ("2.0.0", ">=1.0.0 <2.0.0"),
            ("2.4.0", "1.2.3 - 2.3"),
            ("2.0.0-beta.1", "^1.0.0"),
            ("1.1.0-beta.1", "^1.0.0"),
        ],
    )
    def test_outside_range(self, version: str, range_str: str) -> None:
        assert not satisfies(version, range_str)

    def test_invalid_range_satisfies_nothing(self) -> None:
        assert not satisfies("1.0.0", "latest")
        assert not satisfies("1.0.0", "workspace:*")


class TestParseRange:
    def test_desugars_caret(self) -> None:
        [comparators] = parse_range("^0.2.3")
        assert [(op, str(v)) for op, v in comparators] == [
            (">=", "0.2.3"),
            ("<", "0.3.0"),
        ]

    def test_alternatives(self) -> None:
        assert len(parse_range("^1.0.0 || ^2.0.0")) == 2

    def test_invalid_token(self) -> None:
        with pytest.raises(ValueError, match="Invalid version"):
            parse_range(">=1.0.0 next")


class TestIsValidRange:
    def test_valid(self) -> None:
        assert is_valid_range("^1.0.0 || >=2.1 <3")

    def test_dist_tag(self) -> None:
        assert not is_valid_range("next")


class TestMinVersion:
    def test_caret(self) -> None:
        assert min_version("^1.0.5") == "1.0.5"

    def test_greater_than(self) -> None:
        assert min_version(">1.2.3") == "1.2.4"

    def test_x_range(self) -> None:
        assert min_version("1.x") == "1.0.0"

    def test_wildcard(self) -> None:
        assert min_version("*") == "0.0.0"

    def test_lowest_alternative(self) -> None:
        assert min_version("^1.0.0 || ^0.5.0") == "0.5.0"

    def test_unsatisfiable(self) -> None:
        assert min_version(">2.0.0 <1.0.0") is None

    def test_invalid(self) -> None:
        assert min_version("next") is None


class TestIsBreaking:
    def test_major_bump(self) -> None:
        assert is_breaking("1.0.0", "2.0.0")

    def test_minor_bump(self) -> None:
        assert not is_breaking("1.0.0", "1.5.0")

    def test_patch_bump(self) -> None:
        assert not is_breaking("1.2.3", "1.2.4")

    def test_minor_bump_below_one(self) -> None:
        assert not is_breaking("0.1.0", "0.2.0")

    def test_first_stable_release(self) -> None:
        assert is_breaking("0.9.3", "1.0.0")

    def test_prerelease_of_next_major(self) -> None:
        assert is_breaking("1.9.0", "2.0.0-next.1")


def test_caret_range() -> None:
    assert caret_range("2.0.0") == "^2.0.0"

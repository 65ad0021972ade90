"""Version range matching for extension requirements.

Extension authors state the host versions they support with npm-style
ranges ("requires vortex >=1.8.0 <2.0.0", "^1.8", "1.6.x || 1.7.x").
This module parses those ranges into comparator sets and checks
concrete versions against them with packaging's Version ordering.

Grammar:
    range-set  := range ( "||" range )*
    range      := partial " - " partial | simple ( " " simple )*
    simple     := ( "<" | ">" | ">=" | "<=" | "=" | "~" | "^" )? partial
    partial    := xr ( "." xr ( "." xr )? )?
    xr         := "x" | "X" | "*" | digits
"""

import re
from dataclasses import dataclass

from packaging.version import InvalidVersion, Version

_OPERATOR_SPACING = re.compile(r"(<=|>=|<|>|=|~|\^)\s+")
_HYPHEN = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_SIMPLE = re.compile(r"^(<=|>=|<|>|=|~>?|\^)?v?([0-9xX*]+(?:\.[0-9xX*]+){0,2})$")
_WILDCARDS = {"x", "X", "*"}


class InvalidRange(ValueError):
    """Raised when a version range cannot be parsed."""


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` test."""

    operator: str
    version: Version

    def test(self, candidate: Version) -> bool:
        if self.operator == ">=":
            return candidate >= self.version
        if self.operator == ">":
            return candidate > self.version
        if self.operator == "<":
            return candidate < self.version
        if self.operator == "<=":
            return candidate <= self.version
        return candidate == self.version


def _partial(text: str) -> list[int | None]:
    """Split '1.8.x' into [1, 8, None], padding missing parts with None."""
    parts: list[int | None] = []
    for piece in text.split("."):
        parts.append(None if piece in _WILDCARDS else int(piece))
    while len(parts) < 3:
        parts.append(None)
    # Anything after a wildcard is a wildcard too
    for index, value in enumerate(parts):
        if value is None:
            parts[index:] = [None] * (3 - index)
            break
    return parts


def _version(major: int, minor: int = 0, patch: int = 0) -> Version:
    return Version(f"{major}.{minor}.{patch}")


def _lower(parts: list[int | None]) -> Version:
    return _version(*(p or 0 for p in parts))


def _next_upper(parts: list[int | None]) -> Version | None:
    """Exclusive upper bound for a partial version, None if unbounded."""
    major, minor, _ = parts
    if major is None:
        return None
    if minor is None:
        return _version(major + 1)
    return _version(major, minor + 1)


def _desugar(operator: str, parts: list[int | None]) -> list[Comparator]:
    major, minor, patch = parts
    complete = patch is not None

    if major is None:
        # '*', 'x', '>=*' all match everything; '<*' and '>*' match nothing
        if operator in ("<", ">"):
            return [Comparator("<", _version(0))]
        return []

    if operator in ("", "="):
        if complete:
            return [Comparator("==", _lower(parts))]
        upper = _next_upper(parts)
        return [Comparator(">=", _lower(parts)), Comparator("<", upper)]  # type: ignore[arg-type]

    if operator == ">=":
        return [Comparator(">=", _lower(parts))]

    if operator == ">":
        if complete:
            return [Comparator(">", _lower(parts))]
        return [Comparator(">=", _next_upper(parts))]  # type: ignore[arg-type]

    if operator == "<":
        return [Comparator("<", _lower(parts))]

    if operator == "<=":
        if complete:
            return [Comparator("<=", _lower(parts))]
        return [Comparator("<", _next_upper(parts))]  # type: ignore[arg-type]

    if operator in ("~", "~>"):
        if minor is None:
            upper = _version(major + 1)
        else:
            upper = _version(major, minor + 1)
        return [Comparator(">=", _lower(parts)), Comparator("<", upper)]

    if operator == "^":
        if major != 0 or minor is None:
            upper = _version(major + 1)
        elif minor != 0 or patch is None:
            upper = _version(0, minor + 1)
        else:
            upper = _version(0, 0, patch + 1)
        return [Comparator(">=", _lower(parts)), Comparator("<", upper)]

    raise InvalidRange(f"Unknown operator: {operator}")


def _parse_range(text: str) -> list[Comparator]:
    hyphen = _HYPHEN.match(text)
    if hyphen:
        low = _partial_or_raise(hyphen.group(1))
        high = _partial_or_raise(hyphen.group(2))
        comparators = [] if low[0] is None else [Comparator(">=", _lower(low))]
        if high[0] is not None:
            if high[2] is not None:
                comparators.append(Comparator("<=", _lower(high)))
            else:
                comparators.append(Comparator("<", _next_upper(high)))  # type: ignore[arg-type]
        return comparators

    comparators: list[Comparator] = []
    for token in text.split():
        match = _SIMPLE.match(token)
        if not match:
            raise InvalidRange(f"Invalid comparator: {token!r}")
        comparators.extend(_desugar(match.group(1) or "", _partial(match.group(2))))
    return comparators


def _partial_or_raise(token: str) -> list[int | None]:
    match = _SIMPLE.match(token)
    if not match or match.group(1):
        raise InvalidRange(f"Invalid hyphen range bound: {token!r}")
    return _partial(match.group(2))


def parse_range(text: str) -> list[list[Comparator]]:
    """Parse a range expression into alternative comparator sets.

    Args:
        text: Range such as ">=1.8.0 <2.0.0" or "^1.6 || ^1.8"

    Returns:
        List of comparator sets; a version matches when it passes every
        comparator of at least one set. An empty set matches everything.

    Raises:
        InvalidRange: If the expression is malformed
    """
    normalized = _OPERATOR_SPACING.sub(r"\1", text.strip())
    return [_parse_range(alternative.strip()) for alternative in normalized.split("||")]


def satisfies(version: str, range_text: str) -> bool:
    """Check whether a concrete version lies within a range.

    Malformed ranges and versions never match, so a file whose requirement
    cannot be understood is not treated as compatible.

    Args:
        version: Concrete version, e.g. "1.8.0"
        range_text: npm-style range expression

    Returns:
        True if the version satisfies the range
    """
    try:
        candidate = Version(version)
        alternatives = parse_range(range_text)
    except (InvalidVersion, InvalidRange, ValueError):
        return False

    return any(
        all(comparator.test(candidate) for comparator in comparators)
        for comparators in alternatives
    )

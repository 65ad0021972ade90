"""Host version requirements stated in file descriptions.

Authors declare which host versions a file supports by starting the file
description with "requires vortex <range>". The marketplace HTML-escapes
the comparison operators, so ``&gt;``/``&lt;`` are decoded before matching.
"""

import re

from .versioning import satisfies

HTML_ENTITY_REGEX = re.compile(r"&[lg]t;")
HTML_ENTITIES = {
    "&gt;": ">",
    "&lt;": "<",
}
VERSION_MATCH_REGEX = re.compile(r"^requires vortex ([><=\-^~0-9. ]*[0-9])", re.IGNORECASE)


def decode_entities(text: str) -> str:
    """Replace the escaped comparison operators with their characters."""
    return HTML_ENTITY_REGEX.sub(lambda match: HTML_ENTITIES[match.group(0)], text)


def parse_version_requirement(description: str | None) -> str | None:
    """Extract the host version range from a file description.

    Args:
        description: Free-text file description (may be None)

    Returns:
        The range expression, e.g. ">=1.8.0 <2.0.0", or None if the
        description carries no requirement

    Example:
        >>> parse_version_requirement("requires vortex &gt;=1.8.0 &lt;2.0.0")
        '>=1.8.0 <2.0.0'
    """
    if not description:
        return None
    match = VERSION_MATCH_REGEX.match(decode_entities(description))
    if match is None:
        return None
    return match.group(1).strip()


def is_compatible(description: str | None, window: tuple[str, str]) -> bool:
    """Check a file against the supported host version window.

    A file without a requirement is always compatible. Otherwise it is
    compatible when either end of the window satisfies its range.

    Args:
        description: File description to parse
        window: (oldest, newest) supported host versions

    Returns:
        True if the file can be offered to supported hosts
    """
    requirement = parse_version_requirement(description)
    if requirement is None:
        return True
    low, high = window
    return satisfies(low, requirement) or satisfies(high, requirement)


def dependencies_from_description(
    existing: dict[str, str] | None,
    description: str | None,
) -> dict[str, str] | None:
    """Recompute the ``vortex`` dependency from a file description.

    Keys other than ``vortex`` are carried over untouched. When the
    description has no requirement the existing mapping is returned as is,
    including any previously recorded ``vortex`` constraint.

    Args:
        existing: Dependencies already recorded on the entry (may be None)
        description: Description of the tracked file

    Returns:
        Updated dependency mapping, or None if there is nothing to record
    """
    requirement = parse_version_requirement(description)
    if requirement is None:
        return dict(existing) if existing is not None else None

    result = dict(existing) if existing else {}
    result["vortex"] = requirement
    return result

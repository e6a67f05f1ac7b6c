"""Human-readable entity labels (REQ-001, DEC-002, CON-003)."""

import re
from typing import Any, Iterable

REQUIREMENT_PREFIX = "REQ"
DECISION_PREFIX = "DEC"
CONFLICT_PREFIX = "CON"

# Entity dict key holding the label, per prefix
LABEL_FIELDS = {
    REQUIREMENT_PREFIX: "requirement_id",
    DECISION_PREFIX: "decision_id",
    CONFLICT_PREFIX: "conflict_id",
}


def format_label(prefix: str, number: int) -> str:
    """Format `number` as `{PREFIX}-{3-digit zero-padded number}`."""
    return f"{prefix}-{number:03d}"


def label_number(label: str | None, prefix: str) -> int:
    """Numeric suffix of a `{PREFIX}-###` label, 0 when it does not parse."""
    if not label:
        return 0
    match = re.fullmatch(rf"{re.escape(prefix)}-(\d+)", label.strip())
    return int(match.group(1)) if match else 0


def highest_label_number(prefix: str, existing: Iterable[dict[str, Any]]) -> int:
    """Largest numeric suffix among persisted entities of one kind (0 if none)."""
    field = LABEL_FIELDS[prefix]
    return max((label_number(entity.get(field), prefix) for entity in existing), default=0)


class LabelAllocator:
    """
    Issues labels for one entity kind within one run.

    Starts after the highest label already persisted for the project, so
    labels are never reused or renumbered across runs. Gaps left by
    deduplicated candidates are not reclaimed.
    """

    def __init__(self, prefix: str, existing: Iterable[dict[str, Any]]):
        self.prefix = prefix
        self.last_number = highest_label_number(prefix, existing)

    def next_label(self) -> str:
        """Issue the next label."""
        self.last_number += 1
        return format_label(self.prefix, self.last_number)


def next_entity_label(prefix: str, existing: Iterable[dict[str, Any]]) -> str:
    """`max(existing suffixes) + 1`, formatted as a label."""
    return format_label(prefix, highest_label_number(prefix, existing) + 1)


def batch_position_label(prefix: str, position: int) -> str:
    """Label from a 0-based position inside the current extraction batch."""
    return format_label(prefix, position + 1)

"""
Caller-side snapshot checks.

The propagator trusts its input. Whatever sits in front of it (the API
facade here) runs these checks first: hard violations of the data model are
rejected in one go, while over-allocated objects only produce warnings.
"""

import logging
from typing import Dict, List

from models.ownership import OwnerKind, OwnershipSnapshot

logger = logging.getLogger(__name__)

OVER_ALLOCATION_TOLERANCE = 0.0001


class SnapshotValidationError(ValueError):
    """Raised with every data-model violation found in a snapshot."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid ownership snapshot: " + "; ".join(problems))


def validate_snapshot(snapshot: OwnershipSnapshot) -> List[str]:
    """
    Raises :class:`SnapshotValidationError` on broken references, out-of-range
    percentages or duplicate ids. Returns human-readable warnings for objects
    whose direct owners sum above 100%.
    """
    problems: List[str] = []

    entity_ids = {e.id for e in snapshot.entities}
    object_ids = {o.id for o in snapshot.objects}
    if len(entity_ids) != len(snapshot.entities):
        problems.append("duplicate entity ids")
    if len(object_ids) != len(snapshot.objects):
        problems.append("duplicate object ids")

    seen_ownership_ids = set()
    for own in snapshot.ownerships:
        if own.id in seen_ownership_ids:
            problems.append(f"duplicate ownership id {own.id!r}")
        seen_ownership_ids.add(own.id)

        if not (0 < own.percent <= 100):
            problems.append(f"ownership {own.id!r}: percent {own.percent} outside (0, 100]")
        if own.object_id not in object_ids:
            problems.append(f"ownership {own.id!r}: unknown object {own.object_id!r}")

        known_owners = entity_ids if own.owner.kind is OwnerKind.ENTITY else object_ids
        if own.owner.id not in known_owners:
            problems.append(f"ownership {own.id!r}: unknown {own.owner.kind.value} {own.owner.id!r}")

    if problems:
        raise SnapshotValidationError(problems)

    allocated: Dict[str, float] = {}
    for own in snapshot.ownerships:
        allocated[own.object_id] = allocated.get(own.object_id, 0.0) + own.percent

    names = {o.id: o.name for o in snapshot.objects}
    warnings: List[str] = []
    for object_id, total in allocated.items():
        if total > 100 + OVER_ALLOCATION_TOLERANCE:
            message = f"Direct ownership of '{names[object_id]}' sums to {total:.2f}% (over 100%)"
            logger.warning(message)
            warnings.append(message)
    return warnings

"""
Projects id-keyed totals tables into name-keyed tables for reporting.

Unknown ids resolve to a placeholder instead of raising. Two distinct nodes
sharing a display name collapse into one row of the name-keyed table (last
write wins); the id-keyed tables remain the source of truth.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence

from models.ownership import Entity, OwnedObject, OwnerKind
from .edge_identity import parse_owner_key

# owner name -> {object name -> percent}
NamedTotals = Dict[str, Dict[str, float]]


@dataclass(frozen=True)
class TotalRow:
    owner: str
    object: str
    percent: float


class NameLookup:
    """id -> display name maps for one snapshot."""

    def __init__(self, entities: Sequence[Entity], objects: Sequence[OwnedObject]):
        self.entity_names = {e.id: e.name for e in entities}
        self.object_names = {o.id: o.name for o in objects}

    def object_name(self, object_id: str) -> str:
        return self.object_names.get(object_id, f"Unknown object ({object_id})")

    def entity_name(self, entity_id: str) -> str:
        return self.entity_names.get(entity_id, f"Unknown entity ({entity_id})")

    def owner_name(self, key: str) -> str:
        try:
            owner = parse_owner_key(key)
        except ValueError:
            # anything not an entity resolves as an object
            return self.object_name(key.partition(":")[2] or key)
        if owner.kind is OwnerKind.ENTITY:
            return self.entity_name(owner.id)
        return self.object_name(owner.id)


def resolve_names(
    totals: Mapping[str, Mapping[str, float]],
    entities: Sequence[Entity],
    objects: Sequence[OwnedObject],
) -> NamedTotals:
    """Works for direct and indirect tables alike: both are keyed by owner key."""
    lookup = NameLookup(entities, objects)
    readable: NamedTotals = {}
    for key, targets in totals.items():
        row = readable[lookup.owner_name(key)] = {}
        for object_id, percent in targets.items():
            row[lookup.object_name(object_id)] = percent
    return readable


def totals_to_rows(
    totals: Mapping[str, Mapping[str, float]],
    entities: Sequence[Entity],
    objects: Sequence[OwnedObject],
) -> List[TotalRow]:
    """Flat rows sorted by percent, largest first."""
    lookup = NameLookup(entities, objects)
    rows = [
        TotalRow(owner=lookup.owner_name(key), object=lookup.object_name(object_id), percent=percent)
        for key, targets in totals.items()
        for object_id, percent in targets.items()
    ]
    rows.sort(key=lambda r: r.percent, reverse=True)
    return rows

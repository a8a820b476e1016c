"""
Snapshot interchange format.

The same shape the calculation import/export files use::

    {"version": 1, "meta": {...}, "entities": [...], "objects": [...], "ownerships": [...]}
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from models.ownership import Entity, OwnedObject, OwnerKind, OwnerRef, Ownership, OwnershipSnapshot

SNAPSHOT_FORMAT_VERSION = 1


class EntityModel(BaseModel):
    id: str
    name: str


class ObjectModel(BaseModel):
    id: str
    name: str


class OwnerRefModel(BaseModel):
    kind: Literal["entity", "object"]
    id: str


class OwnershipModel(BaseModel):
    id: str
    owner: OwnerRefModel
    objectId: str
    percent: float = Field(gt=0, le=100, allow_inf_nan=False)


class SnapshotModel(BaseModel):
    version: Literal[1] = SNAPSHOT_FORMAT_VERSION
    meta: Optional[Dict[str, Any]] = None
    entities: List[EntityModel] = Field(default_factory=list)
    objects: List[ObjectModel] = Field(default_factory=list)
    ownerships: List[OwnershipModel] = Field(default_factory=list)

    def to_snapshot(self) -> OwnershipSnapshot:
        return OwnershipSnapshot.of(
            entities=[Entity(e.id, e.name) for e in self.entities],
            objects=[OwnedObject(o.id, o.name) for o in self.objects],
            ownerships=[
                Ownership(
                    id=o.id,
                    owner=OwnerRef(OwnerKind(o.owner.kind), o.owner.id),
                    object_id=o.objectId,
                    percent=o.percent,
                )
                for o in self.ownerships
            ],
        )


def snapshot_to_payload(snapshot: OwnershipSnapshot, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Plain-dict export in the interchange format. Not validated, so invalid
    snapshots can still be recorded verbatim (e.g. in the audit ledger).
    """
    payload: Dict[str, Any] = {
        "version": SNAPSHOT_FORMAT_VERSION,
        "entities": [{"id": e.id, "name": e.name} for e in snapshot.entities],
        "objects": [{"id": o.id, "name": o.name} for o in snapshot.objects],
        "ownerships": [
            {
                "id": o.id,
                "owner": {"kind": o.owner.kind.value, "id": o.owner.id},
                "objectId": o.object_id,
                "percent": o.percent,
            }
            for o in snapshot.ownerships
        ],
    }
    if meta:
        payload["meta"] = meta
    return payload

"""
Ownership Graph Model
=====================
Typed, immutable representation of the two node kinds (Entities and Owned
Objects) and the weighted direct-ownership edges between them.

The owner side of an edge is a tagged variant (:class:`OwnerRef`) rather than
a shared base class: an Entity and an Object look alike on the wire but play
different roles in the graph, and every consumer matches on ``kind``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Tuple


class OwnerKind(str, Enum):
    ENTITY = "entity"
    OBJECT = "object"


@dataclass(frozen=True)
class Entity:
    """A terminal owner. Never owned by anything in this model."""
    id: str
    name: str


@dataclass(frozen=True)
class OwnedObject:
    """A node that can be owned and can itself own other objects."""
    id: str
    name: str


@dataclass(frozen=True)
class OwnerRef:
    """Identifies who holds a share: ``Entity(id)`` or ``Object(id)``."""
    kind: OwnerKind
    id: str

    @classmethod
    def entity(cls, entity_id: str) -> "OwnerRef":
        return cls(OwnerKind.ENTITY, entity_id)

    @classmethod
    def object(cls, object_id: str) -> "OwnerRef":
        return cls(OwnerKind.OBJECT, object_id)

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class Ownership:
    """
    A weighted directed edge ``owner -> object``.
    ``percent`` is expected in (0, 100]; the engine trusts the caller on that.
    """
    id: str
    owner: OwnerRef
    object_id: str
    percent: float

    @property
    def weight(self) -> float:
        return self.percent / 100


@dataclass(frozen=True)
class OwnershipSnapshot:
    """
    Immutable bundle of everything one computation needs.
    Assembled fresh by the caller for every invocation.
    """
    entities: Tuple[Entity, ...] = field(default_factory=tuple)
    objects: Tuple[OwnedObject, ...] = field(default_factory=tuple)
    ownerships: Tuple[Ownership, ...] = field(default_factory=tuple)

    @classmethod
    def of(
        cls,
        entities: Iterable[Entity] = (),
        objects: Iterable[OwnedObject] = (),
        ownerships: Iterable[Ownership] = (),
    ) -> "OwnershipSnapshot":
        return cls(tuple(entities), tuple(objects), tuple(ownerships))

    def without_ownerships(self, direct_edge_ids: Iterable[str]) -> "OwnershipSnapshot":
        """Copy with the direct edges whose canonical id is listed removed."""
        # local import: engine.edge_identity depends on this module
        from engine.edge_identity import direct_edge_id

        hidden = set(direct_edge_ids)
        if not hidden:
            return self
        kept = tuple(o for o in self.ownerships if direct_edge_id(o) not in hidden)
        return OwnershipSnapshot(self.entities, self.objects, kept)

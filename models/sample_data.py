"""
Bundled example dataset.

Shape::

    Alpha (a) --42%--> 1 --53%--> 5 --12%--> 9 --32%--> 10
              --35%--> 2 --21%--> 6 --63%--/
    Beta  (b) --12%--> 3 --32%--> 7 --74%--> 8 --35%--/

Every object has at most one outgoing edge and the branches converge into
object 9, so object 10 is reached from both entities through several chains.
"""

from models.ownership import Entity, OwnedObject, OwnerRef, Ownership, OwnershipSnapshot


def _own(owner: OwnerRef, object_id: str, percent: float) -> Ownership:
    return Ownership(
        id=f"{owner.key}->object:{object_id}",
        owner=owner,
        object_id=object_id,
        percent=percent,
    )


SAMPLE_ENTITIES = (
    Entity("a", "Alpha Holdings"),
    Entity("b", "Beta Ltd"),
)

SAMPLE_OBJECTS = (
    OwnedObject("1", "Site A"),
    OwnedObject("2", "Warehouse B"),
    OwnedObject("3", "Plant C"),
    OwnedObject("5", "Unit E"),
    OwnedObject("6", "Depot F"),
    OwnedObject("7", "Yard G"),
    OwnedObject("8", "Station H"),
    OwnedObject("9", "Aggregator I"),
    OwnedObject("10", "Final Asset J"),
)

SAMPLE_OWNERSHIPS = (
    _own(OwnerRef.entity("a"), "1", 42),
    _own(OwnerRef.entity("a"), "2", 35),
    _own(OwnerRef.entity("b"), "3", 12),
    _own(OwnerRef.object("1"), "5", 53),
    _own(OwnerRef.object("2"), "6", 21),
    _own(OwnerRef.object("3"), "7", 32),
    _own(OwnerRef.object("7"), "8", 74),
    _own(OwnerRef.object("5"), "9", 12),
    _own(OwnerRef.object("6"), "9", 63),
    _own(OwnerRef.object("8"), "9", 35),
    _own(OwnerRef.object("9"), "10", 32),
)


def sample_snapshot() -> OwnershipSnapshot:
    return OwnershipSnapshot.of(SAMPLE_ENTITIES, SAMPLE_OBJECTS, SAMPLE_OWNERSHIPS)

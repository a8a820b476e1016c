"""
Canonical identifiers for graph nodes and edges.

    owner key          "entity:<id>" | "object:<id>"
    direct edge id     "<ownerKind>:<ownerId>->object:<objectId>"
    indirect edge id   "<sourceKey>->object:<objectId>"

A direct edge and a one-hop indirect result between the same endpoints share
the same id. Callers wanting a strictly multi-hop view exclude indirect ids
that coincide with a known direct-edge id.
"""

from models.ownership import OwnerKind, OwnerRef, Ownership

KEY_SEPARATOR = ":"
EDGE_ARROW = "->"


def object_key(object_id: str) -> str:
    return f"{OwnerKind.OBJECT.value}{KEY_SEPARATOR}{object_id}"


def parse_owner_key(key: str) -> OwnerRef:
    """
    Inverse of :attr:`OwnerRef.key`. Only the first separator splits, so ids
    may themselves contain ``:``.
    """
    kind, sep, raw_id = key.partition(KEY_SEPARATOR)
    if not sep:
        raise ValueError(f"Malformed owner key {key!r}: expected '<kind>:<id>'")
    try:
        return OwnerRef(OwnerKind(kind), raw_id)
    except ValueError:
        raise ValueError(
            f"Unknown owner kind {kind!r} in key {key!r}. "
            f"Supported: {sorted(k.value for k in OwnerKind)}"
        ) from None


def direct_edge_id(ownership: Ownership) -> str:
    return f"{ownership.owner.key}{EDGE_ARROW}{object_key(ownership.object_id)}"


def indirect_edge_id(source_key: str, object_id: str) -> str:
    return f"{source_key}{EDGE_ARROW}{object_key(object_id)}"

"""
Presentation-side views over the engine's unfiltered output.

The propagator reports everything, including one-hop entries that duplicate
direct edges and negligible residues from long chains. The views here drop
those for display and hand a graph renderer the edges it should draw.
"""

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Set

from models.ownership import Entity, OwnedObject, OwnerRef, Ownership
from .edge_identity import direct_edge_id, indirect_edge_id, object_key
from .name_resolver import NameLookup

MATERIALITY_THRESHOLD = 0.01

EDGE_KIND_DIRECT = "direct"
EDGE_KIND_INDIRECT = "indirect"


@dataclass(frozen=True)
class IndirectRow:
    id: str
    source_key: str
    object_id: str
    label: str
    percent: float


@dataclass(frozen=True)
class GraphEdge:
    id: str
    source: str
    target: str
    percent: float
    kind: str


def strictly_indirect(
    totals: Mapping[str, Mapping[str, float]],
    ownerships: Iterable[Ownership],
    entities: Sequence[Entity],
    objects: Sequence[OwnedObject],
    threshold: float = MATERIALITY_THRESHOLD,
) -> List[IndirectRow]:
    """
    Indirect entries above *threshold* whose id does not coincide with a
    direct edge, largest first. *ownerships* should be the full direct edge
    set, hidden edges included, so one-hop duplicates never leak through.
    """
    direct_ids = {direct_edge_id(o) for o in ownerships}
    lookup = NameLookup(entities, objects)

    rows: List[IndirectRow] = []
    for source_key, targets in totals.items():
        for object_id, percent in targets.items():
            if percent <= threshold:
                continue
            edge_id = indirect_edge_id(source_key, object_id)
            if edge_id in direct_ids:
                continue
            rows.append(IndirectRow(
                id=edge_id,
                source_key=source_key,
                object_id=object_id,
                label=f"{lookup.owner_name(source_key)} → {lookup.object_name(object_id)}",
                percent=percent,
            ))
    rows.sort(key=lambda r: r.percent, reverse=True)
    return rows


def graph_edges(
    totals: Mapping[str, Mapping[str, float]],
    direct_ownerships: Sequence[Ownership],
    entities: Sequence[Entity],
    objects: Sequence[OwnedObject],
    hidden_indirect_ids: Optional[Set[str]] = None,
    threshold: float = MATERIALITY_THRESHOLD,
) -> List[GraphEdge]:
    """
    Edge list for a graph renderer: indirect edges first (material, not
    hidden, not duplicating a direct edge), then every direct edge. Edges
    touching a node missing from the snapshot are pruned.
    """
    hidden = hidden_indirect_ids or set()
    direct_ids = {direct_edge_id(o) for o in direct_ownerships}

    edges: List[GraphEdge] = []
    for source_key, targets in totals.items():
        for object_id, percent in targets.items():
            if percent <= threshold:
                continue
            edge_id = indirect_edge_id(source_key, object_id)
            if edge_id in hidden or edge_id in direct_ids:
                continue
            edges.append(GraphEdge(edge_id, source_key, object_key(object_id), percent, EDGE_KIND_INDIRECT))

    for own in direct_ownerships:
        edges.append(GraphEdge(
            direct_edge_id(own), own.owner.key, object_key(own.object_id), own.percent, EDGE_KIND_DIRECT,
        ))

    node_keys = {OwnerRef.entity(e.id).key for e in entities} | {object_key(o.id) for o in objects}
    return [e for e in edges if e.source in node_keys and e.target in node_keys]

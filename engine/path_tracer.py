"""
Ownership Path Tracer
=====================
Explains an indirect figure by listing every path that contributes to it.

The walk follows the propagator's rules exactly: path-local visited sets,
nothing recorded for an edge back into the source, and a path may end on a
node already on it (recorded, not continued). Summing the listed
contributions therefore gives the figure ``compute_indirect`` reports.
"""

from typing import Any, Dict, List, Tuple

import networkx as nx

from models.ownership import OwnershipSnapshot
from .edge_identity import indirect_edge_id, object_key, parse_owner_key
from .indirect_propagator import build_ownership_graph, to_percent


def trace_paths(snapshot: OwnershipSnapshot, source_key: str, object_id: str) -> Dict[str, Any]:
    """
    Returns a self-contained, serialisation-friendly record::

        {"edge_id", "source_key", "object_id", "total_percent",
         "paths": [{"nodes", "ownership_ids", "weights", "contribution_percent"}]}

    Paths are ordered by contribution, largest first.
    """
    parse_owner_key(source_key)  # rejects malformed keys

    G = build_ownership_graph(snapshot.entities, snapshot.objects, snapshot.ownerships)
    target = object_key(object_id)

    found: List[Tuple[List[str], List[str], List[float], float]] = []
    if source_key in G:
        _walk(G, source_key, target, [source_key], [], [], 1.0, found)

    total = sum(contribution for *_, contribution in found)
    paths = [
        {
            "nodes": nodes,
            "ownership_ids": ownership_ids,
            "weights": weights,
            "contribution_percent": to_percent(contribution),
        }
        for nodes, ownership_ids, weights, contribution in sorted(found, key=lambda p: p[3], reverse=True)
    ]
    return {
        "edge_id": indirect_edge_id(source_key, object_id),
        "source_key": source_key,
        "object_id": object_id,
        "total_percent": to_percent(total),
        "paths": paths,
    }


def _walk(
    G: nx.MultiDiGraph,
    source: str,
    target: str,
    nodes: List[str],
    ownership_ids: List[str],
    weights: List[float],
    accumulated: float,
    found: List[Tuple[List[str], List[str], List[float], float]],
) -> None:
    current = nodes[-1]
    for _, succ, data in G.out_edges(current, data=True):
        if succ == source:
            continue
        contribution = accumulated * data["weight"]
        next_nodes = nodes + [succ]
        next_ids = ownership_ids + [data["ownership_id"]]
        next_weights = weights + [data["weight"]]

        if succ == target:
            found.append((next_nodes, next_ids, next_weights, contribution))
        if succ not in nodes:
            _walk(G, source, target, next_nodes, next_ids, next_weights, contribution, found)

"""
Indirect Ownership Propagator
=============================
Computes effective (multi-hop) ownership between every pair of nodes that
can reach one another.

For each possible source (every Entity and every Object) the propagator
enumerates the paths leaving it and adds, for every edge crossed, the product
of the weights along the path so far into ``results[source][target]``.
Contributions from different paths converging on the same target are summed.

The visited set is path-local: every branch carries its own copy, so the
same node can be reached (and counted) through several distinct paths, while
a single path can never revisit a node already on it. An edge back into the
source is ignored entirely, so no source is ever reported as owning itself.
An edge into any other node already on the path still records its
contribution but is not descended.

Values are accumulated in full float precision and rounded to two decimals
once per (source, target) pair when the table is produced.

Cost is proportional to the number of distinct paths per source, which grows
combinatorially in dense graphs. The ``"dag"`` strategy replaces the
enumeration with a memoized reverse-topological pass when the graph has no
cycles; it yields the same sum-of-products figures.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from models.ownership import Entity, OwnedObject, OwnerRef, Ownership
from .edge_identity import object_key

logger = logging.getLogger(__name__)

# source key -> {target object id -> percent}
IndirectTotals = Dict[str, Dict[str, float]]

STRATEGY_PATHS = "paths"
STRATEGY_DAG = "dag"
STRATEGIES = (STRATEGY_PATHS, STRATEGY_DAG)

PERCENT_DECIMALS = 2
_PERCENT_QUANTUM = Decimal(1).scaleb(-PERCENT_DECIMALS)


def build_adjacency(ownerships: Iterable[Ownership]) -> Dict[str, List[Tuple[str, float]]]:
    """owner key -> [(target object id, weight)], one pair per Ownership."""
    adj: Dict[str, List[Tuple[str, float]]] = {}
    for own in ownerships:
        adj.setdefault(own.owner.key, []).append((own.object_id, own.weight))
    return adj


def build_ownership_graph(
    entities: Iterable[Entity],
    objects: Iterable[OwnedObject],
    ownerships: Iterable[Ownership],
) -> nx.MultiDiGraph:
    """
    NetworkX view of the snapshot. Nodes are owner keys; every Ownership
    becomes its own edge (parallel duplicates are kept) carrying ``weight``,
    ``percent``, ``object_id`` and ``ownership_id``.
    """
    G = nx.MultiDiGraph()
    for e in entities:
        G.add_node(OwnerRef.entity(e.id).key, kind="entity", name=e.name)
    for o in objects:
        G.add_node(OwnerRef.object(o.id).key, kind="object", name=o.name)

    for own in ownerships:
        G.add_edge(
            own.owner.key,
            object_key(own.object_id),
            weight=own.weight,
            percent=own.percent,
            object_id=own.object_id,
            ownership_id=own.id,
        )
    return G


def _source_keys(entities: Iterable[Entity], objects: Iterable[OwnedObject]) -> List[str]:
    keys = [OwnerRef.entity(e.id).key for e in entities]
    keys.extend(OwnerRef.object(o.id).key for o in objects)
    return keys


def compute_indirect(
    entities: Sequence[Entity],
    objects: Sequence[OwnedObject],
    ownerships: Sequence[Ownership],
    strategy: str = STRATEGY_PATHS,
) -> IndirectTotals:
    """
    Returns the complete, unfiltered indirect table, one-hop entries included.
    Sources with no outgoing path have no entry.

    *ownerships* is used as given: callers hiding direct edges filter them out
    before calling.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown propagation strategy: {strategy}. Supported: {list(STRATEGIES)}")

    sources = _source_keys(entities, objects)

    raw: Optional[Dict[str, Dict[str, float]]] = None
    if strategy == STRATEGY_DAG:
        raw = _propagate_dag(build_ownership_graph(entities, objects, ownerships), sources)
        if raw is None:
            logger.info("Ownership graph contains a cycle; falling back to path enumeration")

    if raw is None:
        adj = build_adjacency(ownerships)
        raw = {}
        for source in sources:
            reached = _propagate_from(source, adj)
            if reached:
                raw[source] = reached

    logger.debug(
        "Indirect propagation (%s): %d sources, %d with reachable targets, %d entries",
        strategy,
        len(sources),
        len(raw),
        sum(len(t) for t in raw.values()),
    )
    return _to_percent_table(raw)


def _propagate_from(source: str, adj: Dict[str, List[Tuple[str, float]]]) -> Dict[str, float]:
    """
    Path enumeration from a single source. Each stack frame carries its own
    accumulated weight and its own visited set.
    """
    reached: Dict[str, float] = {}
    stack: List[Tuple[str, float, FrozenSet[str]]] = [(source, 1.0, frozenset([source]))]

    while stack:
        current, accumulated, visited = stack.pop()
        for target_id, weight in adj.get(current, ()):
            target = object_key(target_id)
            if target == source:
                continue

            contribution = accumulated * weight
            reached[target_id] = reached.get(target_id, 0.0) + contribution

            if target not in visited:
                stack.append((target, contribution, visited | {target}))

    return reached


def _propagate_dag(G: nx.MultiDiGraph, sources: List[str]) -> Optional[Dict[str, Dict[str, float]]]:
    """
    Memoized pass in reverse topological order. Only valid for acyclic
    graphs, where every path is cycle-free and the visited rule never fires;
    returns None otherwise.
    """
    if not nx.is_directed_acyclic_graph(G):
        return None

    downstream: Dict[str, Dict[str, float]] = {}
    for node in reversed(list(nx.topological_sort(G))):
        reach: Dict[str, float] = {}
        for _, succ, data in G.out_edges(node, data=True):
            weight = data["weight"]
            target_id = data["object_id"]
            reach[target_id] = reach.get(target_id, 0.0) + weight
            for further_id, value in downstream.get(succ, {}).items():
                reach[further_id] = reach.get(further_id, 0.0) + weight * value
        downstream[node] = reach

    return {s: downstream[s] for s in sources if downstream.get(s)}


def to_percent(fraction: float) -> float:
    """
    Fraction to percent, rounded half up on the float's exact binary value,
    so 0.50125 reports 50.13 rather than the banker's-rounded 50.12.
    """
    exact = Decimal(fraction * 100)
    return float(exact.quantize(_PERCENT_QUANTUM, rounding=ROUND_HALF_UP))


def _to_percent_table(raw: Dict[str, Dict[str, float]]) -> IndirectTotals:
    return {
        source: {target: to_percent(value) for target, value in targets.items()}
        for source, targets in raw.items()
    }

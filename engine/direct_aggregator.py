from typing import Dict, Iterable

from models.ownership import Ownership

# owner key -> {target object id -> summed percent}
DirectTotals = Dict[str, Dict[str, float]]


def compute_direct(ownerships: Iterable[Ownership]) -> DirectTotals:
    """
    Collapses direct edges into one summed percentage per (owner, object)
    pair. Duplicate edges between the same pair accumulate, they never
    overwrite each other.
    """
    out: DirectTotals = {}
    for own in ownerships:
        targets = out.setdefault(own.owner.key, {})
        targets[own.object_id] = targets.get(own.object_id, 0.0) + own.percent
    return out

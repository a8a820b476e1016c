"""
Algorithm Version Registry
===========================
Maps each API operation to the versioned algorithm that serves it. The
active version string is written into every audit entry, so a historical
ownership table can be re-derived with the exact rules that produced it
(propagation rules, rounding, presentation thresholds).

The latest non-deprecated entry whose ``effective_from`` has passed wins.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass(frozen=True)
class AlgorithmVersionDescriptor:
    """Immutable record describing one algorithm version."""
    version: str
    description: str
    effective_from: datetime = field(default_factory=datetime.utcnow)
    deprecated_at: Optional[datetime] = None


_REGISTRY: Dict[str, List[AlgorithmVersionDescriptor]] = {
    "compute_direct": [
        AlgorithmVersionDescriptor(
            version="1.0.0",
            description="Per (owner, object) sum of declared direct percentages; duplicates accumulate.",
        ),
    ],
    "compute_indirect": [
        AlgorithmVersionDescriptor(
            version="1.0.0",
            description=(
                "Per-source path enumeration with path-local visited sets, "
                "summed path products, single rounding to two decimals."
            ),
        ),
    ],
    "resolve_names": [
        AlgorithmVersionDescriptor(
            version="1.0.0",
            description="Id-to-name projection with 'Unknown <kind> (<id>)' placeholders.",
        ),
    ],
    "strictly_indirect": [
        AlgorithmVersionDescriptor(
            version="1.0.0",
            description="Indirect entries above 0.01% excluding ids that coincide with direct edges.",
        ),
    ],
    "graph_edges": [
        AlgorithmVersionDescriptor(
            version="1.0.0",
            description="Renderer edge list: material, visible, non-duplicate indirect edges plus direct edges.",
        ),
    ],
    "trace_paths": [
        AlgorithmVersionDescriptor(
            version="1.0.0",
            description="Contributing-path listing following the propagator's visited rules.",
        ),
    ],
}


def get_current_version(operation: str) -> AlgorithmVersionDescriptor:
    versions = _REGISTRY.get(operation)
    if not versions:
        raise KeyError(f"Unknown operation: {operation}")

    now = datetime.utcnow()
    candidates = [
        v for v in versions
        if v.effective_from <= now and v.deprecated_at is None
    ]
    if not candidates:
        raise RuntimeError(f"No active algorithm version for operation '{operation}'")
    return max(candidates, key=lambda v: v.effective_from)


def register_version(
    operation: str,
    version: str,
    description: str,
    effective_from: Optional[datetime] = None,
) -> AlgorithmVersionDescriptor:
    """
    Append a new version for an operation. A future *effective_from* keeps
    it inactive until then.
    """
    desc = AlgorithmVersionDescriptor(
        version=version,
        description=description,
        effective_from=effective_from or datetime.utcnow(),
    )
    _REGISTRY.setdefault(operation, []).append(desc)
    return desc


def deprecate_version(operation: str, version: str) -> None:
    versions = _REGISTRY.get(operation, [])
    for i, v in enumerate(versions):
        if v.version == version and v.deprecated_at is None:
            # frozen dataclass, replace in place
            versions[i] = AlgorithmVersionDescriptor(
                version=v.version,
                description=v.description,
                effective_from=v.effective_from,
                deprecated_at=datetime.utcnow(),
            )
            return
    raise KeyError(f"Active version '{version}' not found for operation '{operation}'")


def list_versions(operation: str) -> List[AlgorithmVersionDescriptor]:
    return list(_REGISTRY.get(operation, []))

"""
Ownership API Layer
===================
Audited, version-tracked facade over the ownership engine. Every public
method:

  1. Resolves the current algorithm version for the operation.
  2. Validates the snapshot (hard violations fail the call, over-allocated
     objects become warnings).
  3. Applies the hidden-direct-edge toggle, then delegates to the engine.
  4. Wraps the result in an :class:`ApiResponse` with a short explanation.
  5. Writes an AuditLogEntry, for failures too, before returning.

Public operations
~~~~~~~~~~~~~~~~~
  - ``compute_direct``     – aggregated direct totals (id-keyed).
  - ``compute_indirect``   – full, unfiltered indirect totals (id-keyed).
  - ``resolve_names``      – name-keyed table plus sorted report rows.
  - ``strictly_indirect``  – material multi-hop entries not duplicating a
                             direct edge.
  - ``graph_edges``        – edge list for a graph renderer.
  - ``trace_paths``        – contributing paths behind one indirect figure.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from engine.direct_aggregator import compute_direct
from engine.indirect_propagator import STRATEGY_PATHS, compute_indirect
from engine.name_resolver import resolve_names, totals_to_rows
from engine.ownership_layers import MATERIALITY_THRESHOLD, graph_edges, strictly_indirect
from engine.path_tracer import trace_paths
from engine.snapshot_validation import validate_snapshot
from models.ownership import OwnerRef, OwnershipSnapshot

from api.audit_log import AuditLogger
from api.algorithm_registry import get_current_version
from api.response_envelope import ApiResponse, success_envelope, error_envelope
from api.schemas import snapshot_to_payload

logger = logging.getLogger(__name__)

TABLE_DIRECT = "direct"
TABLE_INDIRECT = "indirect"

# (data, explanation, warnings)
_Outcome = Tuple[Any, str, List[str]]


class OwnershipAPI:
    """
    Unified API surface for the ownership engine. The engine is pure; the
    facade adds validation, the audit trail and the response envelope.
    """

    def __init__(self, session: Session, caller_identity: Optional[str] = None):
        self.session = session
        self.caller_identity = caller_identity
        self._audit = AuditLogger(session)

    # =====================================================================
    #  compute_direct
    # =====================================================================
    def compute_direct(self, snapshot: OwnershipSnapshot) -> ApiResponse:
        def run() -> _Outcome:
            warnings = validate_snapshot(snapshot)
            totals = compute_direct(snapshot.ownerships)
            explanation = (
                f"Aggregated {len(snapshot.ownerships)} direct ownership record(s) into "
                f"{_count_entries(totals)} owner/object pair(s) across {len(totals)} owner(s). "
                f"Duplicate records between the same pair were summed."
            )
            return {"direct_totals": totals}, explanation, warnings

        return self._run("compute_direct", self._request(snapshot), run)

    # =====================================================================
    #  compute_indirect
    # =====================================================================
    def compute_indirect(
        self,
        snapshot: OwnershipSnapshot,
        hidden_direct_ids: Iterable[str] = (),
        strategy: str = STRATEGY_PATHS,
    ) -> ApiResponse:
        hidden = sorted(hidden_direct_ids)

        def run() -> _Outcome:
            warnings = validate_snapshot(snapshot)
            effective = snapshot.without_ownerships(hidden)
            totals = compute_indirect(effective.entities, effective.objects, effective.ownerships, strategy=strategy)
            explanation = (
                f"Propagated ownership from {len(effective.entities) + len(effective.objects)} possible "
                f"source(s) over {len(effective.ownerships)} direct edge(s) "
                f"({len(hidden)} hidden). {len(totals)} source(s) reach at least one object; "
                f"{_count_entries(totals)} (source, object) figure(s) reported, one-hop entries included."
            )
            return {"indirect_totals": totals, "strategy": strategy}, explanation, warnings

        return self._run(
            "compute_indirect",
            self._request(snapshot, hidden_direct_ids=hidden, strategy=strategy),
            run,
        )

    # =====================================================================
    #  resolve_names
    # =====================================================================
    def resolve_names(
        self,
        snapshot: OwnershipSnapshot,
        totals: Optional[Mapping[str, Mapping[str, float]]] = None,
        table: str = TABLE_INDIRECT,
        hidden_direct_ids: Iterable[str] = (),
    ) -> ApiResponse:
        """
        Resolves *totals* when given; otherwise computes the *table*
        (``"direct"`` or ``"indirect"``) from the snapshot first.
        """
        hidden = sorted(hidden_direct_ids)

        def run() -> _Outcome:
            warnings = validate_snapshot(snapshot)
            source = totals
            if source is None:
                source = self._compute_table(snapshot, table, hidden)
            named = resolve_names(source, snapshot.entities, snapshot.objects)
            rows = [asdict(r) for r in totals_to_rows(source, snapshot.entities, snapshot.objects)]
            explanation = (
                f"Resolved {len(rows)} {table if totals is None else 'supplied'} figure(s) to display "
                f"names for {len(named)} owner(s). Unknown ids use placeholder names."
            )
            return {"named_totals": named, "rows": rows}, explanation, warnings

        return self._run(
            "resolve_names",
            self._request(snapshot, totals=totals, table=table, hidden_direct_ids=hidden),
            run,
        )

    # =====================================================================
    #  strictly_indirect
    # =====================================================================
    def strictly_indirect(
        self,
        snapshot: OwnershipSnapshot,
        hidden_direct_ids: Iterable[str] = (),
        threshold: float = MATERIALITY_THRESHOLD,
    ) -> ApiResponse:
        hidden = sorted(hidden_direct_ids)

        def run() -> _Outcome:
            warnings = validate_snapshot(snapshot)
            totals = self._compute_table(snapshot, TABLE_INDIRECT, hidden)
            rows = strictly_indirect(
                totals, snapshot.ownerships, snapshot.entities, snapshot.objects, threshold=threshold,
            )
            explanation = (
                f"{len(rows)} multi-hop ownership figure(s) above {threshold}% after excluding "
                f"entries that coincide with a direct edge."
            )
            return {"rows": [asdict(r) for r in rows]}, explanation, warnings

        return self._run(
            "strictly_indirect",
            self._request(snapshot, hidden_direct_ids=hidden, threshold=threshold),
            run,
        )

    # =====================================================================
    #  graph_edges
    # =====================================================================
    def graph_edges(
        self,
        snapshot: OwnershipSnapshot,
        hidden_direct_ids: Iterable[str] = (),
        hidden_indirect_ids: Iterable[str] = (),
    ) -> ApiResponse:
        hidden_direct = sorted(hidden_direct_ids)
        hidden_indirect = sorted(hidden_indirect_ids)

        def run() -> _Outcome:
            warnings = validate_snapshot(snapshot)
            effective = snapshot.without_ownerships(hidden_direct)
            totals = compute_indirect(effective.entities, effective.objects, effective.ownerships)
            edges = graph_edges(
                totals,
                effective.ownerships,
                snapshot.entities,
                snapshot.objects,
                hidden_indirect_ids=set(hidden_indirect),
            )
            nodes = [{"id": OwnerRef.entity(e.id).key, "label": e.name} for e in snapshot.entities]
            nodes.extend({"id": OwnerRef.object(o.id).key, "label": o.name} for o in snapshot.objects)
            explanation = (
                f"{len(nodes)} node(s) and {len(edges)} edge(s) prepared for rendering; "
                f"{len(hidden_direct)} direct and {len(hidden_indirect)} indirect edge(s) hidden."
            )
            return {"nodes": nodes, "edges": [asdict(e) for e in edges]}, explanation, warnings

        return self._run(
            "graph_edges",
            self._request(snapshot, hidden_direct_ids=hidden_direct, hidden_indirect_ids=hidden_indirect),
            run,
        )

    # =====================================================================
    #  trace_paths
    # =====================================================================
    def trace_paths(
        self,
        snapshot: OwnershipSnapshot,
        source_key: str,
        object_id: str,
        hidden_direct_ids: Iterable[str] = (),
    ) -> ApiResponse:
        hidden = sorted(hidden_direct_ids)

        def run() -> _Outcome:
            warnings = validate_snapshot(snapshot)
            trace = trace_paths(snapshot.without_ownerships(hidden), source_key, object_id)
            explanation = (
                f"{len(trace['paths'])} path(s) carry ownership from '{source_key}' to object "
                f"'{object_id}', summing to {trace['total_percent']}%."
            )
            return trace, explanation, warnings

        return self._run(
            "trace_paths",
            self._request(snapshot, source_key=source_key, object_id=object_id, hidden_direct_ids=hidden),
            run,
        )

    # =====================================================================
    #  Utility: query audit log
    # =====================================================================
    def query_audit_log(
        self,
        operation: Optional[str] = None,
        since: Optional[datetime] = None,
        input_digest: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        entries = self._audit.query_log(
            operation=operation, since=since, input_digest=input_digest, limit=limit
        )
        return [
            {
                "id": e.id,
                "operation": e.operation,
                "algorithm_version": e.algorithm_version,
                "input_digest": e.input_digest,
                "request_payload": json.loads(e.request_payload) if e.request_payload else None,
                "response_payload": json.loads(e.response_payload) if e.response_payload else None,
                "warning_count": e.warning_count,
                "duration_ms": e.duration_ms,
                "caller_identity": e.caller_identity,
                "status": e.status,
                "error_detail": e.error_detail,
                "timestamp": e.timestamp.isoformat() if e.timestamp else None,
            }
            for e in entries
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _compute_table(self, snapshot: OwnershipSnapshot, table: str, hidden: List[str]) -> Dict[str, Dict[str, float]]:
        if table == TABLE_DIRECT:
            return compute_direct(snapshot.ownerships)
        if table == TABLE_INDIRECT:
            effective = snapshot.without_ownerships(hidden)
            return compute_indirect(effective.entities, effective.objects, effective.ownerships)
        raise ValueError(f"Unknown table: {table}. Supported: ['{TABLE_DIRECT}', '{TABLE_INDIRECT}']")

    def _request(self, snapshot: OwnershipSnapshot, **params: Any) -> Dict[str, Any]:
        payload = {"snapshot": snapshot_to_payload(snapshot)}
        payload.update(params)
        return payload

    def _run(self, op: str, request_payload: Dict[str, Any], compute: Callable[[], _Outcome]) -> ApiResponse:
        ver = get_current_version(op)
        t0 = time.perf_counter()

        try:
            data, explanation, warnings = compute()

            duration = (time.perf_counter() - t0) * 1000
            audit = self._audit.log(
                operation=op,
                algorithm_version=ver.version,
                request_payload=request_payload,
                response_payload=data,
                duration_ms=duration,
                caller_identity=self.caller_identity,
                warnings=warnings,
            )
            self.session.commit()
            logger.debug("%s v%s served in %.2f ms (audit %s)", op, ver.version, duration, audit.id)

            return success_envelope(
                operation=op,
                api_version=ver.version,
                data=data,
                explanation=explanation,
                audit_id=audit.id,
                warnings=warnings,
            )

        except Exception as exc:
            logger.info("%s failed: %s", op, exc)
            duration = (time.perf_counter() - t0) * 1000
            audit = self._audit.log(
                operation=op,
                algorithm_version=ver.version,
                request_payload=request_payload,
                response_payload=None,
                duration_ms=duration,
                caller_identity=self.caller_identity,
                status="error",
                error_detail=str(exc),
            )
            self.session.commit()
            return error_envelope(
                operation=op,
                api_version=ver.version,
                error_message=str(exc),
                audit_id=audit.id,
            )


def _count_entries(totals: Mapping[str, Mapping[str, float]]) -> int:
    return sum(len(targets) for targets in totals.values())

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI
from pydantic import BaseModel, Field
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from api.ownership_api import OwnershipAPI
from api.schemas import SnapshotModel
from engine.indirect_propagator import STRATEGY_PATHS
from engine.ownership_layers import MATERIALITY_THRESHOLD
from models.base import Base


DATABASE_URL = os.getenv("OWNERSHIP_DB_URL", "sqlite:///ownership_audit.db")
LOG_LEVEL = os.getenv("OWNERSHIP_LOG_LEVEL", "INFO")

_engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)


def init_db() -> None:
    Base.metadata.create_all(bind=_engine)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class SnapshotRequest(BaseModel):
    snapshot: SnapshotModel
    hidden_direct_ids: List[str] = Field(default_factory=list)
    caller_identity: Optional[str] = None


class IndirectRequest(SnapshotRequest):
    strategy: Literal["paths", "dag"] = STRATEGY_PATHS


class NamedTotalsRequest(SnapshotRequest):
    totals: Optional[Dict[str, Dict[str, float]]] = None
    table: Literal["direct", "indirect"] = "indirect"


class StrictlyIndirectRequest(SnapshotRequest):
    threshold: float = Field(default=MATERIALITY_THRESHOLD, ge=0)


class GraphEdgesRequest(SnapshotRequest):
    hidden_indirect_ids: List[str] = Field(default_factory=list)


class OwnershipPathsRequest(SnapshotRequest):
    source_key: str
    object_id: str


class AuditQueryRequest(BaseModel):
    operation: Optional[str] = None
    since: Optional[datetime] = None
    input_digest: Optional[str] = None
    limit: int = Field(default=50, ge=1, le=500)
    caller_identity: Optional[str] = None


@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    init_db()
    yield


app = FastAPI(
    title="Ownership Propagation API",
    version="1.0.0",
    description=(
        "Direct and indirect (multi-hop, cycle-safe) ownership computation over "
        "entity/object snapshots, with name resolution, presentation views, "
        "path tracing and an audit ledger."
    ),
    lifespan=lifespan,
)


def _service(db: Session, caller_identity: Optional[str]) -> OwnershipAPI:
    return OwnershipAPI(session=db, caller_identity=caller_identity)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/v1/direct-totals")
def direct_totals(payload: SnapshotRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = _service(db, payload.caller_identity)
    return service.compute_direct(payload.snapshot.to_snapshot()).to_dict()


@app.post("/v1/indirect-totals")
def indirect_totals(payload: IndirectRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = _service(db, payload.caller_identity)
    response = service.compute_indirect(
        payload.snapshot.to_snapshot(),
        hidden_direct_ids=payload.hidden_direct_ids,
        strategy=payload.strategy,
    )
    return response.to_dict()


@app.post("/v1/named-totals")
def named_totals(payload: NamedTotalsRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = _service(db, payload.caller_identity)
    response = service.resolve_names(
        payload.snapshot.to_snapshot(),
        totals=payload.totals,
        table=payload.table,
        hidden_direct_ids=payload.hidden_direct_ids,
    )
    return response.to_dict()


@app.post("/v1/strictly-indirect")
def strictly_indirect(payload: StrictlyIndirectRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = _service(db, payload.caller_identity)
    response = service.strictly_indirect(
        payload.snapshot.to_snapshot(),
        hidden_direct_ids=payload.hidden_direct_ids,
        threshold=payload.threshold,
    )
    return response.to_dict()


@app.post("/v1/graph-edges")
def graph_edges(payload: GraphEdgesRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = _service(db, payload.caller_identity)
    response = service.graph_edges(
        payload.snapshot.to_snapshot(),
        hidden_direct_ids=payload.hidden_direct_ids,
        hidden_indirect_ids=payload.hidden_indirect_ids,
    )
    return response.to_dict()


@app.post("/v1/ownership-paths")
def ownership_paths(payload: OwnershipPathsRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = _service(db, payload.caller_identity)
    response = service.trace_paths(
        payload.snapshot.to_snapshot(),
        source_key=payload.source_key,
        object_id=payload.object_id,
        hidden_direct_ids=payload.hidden_direct_ids,
    )
    return response.to_dict()


@app.post("/v1/audit-log")
def query_audit_log(payload: AuditQueryRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    service = _service(db, payload.caller_identity)
    records = service.query_audit_log(
        operation=payload.operation,
        since=payload.since,
        input_digest=payload.input_digest,
        limit=payload.limit,
    )
    return {"status": "ok", "records": records}

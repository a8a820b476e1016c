"""
Computation Audit Ledger
========================
Append-only record of every ownership computation served by the API. Each
entry keeps the operation, algorithm version, the full input snapshot and
output table as JSON, a digest of the input so identical snapshots can be
matched across runs, timing, caller identity, and any validation warnings.

The engine itself is stateless; this ledger is the only thing persisted.
"""

from datetime import datetime
import hashlib
import json
import uuid
from typing import Any, List, Optional

from sqlalchemy import Column, String, Float, DateTime, Text, Integer
from sqlalchemy.orm import Session

from models.base import Base


def snapshot_digest(payload: Any) -> str:
    canonical = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class AuditLogEntry(Base):
    __tablename__ = "ownership_audit_log"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    operation = Column(String, nullable=False)
    algorithm_version = Column(String, nullable=False)
    input_digest = Column(String(64), nullable=False)
    request_payload = Column(Text, nullable=False)  # JSON
    response_payload = Column(Text, nullable=False)  # JSON
    warning_count = Column(Integer, nullable=False, default=0)
    duration_ms = Column(Float, nullable=False)
    caller_identity = Column(String, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    status = Column(String, nullable=False, default="success")  # success | error
    error_detail = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AuditLogEntry(op={self.operation}, v={self.algorithm_version}, "
            f"digest={self.input_digest[:8]}, status={self.status})>"
        )


class AuditLogger:
    def __init__(self, session: Session):
        self.session = session

    def log(
        self,
        operation: str,
        algorithm_version: str,
        request_payload: Any,
        response_payload: Any,
        duration_ms: float,
        caller_identity: Optional[str] = None,
        warnings: Optional[List[str]] = None,
        status: str = "success",
        error_detail: Optional[str] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            operation=operation,
            algorithm_version=algorithm_version,
            input_digest=snapshot_digest(request_payload),
            request_payload=json.dumps(request_payload, default=str),
            response_payload=json.dumps(response_payload, default=str),
            warning_count=len(warnings or []),
            duration_ms=duration_ms,
            caller_identity=caller_identity,
            status=status,
            error_detail=error_detail,
        )
        self.session.add(entry)
        # NOTE: caller is responsible for commit.
        return entry

    def query_log(
        self,
        operation: Optional[str] = None,
        since: Optional[datetime] = None,
        input_digest: Optional[str] = None,
        limit: int = 50,
    ) -> List[AuditLogEntry]:
        q = self.session.query(AuditLogEntry)
        if operation:
            q = q.filter(AuditLogEntry.operation == operation)
        if since:
            q = q.filter(AuditLogEntry.timestamp >= since)
        if input_digest:
            q = q.filter(AuditLogEntry.input_digest == input_digest)
        q = q.order_by(AuditLogEntry.timestamp.desc()).limit(limit)
        return q.all()

"""
Structured Response Envelope
=============================
Every facade call returns the same envelope:

  - ``operation`` / ``api_version`` – what ran, under which algorithm version.
  - ``status``       – ``"ok"`` or ``"error"``.
  - ``data``         – id-keyed or name-keyed tables, rows, edges or traces.
  - ``explanation``  – short human-readable summary, or the error message.
  - ``warnings``     – caller-side validation warnings (e.g. over-allocated
                       objects); empty when there are none.
  - ``audit_id``     – the ledger entry recording this computation.
  - ``timestamp``    – ISO-8601 UTC creation time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ApiResponse:
    operation: str
    api_version: str
    status: str  # "ok" | "error"
    data: Any
    explanation: str
    audit_id: str
    warnings: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "api_version": self.api_version,
            "status": self.status,
            "data": self.data,
            "explanation": self.explanation,
            "warnings": list(self.warnings),
            "audit_id": self.audit_id,
            "timestamp": self.timestamp,
        }


def success_envelope(
    operation: str,
    api_version: str,
    data: Any,
    explanation: str,
    audit_id: str,
    warnings: Optional[List[str]] = None,
) -> ApiResponse:
    return ApiResponse(
        operation=operation,
        api_version=api_version,
        status="ok",
        data=data,
        explanation=explanation,
        audit_id=audit_id,
        warnings=list(warnings or []),
    )


def error_envelope(
    operation: str,
    api_version: str,
    error_message: str,
    audit_id: str,
) -> ApiResponse:
    return ApiResponse(
        operation=operation,
        api_version=api_version,
        status="error",
        data=None,
        explanation=error_message,
        audit_id=audit_id,
    )

"""PromoProbe — Probe & Verdict Schemas.

Ephemeral, never persisted: a request profile, the outcome of one probe,
and the verdict derived from it.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel

from promoprobe.models.code_models import CodeStatus


# ─────────────────────────────────────────────
# PROBE — One HTTP round-trip against the target
# ─────────────────────────────────────────────


class RequestSpec(BaseModel):
    """Fully built request for one probe."""

    code: str
    url: str
    headers: Dict[str, str]

    @property
    def user_agent(self) -> str:
        return self.headers.get("User-Agent", "")


class ProbeResponse(BaseModel):
    """The target answered (any HTTP status)."""

    kind: Literal["response"] = "response"
    http_status: int
    body: str = ""
    elapsed_ms: float = 0.0


class ProbeTransportError(BaseModel):
    """DNS, connection or timeout failure — no HTTP status available."""

    kind: Literal["transport_error"] = "transport_error"
    reason: str
    timed_out: bool = False
    elapsed_ms: float = 0.0


ProbeOutcome = Union[ProbeResponse, ProbeTransportError]


# ─────────────────────────────────────────────
# VERDICT — Classification result
# ─────────────────────────────────────────────


class VerdictReason(str, Enum):
    """Why a verdict was reached."""

    MATCHED = "matched"  # Phrase table hit on a 2xx body
    NOT_FOUND = "not_found"  # HTTP 404
    BLOCKED = "blocked"  # HTTP 403
    RATE_LIMITED = "rate_limited"  # HTTP 429
    UNCLEAR = "unclear"  # 2xx body matched nothing
    HTTP_ERROR = "http_error"  # Any other status
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    EXHAUSTED = "exhausted"  # Retry budget spent without a terminal verdict
    CANCELLED = "cancelled"


class Verdict(BaseModel):
    """Tri-state outcome plus a human-readable explanation."""

    status: CodeStatus
    message: str
    reason: VerdictReason
    http_status: Optional[int] = None
    attempts: int = 0

    @property
    def is_terminal(self) -> bool:
        """Valid and invalid verdicts stop the retry loop; pending never does."""
        return self.status != CodeStatus.PENDING


# ─────────────────────────────────────────────
# BATCH — Aggregated run output
# ─────────────────────────────────────────────


class CodeResult(BaseModel):
    """Per-code line of a batch run."""

    code: str
    code_id: Optional[int] = None
    status: CodeStatus
    message: str
    http_status: Optional[int] = None
    attempts: int = 0


class BatchSummary(BaseModel):
    """Verdict counts for a batch run."""

    total: int = 0
    valid: int = 0
    invalid: int = 0
    pending: int = 0


class BatchRunResult(BaseModel):
    """Everything a batch run produced, in processing order."""

    results: List[CodeResult] = []
    summary: BatchSummary = BatchSummary()
    cancelled: bool = False

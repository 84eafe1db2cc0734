"""PromoProbe — Code Record Routes.

Manual override goes through the same repository call the engine uses.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from promoprobe.api.dependencies import get_repository
from promoprobe.models.code_models import CodeStatus
from promoprobe.repositories.code_repository import SQLCodeRepository
from promoprobe.core.logging import get_logger

logger = get_logger("api.codes")

router = APIRouter(tags=["Codes"])


# ── Request / Response Models ──


class StatusOverrideRequest(BaseModel):
    """Request body for POST /codes/{code_id}/status."""

    status: CodeStatus
    message: Optional[str] = None


class CodeRecordOut(BaseModel):
    """Public view of a stored code."""

    id: int
    batch_id: int
    code: str
    status: CodeStatus
    message: Optional[str] = None
    timestamp: datetime


# ── Endpoints ──


@router.post("/codes/{code_id}/status", response_model=CodeRecordOut)
async def override_code_status(
    code_id: int,
    request: StatusOverrideRequest,
    repository: SQLCodeRepository = Depends(get_repository),
):
    """Manually set a code's status, e.g. after checking it in a browser.

    Setting `pending` flags the code for another automated pass.
    """
    message = request.message or f"Manually verified as {request.status.value}"
    if not repository.update_code_status(code_id, request.status, message):
        raise HTTPException(status_code=404, detail=f"Code {code_id} not found")

    logger.info(
        f"Manual override: code {code_id} → {request.status.value}",
        extra={"verdict": request.status.value},
    )
    record = repository.get_code(code_id)
    return CodeRecordOut.model_validate(record, from_attributes=True)


@router.get("/batches/{batch_id}/codes")
async def list_batch_codes(
    batch_id: int,
    status: Optional[CodeStatus] = Query(None, description="Filter by status"),
    repository: SQLCodeRepository = Depends(get_repository),
):
    """List a batch's codes, optionally filtered by status."""
    if repository.get_batch(batch_id) is None:
        raise HTTPException(status_code=404, detail=f"Batch {batch_id} not found")

    codes = repository.list_codes(batch_id, status)
    return {
        "status": "success",
        "count": len(codes),
        "codes": [
            CodeRecordOut.model_validate(c, from_attributes=True) for c in codes
        ],
    }

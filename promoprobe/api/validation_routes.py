"""PromoProbe — Validation API Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from promoprobe.api.dependencies import get_code_validator, get_repository
from promoprobe.connectors.target.request_builder import build_request
from promoprobe.core.phrase_registry import find_match
from promoprobe.engine.cancellation import RunAlreadyActiveError, run_registry
from promoprobe.engine.classifier import classify
from promoprobe.engine.pipeline import run_batch_validation, run_code_list_validation
from promoprobe.engine.retry_controller import CodeValidator
from promoprobe.models.code_models import CodeStatus
from promoprobe.models.probe_models import (
    BatchSummary,
    CodeResult,
    ProbeTransportError,
    VerdictReason,
)
from promoprobe.repositories.code_repository import (
    BatchNotFoundError,
    SQLCodeRepository,
)
from promoprobe.core.logging import get_logger

logger = get_logger("api.validation")

router = APIRouter(tags=["Validation"])


# ── Request / Response Models ──


class ValidateBatchRequest(BaseModel):
    """Request body for POST /validate."""

    batch_id: int = Field(alias="batchId")
    """Batch whose pending codes should be validated."""

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {"examples": [{"batchId": 1}]},
    }


class ValidateBatchResponse(BaseModel):
    """Response for POST /validate."""

    validated: int
    results: List[CodeResult]
    summary: BatchSummary
    cancelled: bool = False
    message: Optional[str] = None


class ValidateCodesRequest(BaseModel):
    """Request body for POST /validate-codes."""

    codes: List[str]
    """Codes to probe. Blank entries are ignored; nothing is stored."""

    model_config = {
        "json_schema_extra": {"examples": [{"codes": ["AIRTEL-ABC123", "AIRTEL-XYZ789"]}]}
    }


class ValidateCodesResponse(BaseModel):
    """Response for POST /validate-codes."""

    results: List[CodeResult]
    summary: BatchSummary


class DiagnosticRequest(BaseModel):
    """Request body for POST /test-validation."""

    code: str


class DiagnosticResponse(BaseModel):
    """Raw view of a single probe, for tuning the phrase table."""

    code: str
    url: str
    http_status: Optional[int] = None
    body_length: int = 0
    body_preview: str = ""
    transport_error: Optional[str] = None
    matched_rule: Optional[str] = None
    matched_phrase: Optional[str] = None
    status: CodeStatus
    message: str
    reason: VerdictReason


# ── Endpoints ──


@router.post("/validate", response_model=ValidateBatchResponse)
async def validate_batch(
    request: ValidateBatchRequest,
    repository: SQLCodeRepository = Depends(get_repository),
    validator: CodeValidator = Depends(get_code_validator),
):
    """Validate every pending code in a batch and persist each verdict.

    Runs sequentially with randomized spacing, so large batches take minutes.
    Codes left pending are a normal outcome, not an error.
    """
    try:
        run = await run_batch_validation(repository, request.batch_id, validator)
    except BatchNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RunAlreadyActiveError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Validation failed for batch {request.batch_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Validation failed: {str(e)}")

    return ValidateBatchResponse(
        validated=len(run.results),
        results=run.results,
        summary=run.summary,
        cancelled=run.cancelled,
        message=None if run.results or run.cancelled else "No pending codes to validate",
    )


@router.post("/validate-codes", response_model=ValidateCodesResponse)
async def validate_codes(
    request: ValidateCodesRequest,
    validator: CodeValidator = Depends(get_code_validator),
):
    """Validate an ad-hoc list of codes without storing anything."""
    try:
        run = await run_code_list_validation(request.codes, validator)
    except Exception as e:
        logger.error(f"Ad-hoc validation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Validation failed: {str(e)}")

    return ValidateCodesResponse(results=run.results, summary=run.summary)


@router.post("/validate/{batch_id}/cancel")
async def cancel_validation(batch_id: int):
    """Ask a running batch to stop after the code in flight."""
    if not run_registry.cancel(batch_id):
        raise HTTPException(
            status_code=404, detail=f"No active validation for batch {batch_id}"
        )
    return {"status": "cancelling", "batch_id": batch_id}


@router.get("/validate/{batch_id}/progress")
async def get_validation_progress(batch_id: int):
    """Progress of a running batch."""
    run = run_registry.get(batch_id)
    if run is None:
        raise HTTPException(
            status_code=404, detail=f"No active validation for batch {batch_id}"
        )
    return {
        "batch_id": batch_id,
        "current": run.current,
        "total": run.total,
        "cancelling": run.token.cancelled,
    }


PREVIEW_CHARS = 500


@router.post("/test-validation", response_model=DiagnosticResponse)
async def diagnose_code(
    request: DiagnosticRequest,
    validator: CodeValidator = Depends(get_code_validator),
):
    """Probe one code once and show what the classifier saw.

    No retries and nothing stored. Use it to check the phrase table
    against the target's current copy.
    """
    code = request.code.strip()
    if not code:
        raise HTTPException(status_code=400, detail="Code is required")

    spec = build_request(code, rng=validator.rng, url_template=validator.url_template)
    try:
        outcome = await validator.client.execute(spec)
    except Exception as e:
        logger.error(f"Test validation failed for {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Test validation failed: {str(e)}")

    verdict = classify(outcome, validator.phrase_table)

    if isinstance(outcome, ProbeTransportError):
        return DiagnosticResponse(
            code=code,
            url=spec.url,
            transport_error=outcome.reason,
            status=verdict.status,
            message=verdict.message,
            reason=verdict.reason,
        )

    hit = find_match(outcome.body, validator.phrase_table)
    return DiagnosticResponse(
        code=code,
        url=spec.url,
        http_status=outcome.http_status,
        body_length=len(outcome.body),
        body_preview=outcome.body[:PREVIEW_CHARS],
        matched_rule=hit[0].name if hit else None,
        matched_phrase=hit[1] if hit else None,
        status=verdict.status,
        message=verdict.message,
        reason=verdict.reason,
    )

"""PromoProbe — Validation Pipeline Orchestrator.

Runs the full flow for a stored batch:
  look up batch → fetch pending codes → register run → batch driver → release run

Shared by the HTTP routes and the scheduled sweep.
"""

from typing import Optional, Sequence

from promoprobe.core.logging import get_logger
from promoprobe.engine.batch_driver import BatchDriver
from promoprobe.engine.cancellation import RunRegistry, run_registry
from promoprobe.engine.retry_controller import CodeValidator
from promoprobe.models.probe_models import BatchRunResult
from promoprobe.repositories.code_repository import (
    BatchNotFoundError,
    CodeRepository,
)

logger = get_logger("engine.pipeline")


def build_driver(
    validator: CodeValidator, repository: Optional[CodeRepository] = None
) -> BatchDriver:
    """Batch driver sharing the validator's clock and randomness."""
    return BatchDriver(
        validator,
        repository=repository,
        sleep=validator.sleep,
        rng=validator.rng,
    )


async def run_batch_validation(
    repository: CodeRepository,
    batch_id: int,
    validator: CodeValidator,
    registry: RunRegistry = run_registry,
) -> BatchRunResult:
    """Validate every pending code of a stored batch and persist verdicts."""
    if repository.get_batch(batch_id) is None:
        raise BatchNotFoundError(batch_id)

    codes = repository.fetch_pending_codes(batch_id)
    logger.info(
        f"Batch {batch_id}: {len(codes)} pending codes", extra={"batch_id": batch_id}
    )
    if not codes:
        return BatchRunResult()

    run = registry.start(batch_id)
    try:
        driver = build_driver(validator, repository)
        return await driver.run(codes, on_progress=run.on_progress, cancel=run.token)
    finally:
        registry.finish(batch_id)


async def run_code_list_validation(
    codes: Sequence[str], validator: CodeValidator
) -> BatchRunResult:
    """Validate ad-hoc codes without touching storage."""
    cleaned = [c.strip() for c in codes if c and c.strip()]
    logger.info(f"Ad-hoc validation of {len(cleaned)} codes")
    return await build_driver(validator).run(cleaned)

"""PromoProbe — Scheduler Jobs.

APScheduler interval job that re-validates codes still pending in any batch.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from promoprobe.config import settings
from promoprobe.connectors.target.client import TargetClient
from promoprobe.database import engine
from promoprobe.engine.cancellation import RunAlreadyActiveError
from promoprobe.engine.pipeline import run_batch_validation
from promoprobe.engine.retry_controller import CodeValidator
from promoprobe.repositories.code_repository import SQLCodeRepository
from promoprobe.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def pending_sweep_job():
    """Run every batch that still has pending codes, one batch at a time."""
    logger.info("Scheduled pending-code sweep starting...")
    client = TargetClient()
    try:
        with Session(engine) as session:
            repository = SQLCodeRepository(session)
            validator = CodeValidator(client)
            for batch_id in repository.batches_with_pending_codes():
                try:
                    run = await run_batch_validation(repository, batch_id, validator)
                    logger.info(
                        f"Sweep of batch {batch_id}: {run.summary.valid} valid, "
                        f"{run.summary.invalid} invalid, {run.summary.pending} pending",
                        extra={"batch_id": batch_id},
                    )
                except RunAlreadyActiveError:
                    logger.info(
                        f"Batch {batch_id} already being validated, skipping",
                        extra={"batch_id": batch_id},
                    )
    except Exception as e:
        logger.error(f"Scheduled sweep failed: {e}")
    finally:
        await client.close()


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        pending_sweep_job,
        "interval",
        minutes=settings.sweep_interval_minutes,
        id="pending_sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Pending sweep every {settings.sweep_interval_minutes} min"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

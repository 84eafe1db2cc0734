"""PromoProbe — Batch Driver.

Runs validation over many codes strictly one after another, spacing probes
with a randomized delay so the target's abuse defenses are not triggered.

  for each code: progress → retry controller → persist → append result

One code's outcome never affects another's. Repository errors propagate.
"""

import asyncio
import inspect
import random
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence, Tuple, Union

from promoprobe.config import settings
from promoprobe.core.logging import get_logger
from promoprobe.engine.cancellation import CancellationToken
from promoprobe.engine.retry_controller import CodeValidator, Sleep
from promoprobe.models.code_models import CodeStatus, PromoCode
from promoprobe.models.probe_models import (
    BatchRunResult,
    BatchSummary,
    CodeResult,
    VerdictReason,
)
from promoprobe.repositories.code_repository import CodeRepository

logger = get_logger("engine.batch")

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]
CodeItem = Union[PromoCode, str]


def summarize(results: Sequence[CodeResult]) -> BatchSummary:
    """Count verdicts by status."""
    return BatchSummary(
        total=len(results),
        valid=sum(1 for r in results if r.status == CodeStatus.VALID),
        invalid=sum(1 for r in results if r.status == CodeStatus.INVALID),
        pending=sum(1 for r in results if r.status == CodeStatus.PENDING),
    )


def _unpack(item: CodeItem) -> Tuple[Optional[int], str]:
    if isinstance(item, PromoCode):
        return item.id, item.code.strip()
    return None, item.strip()


class BatchDriver:
    """Sequences a retry controller over a list of codes."""

    def __init__(
        self,
        validator: CodeValidator,
        repository: Optional[CodeRepository] = None,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
        inter_code_delay: Optional[Tuple[float, float]] = None,
    ):
        self.validator = validator
        self.repository = repository
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.inter_code_delay = inter_code_delay or (
            settings.inter_code_delay_min,
            settings.inter_code_delay_max,
        )

    async def _report(
        self, on_progress: Optional[ProgressCallback], current: int, total: int
    ) -> None:
        if on_progress is None:
            return
        result = on_progress(current, total)
        if inspect.isawaitable(result):
            await result

    async def run(
        self,
        items: Sequence[CodeItem],
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> BatchRunResult:
        """Validate `items` in order and return per-code results plus a summary."""
        total = len(items)
        results: list[CodeResult] = []
        cancelled = False
        logger.info(f"Starting batch of {total} codes")

        for index, item in enumerate(items):
            code_id, code = _unpack(item)

            if cancel is not None and cancel.cancelled:
                cancelled = True
                break

            if index > 0:
                low, high = self.inter_code_delay
                delay = self.rng.uniform(low, high)
                logger.info(f"Inter-code delay: {delay:.1f}s")
                await self.sleep(delay)
                if cancel is not None and cancel.cancelled:
                    cancelled = True
                    break

            await self._report(on_progress, index + 1, total)
            logger.info(
                f"=== Validating code {index + 1}/{total}: {code} ===",
                extra={"code": code},
            )

            if not code:
                # Nothing to probe; leave it for a human
                results.append(
                    CodeResult(
                        code=code,
                        code_id=code_id,
                        status=CodeStatus.PENDING,
                        message="Empty code - nothing to validate",
                    )
                )
                continue

            verdict = await self.validator.validate(code, cancel=cancel)

            if verdict.reason == VerdictReason.CANCELLED:
                # Mid-retry cancellation: the record keeps its old status
                cancelled = True
                break

            if self.repository is not None and code_id is not None:
                stored = self.repository.update_code_status(
                    code_id,
                    verdict.status,
                    verdict.message,
                    datetime.now(timezone.utc),
                )
                if not stored:
                    logger.warning(
                        f"Verdict for {code} not saved: code {code_id} no longer exists",
                        extra={"code": code, "code_id": code_id},
                    )

            results.append(
                CodeResult(
                    code=code,
                    code_id=code_id,
                    status=verdict.status,
                    message=verdict.message,
                    http_status=verdict.http_status,
                    attempts=verdict.attempts,
                )
            )
            logger.info(
                f"Result for {code}: {verdict.status.value} - {verdict.message}",
                extra={"code": code, "verdict": verdict.status.value},
            )

        summary = summarize(results)
        if cancelled:
            logger.warning(
                f"Batch cancelled after {len(results)}/{total} codes"
            )
        logger.info(
            f"Batch complete: {summary.valid} valid, {summary.invalid} invalid, "
            f"{summary.pending} pending"
        )
        return BatchRunResult(results=results, summary=summary, cancelled=cancelled)

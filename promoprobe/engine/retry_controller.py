"""PromoProbe — Retry Controller.

Wraps probe + classify in a bounded retry loop:

  Attempting(n) → Terminal(verdict) | Attempting(n + 1)

Valid and invalid verdicts stop immediately. Every pending verdict consumes
one attempt and, if budget remains, waits a jittered delay chosen by what
went wrong. Exhausting the budget yields pending. This loop never raises.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from promoprobe.config import settings
from promoprobe.connectors.target.client import TargetClient
from promoprobe.connectors.target.request_builder import build_request
from promoprobe.core.logging import get_logger
from promoprobe.core.phrase_registry import PhraseRule
from promoprobe.engine.cancellation import CancellationToken
from promoprobe.engine.classifier import classify
from promoprobe.models.code_models import CodeStatus
from promoprobe.models.probe_models import Verdict, VerdictReason

logger = get_logger("engine.retry")

Sleep = Callable[[float], Awaitable[None]]

TRANSPORT_REASONS = {VerdictReason.TIMEOUT, VerdictReason.NETWORK_ERROR}


class CodeValidator:
    """Validates one code against the target with retries."""

    def __init__(
        self,
        client: TargetClient,
        phrase_table: Optional[Sequence[PhraseRule]] = None,
        max_attempts: int | None = None,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
        url_template: str | None = None,
    ):
        self.client = client
        self.phrase_table = phrase_table
        self.max_attempts = max_attempts or settings.max_attempts
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.url_template = url_template

    # ── Backoff ──

    def delay_range(self, verdict: Verdict) -> Tuple[float, float]:
        """Pick the backoff window for a retry-eligible verdict."""
        if verdict.reason == VerdictReason.RATE_LIMITED:
            return settings.rate_limit_delay_min, settings.rate_limit_delay_max
        if verdict.reason in TRANSPORT_REASONS:
            return settings.transport_error_delay_min, settings.transport_error_delay_max
        return settings.retry_delay_min, settings.retry_delay_max

    def backoff_delay(self, verdict: Verdict) -> float:
        low, high = self.delay_range(verdict)
        return self.rng.uniform(low, high)

    # ── Single Attempt ──

    async def _attempt(self, code: str, attempt: int) -> Verdict:
        try:
            spec = build_request(code, rng=self.rng, url_template=self.url_template)
            outcome = await self.client.execute(spec)
            return classify(outcome, self.phrase_table)
        except Exception as e:
            # Anything unexpected still resolves to a verdict
            logger.error(
                f"Attempt {attempt} for {code} crashed: {e}",
                extra={"code": code, "attempt": attempt},
                exc_info=True,
            )
            return Verdict(
                status=CodeStatus.PENDING,
                message=f"Unexpected error: {e}",
                reason=VerdictReason.NETWORK_ERROR,
            )

    # ── Retry Loop ──

    async def validate(
        self,
        code: str,
        max_attempts: int | None = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Verdict:
        """Resolve `code` to a verdict, retrying ambiguous outcomes."""
        budget = max(max_attempts or self.max_attempts, 1)
        # Replaced by the first attempt; budget is at least 1
        verdict = Verdict(
            status=CodeStatus.PENDING,
            message="No attempt made",
            reason=VerdictReason.UNCLEAR,
        )

        for attempt in range(1, budget + 1):
            if attempt > 1 and cancel is not None and cancel.cancelled:
                logger.info(
                    f"Validation of {code} cancelled before attempt {attempt}",
                    extra={"code": code, "attempt": attempt},
                )
                return Verdict(
                    status=CodeStatus.PENDING,
                    message="Validation cancelled before a verdict was reached",
                    reason=VerdictReason.CANCELLED,
                    http_status=verdict.http_status,
                    attempts=attempt - 1,
                )

            verdict = await self._attempt(code, attempt)
            logger.info(
                f"Attempt {attempt}/{budget} for {code}: {verdict.status.value} — {verdict.message}",
                extra={
                    "code": code,
                    "attempt": attempt,
                    "status_code": verdict.http_status,
                    "verdict": verdict.status.value,
                },
            )

            if verdict.is_terminal:
                return verdict.model_copy(update={"attempts": attempt})

            if attempt < budget:
                delay = self.backoff_delay(verdict)
                logger.info(
                    f"Retrying {code} in {delay:.1f}s ({verdict.reason.value})",
                    extra={"code": code, "attempt": attempt},
                )
                await self.sleep(delay)

        # Last attempt's classification is authoritative
        return Verdict(
            status=CodeStatus.PENDING,
            message=f"{verdict.message} (after {budget} attempts) - manual check needed",
            reason=VerdictReason.EXHAUSTED,
            http_status=verdict.http_status,
            attempts=budget,
        )


async def validate_with_retry(
    code: str,
    max_attempts: int | None = None,
    client: TargetClient | None = None,
) -> Verdict:
    """One-shot helper: validate a single code with a throwaway client."""
    own_client = client is None
    client = client or TargetClient()
    try:
        return await CodeValidator(client).validate(code, max_attempts)
    finally:
        if own_client:
            await client.close()

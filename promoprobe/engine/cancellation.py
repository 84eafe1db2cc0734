"""PromoProbe — Cooperative Cancellation & Active Runs.

Batch runs check their token between codes and between retry attempts.
Work already persisted keeps its new status; untouched codes stay pending.
"""

from typing import Dict, Optional

from promoprobe.core.logging import get_logger

logger = get_logger("engine.cancellation")


class RunAlreadyActiveError(Exception):
    """Raised when a batch already has a validation run in progress."""

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        super().__init__(f"Validation already running for batch {batch_id}")


class CancellationToken:
    """Flag a long-running batch can poll to stop early."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ActiveRun:
    """Bookkeeping for one in-flight batch run."""

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        self.token = CancellationToken()
        self.current = 0
        self.total = 0

    def on_progress(self, current: int, total: int) -> None:
        self.current = current
        self.total = total


class RunRegistry:
    """In-process registry of runs, keyed by batch id.

    Different batches run independently; one batch runs at most once at a time.
    """

    def __init__(self):
        self._runs: Dict[int, ActiveRun] = {}

    def start(self, batch_id: int) -> ActiveRun:
        if batch_id in self._runs:
            raise RunAlreadyActiveError(batch_id)
        run = ActiveRun(batch_id)
        self._runs[batch_id] = run
        return run

    def finish(self, batch_id: int) -> None:
        self._runs.pop(batch_id, None)

    def get(self, batch_id: int) -> Optional[ActiveRun]:
        return self._runs.get(batch_id)

    def cancel(self, batch_id: int) -> bool:
        run = self._runs.get(batch_id)
        if run is None:
            return False
        run.token.cancel()
        logger.info(f"Cancellation requested for batch {batch_id}", extra={"batch_id": batch_id})
        return True


run_registry = RunRegistry()

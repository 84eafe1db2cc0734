"""Test doubles for the target site and the clock."""

from __future__ import annotations

from typing import Dict, List, Optional

from promoprobe.models.probe_models import (
    ProbeOutcome,
    ProbeResponse,
    ProbeTransportError,
    RequestSpec,
)


class ScriptedClient:
    """Stands in for TargetClient: returns queued outcomes per code.

    The last outcome queued for a code repeats once the queue runs dry.
    """

    def __init__(self, script: Optional[Dict[str, List[ProbeOutcome]]] = None):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.requests: List[RequestSpec] = []

    async def execute(self, spec: RequestSpec, timeout: float | None = None) -> ProbeOutcome:
        self.requests.append(spec)
        queue = self.script.get(spec.code)
        if not queue:
            return ProbeResponse(http_status=200, body="<html>nothing to see</html>")
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    def attempts_for(self, code: str) -> int:
        return sum(1 for r in self.requests if r.code == code)

    async def close(self) -> None:
        pass


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def ok(body: str) -> ProbeResponse:
    return ProbeResponse(http_status=200, body=body)


def status(code: int, body: str = "") -> ProbeResponse:
    return ProbeResponse(http_status=code, body=body)


def transport_error(timed_out: bool = False) -> ProbeTransportError:
    return ProbeTransportError(reason="connection refused", timed_out=timed_out)

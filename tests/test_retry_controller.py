import pytest

from promoprobe.config import settings
from promoprobe.engine.cancellation import CancellationToken
from promoprobe.models.code_models import CodeStatus
from promoprobe.models.probe_models import VerdictReason

from fakes import ok, status, transport_error


@pytest.mark.asyncio
async def test_valid_on_first_attempt(make_validator, sleeper) -> None:
    validator, client = make_validator({"GOOD": [ok("Promo Code Applied!")]})

    verdict = await validator.validate("GOOD")

    assert verdict.status == CodeStatus.VALID
    assert verdict.attempts == 1
    assert client.attempts_for("GOOD") == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_404_is_terminal_in_one_attempt(make_validator, sleeper) -> None:
    validator, client = make_validator({"GONE": [status(404, "congratulations")]})

    verdict = await validator.validate("GONE")

    assert verdict.status == CodeStatus.INVALID
    assert verdict.reason == VerdictReason.NOT_FOUND
    assert client.attempts_for("GONE") == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_phrase_matched_invalid_is_terminal(make_validator) -> None:
    validator, client = make_validator({"BAD": [ok("this one is invalid")]})

    verdict = await validator.validate("BAD")

    assert verdict.status == CodeStatus.INVALID
    assert client.attempts_for("BAD") == 1


@pytest.mark.asyncio
async def test_transport_errors_exhaust_budget(make_validator, sleeper) -> None:
    validator, client = make_validator({"NET": [transport_error()]})

    verdict = await validator.validate("NET", max_attempts=3)

    assert verdict.status == CodeStatus.PENDING
    assert verdict.reason == VerdictReason.EXHAUSTED
    assert "after 3 attempts" in verdict.message
    assert "manual check" in verdict.message
    assert verdict.attempts == 3
    assert client.attempts_for("NET") == 3
    # Delays only between attempts, from the transport-error window
    assert len(sleeper.delays) == 2
    assert all(
        settings.transport_error_delay_min <= d <= settings.transport_error_delay_max
        for d in sleeper.delays
    )


@pytest.mark.asyncio
async def test_429_waits_rate_limit_window(make_validator, sleeper) -> None:
    validator, client = make_validator(
        {"SLOW": [status(429), ok("Successfully applied")]}
    )

    verdict = await validator.validate("SLOW")

    assert verdict.status == CodeStatus.VALID
    assert verdict.attempts == 2
    assert len(sleeper.delays) == 1
    assert 10.0 <= sleeper.delays[0] <= 20.0


@pytest.mark.asyncio
async def test_403_retries_with_generic_delay(make_validator, sleeper) -> None:
    validator, client = make_validator({"BLK": [status(403), ok("expired")]})

    verdict = await validator.validate("BLK")

    assert verdict.status == CodeStatus.INVALID
    assert client.attempts_for("BLK") == 2
    assert settings.retry_delay_min <= sleeper.delays[0] <= settings.retry_delay_max


@pytest.mark.asyncio
async def test_blocked_never_becomes_invalid(make_validator) -> None:
    validator, _ = make_validator({"BLK": [status(403)]})

    verdict = await validator.validate("BLK")

    assert verdict.status == CodeStatus.PENDING
    assert "Access blocked" in verdict.message
    assert verdict.http_status == 403


@pytest.mark.asyncio
async def test_last_attempt_message_is_authoritative(make_validator) -> None:
    validator, _ = make_validator(
        {"MIX": [status(403), ok("<html>hello</html>"), status(502)]}
    )

    verdict = await validator.validate("MIX")

    assert verdict.status == CodeStatus.PENDING
    assert verdict.message.startswith("HTTP 502")
    assert verdict.http_status == 502


@pytest.mark.asyncio
async def test_fresh_request_per_attempt(make_validator) -> None:
    validator, client = make_validator({"NET": [transport_error()]})

    await validator.validate("NET", max_attempts=3)

    assert len(client.requests) == 3
    assert len({id(r) for r in client.requests}) == 3


@pytest.mark.asyncio
async def test_unexpected_exception_absorbed(make_validator) -> None:
    validator, client = make_validator()

    async def boom(spec, timeout=None):
        raise RuntimeError("parser exploded")

    client.execute = boom

    verdict = await validator.validate("ANY", max_attempts=2)

    assert verdict.status == CodeStatus.PENDING
    assert verdict.attempts == 2
    assert "parser exploded" in verdict.message


@pytest.mark.asyncio
async def test_cancel_between_attempts(make_validator, sleeper) -> None:
    validator, client = make_validator({"NET": [transport_error()]})
    token = CancellationToken()

    async def cancelling_sleep(seconds: float) -> None:
        sleeper.delays.append(seconds)
        token.cancel()

    validator.sleep = cancelling_sleep

    verdict = await validator.validate("NET", cancel=token)

    assert verdict.reason == VerdictReason.CANCELLED
    assert verdict.status == CodeStatus.PENDING
    assert client.attempts_for("NET") == 1


@pytest.mark.asyncio
async def test_single_attempt_budget_reports_real_outcome(make_validator, sleeper) -> None:
    validator, client = make_validator({"ONE": [status(502)]})

    verdict = await validator.validate("ONE", max_attempts=1)

    assert verdict.reason == VerdictReason.EXHAUSTED
    assert verdict.message.startswith("HTTP 502")
    assert "No attempt made" not in verdict.message
    assert verdict.attempts == 1
    assert client.attempts_for("ONE") == 1
    assert sleeper.delays == []

"""PromoProbe — Response Classifier.

Maps one probe outcome to a tri-state verdict. Checked in precedence order,
first match wins:

  transport error → 404 → 403 → 429 → 2xx body (phrase table) → other status

Nothing is marked valid or invalid without a concrete signal; anything
ambiguous stays pending for a retry or a manual check.
"""

from typing import Optional, Sequence

from promoprobe.core.phrase_registry import PhraseRule, find_match
from promoprobe.models.code_models import CodeStatus
from promoprobe.models.probe_models import (
    ProbeOutcome,
    ProbeTransportError,
    Verdict,
    VerdictReason,
)


def _classify_transport_error(outcome: ProbeTransportError) -> Verdict:
    if outcome.timed_out:
        return Verdict(
            status=CodeStatus.PENDING,
            message="Request timed out",
            reason=VerdictReason.TIMEOUT,
        )
    return Verdict(
        status=CodeStatus.PENDING,
        message=f"Network error: {outcome.reason}",
        reason=VerdictReason.NETWORK_ERROR,
    )


def classify_body(
    body: str,
    http_status: int = 200,
    phrase_table: Optional[Sequence[PhraseRule]] = None,
) -> Verdict:
    """Scan a successful response body against the ordered phrase table."""
    hit = find_match(body, phrase_table)
    if hit is not None:
        rule, _ = hit
        return Verdict(
            status=rule.status,
            message=rule.message,
            reason=VerdictReason.MATCHED,
            http_status=http_status,
        )

    return Verdict(
        status=CodeStatus.PENDING,
        message="Received response but status unclear",
        reason=VerdictReason.UNCLEAR,
        http_status=http_status,
    )


def classify(
    outcome: ProbeOutcome, phrase_table: Optional[Sequence[PhraseRule]] = None
) -> Verdict:
    """Classify a single probe outcome."""
    if isinstance(outcome, ProbeTransportError):
        return _classify_transport_error(outcome)

    status = outcome.http_status

    if status == 404:
        return Verdict(
            status=CodeStatus.INVALID,
            message="Code not found - invalid promo code",
            reason=VerdictReason.NOT_FOUND,
            http_status=status,
        )
    if status == 403:
        return Verdict(
            status=CodeStatus.PENDING,
            message="Access blocked (HTTP 403)",
            reason=VerdictReason.BLOCKED,
            http_status=status,
        )
    if status == 429:
        return Verdict(
            status=CodeStatus.PENDING,
            message="Rate limited (HTTP 429)",
            reason=VerdictReason.RATE_LIMITED,
            http_status=status,
        )
    if 200 <= status < 300:
        return classify_body(outcome.body, status, phrase_table)

    return Verdict(
        status=CodeStatus.PENDING,
        message=f"HTTP {status} - unable to verify",
        reason=VerdictReason.HTTP_ERROR,
        http_status=status,
    )

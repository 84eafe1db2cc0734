"""PromoProbe — Response Phrase Registry.

The target site has no machine-readable contract. Verdicts are inferred from
the human-facing copy it returns, so this ordered table is the protocol.
Rules are checked top to bottom; the first rule with a matching phrase wins.

To track copy changes on the target, point PHRASE_TABLE_PATH at a JSON file:

    [
      {"name": "success", "status": "valid",
       "message": "Promo code successfully applied",
       "phrases": ["promo code applied", "congratulations"]},
      ...
    ]
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from promoprobe.config import settings
from promoprobe.models.code_models import CodeStatus


class PhraseRule:
    """One row of the table: phrases that map a body to a verdict."""

    def __init__(
        self, name: str, phrases: Sequence[str], status: CodeStatus, message: str
    ):
        if status == CodeStatus.PENDING:
            raise ValueError(f"Phrase rule '{name}' must resolve to valid or invalid")
        self.name = name
        self.phrases = tuple(p.lower() for p in phrases if p)
        self.status = status
        self.message = message

    def match(self, lowered_body: str) -> Optional[str]:
        """Return the first phrase found in an already lower-cased body."""
        for phrase in self.phrases:
            if phrase in lowered_body:
                return phrase
        return None

    def __repr__(self) -> str:
        return f"<PhraseRule {self.name} → {self.status.value} ({len(self.phrases)} phrases)>"


# ─────────────────────────────────────────────
# DEFAULT TABLE — Success before failure before region
# ─────────────────────────────────────────────

DEFAULT_PHRASE_TABLE: List[PhraseRule] = [
    PhraseRule(
        "success",
        [
            "promo code applied",
            "successfully applied",
            "discount applied",
            "code has been applied",
            "congratulations",
            "success",
            "✓",
            "checkmark",
        ],
        CodeStatus.VALID,
        "Promo code successfully applied",
    ),
    PhraseRule(
        "failure",
        [
            "invalid",
            "expired",
            "not found",
            "error occurred",
            "promotion code is invalid",
            "code is not valid",
            "unable to apply",
        ],
        CodeStatus.INVALID,
        "Promo code is invalid or expired",
    ),
    PhraseRule(
        "region",
        [
            "not available in your region",
            "not available in your country",
            "geographical restriction",
        ],
        CodeStatus.INVALID,
        "Code not available in current region",
    ),
]


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────


def load_phrase_table(path: str | Path) -> List[PhraseRule]:
    """Load an ordered phrase table from a JSON file."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list) or not raw:
        raise ValueError(f"Phrase table {path} must be a non-empty JSON list")

    table = []
    for entry in raw:
        table.append(
            PhraseRule(
                name=entry["name"],
                phrases=entry["phrases"],
                status=CodeStatus(entry["status"]),
                message=entry["message"],
            )
        )
    return table


@lru_cache(maxsize=1)
def get_phrase_table() -> List[PhraseRule]:
    """Return the configured table, or the built-in one."""
    if settings.phrase_table_path:
        return load_phrase_table(settings.phrase_table_path)
    return DEFAULT_PHRASE_TABLE


def find_match(
    body: str, phrase_table: Optional[Sequence[PhraseRule]] = None
) -> Optional[Tuple[PhraseRule, str]]:
    """First (rule, phrase) hit for a body, in table order."""
    table = phrase_table if phrase_table is not None else get_phrase_table()
    lowered = body.lower()
    for rule in table:
        phrase = rule.match(lowered)
        if phrase is not None:
            return rule, phrase
    return None

"""PromoProbe — Batch & Code Records."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class CodeStatus(str, Enum):
    """Tri-state validation status of a promo code."""

    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"


class PromoBatch(SQLModel, table=True):
    """A user-defined grouping of codes validated together.

    The engine only uses it as a label for selecting codes.
    """

    __tablename__ = "promo_batches"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = Field(default=None, description="Optional display name")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PromoCode(SQLModel, table=True):
    """A single promotional code and its current verdict.

    `id` follows insertion order. `id`, `batch_id` and `code` never change
    after creation; `status`, `message` and `timestamp` are rewritten together
    on every status change.
    """

    __tablename__ = "promo_codes"

    id: Optional[int] = Field(default=None, primary_key=True)
    batch_id: int = Field(index=True, foreign_key="promo_batches.id")
    code: str = Field(description="Trimmed, non-empty promo code")
    status: CodeStatus = Field(default=CodeStatus.PENDING, index=True)
    message: Optional[str] = Field(default=None, description="Reason for status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last status change",
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

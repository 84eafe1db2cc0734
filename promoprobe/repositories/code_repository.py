"""PromoProbe — Code Repository.

The persistence collaborator the engine talks to. The engine only ever reads
pending codes and writes one record per verdict.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlmodel import Session, select

from promoprobe.core.logging import get_logger
from promoprobe.models.code_models import CodeStatus, PromoBatch, PromoCode

logger = get_logger("repositories.codes")


class BatchNotFoundError(Exception):
    """Raised when a batch id does not exist."""

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        super().__init__(f"Batch {batch_id} not found")


class CodeNotFoundError(Exception):
    """Raised when a code id does not exist."""

    def __init__(self, code_id: int):
        self.code_id = code_id
        super().__init__(f"Code {code_id} not found")


class CodeRepository(ABC):
    """Abstract store of batches and their codes."""

    @abstractmethod
    def get_batch(self, batch_id: int) -> Optional[PromoBatch]:
        ...

    @abstractmethod
    def fetch_pending_codes(self, batch_id: int) -> List[PromoCode]:
        """Pending codes of a batch, in stable insertion order."""
        ...

    @abstractmethod
    def update_code_status(
        self,
        code_id: int,
        status: CodeStatus,
        message: str,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Overwrite status, message and timestamp of one code.

        Returns False when the code does not exist. Re-applying the same
        values is harmless.
        """
        ...

    @abstractmethod
    def get_code(self, code_id: int) -> Optional[PromoCode]:
        ...

    @abstractmethod
    def list_codes(
        self, batch_id: int, status: Optional[CodeStatus] = None
    ) -> List[PromoCode]:
        ...

    @abstractmethod
    def batches_with_pending_codes(self) -> List[int]:
        ...

    @abstractmethod
    def create_batch(self, name: Optional[str] = None) -> PromoBatch:
        ...

    @abstractmethod
    def add_codes(self, batch_id: int, codes: Sequence[str]) -> List[PromoCode]:
        ...


class SQLCodeRepository(CodeRepository):
    """SQLModel-backed repository."""

    def __init__(self, session: Session):
        self.session = session

    def get_batch(self, batch_id: int) -> Optional[PromoBatch]:
        return self.session.get(PromoBatch, batch_id)

    def fetch_pending_codes(self, batch_id: int) -> List[PromoCode]:
        return list(
            self.session.exec(
                select(PromoCode)
                .where(
                    PromoCode.batch_id == batch_id,
                    PromoCode.status == CodeStatus.PENDING,
                )
                .order_by(PromoCode.id)  # type: ignore
            ).all()
        )

    def update_code_status(
        self,
        code_id: int,
        status: CodeStatus,
        message: str,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        record = self.session.get(PromoCode, code_id)
        if record is None:
            logger.warning(f"Status update for unknown code {code_id}")
            return False

        record.status = status
        record.message = message
        record.timestamp = timestamp or datetime.now(timezone.utc)
        self.session.add(record)
        self.session.commit()
        return True

    def get_code(self, code_id: int) -> Optional[PromoCode]:
        return self.session.get(PromoCode, code_id)

    def list_codes(
        self, batch_id: int, status: Optional[CodeStatus] = None
    ) -> List[PromoCode]:
        query = select(PromoCode).where(PromoCode.batch_id == batch_id)
        if status is not None:
            query = query.where(PromoCode.status == status)
        query = query.order_by(PromoCode.id)  # type: ignore
        return list(self.session.exec(query).all())

    def batches_with_pending_codes(self) -> List[int]:
        rows = self.session.exec(
            select(PromoCode.batch_id)
            .where(PromoCode.status == CodeStatus.PENDING)
            .distinct()
        ).all()
        return sorted(rows)

    def create_batch(self, name: Optional[str] = None) -> PromoBatch:
        batch = PromoBatch(name=name)
        self.session.add(batch)
        self.session.commit()
        self.session.refresh(batch)
        return batch

    def add_codes(self, batch_id: int, codes: Sequence[str]) -> List[PromoCode]:
        if self.get_batch(batch_id) is None:
            raise BatchNotFoundError(batch_id)

        cleaned = [c.strip() for c in codes if c and c.strip()]
        records = [PromoCode(batch_id=batch_id, code=c) for c in cleaned]
        self.session.add_all(records)
        self.session.commit()
        for r in records:
            self.session.refresh(r)
        logger.info(f"Added {len(records)} codes to batch {batch_id}", extra={"batch_id": batch_id})
        return records

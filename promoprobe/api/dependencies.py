"""PromoProbe — Shared FastAPI Dependencies."""

from typing import AsyncIterator

from fastapi import Depends
from sqlmodel import Session

from promoprobe.connectors.target.client import TargetClient
from promoprobe.database import get_session
from promoprobe.engine.retry_controller import CodeValidator
from promoprobe.repositories.code_repository import SQLCodeRepository


def get_repository(session: Session = Depends(get_session)) -> SQLCodeRepository:
    """Dependency — repository bound to the request's DB session."""
    return SQLCodeRepository(session)


async def get_code_validator() -> AsyncIterator[CodeValidator]:
    """Dependency — retry controller with its own HTTP client for the request."""
    client = TargetClient()
    try:
        yield CodeValidator(client)
    finally:
        await client.close()

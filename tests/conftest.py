# tests/conftest.py
from __future__ import annotations

import os
import random
from collections.abc import Iterator
from typing import Dict, List, Optional

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from promoprobe.api.dependencies import get_code_validator
from promoprobe.database import engine, get_session
from promoprobe.engine.retry_controller import CodeValidator
from promoprobe.main import app as fastapi_app
from promoprobe.models.code_models import PromoBatch, PromoCode  # noqa: F401
from promoprobe.models.probe_models import ProbeOutcome
from promoprobe.repositories.code_repository import SQLCodeRepository

from fakes import ScriptedClient, SleepRecorder


@pytest.fixture()
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def make_validator(sleeper: SleepRecorder):
    def _make(script: Optional[Dict[str, List[ProbeOutcome]]] = None, max_attempts: int = 3):
        client = ScriptedClient(script)
        validator = CodeValidator(
            client,  # type: ignore[arg-type]
            max_attempts=max_attempts,
            sleep=sleeper,
            rng=random.Random(1234),
        )
        return validator, client

    return _make


@pytest.fixture()
def db_session() -> Iterator[Session]:
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    with engine.begin() as conn:
        for table in reversed(SQLModel.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def repository(db_session: Session) -> SQLCodeRepository:
    return SQLCodeRepository(db_session)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, db_session: Session) -> Iterator[TestClient]:
    def _get_session_override() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_session] = _get_session_override
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def override_validator(app: FastAPI, make_validator):
    """Install a scripted validator for the API under test."""

    def _install(script: Optional[Dict[str, List[ProbeOutcome]]] = None, max_attempts: int = 3):
        validator, scripted = make_validator(script, max_attempts)

        async def _validator_override():
            yield validator

        app.dependency_overrides[get_code_validator] = _validator_override
        return validator, scripted

    return _install

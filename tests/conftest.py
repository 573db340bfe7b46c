"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Generator

import pytest
from sqlalchemy import Engine, StaticPool, create_engine

from chessbot.db.schema import Base
from chessbot.db.sql_repository import SQLSessionStore
from chessbot.services.delivery import DeliveryPipeline
from chessbot.services.game_service import GameSessionController
from chessbot.services.retry import RetryPolicy
from fakes import FakeCrypto, FakeRenderer, FakeTransport

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
BOT_LOCALPART = "chessbot"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database per test. Tables are removed at teardown to keep tests independent."""
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def sql_store(engine: Engine) -> SQLSessionStore:
    return SQLSessionStore(engine)


@pytest.fixture
def retry() -> RetryPolicy:
    """Same number of attempts as production, without the waiting."""
    return RetryPolicy(max_attempts=5, base_delay=0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def crypto() -> FakeCrypto:
    return FakeCrypto()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def delivery(transport: FakeTransport, crypto: FakeCrypto, retry: RetryPolicy) -> DeliveryPipeline:
    return DeliveryPipeline(transport, crypto, retry)


@pytest.fixture
def controller(
    sql_store: SQLSessionStore, delivery: DeliveryPipeline, renderer: FakeRenderer
) -> GameSessionController:
    return GameSessionController(sql_store, delivery, renderer, BOT_LOCALPART)

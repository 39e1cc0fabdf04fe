import os
from typing import Any, Generator, AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from starlette.testclient import TestClient

from src.constants import SyncStrategy
from src.db.models import BaseModel
from src.db.session import make_session_factory, sm_type
from src.main import make_app, ReleaseNotesAPP
from src.modules.api.releases import get_release_repository
from src.services.releases import ReleaseRepository
from src.settings import AppSettings, get_app_settings

MINIMAL_ENV_VARS = {
    "FLAG_API_DOCS_ENABLED": "true",
    "DB_DSN": "sqlite+aiosqlite://",
}


@pytest.fixture(autouse=True)
def minimal_env_vars() -> Generator[None, Any, None]:
    with patch.dict(os.environ, MINIMAL_ENV_VARS):
        yield


@pytest.fixture
def app_settings_test() -> AppSettings:
    return AppSettings(_env_file=None)  # type: ignore


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, Any]:
    """In-memory SQLite: one shared connection, schema created from models"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> sm_type:
    return make_session_factory(db_engine)


@pytest.fixture(params=[SyncStrategy.REPLACE, SyncStrategy.DIFF], ids=["replace", "diff"])
def release_repository(
    request: pytest.FixtureRequest, session_factory: sm_type
) -> ReleaseRepository:
    return ReleaseRepository(session_factory=session_factory, sync_strategy=request.param)


@pytest.fixture
def count_rows(session_factory: sm_type) -> Any:
    """Counts rows of the given table (optionally filtered by column values)"""

    async def _count(table_name: str, **filters: str) -> int:
        table = BaseModel.metadata.tables[table_name]
        statement = select(func.count()).select_from(table)
        for column, value in filters.items():
            statement = statement.filter(table.c[column] == value)

        async with session_factory() as session:
            return (await session.scalar(statement)) or 0

    return _count


@pytest.fixture
def mock_db_session() -> AsyncMock:
    s = AsyncMock(spec=AsyncSession)
    s.begin = AsyncMock()
    s.__aenter__ = AsyncMock(return_value=s)
    return s


@pytest.fixture
def mock_db_session_factory(mock_db_session: AsyncMock) -> Generator[MagicMock, None]:
    _session_factory = MagicMock(spec=async_sessionmaker, return_value=mock_db_session)
    with patch("src.db.session.get_session_factory", return_value=_session_factory) as _mock:
        yield _mock


@pytest.fixture
def mock_release_repository() -> AsyncMock:
    return AsyncMock(spec=ReleaseRepository)


@pytest.fixture
def test_app(
    app_settings_test: AppSettings,
    mock_release_repository: AsyncMock,
) -> Generator[ReleaseNotesAPP, Any, None]:
    test_app = make_app(settings=app_settings_test)
    test_app.dependency_overrides[get_app_settings] = lambda: test_app.settings
    test_app.dependency_overrides[get_release_repository] = lambda: mock_release_repository
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
def client(test_app: ReleaseNotesAPP) -> TestClient:
    # no lifespan here: the DB layer is replaced by mock_release_repository
    return TestClient(test_app)

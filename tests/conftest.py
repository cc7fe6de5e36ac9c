"""공통 테스트 픽스처"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.api.deps import get_clock, get_watchdog_registry
from app.main import app
from app.models import Base
from app.models.base import get_db
from app.schemas import quiz as quiz_schema
from app.services import quiz_service
from app.services.attempt_service import AttemptSessionController, create_watchdog_registry
from tests.factories import FakeClock, build_quiz_request


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """테스트용 SQLite 파일 DB (세션마다 별도 연결)"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def watchdogs(fake_clock, session_maker):
    """백그라운드 태스크 없이 tick()을 직접 호출하는 워치독 보관소"""
    return create_watchdog_registry(
        fake_clock,
        run_in_background=False,
        session_maker=lambda: session_maker,
    )


@pytest.fixture
def controller(test_db_session, fake_clock, watchdogs):
    return AttemptSessionController(test_db_session, clock=fake_clock, timers=watchdogs)


@pytest.fixture
def create_quiz(test_db_session):
    """퀴즈 생성 헬퍼 (QuizResponse 반환)"""

    async def _create(questions: list[dict], **settings) -> quiz_schema.QuizResponse:
        return await quiz_service.create_quiz(test_db_session, build_quiz_request(questions, **settings))

    return _create


@pytest_asyncio.fixture
async def client(session_maker, fake_clock, watchdogs):
    """의존성을 테스트 DB/시계로 교체한 API 클라이언트"""

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fake_clock
    app.dependency_overrides[get_watchdog_registry] = lambda: watchdogs

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

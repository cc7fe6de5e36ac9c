"""Quiz Service 테스트"""
import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import quiz as quiz_crud
from app.exceptions import QuizNotFoundError
from app.schemas.quiz import QuestionType
from app.services import quiz_service
from tests.factories import build_quiz_request, mc_question


@pytest.fixture
def mock_db_session():
    """모킹된 DB 세션"""
    return AsyncMock(spec=AsyncSession)


@pytest.mark.asyncio
async def test_get_quiz_not_found(mock_db_session):
    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=None):
        with pytest.raises(QuizNotFoundError):
            await quiz_service.get_quiz(mock_db_session, 999)


@pytest.mark.asyncio
async def test_get_quiz_definition_not_found(mock_db_session):
    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=None):
        with pytest.raises(QuizNotFoundError):
            await quiz_service.get_quiz_definition(mock_db_session, 999)


@pytest.mark.asyncio
async def test_update_quiz_not_found(mock_db_session):
    """없는 퀴즈는 교체하지 않는다"""
    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=None):
        with patch.object(quiz_crud, "replace_quiz", new_callable=AsyncMock) as mock_replace:
            with pytest.raises(QuizNotFoundError):
                await quiz_service.update_quiz(mock_db_session, 999, build_quiz_request([mc_question()]))

            mock_replace.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_quiz_not_found(mock_db_session):
    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=None):
        with patch.object(quiz_crud, "delete_quiz", new_callable=AsyncMock) as mock_delete:
            with pytest.raises(QuizNotFoundError):
                await quiz_service.delete_quiz(mock_db_session, 999)

            mock_delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_quiz_round_trip(test_db_session):
    """생성 후 조회하면 같은 정의와 스냅샷을 얻는다"""
    created = await quiz_service.create_quiz(
        test_db_session, build_quiz_request([mc_question(points=3), mc_question(points=2)], time_limit_minutes=10)
    )

    definition = await quiz_service.get_quiz_definition(test_db_session, created.id)

    assert definition.version == 1
    assert definition.settings.time_limit_minutes == 10
    assert [q.points for q in definition.questions] == [3, 2]
    assert [q.order_index for q in definition.questions] == [0, 1]
    assert definition.questions[0].correct_option_id == created.questions[0].options[0].id


def test_list_question_types():
    response = quiz_service.list_question_types()

    assert response.total == len(QuestionType)
    manual = {t.type for t in response.question_types if not t.auto_gradable}
    assert manual == {
        QuestionType.TEXT_ASSIGNMENT,
        QuestionType.FILE_ASSIGNMENT,
        QuestionType.VIDEO_RECORDING,
        QuestionType.AUDIO_RECORDING,
    }

"""Quiz API 통합 테스트"""
import pytest

from tests.factories import USER_ID, blank_question, mc_question, tf_question

HEADERS = {"X-User-Id": USER_ID}


def quiz_payload(questions=None, **settings) -> dict:
    return {
        "title": "데이터 분석 기초",
        "description": "API 테스트 퀴즈",
        "settings": settings,
        "questions": questions or [mc_question(points=10), tf_question(points=5), blank_question()],
    }


@pytest.mark.asyncio
async def test_list_question_types(client):
    response = await client.get("/api/v1/quizzes/question-types")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 7
    by_type = {t["type"]: t for t in data["question_types"]}
    assert by_type["multiple_choice"]["auto_gradable"] is True
    assert by_type["video_recording"]["auto_gradable"] is False
    assert by_type["fill_blank"]["answer_field"] == "text_answer"


@pytest.mark.asyncio
async def test_create_quiz(client):
    response = await client.post("/api/v1/quizzes", json=quiz_payload(passing_score_percent=60))

    assert response.status_code == 201
    data = response.json()
    assert data["version"] == 1
    assert data["total_points"] == 16
    assert data["settings"]["passing_score_percent"] == 60
    assert [q["type"] for q in data["questions"]] == ["multiple_choice", "true_false", "fill_blank"]
    assert [o["text"] for o in data["questions"][1]["options"]] == ["True", "False"]


@pytest.mark.asyncio
async def test_create_quiz_invalid_shape(client):
    """정답이 두 개인 객관식은 422"""
    bad_question = {
        "type": "multiple_choice",
        "prompt": "?",
        "options": [{"text": "A", "is_correct": True}, {"text": "B", "is_correct": True}],
    }

    response = await client.post("/api/v1/quizzes", json=quiz_payload([bad_question]))

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_quiz_without_questions(client):
    payload = quiz_payload()
    payload["questions"] = []

    response = await client.post("/api/v1/quizzes", json=payload)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_quiz(client):
    created = (await client.post("/api/v1/quizzes", json=quiz_payload())).json()

    response = await client.get(f"/api/v1/quizzes/{created['id']}")

    assert response.status_code == 200
    assert response.json()["title"] == "데이터 분석 기초"


@pytest.mark.asyncio
async def test_get_quiz_not_found(client):
    response = await client.get("/api/v1/quizzes/999")

    assert response.status_code == 404
    assert response.json()["error"] == "QuizNotFoundError"


@pytest.mark.asyncio
async def test_update_quiz_bumps_version(client):
    created = (await client.post("/api/v1/quizzes", json=quiz_payload())).json()

    response = await client.put(
        f"/api/v1/quizzes/{created['id']}",
        json=quiz_payload([mc_question(points=3)], max_attempts=2),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["version"] == 2
    assert data["total_points"] == 3
    assert data["settings"]["max_attempts"] == 2


@pytest.mark.asyncio
async def test_delete_quiz(client):
    created = (await client.post("/api/v1/quizzes", json=quiz_payload())).json()

    response = await client.delete(f"/api/v1/quizzes/{created['id']}")
    assert response.status_code == 204

    response = await client.get(f"/api/v1/quizzes/{created['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_start_attempt_requires_user(client):
    created = (await client.post("/api/v1/quizzes", json=quiz_payload())).json()

    response = await client.post(f"/api/v1/quizzes/{created['id']}/attempts")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_start_attempt_twice(client):
    created = (await client.post("/api/v1/quizzes", json=quiz_payload(max_attempts=2))).json()

    first = await client.post(f"/api/v1/quizzes/{created['id']}/attempts", headers=HEADERS)
    second = await client.post(f"/api/v1/quizzes/{created['id']}/attempts", headers=HEADERS)

    assert first.status_code == 201
    assert first.json()["status"] == "active"
    assert second.status_code == 409
    assert second.json()["error"] == "AttemptAlreadyActive"


@pytest.mark.asyncio
async def test_start_attempt_unknown_quiz(client):
    response = await client.post("/api/v1/quizzes/999/attempts", headers=HEADERS)

    assert response.status_code == 404

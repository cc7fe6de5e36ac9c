"""Attempt API 통합 테스트"""
import pytest

from tests.factories import USER_ID, OTHER_USER_ID, blank_question, manual_question, mc_question

HEADERS = {"X-User-Id": USER_ID}


async def create_quiz(client, questions, **settings) -> dict:
    response = await client.post(
        "/api/v1/quizzes",
        json={"title": "응시 API 테스트", "settings": settings, "questions": questions},
    )
    assert response.status_code == 201
    return response.json()


async def start(client, quiz_id: int, headers=HEADERS) -> dict:
    response = await client.post(f"/api/v1/quizzes/{quiz_id}/attempts", headers=headers)
    assert response.status_code == 201
    return response.json()


def correct_option(question: dict) -> int:
    return next(o["id"] for o in question["options"] if o["is_correct"])


def wrong_option(question: dict) -> int:
    return next(o["id"] for o in question["options"] if not o["is_correct"])


@pytest.mark.asyncio
async def test_full_attempt_flow(client):
    """시작 → 답안 → 이동 → 제출 → 결과 → 이력"""
    quiz = await create_quiz(client, [mc_question(points=10), blank_question(points=10)], passing_score_percent=70)
    mc, blank = quiz["questions"]
    attempt = await start(client, quiz["id"])
    attempt_id = attempt["attempt_id"]

    response = await client.put(
        f"/api/v1/attempts/{attempt_id}/answers/{mc['id']}",
        json={"selected_option_id": correct_option(mc), "definition_version": 1},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["selected_option_id"] == correct_option(mc)

    response = await client.post(f"/api/v1/attempts/{attempt_id}/navigate", json={"index": 1}, headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["current_question_index"] == 1

    response = await client.put(
        f"/api/v1/attempts/{attempt_id}/answers/{blank['id']}",
        json={"text_answer": " paris "},
        headers=HEADERS,
    )
    assert response.status_code == 200

    state = (await client.get(f"/api/v1/attempts/{attempt_id}", headers=HEADERS)).json()
    assert sorted(state["answered_question_ids"]) == sorted([mc["id"], blank["id"]])

    response = await client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=HEADERS)
    assert response.status_code == 200
    result = response.json()
    assert result["status"] == "graded"
    assert result["result"]["percentage_score"] == 100
    assert result["result"]["passed"] is True

    response = await client.get(f"/api/v1/attempts/{attempt_id}/result", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["result"]["total_score"] == 20

    history = (await client.get(f"/api/v1/quizzes/{quiz['id']}/history", headers=HEADERS)).json()
    assert history["total"] == 1
    assert history["latest_attempt"]["attempt_id"] == attempt_id
    assert history["attempts_remaining"] == 0


@pytest.mark.asyncio
async def test_questions_view_hides_answers(client):
    quiz = await create_quiz(client, [mc_question()])
    attempt = await start(client, quiz["id"])

    response = await client.get(f"/api/v1/attempts/{attempt['attempt_id']}/questions", headers=HEADERS)

    assert response.status_code == 200
    question = response.json()["questions"][0]
    assert "is_correct" not in question["options"][0]
    assert "correct_text" not in question


@pytest.mark.asyncio
async def test_answer_validation_error(client):
    quiz = await create_quiz(client, [mc_question()])
    question = quiz["questions"][0]
    attempt = await start(client, quiz["id"])

    response = await client.put(
        f"/api/v1/attempts/{attempt['attempt_id']}/answers/{question['id']}",
        json={"text_answer": "A"},
        headers=HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_stale_definition_version(client):
    quiz = await create_quiz(client, [mc_question()])
    question = quiz["questions"][0]
    attempt = await start(client, quiz["id"])

    response = await client.put(
        f"/api/v1/attempts/{attempt['attempt_id']}/answers/{question['id']}",
        json={"selected_option_id": correct_option(question), "definition_version": 5},
        headers=HEADERS,
    )

    assert response.status_code == 409
    assert response.json()["error"] == "StaleQuizDefinition"


@pytest.mark.asyncio
async def test_submit_empty_attempt(client):
    quiz = await create_quiz(client, [mc_question()])
    attempt = await start(client, quiz["id"])

    response = await client.post(f"/api/v1/attempts/{attempt['attempt_id']}/submit", headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["error"] == "EmptyAttempt"


@pytest.mark.asyncio
async def test_submit_twice(client):
    quiz = await create_quiz(client, [mc_question()])
    question = quiz["questions"][0]
    attempt = await start(client, quiz["id"])
    attempt_id = attempt["attempt_id"]
    await client.put(
        f"/api/v1/attempts/{attempt_id}/answers/{question['id']}",
        json={"selected_option_id": wrong_option(question)},
        headers=HEADERS,
    )

    first = await client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=HEADERS)
    second = await client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=HEADERS)

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"] == "InvalidStateTransition"


@pytest.mark.asyncio
async def test_attempt_limit(client):
    quiz = await create_quiz(client, [mc_question()], max_attempts=1)
    question = quiz["questions"][0]
    attempt = await start(client, quiz["id"])
    await client.put(
        f"/api/v1/attempts/{attempt['attempt_id']}/answers/{question['id']}",
        json={"selected_option_id": correct_option(question)},
        headers=HEADERS,
    )
    await client.post(f"/api/v1/attempts/{attempt['attempt_id']}/submit", headers=HEADERS)

    response = await client.post(f"/api/v1/quizzes/{quiz['id']}/attempts", headers=HEADERS)

    assert response.status_code == 409
    assert response.json()["error"] == "AttemptLimitExceeded"


@pytest.mark.asyncio
async def test_expired_attempt(client, fake_clock):
    """제한 시간이 지나면 상태 조회 시 expired, 답안 저장은 409"""
    quiz = await create_quiz(client, [mc_question()], time_limit_minutes=1)
    question = quiz["questions"][0]
    attempt = await start(client, quiz["id"])
    attempt_id = attempt["attempt_id"]
    assert attempt["time_remaining_seconds"] == 60

    fake_clock.advance(61)

    state = (await client.get(f"/api/v1/attempts/{attempt_id}", headers=HEADERS)).json()
    assert state["status"] == "expired"
    assert state["time_remaining_seconds"] == 0

    response = await client.put(
        f"/api/v1/attempts/{attempt_id}/answers/{question['id']}",
        json={"selected_option_id": correct_option(question)},
        headers=HEADERS,
    )
    assert response.status_code == 409

    result = (await client.get(f"/api/v1/attempts/{attempt_id}/result", headers=HEADERS)).json()
    assert result["status"] == "expired"
    assert result["result"]["percentage_score"] == 0


@pytest.mark.asyncio
async def test_navigate_out_of_range(client):
    quiz = await create_quiz(client, [mc_question()])
    attempt = await start(client, quiz["id"])

    response = await client.post(
        f"/api/v1/attempts/{attempt['attempt_id']}/navigate", json={"index": 5}, headers=HEADERS
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_result_before_submit(client):
    quiz = await create_quiz(client, [mc_question()])
    attempt = await start(client, quiz["id"])

    response = await client.get(f"/api/v1/attempts/{attempt['attempt_id']}/result", headers=HEADERS)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_other_user_gets_not_found(client):
    quiz = await create_quiz(client, [mc_question()])
    attempt = await start(client, quiz["id"])

    response = await client.get(
        f"/api/v1/attempts/{attempt['attempt_id']}", headers={"X-User-Id": OTHER_USER_ID}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_pending_answers(client):
    quiz = await create_quiz(client, [mc_question(points=10), manual_question("audio_recording", points=10)])
    mc, audio = quiz["questions"]
    attempt = await start(client, quiz["id"])
    attempt_id = attempt["attempt_id"]
    await client.put(
        f"/api/v1/attempts/{attempt_id}/answers/{audio['id']}",
        json={"file_url": "https://files.example.com/answer.m4a"},
        headers=HEADERS,
    )
    await client.put(
        f"/api/v1/attempts/{attempt_id}/answers/{mc['id']}",
        json={"selected_option_id": correct_option(mc)},
        headers=HEADERS,
    )

    result = (await client.post(f"/api/v1/attempts/{attempt_id}/submit", headers=HEADERS)).json()
    assert result["result"]["percentage_score"] == 50
    assert result["result"]["pending_count"] == 1

    response = await client.get(f"/api/v1/attempts/{attempt_id}/pending-answers", headers=HEADERS)
    assert response.status_code == 200
    pending = response.json()
    assert pending["total"] == 1
    assert pending["pending_answers"][0]["question_id"] == audio["id"]
    assert pending["pending_answers"][0]["answer"]["file_url"] == "https://files.example.com/answer.m4a"


@pytest.mark.asyncio
async def test_pending_answers_require_owner(client):
    """수동 채점 대상 답안은 응시자 본인만 조회"""
    quiz = await create_quiz(client, [manual_question(points=5)])
    question = quiz["questions"][0]
    attempt = await start(client, quiz["id"])
    attempt_id = attempt["attempt_id"]
    await client.put(
        f"/api/v1/attempts/{attempt_id}/answers/{question['id']}",
        json={"text_answer": "개인 서술 답안"},
        headers=HEADERS,
    )

    anonymous = await client.get(f"/api/v1/attempts/{attempt_id}/pending-answers")
    other = await client.get(
        f"/api/v1/attempts/{attempt_id}/pending-answers", headers={"X-User-Id": OTHER_USER_ID}
    )

    assert anonymous.status_code == 401
    assert other.status_code == 404
    assert "개인 서술 답안" not in other.text

"""Tests for the placement HTTP endpoints."""

from factories import TEACHER_ID, answers_for, make_question, standard_questions


def create_published_test(client, **overrides):
    body = {
        "teacher_id": TEACHER_ID,
        "title": "Japanese Placement",
        "status": "published",
        "questions": standard_questions(),
        "module_assignments": {
            "beginner": [{"course_id": 5, "title": "Intro"}, {"course_id": 6, "title": "Kana"}],
            "intermediate_beginner": [],
        },
    }
    body.update(overrides)
    response = client.post("/api/placement-tests/", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def submit(client, test_id, student_id=101, **overrides):
    body = {"student_id": student_id, "session_token": "tok-1", "answers": {}, "skipped": False}
    body.update(overrides)
    return client.post(f"/api/placement/tests/{test_id}/submit", json=body)


def test_health_and_root(client):
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["database"] == "ok"
    assert health["cache"] == "disabled"

    assert client.get("/").json()["message"] == "Placement Test API"


def test_full_student_flow(client):
    test = create_published_test(client)

    status = client.get("/api/placement/status/101").json()
    assert status["needs_placement_test"] is True
    assert status["test_id"] == test["id"]

    session = client.post(
        "/api/placement/sessions",
        json={"test_id": test["id"], "session_token": "tok-1", "student_id": 101},
    )
    assert session.status_code == 200
    assert session.json()["created"] is True

    response = submit(client, test["id"], answers=answers_for(beginner=5, intermediate=6))
    assert response.status_code == 201
    outcome = response.json()
    assert outcome["recommended_level"] == "beginner"
    assert outcome["recommended_course_id"] == 5
    assert outcome["correct_answers"] == 11
    assert outcome["total_questions"] == 20
    assert outcome["percentage_score"] == 55.0
    assert outcome["skipped"] is False
    assert "Start with Intro - Kana." in outcome["feedback"]

    result = client.get("/api/placement/results/101").json()
    assert result["test_id"] == test["id"]
    assert result["difficulty_scores"]["intermediate"] == {"correct": 6, "total": 6}
    assert result["answers"]["0"] == 0

    status = client.get("/api/placement/status/101").json()
    assert status["needs_placement_test"] is False
    assert status["recommended_level"] == "beginner"


def test_duplicate_submission_returns_conflict(client):
    test = create_published_test(client)
    assert submit(client, test["id"], skipped=True).status_code == 201

    response = submit(client, test["id"], answers=answers_for(beginner=7, intermediate=6))

    assert response.status_code == 409
    assert response.json()["message"] == "You have already taken this placement test"
    assert client.get("/api/placement/results/101").json()["recommended_level"] == "beginner"


def test_skipped_submission(client):
    test = create_published_test(client)

    outcome = submit(client, test["id"], skipped=True).json()

    assert outcome["recommended_level"] == "beginner"
    assert outcome["correct_answers"] == 0
    assert outcome["percentage_score"] == 0
    assert outcome["skipped"] is True
    assert outcome["difficulty_scores"]["advanced"] == {"correct": 0, "total": 7}


def test_submit_errors(client):
    draft = create_published_test(client, status="draft")

    assert submit(client, draft["id"]).status_code == 404
    assert submit(client, 999).status_code == 404
    assert submit(client, 0).status_code == 400
    assert submit(client, draft["id"], student_id=0).status_code == 400
    assert submit(client, draft["id"], session_token="").status_code == 400


def test_student_view_has_no_answer_key(client):
    test = create_published_test(client)

    view = client.get(f"/api/placement/tests/{test['id']}").json()

    assert view["total_questions"] == 20
    assert "is_correct" not in view["questions"][0]["choices"][0]


def test_result_not_found(client):
    assert client.get("/api/placement/results/555").status_code == 404


def test_question_validation(client):
    question = make_question()
    for choice in question["choices"]:
        choice["is_correct"] = False

    response = client.post(
        "/api/placement-tests/",
        json={"teacher_id": TEACHER_ID, "title": "Bad", "questions": [question]},
    )
    assert response.status_code == 422

    response = client.post(
        "/api/placement-tests/",
        json={"teacher_id": TEACHER_ID, "title": "Bad", "questions": [make_question("expert")]},
    )
    assert response.status_code == 422


def test_teacher_lifecycle(client):
    test = create_published_test(client, status="draft")
    test_id = test["id"]

    response = client.put(
        f"/api/placement-tests/{test_id}",
        json={"teacher_id": TEACHER_ID, "title": "Edited", "questions": [make_question()]},
    )
    assert response.status_code == 200
    assert response.json()["questions_count"] == 1

    response = client.patch(
        f"/api/placement-tests/{test_id}/status",
        json={"teacher_id": TEACHER_ID, "status": "published"},
    )
    assert response.json() == {
        "message": "Test published successfully", "test_id": test_id, "new_status": "published"
    }

    response = client.put(
        f"/api/placement-tests/{test_id}",
        json={"teacher_id": TEACHER_ID, "title": "Too late"},
    )
    assert response.status_code == 409

    response = client.put(
        f"/api/placement-tests/{test_id}/module-assignments",
        json={"teacher_id": TEACHER_ID, "assignments": {"beginner": [{"course_id": 4, "title": "Hiragana"}]}},
    )
    assert response.status_code == 200
    assert response.json()["module_assignments"] == {"beginner": [{"course_id": 4, "title": "Hiragana"}]}

    response = client.patch(
        f"/api/placement-tests/{test_id}/status",
        json={"teacher_id": TEACHER_ID, "status": "draft"},
    )
    assert response.status_code == 409

    client.patch(f"/api/placement-tests/{test_id}/status", json={"teacher_id": TEACHER_ID, "status": "archived"})
    assert submit(client, test_id).status_code == 404

    listing = client.get("/api/placement-tests/", params={"status": "archived"}).json()
    assert [t["id"] for t in listing] == [test_id]

    response = client.delete(f"/api/placement-tests/{test_id}", params={"teacher_id": TEACHER_ID})
    assert response.json()["message"] == "Test 'Edited' has been permanently deleted"
    assert client.get(f"/api/placement-tests/{test_id}", params={"teacher_id": TEACHER_ID}).status_code == 404


def test_unknown_level_in_assignments_rejected(client):
    test = create_published_test(client)

    response = client.put(
        f"/api/placement-tests/{test['id']}/module-assignments",
        json={"teacher_id": TEACHER_ID, "assignments": {"expert": []}},
    )

    assert response.status_code == 422


def test_malformed_answers_count_as_unanswered(client):
    test = create_published_test(client)
    answers = answers_for(beginner=7)
    answers.update({"0": "--1", "1": "²", "2": "-", "--3": 0})

    response = submit(client, test["id"], answers=answers)

    assert response.status_code == 201
    outcome = response.json()
    assert outcome["correct_answers"] == 4
    assert outcome["difficulty_scores"]["beginner"] == {"correct": 4, "total": 7}

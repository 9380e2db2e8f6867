from fastapi.testclient import TestClient
import pytest

from assignment_app.core.attempt_manager import AttemptManager
from assignment_app.core.models import ClassRoster
from assignment_app.server.api_server import create_api_app

from conftest import FlakySubmissionStore, fill_question, make_assignment, mc_question

STUDENT = {"student_id": "s1", "student_name": "Ada"}


def build_manager(clock, submissions=None):
    manager = AttemptManager(submissions=submissions, clock=clock)
    questions = [mc_question(points=10), fill_question(points=5)]
    manager.load_assignments(
        [
            make_assignment(questions, assignment_id="quiz"),
            make_assignment(questions, assignment_id="exam", time_limit=10),
        ]
    )
    manager.add_roster(ClassRoster("c1", "English 101", teacher_name="Ms. Rivera", student_ids={"s1"}))
    return manager


@pytest.fixture
def manager(clock):
    return build_manager(clock)


@pytest.fixture
def client(manager):
    return TestClient(create_api_app(manager))


def answer(client, assignment_id, index, value):
    return client.put(f"/assignments/{assignment_id}/attempt/answers/{index}", json={**STUDENT, "value": value})


def test_unknown_assignment_is_404(client):
    response = client.get("/assignments/nope/attempt", params={"student_id": "s1"})
    assert response.status_code == 404


def test_student_id_is_required(client):
    assert client.get("/assignments/quiz/attempt").status_code == 422
    assert client.post("/assignments/quiz/attempt/submit", json={"student_id": ""}).status_code == 422


def test_open_attempt_presents_questions(client):
    response = client.get("/assignments/quiz/attempt", params=STUDENT)
    assert response.status_code == 200
    body = response.json()
    assert body["class_name"] == "English 101"
    assert body["teacher_name"] == "Ms. Rivera"
    assert body["submitted"] is False
    assert body["timer"]["state"] == "not-applicable"
    assert body["timer"]["leave_warning"] is None
    assert [q["type"] for q in body["questions"]] == ["multiple-choice", "fill-in-blank"]
    assert body["questions"][0]["options"] == ["A", "B", "C", "D"]


def test_answer_and_submit(client):
    assert answer(client, "quiz", 0, "B").status_code == 200
    assert answer(client, "quiz", 1, "Paris ").json()["index"] == 1

    response = client.post("/assignments/quiz/attempt/submit", json=STUDENT)
    assert response.status_code == 201
    results = response.json()["results"]
    assert results["submission"]["grade"] == 15
    assert results["submission"]["studentName"] == "Ada"
    assert results["submission"]["status"] == "graded"
    assert results["percentage"] == 100
    assert results["questions"][1]["expected_answer"] == "paris"

    again = client.post("/assignments/quiz/attempt/submit", json=STUDENT)
    assert again.status_code == 409

    review = client.get("/assignments/quiz/attempt", params=STUDENT).json()
    assert review["submitted"] is True
    assert review["results"]["submission"]["grade"] == 15


def test_incomplete_submit_is_422(client):
    answer(client, "quiz", 0, "B")
    response = client.post("/assignments/quiz/attempt/submit", json=STUDENT)
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["unanswered"] == [1]
    assert detail["message"] == "Please answer all questions before submitting."


def test_bad_index_is_422_and_closed_attempt_is_409(client):
    assert answer(client, "quiz", 5, "x").status_code == 422
    answer(client, "quiz", 0, "B")
    answer(client, "quiz", 1, "paris")
    client.post("/assignments/quiz/attempt/submit", json=STUDENT)
    assert answer(client, "quiz", 0, "C").status_code == 409


def test_persist_failure_is_503_and_retryable(clock):
    client = TestClient(create_api_app(build_manager(clock, submissions=FlakySubmissionStore(failures=1))))
    answer(client, "quiz", 0, "B")
    answer(client, "quiz", 1, "paris")

    failed = client.post("/assignments/quiz/attempt/submit", json=STUDENT)
    assert failed.status_code == 503
    assert failed.json()["detail"] == "Submission failed. Please try again."

    retried = client.post("/assignments/quiz/attempt/submit", json=STUDENT)
    assert retried.status_code == 201


def test_timed_attempt_auto_submits_on_tick(client, clock):
    started = client.post("/assignments/exam/attempt/start", json=STUDENT).json()
    assert started["timer"]["state"] == "running"
    assert started["timer"]["display"] == "10:00"
    assert started["timer"]["leave_warning"]
    answer(client, "exam", 0, "B")

    clock.advance(601)
    ticked = client.post("/assignments/exam/attempt/tick", json=STUDENT)
    assert ticked.status_code == 200
    body = ticked.json()
    assert body["submitted"] is True
    assert body["timer"]["state"] == "finalized"
    assert body["results"]["submission"]["autoSubmitted"] is True
    assert body["results"]["submission"]["grade"] == 10

    assert answer(client, "exam", 1, "paris").status_code == 409
    assert client.post("/assignments/exam/attempt/start", json=STUDENT).status_code == 409


def test_practice_session_and_quiz_check(client, manager):
    response = client.get("/practice", params={"student_id": "s1", "seed": 5})
    assert response.status_code == 200
    body = response.json()
    assert body["seed"] == 5
    assert len(body["flashcards"]) == 4
    assert len(body["quiz"]) == 2
    assert body["exercise_counts"] == {"fill": 2}
    assert client.get("/practice", params={"student_id": "s1", "seed": 5}).json() == body

    session = manager.build_practice_session("s1", seed=5)
    answers = {str(index): entry.question.correct_option for index, entry in enumerate(session.quiz)}
    checked = client.post("/practice/quiz/check", json={"student_id": "s1", "seed": 5, "answers": answers})
    assert checked.json() == {"correct": 2, "total": 2, "percentage": 100}
    assert manager.submissions.list_submissions() == []


def test_practice_for_unknown_student_is_empty(client):
    body = client.get("/practice", params={"student_id": "stranger", "seed": 1}).json()
    assert body["quiz"] == []
    assert body["flashcards"] == []


def test_submit_after_deadline_returns_auto_submitted_results(client, clock, manager):
    answer(client, "exam", 0, "B")
    clock.advance(11 * 60)

    response = client.post("/assignments/exam/attempt/submit", json=STUDENT)

    assert response.status_code == 201
    results = response.json()["results"]
    assert results["submission"]["autoSubmitted"] is True
    assert results["submission"]["grade"] == 10
    assert results["notice"] == "Time is up! Your answers were auto-submitted."
    assert len(manager.submissions.list_submissions("exam")) == 1


def test_practice_exercise_check(client):
    def check(question_id, value):
        return client.post(
            "/practice/exercises/check",
            json={"student_id": "s1", "seed": 5, "question_id": question_id, "answer": value},
        )

    right = check("fill", "Paris")
    assert right.status_code == 200
    assert right.json() == {"question_id": "fill", "kind": "fill", "correct": True}
    assert check("fill", "rome").json()["correct"] is False
    assert check("mc", "B").status_code == 404

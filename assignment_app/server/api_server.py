"""FastAPI server that exposes learner endpoints for attempts and practice."""

from __future__ import annotations

from dataclasses import asdict
from threading import Thread
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
import uvicorn

from assignment_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from assignment_app.constants.assignment_constants import AUTO_SUBMITTED_MESSAGE
from assignment_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from assignment_app.core.attempt_manager import AttemptManager
from assignment_app.core.markdown_math_renderer import renderer
from assignment_app.core.models import CHOICE_TYPES, Question, QuestionType, StudentIdentity
from assignment_app.core.question_presenter import present_answer_feedback, present_question
from assignment_app.core.services.attempt_session import (
    AttemptClosedError,
    AttemptSession,
    SubmissionPersistError,
    TimeExpiredError,
)
from assignment_app.core.services.practice_generator import PracticeSession, check_exercise, check_quiz
from assignment_app.core.services.repositories import DuplicateSubmissionError
from assignment_app.core.services.submission_builder import IncompleteSubmissionError
from assignment_app.core.submission_exporter import submission_to_dict


class StudentPayload(BaseModel):
    """Identifies the learner; authentication happens upstream."""

    student_id: str = Field(min_length=1)
    student_name: str | None = None


class AnswerPayload(StudentPayload):
    value: Any = None


class PracticeCheckPayload(BaseModel):
    student_id: str = Field(min_length=1)
    seed: int
    class_id: str | None = None
    answers: dict[int, Any] = Field(default_factory=dict)


class ExerciseCheckPayload(BaseModel):
    student_id: str = Field(min_length=1)
    seed: int
    class_id: str | None = None
    question_id: str = Field(min_length=1)
    answer: Any = None


def _get_manager_dependency(manager: AttemptManager):
    def dependency() -> AttemptManager:
        return manager

    return dependency


def _identity(student_id: str, student_name: str | None) -> StudentIdentity:
    return StudentIdentity(student_id=student_id, display_name=student_name or "")


def _expected_answer(question: Question) -> Any:
    if question.type in CHOICE_TYPES:
        return question.correct_option
    if question.type is QuestionType.SENTENCE_BUILDER:
        return question.correct_sentence
    if question.type is QuestionType.ORDERING:
        return list(question.items)
    if question.type is QuestionType.MATCHING:
        return [pair.right for pair in question.pairs]
    if question.type is QuestionType.CATEGORIZE:
        return [index for index, category in enumerate(question.categories) for _ in category.items]
    return question.correct_text


def _timer_payload(session: AttemptSession) -> dict[str, object]:
    timer = session.timer
    return {
        "state": timer.state.value,
        "remaining_seconds": timer.remaining_seconds,
        "display": timer.format_remaining(),
        "progress_percent": round(timer.progress_percent, 1),
        "deadline": timer.deadline.isoformat() if timer.deadline else None,
        "persistence_available": timer.persistence_available,
        "leave_warning": timer.leave_warning,
    }


def _results_payload(session: AttemptSession) -> dict[str, object] | None:
    report = session.review()
    submission = session.submission
    if report is None or submission is None:
        return None
    return {
        "submission": submission_to_dict(submission),
        "percentage": submission.percentage,
        "notice": AUTO_SUBMITTED_MESSAGE if submission.auto_submitted else None,
        "questions": [
            {
                "index": result.index,
                "type": result.question.type.value,
                "points": result.question.points,
                "points_awarded": result.evaluation.points_awarded,
                "is_correct": result.evaluation.is_correct,
                "needs_manual_grading": result.evaluation.needs_manual_grading,
                "answer": result.answer,
                "expected_answer": None
                if result.evaluation.needs_manual_grading
                else _expected_answer(result.question),
            }
            for result in report.results
        ],
    }


def _attempt_payload(session: AttemptSession, manager: AttemptManager) -> dict[str, object]:
    assignment = session.assignment
    roster = manager.get_class_context(assignment.class_id)
    payload: dict[str, object] = {
        "assignment_id": assignment.id,
        "title": assignment.title,
        "description": assignment.description,
        "class_name": roster.name if roster else None,
        "teacher_name": roster.teacher_name if roster else None,
        "due_date": assignment.due_date.isoformat() if assignment.due_date else None,
        "total_points": assignment.total_points,
        "time_limit_minutes": assignment.time_limit_minutes,
        "timer": _timer_payload(session),
        "submitted": session.is_submitted,
        "submitting": session.is_submitting,
    }
    if session.is_submitted:
        payload["results"] = _results_payload(session)
        return payload

    answers = session.answers
    payload["answers"] = {str(index): value for index, value in answers.items()}
    payload["questions"] = [
        {
            **asdict(present_question(question, index)),
            **present_answer_feedback(question, index, answers.get(index)),
        }
        for index, question in enumerate(assignment.questions)
    ]
    return payload


def _practice_payload(session: PracticeSession) -> dict[str, object]:
    return {
        "seed": session.seed,
        "flashcards": [
            {
                "question_id": card.question_id,
                "front_html": renderer.render_inline(card.front),
                "back_html": renderer.render_inline(card.back),
            }
            for card in session.flashcards
        ],
        "quiz": [
            {
                "index": index,
                "question_id": entry.question.id,
                "assignment_title": entry.assignment_title,
                "question_html": renderer.render_fragment(entry.question.text),
                "options": list(entry.question.options),
            }
            for index, entry in enumerate(session.quiz)
        ],
        "exercises": [
            {
                "kind": exercise.kind.value,
                "question_id": exercise.question_id,
                "assignment_title": exercise.source.assignment_title,
                "prompt_html": renderer.render_fragment(exercise.prompt),
                "sentence": exercise.sentence,
                "scrambled": exercise.scrambled,
                "items": exercise.items,
                "words": exercise.words,
                "left_items": exercise.left_items,
                "right_choices": exercise.right_choices,
                "category_names": exercise.category_names,
                "pool": [{"index": index, "item": item} for index, item in exercise.pool],
                "reference_text": exercise.reference_text,
            }
            for exercise in session.exercises
        ],
        "exercise_counts": {kind.value: count for kind, count in session.exercise_counts().items()},
    }


async def _open(manager: AttemptManager, assignment_id: str, student: StudentIdentity) -> AttemptSession:
    try:
        return await manager.open_attempt(assignment_id, student)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found") from exc
    except SubmissionPersistError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def create_api_app(manager: AttemptManager) -> FastAPI:
    """Create a FastAPI application wired to the provided attempt manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    manager_dep = _get_manager_dependency(manager)

    @app.get("/assignments/{assignment_id}/attempt")
    async def get_attempt(
        assignment_id: str,
        student_id: str = Query(min_length=1),
        student_name: str | None = None,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = await _open(manager, assignment_id, _identity(student_id, student_name))
        return _attempt_payload(session, manager)

    @app.post("/assignments/{assignment_id}/attempt/start")
    async def start_attempt(
        assignment_id: str,
        payload: StudentPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = await _open(manager, assignment_id, _identity(payload.student_id, payload.student_name))
        try:
            session.start()
        except (AttemptClosedError, TimeExpiredError) as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return _attempt_payload(session, manager)

    @app.put("/assignments/{assignment_id}/attempt/answers/{index}")
    async def put_answer(
        assignment_id: str,
        index: int,
        payload: AnswerPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = await _open(manager, assignment_id, _identity(payload.student_id, payload.student_name))
        try:
            session.record_answer(index, payload.value)
        except IndexError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except (AttemptClosedError, TimeExpiredError) as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        question = session.assignment.questions[index]
        return {
            "index": index,
            "feedback": present_answer_feedback(question, index, payload.value),
            "timer": _timer_payload(session),
        }

    @app.post("/assignments/{assignment_id}/attempt/submit", status_code=201)
    async def submit_attempt(
        assignment_id: str,
        payload: StudentPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = await _open(manager, assignment_id, _identity(payload.student_id, payload.student_name))
        try:
            submission = await session.submit()
        except IncompleteSubmissionError as exc:
            raise HTTPException(
                status_code=422,
                detail={"message": str(exc), "unanswered": exc.unanswered},
            ) from exc
        except SubmissionPersistError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except DuplicateSubmissionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        if submission is None:
            # Time ran out before this request; the answers were auto-submitted on open.
            if session.submission is not None and session.submission.auto_submitted:
                return _attempt_payload(session, manager)
            raise HTTPException(status_code=409, detail="Assignment already submitted or submission in progress.")
        return _attempt_payload(session, manager)

    @app.post("/assignments/{assignment_id}/attempt/tick")
    async def tick_attempt(
        assignment_id: str,
        payload: StudentPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = await _open(manager, assignment_id, _identity(payload.student_id, payload.student_name))
        try:
            await session.tick()
        except SubmissionPersistError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _attempt_payload(session, manager)

    @app.get("/practice")
    def get_practice(
        student_id: str = Query(min_length=1),
        class_id: str | None = None,
        seed: int | None = None,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.build_practice_session(student_id, class_id=class_id, seed=seed)
        return _practice_payload(session)

    @app.post("/practice/quiz/check")
    def check_practice_quiz(
        payload: PracticeCheckPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.build_practice_session(payload.student_id, class_id=payload.class_id, seed=payload.seed)
        score = check_quiz(session, payload.answers)
        return {"correct": score.correct, "total": score.total, "percentage": score.percentage}

    @app.post("/practice/exercises/check")
    def check_practice_exercise(
        payload: ExerciseCheckPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = manager.build_practice_session(payload.student_id, class_id=payload.class_id, seed=payload.seed)
        exercise = next((e for e in session.exercises if e.question_id == payload.question_id), None)
        if exercise is None:
            raise HTTPException(status_code=404, detail=f"No practice exercise for question {payload.question_id}")
        return {
            "question_id": exercise.question_id,
            "kind": exercise.kind.value,
            "correct": check_exercise(exercise, payload.answer),
        }

    return app


def start_api_server(
    manager: AttemptManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="AssignmentApiServer", daemon=True)
    thread.start()
    return thread

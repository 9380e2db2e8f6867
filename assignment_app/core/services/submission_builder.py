"""Turns an answer set into a graded, finalized submission."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from assignment_app.constants.assignment_constants import INCOMPLETE_SUBMISSION_MESSAGE
from assignment_app.core.evaluators import Evaluation, evaluate, is_answered
from assignment_app.core.models import (
    MANUALLY_GRADED_TYPES,
    AnswerSet,
    Assignment,
    Question,
    StudentIdentity,
    Submission,
    SubmissionStatus,
)
from assignment_app.core.services.timer_controller import utc_now


class IncompleteSubmissionError(ValueError):
    """Raised when a manual submission leaves questions unanswered."""

    def __init__(self, unanswered: list[int]) -> None:
        super().__init__(INCOMPLETE_SUBMISSION_MESSAGE)
        self.unanswered = unanswered


@dataclass(slots=True, frozen=True)
class QuestionResult:
    index: int
    question: Question
    answer: Any
    evaluation: Evaluation


@dataclass(slots=True, frozen=True)
class GradingReport:
    results: tuple[QuestionResult, ...]
    total_points: int
    needs_manual_grading: bool

    @property
    def status(self) -> SubmissionStatus:
        return SubmissionStatus.PENDING if self.needs_manual_grading else SubmissionStatus.GRADED


def find_unanswered(assignment: Assignment, answers: AnswerSet) -> list[int]:
    return [index for index in range(len(assignment.questions)) if not is_answered(answers.get(index))]


def grade_answers(assignment: Assignment, answers: AnswerSet) -> GradingReport:
    """Run every question through its evaluator. Missing answers score zero."""
    results = tuple(
        QuestionResult(
            index=index,
            question=question,
            answer=answers.get(index),
            evaluation=evaluate(question, answers.get(index)),
        )
        for index, question in enumerate(assignment.questions)
    )
    return GradingReport(
        results=results,
        total_points=sum(result.evaluation.points_awarded for result in results),
        needs_manual_grading=any(q.type in MANUALLY_GRADED_TYPES for q in assignment.questions),
    )


def build_submission(
    assignment: Assignment,
    answers: AnswerSet,
    student: StudentIdentity,
    *,
    auto_submitted: bool,
    submitted_at: datetime | None = None,
) -> Submission:
    """Grade ``answers`` and wrap them in a :class:`Submission`.

    Manual submissions must answer every question. Auto-submissions (time ran
    out) grade whatever subset of answers exists.
    """
    if not auto_submitted:
        unanswered = find_unanswered(assignment, answers)
        if unanswered:
            raise IncompleteSubmissionError(unanswered)

    report = grade_answers(assignment, answers)
    max_points = assignment.max_points
    return Submission(
        assignment_id=assignment.id,
        class_id=assignment.class_id,
        student_id=student.student_id,
        student_name=student.display_name,
        answers=dict(answers),
        grade=min(report.total_points, max_points),
        max_points=max_points,
        submitted_at=submitted_at or utc_now(),
        status=report.status,
        auto_submitted=auto_submitted,
    )

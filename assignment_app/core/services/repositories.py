"""In-memory stand-ins for the remote assignment, submission and roster stores."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from uuid import uuid4

from assignment_app.core.models import Assignment, ClassRoster, Submission


class DuplicateSubmissionError(RuntimeError):
    """Raised when a learner already has a submission for the assignment."""


class AssignmentRepository:
    """Read access to teacher-authored assignments."""

    def __init__(self, assignments: Iterable[Assignment] = ()) -> None:
        self._assignments: dict[str, Assignment] = {}
        for assignment in assignments:
            self.add_assignment(assignment)

    def add_assignment(self, assignment: Assignment) -> None:
        if not assignment.questions:
            raise ValueError("Assignment must contain at least one question.")
        self._assignments[assignment.id] = assignment

    def fetch_assignment(self, assignment_id: str) -> Assignment:
        try:
            return self._assignments[assignment_id]
        except KeyError:
            raise KeyError(f"Assignment {assignment_id!r} not found") from None

    def list_assignments(self, class_ids: Iterable[str] | None = None) -> list[Assignment]:
        if class_ids is None:
            return list(self._assignments.values())
        wanted = set(class_ids)
        return [a for a in self._assignments.values() if a.class_id in wanted]


class SubmissionStore:
    """Append-only submission storage with one live submission per learner and assignment."""

    def __init__(self) -> None:
        self._submissions: dict[str, Submission] = {}

    async def persist_submission(self, submission: Submission) -> Submission:
        if self._find(submission.assignment_id, submission.student_id) is not None:
            raise DuplicateSubmissionError(
                f"Student {submission.student_id!r} already submitted {submission.assignment_id!r}."
            )
        stored = replace(submission, id=uuid4().hex)
        self._submissions[stored.id] = stored
        return stored

    async def fetch_existing_submission(self, assignment_id: str, student_id: str) -> Submission | None:
        return self._find(assignment_id, student_id)

    def delete_submission(self, submission_id: str) -> Submission:
        try:
            return self._submissions.pop(submission_id)
        except KeyError:
            raise KeyError(f"Submission {submission_id!r} not found") from None

    def list_submissions(self, assignment_id: str | None = None) -> list[Submission]:
        submissions = sorted(self._submissions.values(), key=lambda s: s.submitted_at)
        if assignment_id is None:
            return submissions
        return [s for s in submissions if s.assignment_id == assignment_id]

    def _find(self, assignment_id: str, student_id: str) -> Submission | None:
        return next(
            (
                s
                for s in self._submissions.values()
                if s.assignment_id == assignment_id and s.student_id == student_id
            ),
            None,
        )


class RosterRepository:
    """Class metadata used for display and for practice visibility."""

    def __init__(self, rosters: Iterable[ClassRoster] = ()) -> None:
        self._rosters: dict[str, ClassRoster] = {roster.class_id: roster for roster in rosters}

    def add_roster(self, roster: ClassRoster) -> None:
        self._rosters[roster.class_id] = roster

    def get_class_context(self, class_id: str) -> ClassRoster | None:
        return self._rosters.get(class_id)

    def classes_for_student(self, student_id: str) -> list[str]:
        return [roster.class_id for roster in self._rosters.values() if student_id in roster.student_ids]

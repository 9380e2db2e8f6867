"""Business logic for running assignment attempts, shared by the API and embedders."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from pathlib import Path
from threading import Lock
from typing import Any

from assignment_app.core.assignment_importer import ImportedCatalog
from assignment_app.core.models import Assignment, ClassRoster, StudentIdentity, Submission
from assignment_app.core.services.attempt_session import AttemptSession
from assignment_app.core.services.deadline_store import (
    DeadlineStore,
    DeadlineStoreError,
    InMemoryDeadlineStore,
    deadline_key,
)
from assignment_app.core.services.practice_generator import PracticeGenerator, PracticeSession
from assignment_app.core.services.repositories import AssignmentRepository, RosterRepository, SubmissionStore
from assignment_app.core.services.submission_builder import GradingReport
from assignment_app.core.services.timer_controller import Clock, TimerController, TimerState, utc_now
from assignment_app.core.submission_exporter import save_submissions_to_file

logger = logging.getLogger(__name__)


class AttemptManager:
    """Facade over repositories, deadline persistence and per-learner attempt sessions."""

    def __init__(
        self,
        assignments: AssignmentRepository | None = None,
        submissions: SubmissionStore | None = None,
        rosters: RosterRepository | None = None,
        deadline_store: DeadlineStore | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._lock = Lock()
        self._assignments = assignments or AssignmentRepository()
        self._submissions = submissions or SubmissionStore()
        self._rosters = rosters or RosterRepository()
        self._deadline_store = deadline_store or InMemoryDeadlineStore()
        self._clock = clock
        self._sessions: dict[tuple[str, str], AttemptSession] = {}

    @property
    def submissions(self) -> SubmissionStore:
        return self._submissions

    # --- Assignment Repository Delegation ---

    def load_catalog(self, catalog: ImportedCatalog) -> None:
        with self._lock:
            for assignment in catalog.assignments:
                self._assignments.add_assignment(assignment)
            for roster in catalog.rosters:
                self._rosters.add_roster(roster)
            self._sessions.clear()

    def load_assignments(self, assignments: Iterable[Assignment]) -> None:
        with self._lock:
            for assignment in assignments:
                self._assignments.add_assignment(assignment)

    def add_roster(self, roster: ClassRoster) -> None:
        with self._lock:
            self._rosters.add_roster(roster)

    def get_assignment(self, assignment_id: str) -> Assignment:
        with self._lock:
            return self._assignments.fetch_assignment(assignment_id)

    def get_class_context(self, class_id: str) -> ClassRoster | None:
        with self._lock:
            return self._rosters.get_class_context(class_id)

    # --- Attempts ---

    async def open_attempt(self, assignment_id: str, student: StudentIdentity) -> AttemptSession:
        """Return the learner's session, creating it on first visit.

        A new session checks for an existing submission first (review mode) and
        otherwise resumes any persisted countdown, auto-submitting if it lapsed.
        """
        key = (assignment_id, student.student_id)
        with self._lock:
            session = self._sessions.get(key)
        if session is not None:
            await session.tick()
            return session

        assignment = self.get_assignment(assignment_id)
        existing = await self._submissions.fetch_existing_submission(assignment_id, student.student_id)
        timer = TimerController(
            assignment.time_limit_minutes,
            deadline_key(assignment_id, student.student_id),
            self._deadline_store,
            clock=self._clock,
        )
        created = AttemptSession(
            assignment,
            student,
            self._submissions,
            timer,
            existing_submission=existing,
            clock=self._clock,
        )
        with self._lock:
            session = self._sessions.setdefault(key, created)
        if session is created:
            await session.resume()
        return session

    def get_session(self, assignment_id: str, student_id: str) -> AttemptSession:
        with self._lock:
            try:
                return self._sessions[(assignment_id, student_id)]
            except KeyError:
                raise KeyError(f"No open attempt for {assignment_id!r} and {student_id!r}") from None

    def start_timer(self, assignment_id: str, student_id: str) -> TimerState:
        return self.get_session(assignment_id, student_id).start()

    def record_answer(self, assignment_id: str, student_id: str, index: int, value: Any) -> None:
        self.get_session(assignment_id, student_id).record_answer(index, value)

    async def submit(self, assignment_id: str, student_id: str) -> Submission | None:
        return await self.get_session(assignment_id, student_id).submit()

    async def tick(self, assignment_id: str, student_id: str) -> Submission | None:
        return await self.get_session(assignment_id, student_id).tick()

    def review(self, assignment_id: str, student_id: str) -> GradingReport | None:
        return self.get_session(assignment_id, student_id).review()

    async def allow_retake(self, assignment_id: str, student_id: str) -> Submission | None:
        """Teacher-side reset: drop the submission and any stale deadline so the learner can start over."""
        existing = await self._submissions.fetch_existing_submission(assignment_id, student_id)
        if existing is not None and existing.id is not None:
            self._submissions.delete_submission(existing.id)
        try:
            self._deadline_store.clear_deadline(deadline_key(assignment_id, student_id))
        except DeadlineStoreError:
            logger.warning("Could not clear the saved deadline for %s/%s.", assignment_id, student_id, exc_info=True)
        with self._lock:
            self._sessions.pop((assignment_id, student_id), None)
        logger.info("Retake allowed for %s/%s.", assignment_id, student_id)
        return existing

    def export_submissions(self, file_path: Path, assignment_id: str | None = None) -> int:
        """Write finalized submissions to a JSON file; returns how many were written."""
        submissions = self._submissions.list_submissions(assignment_id)
        if submissions:
            save_submissions_to_file(file_path, submissions)
        return len(submissions)

    # --- Practice ---

    def visible_assignments(self, student_id: str, class_id: str | None = None) -> list[Assignment]:
        with self._lock:
            class_ids = self._rosters.classes_for_student(student_id)
            if class_id is not None:
                class_ids = [cid for cid in class_ids if cid == class_id]
            return self._assignments.list_assignments(class_ids)

    def build_practice_session(
        self,
        student_id: str,
        class_id: str | None = None,
        seed: int | None = None,
    ) -> PracticeSession:
        assignments = self.visible_assignments(student_id, class_id)
        return PracticeGenerator(seed=seed).build_session(assignments)

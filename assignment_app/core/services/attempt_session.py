"""Controller for one learner's attempt at one assignment."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from assignment_app.constants.assignment_constants import SUBMISSION_FAILED_MESSAGE, TIMER_TICK_SECONDS
from assignment_app.core.models import AnswerSet, Assignment, StudentIdentity, Submission
from assignment_app.core.services.repositories import DuplicateSubmissionError
from assignment_app.core.services.submission_builder import GradingReport, build_submission, grade_answers
from assignment_app.core.services.timer_controller import Clock, TimerController, TimerState, utc_now

logger = logging.getLogger(__name__)


class AttemptClosedError(RuntimeError):
    """Raised when answering an attempt that already has a submission."""


class TimeExpiredError(RuntimeError):
    """Raised when answering after the time limit has been reached."""


class SubmissionPersistError(RuntimeError):
    """Raised when the submission could not be written; the attempt stays resubmittable."""


class SubmissionWriter(Protocol):
    async def persist_submission(self, submission: Submission) -> Submission: ...


class AttemptSession:
    """Gates answer entry behind the timer and funnels both submit paths through one latch."""

    def __init__(
        self,
        assignment: Assignment,
        student: StudentIdentity,
        submission_store: SubmissionWriter,
        timer: TimerController,
        existing_submission: Submission | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._assignment = assignment
        self._student = student
        self._store = submission_store
        self._timer = timer
        self._clock = clock
        self._answers: AnswerSet = {}
        self._submission = existing_submission
        self._in_flight = False

    @property
    def assignment(self) -> Assignment:
        return self._assignment

    @property
    def student(self) -> StudentIdentity:
        return self._student

    @property
    def timer(self) -> TimerController:
        return self._timer

    @property
    def submission(self) -> Submission | None:
        return self._submission

    @property
    def is_submitted(self) -> bool:
        return self._submission is not None

    @property
    def is_submitting(self) -> bool:
        return self._in_flight

    @property
    def answers(self) -> AnswerSet:
        return dict(self._answers)

    async def resume(self) -> Submission | None:
        """Resume a persisted countdown; auto-submits if it ran out in the meantime."""
        if self.is_submitted:
            return None
        if self._timer.resume():
            logger.info(
                "Deadline for %s/%s passed while away; auto-submitting.",
                self._assignment.id,
                self._student.student_id,
            )
            return await self.auto_submit()
        return None

    def start(self) -> TimerState:
        self._ensure_answerable()
        return self._timer.start()

    def record_answer(self, index: int, value: Any) -> None:
        """Store an answer. The first interaction also starts the timer."""
        self._ensure_answerable()
        if not 0 <= index < len(self._assignment.questions):
            raise IndexError(f"Question index {index} out of range")
        self._timer.start()
        self._answers[index] = value

    def clear_answer(self, index: int) -> None:
        self._ensure_answerable()
        self._answers.pop(index, None)

    async def submit(self) -> Submission | None:
        """Learner-initiated submission.

        Returns None when a submission already exists or one is in flight.
        Once time is up this takes the auto-submit path, so a learner can retry
        a failed auto-submission without answering the remaining questions.
        """
        if self._submission is not None or self._in_flight:
            return None
        if self._timer.tick() or self._timer.state is TimerState.EXPIRED:
            return await self._finalize(auto_submitted=True)
        return await self._finalize(auto_submitted=False)

    async def auto_submit(self) -> Submission | None:
        if self._submission is not None or self._in_flight:
            return None
        return await self._finalize(auto_submitted=True)

    async def tick(self) -> Submission | None:
        """Check the deadline; fires the auto-submit on the tick that reaches it."""
        if self._submission is not None:
            return None
        if self._timer.tick():
            logger.info(
                "Time limit reached for %s/%s; auto-submitting.",
                self._assignment.id,
                self._student.student_id,
            )
            return await self.auto_submit()
        return None

    async def run_timer(self, interval: float = TIMER_TICK_SECONDS) -> Submission | None:
        """Tick until the attempt is finalized or the timer stops running."""
        while self._timer.is_running and self._submission is None:
            await asyncio.sleep(interval)
            submission = await self.tick()
            if submission is not None:
                return submission
        return self._submission

    def review(self) -> GradingReport | None:
        """Re-grade the stored answers with the same evaluators used at submit time."""
        if self._submission is None:
            return None
        return grade_answers(self._assignment, self._submission.answers)

    async def _finalize(self, *, auto_submitted: bool) -> Submission:
        submission = build_submission(
            self._assignment,
            self._answers,
            self._student,
            auto_submitted=auto_submitted,
            submitted_at=self._clock(),
        )
        self._in_flight = True
        try:
            stored = await self._store.persist_submission(submission)
        except DuplicateSubmissionError:
            raise
        except Exception as exc:
            logger.exception(
                "Writing submission for %s/%s failed.",
                self._assignment.id,
                self._student.student_id,
            )
            raise SubmissionPersistError(SUBMISSION_FAILED_MESSAGE) from exc
        finally:
            self._in_flight = False

        self._submission = stored
        self._timer.finalize()
        logger.info(
            "Submission %s stored for %s/%s: %s/%s (%s%s).",
            stored.id,
            stored.assignment_id,
            stored.student_id,
            stored.grade,
            stored.max_points,
            stored.status.value,
            ", auto" if stored.auto_submitted else "",
        )
        return stored

    def _ensure_answerable(self) -> None:
        if self._submission is not None:
            raise AttemptClosedError("Assignment has already been submitted.")
        timer = self._timer
        expired = not timer.accepts_answers or (
            timer.is_running and timer.deadline is not None and self._clock() >= timer.deadline
        )
        if expired:
            raise TimeExpiredError("Time limit reached; answers can no longer be changed.")

from datetime import datetime, timedelta, timezone

import pytest

from assignment_app.core.models import (
    Assignment,
    Category,
    MatchingPair,
    Question,
    QuestionType,
    StudentIdentity,
)
from assignment_app.core.services.deadline_store import DeadlineStoreError
from assignment_app.core.services.repositories import SubmissionStore

T0 = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class BrokenDeadlineStore:
    """Every operation fails, like storage that the browser refuses to open."""

    def __init__(self):
        self.calls = 0

    def read_deadline(self, key):
        self.calls += 1
        raise DeadlineStoreError("storage unavailable")

    def write_deadline(self, key, deadline):
        self.calls += 1
        raise DeadlineStoreError("storage unavailable")

    def clear_deadline(self, key):
        self.calls += 1
        raise DeadlineStoreError("storage unavailable")


class FlakySubmissionStore(SubmissionStore):
    """Fails the first ``failures`` writes, then behaves normally."""

    def __init__(self, failures=1):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def persist_submission(self, submission):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("network down")
        return await super().persist_submission(submission)


class CountingSubmissionStore(SubmissionStore):
    def __init__(self):
        super().__init__()
        self.writes = []

    async def persist_submission(self, submission):
        stored = await super().persist_submission(submission)
        self.writes.append(stored)
        return stored


def make_assignment(questions, total_points=None, time_limit=0, assignment_id="a1", class_id="c1"):
    questions = tuple(questions)
    if total_points is None:
        total_points = sum(q.points for q in questions)
    return Assignment(
        id=assignment_id,
        class_id=class_id,
        title="Test Assignment",
        total_points=total_points,
        time_limit_minutes=time_limit,
        questions=questions,
    )


def mc_question(points=10, correct="B", options=("A", "B", "C", "D"), qid="mc"):
    return Question(
        id=qid,
        type=QuestionType.MULTIPLE_CHOICE,
        text="Pick one",
        points=points,
        options=tuple(options),
        correct_answer=list(options).index(correct),
    )


def fill_question(points=5, correct_text="paris", qid="fill"):
    return Question(
        id=qid,
        type=QuestionType.FILL_IN_BLANK,
        text="Capital of France is ___",
        points=points,
        correct_text=correct_text,
    )


def essay_question(points=10, qid="essay"):
    return Question(id=qid, type=QuestionType.ESSAY, text="Discuss.", points=points)


def ordering_question(items=("a", "b", "c"), points=4, qid="ord"):
    return Question(id=qid, type=QuestionType.ORDERING, text="Order these", points=points, items=tuple(items))


def matching_question(points=6, qid="match"):
    return Question(
        id=qid,
        type=QuestionType.MATCHING,
        text="Match",
        points=points,
        pairs=(MatchingPair("hot", "cold"), MatchingPair("up", "down")),
    )


def categorize_question(points=3, qid="cat"):
    return Question(
        id=qid,
        type=QuestionType.CATEGORIZE,
        text="Sort",
        points=points,
        categories=(Category("first", ("x", "y")), Category("second", ("z",))),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def student():
    return StudentIdentity(student_id="s1", display_name="Ada")


@pytest.fixture
def scenario_assignment():
    return make_assignment([mc_question(points=10, correct="B"), fill_question(points=5)])

"""Domain models for the assignment engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from assignment_app.constants.assignment_constants import DEFAULT_MAX_POINTS, DEFAULT_STUDENT_NAME

AnswerSet = dict[int, Any]


class QuestionType(str, Enum):
    """Question variants an assignment may contain."""

    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    FILL_IN_BLANK = "fill-in-blank"
    SHORT_ANSWER = "short-answer"
    ESSAY = "essay"
    ORDERING = "ordering"
    MATCHING = "matching"
    WORD_SCRAMBLE = "word-scramble"
    SENTENCE_BUILDER = "sentence-builder"
    CATEGORIZE = "categorize"
    ERROR_CORRECTION = "error-correction"
    TRANSLATION = "translation"


CHOICE_TYPES = frozenset({QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE})
TEXT_MATCH_TYPES = frozenset(
    {
        QuestionType.FILL_IN_BLANK,
        QuestionType.WORD_SCRAMBLE,
        QuestionType.ERROR_CORRECTION,
        QuestionType.TRANSLATION,
    }
)
MANUALLY_GRADED_TYPES = frozenset({QuestionType.ESSAY, QuestionType.SHORT_ANSWER})


@dataclass(slots=True, frozen=True)
class MatchingPair:
    left: str
    right: str


@dataclass(slots=True, frozen=True)
class Category:
    name: str
    items: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class Question:
    """A single authored question. Only the fields relevant to its type are populated."""

    id: str
    type: QuestionType
    text: str
    points: int = 0
    options: tuple[str, ...] = ()
    correct_answer: int | None = None  # Index into options for choice types
    items: tuple[str, ...] = ()  # Canonical sequence for ordering
    pairs: tuple[MatchingPair, ...] = ()
    categories: tuple[Category, ...] = ()
    correct_text: str | None = None
    correct_sentence: str | None = None
    error_sentence: str | None = None
    source_text: str | None = None

    @property
    def correct_option(self) -> str | None:
        if self.correct_answer is None or not 0 <= self.correct_answer < len(self.options):
            return None
        return self.options[self.correct_answer]


@dataclass(slots=True, frozen=True)
class Assignment:
    """Teacher-authored assignment; read-only to the engine."""

    id: str
    class_id: str
    title: str
    total_points: int
    questions: tuple[Question, ...]
    description: str = ""
    due_date: datetime | None = None
    time_limit_minutes: int = 0  # 0 means unlimited

    @property
    def has_time_limit(self) -> bool:
        return self.time_limit_minutes > 0

    @property
    def max_points(self) -> int:
        return self.total_points or DEFAULT_MAX_POINTS


@dataclass(slots=True, frozen=True)
class StudentIdentity:
    student_id: str
    display_name: str = DEFAULT_STUDENT_NAME

    def __post_init__(self) -> None:
        if not self.student_id:
            raise ValueError("Student id must not be empty.")
        if not (self.display_name or "").strip():
            object.__setattr__(self, "display_name", DEFAULT_STUDENT_NAME)


class SubmissionStatus(str, Enum):
    GRADED = "graded"
    PENDING = "pending"


@dataclass(slots=True, frozen=True)
class Submission:
    """Finalized, write-once record of an attempt."""

    assignment_id: str
    class_id: str
    student_id: str
    student_name: str
    answers: AnswerSet
    grade: int
    max_points: int
    submitted_at: datetime
    status: SubmissionStatus
    auto_submitted: bool = False
    id: str | None = None

    @property
    def percentage(self) -> int:
        if self.max_points <= 0:
            return 0
        return round(self.grade / self.max_points * 100)


@dataclass(slots=True)
class ClassRoster:
    """Display-only class context supplied by the roster collaborator."""

    class_id: str
    name: str
    teacher_name: str = ""
    student_ids: set[str] = field(default_factory=set)

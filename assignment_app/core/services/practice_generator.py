"""Ungraded practice pools built from a learner's visible questions.

Practice never produces a Submission. A session is driven by one seed: the
same seed and corpus always yield the same cards, quiz and exercises, and a
new session (new seed) reshuffles them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
import random
from typing import Any

from assignment_app.constants.assignment_constants import (
    FILL_BLANK_MARKER,
    FLASHCARD_MISSING_ANSWER,
    PRACTICE_QUIZ_LIMIT,
)
from assignment_app.core.evaluators import evaluate
from assignment_app.core.models import CHOICE_TYPES, AnswerSet, Assignment, Question, QuestionType
from assignment_app.core.question_presenter import sentence_words
from assignment_app.core.seeded_shuffle import LCG_MODULUS, scramble_word, seeded_shuffle

_FLASHCARD_TYPES = frozenset(
    {
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.TRUE_FALSE,
        QuestionType.FILL_IN_BLANK,
        QuestionType.WORD_SCRAMBLE,
        QuestionType.TRANSLATION,
    }
)


class ExerciseKind(str, Enum):
    DRAG = "drag"
    FILL = "fill"
    SCRAMBLE = "scramble"
    SENTENCE = "sentence"
    MATCHING = "matching"
    CATEGORIZE = "categorize"
    ERROR_CORRECTION = "error-correction"
    TRANSLATION = "translation"


@dataclass(slots=True, frozen=True)
class PracticeQuestion:
    """A question tagged with where it came from."""

    question: Question
    assignment_id: str
    assignment_title: str
    class_id: str


@dataclass(slots=True, frozen=True)
class Flashcard:
    question_id: str
    front: str
    back: str


@dataclass(slots=True)
class Exercise:
    kind: ExerciseKind
    source: PracticeQuestion
    prompt: str
    sentence: str | None = None  # fill: text containing the blank marker
    scrambled: str | None = None
    items: list[str] = field(default_factory=list)
    words: list[str] = field(default_factory=list)
    left_items: list[str] = field(default_factory=list)
    right_choices: list[str] = field(default_factory=list)
    category_names: list[str] = field(default_factory=list)
    pool: list[tuple[int, str]] = field(default_factory=list)  # (global item index, item)
    reference_text: str | None = None  # error sentence or source text

    @property
    def question_id(self) -> str:
        return self.source.question.id


@dataclass(slots=True, frozen=True)
class PracticeScore:
    correct: int
    total: int

    @property
    def percentage(self) -> int:
        return round(self.correct / self.total * 100) if self.total else 0


@dataclass(slots=True)
class PracticeSession:
    seed: int
    flashcards: list[Flashcard]
    quiz: list[PracticeQuestion]
    exercises: list[Exercise]

    def exercise_counts(self) -> dict[ExerciseKind, int]:
        counts: dict[ExerciseKind, int] = {}
        for exercise in self.exercises:
            counts[exercise.kind] = counts.get(exercise.kind, 0) + 1
        return counts


def collect_questions(assignments: Iterable[Assignment]) -> list[PracticeQuestion]:
    return [
        PracticeQuestion(
            question=question,
            assignment_id=assignment.id,
            assignment_title=assignment.title,
            class_id=assignment.class_id,
        )
        for assignment in assignments
        for question in assignment.questions
    ]


class PracticeGenerator:
    """Builds flashcards, a practice quiz and interactive exercises."""

    def __init__(self, seed: int | None = None, quiz_limit: int = PRACTICE_QUIZ_LIMIT) -> None:
        self._seed = seed if seed is not None else random.randrange(1, LCG_MODULUS)
        self._quiz_limit = quiz_limit

    @property
    def seed(self) -> int:
        return self._seed

    def build_session(self, assignments: Iterable[Assignment]) -> PracticeSession:
        corpus = collect_questions(assignments)
        return PracticeSession(
            seed=self._seed,
            flashcards=self.build_flashcards(corpus),
            quiz=self.build_quiz(corpus),
            exercises=self.build_exercises(corpus),
        )

    def build_flashcards(self, corpus: list[PracticeQuestion]) -> list[Flashcard]:
        cards: list[Flashcard] = []
        for entry in corpus:
            question = entry.question
            if question.type not in _FLASHCARD_TYPES:
                continue
            if question.type is QuestionType.TRANSLATION:
                front = question.source_text or question.text
            else:
                front = question.text
            if question.type in CHOICE_TYPES:
                back = question.correct_option
            else:
                back = question.correct_text
            cards.append(Flashcard(question_id=question.id, front=front, back=back or FLASHCARD_MISSING_ANSWER))
        return cards

    def build_quiz(self, corpus: list[PracticeQuestion]) -> list[PracticeQuestion]:
        pool = [entry for entry in corpus if entry.question.type in CHOICE_TYPES]
        return seeded_shuffle(pool, self._seed)[: self._quiz_limit]

    def build_exercises(self, corpus: list[PracticeQuestion]) -> list[Exercise]:
        exercises: list[Exercise] = []
        for ordinal, entry in enumerate(corpus):
            exercise = self._build_exercise(entry, self._seed + ordinal * 97)
            if exercise is not None:
                exercises.append(exercise)
        return seeded_shuffle(exercises, self._seed + 1)

    def _build_exercise(self, entry: PracticeQuestion, seed: int) -> Exercise | None:
        question = entry.question
        qtype = question.type
        prompt = question.text

        if qtype is QuestionType.ORDERING and len(question.items) >= 2:
            return Exercise(ExerciseKind.DRAG, entry, prompt, items=seeded_shuffle(question.items, seed))
        if qtype is QuestionType.FILL_IN_BLANK and question.correct_text:
            sentence = prompt if FILL_BLANK_MARKER in prompt else f"{prompt} {FILL_BLANK_MARKER}"
            return Exercise(ExerciseKind.FILL, entry, prompt, sentence=sentence)
        if qtype is QuestionType.WORD_SCRAMBLE and question.correct_text:
            scrambled = scramble_word(question.correct_text.upper(), seed)
            return Exercise(ExerciseKind.SCRAMBLE, entry, prompt, scrambled=scrambled)
        if qtype is QuestionType.SENTENCE_BUILDER and question.correct_sentence:
            words = seeded_shuffle(sentence_words(question.correct_sentence), seed)
            return Exercise(ExerciseKind.SENTENCE, entry, prompt, words=words)
        if qtype is QuestionType.MATCHING and len(question.pairs) >= 2:
            return Exercise(
                ExerciseKind.MATCHING,
                entry,
                prompt,
                left_items=[pair.left for pair in question.pairs],
                right_choices=seeded_shuffle([pair.right for pair in question.pairs], seed),
            )
        if qtype is QuestionType.CATEGORIZE and len(question.categories) >= 2:
            flattened = [item for category in question.categories for item in category.items]
            return Exercise(
                ExerciseKind.CATEGORIZE,
                entry,
                prompt,
                category_names=[category.name for category in question.categories],
                pool=seeded_shuffle(list(enumerate(flattened)), seed),
            )
        if qtype is QuestionType.ERROR_CORRECTION and question.error_sentence and question.correct_text:
            return Exercise(ExerciseKind.ERROR_CORRECTION, entry, prompt, reference_text=question.error_sentence)
        if qtype is QuestionType.TRANSLATION and question.source_text and question.correct_text:
            return Exercise(ExerciseKind.TRANSLATION, entry, prompt, reference_text=question.source_text)
        return None


def check_quiz(session: PracticeSession, answers: AnswerSet) -> PracticeScore:
    """Count correct quiz answers. Results are for the learner only and are never stored."""
    correct = sum(
        1 for index, entry in enumerate(session.quiz) if evaluate(entry.question, answers.get(index)).is_correct
    )
    return PracticeScore(correct=correct, total=len(session.quiz))


def check_exercise(exercise: Exercise, answer: Any) -> bool:
    return bool(evaluate(exercise.source.question, answer).is_correct)

"""Per-question-type scoring rules.

Every question type has exactly one evaluator registered here. Submission
building and the review view both go through :func:`evaluate`, so the score a
learner sees when reviewing an attempt is always the score that was stored.

Policies worth knowing about:

* Choice questions compare the submitted option *value* with
  ``options[correct_answer]``; the option index is never compared, so options
  may be reordered freely as long as ``correct_answer`` follows its option.
* Free-text types compare after trimming and lowercasing. There is no fuzzy
  matching and an empty answer never matches.
* Ordering, matching and categorize are all-or-nothing.
* Essay and short-answer questions score zero and flag the submission for
  manual grading.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from assignment_app.core.models import (
    CHOICE_TYPES,
    MANUALLY_GRADED_TYPES,
    TEXT_MATCH_TYPES,
    Question,
    QuestionType,
)

_MISSING = object()


class UnknownQuestionTypeError(ValueError):
    """Raised when no evaluator is registered for a question type."""


@dataclass(slots=True, frozen=True)
class Evaluation:
    points_awarded: int
    is_correct: bool | None  # None when the answer cannot be graded mechanically
    needs_manual_grading: bool = False


Evaluator = Callable[[Question, Any], Evaluation]

_REGISTRY: dict[QuestionType, Evaluator] = {}


def register(*question_types: QuestionType) -> Callable[[Evaluator], Evaluator]:
    """Register the decorated function as the evaluator for the given types."""

    def decorator(func: Evaluator) -> Evaluator:
        for question_type in question_types:
            if question_type in _REGISTRY:
                raise ValueError(f"An evaluator is already registered for '{question_type.value}'.")
            _REGISTRY[question_type] = func
        return func

    return decorator


def get_evaluator(question_type: QuestionType | str) -> Evaluator:
    try:
        return _REGISTRY[QuestionType(question_type)]
    except (KeyError, ValueError) as exc:
        raise UnknownQuestionTypeError(f"Unsupported question type: {question_type!r}") from exc


def ensure_supported(question_type: QuestionType | str) -> QuestionType:
    """Return the matching ``QuestionType`` or raise ``UnknownQuestionTypeError``."""
    get_evaluator(question_type)
    return QuestionType(question_type)


def supported_types() -> frozenset[QuestionType]:
    return frozenset(_REGISTRY)


def evaluate(question: Question, answer: Any) -> Evaluation:
    """Score ``answer`` against ``question``. ``None`` means unanswered."""
    return get_evaluator(question.type)(question, answer)


def normalize_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def is_answered(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (Mapping, list, tuple)):
        return bool(value)
    return True


def _award(question: Question, correct: bool) -> Evaluation:
    return Evaluation(points_awarded=question.points if correct else 0, is_correct=correct)


def _lookup(answer: Any, index: int) -> Any:
    """Fetch ``answer[index]`` from a list or an index-keyed mapping (JSON keys are strings)."""
    if isinstance(answer, Mapping):
        if index in answer:
            return answer[index]
        return answer.get(str(index), _MISSING)
    if isinstance(answer, Sequence) and not isinstance(answer, str):
        return answer[index] if 0 <= index < len(answer) else _MISSING
    return _MISSING


def _texts_match(answer: Any, expected: str | None) -> bool:
    submitted = normalize_text(answer)
    return bool(submitted) and submitted == normalize_text(expected)


@register(*CHOICE_TYPES)
def evaluate_choice(question: Question, answer: Any) -> Evaluation:
    correct_option = question.correct_option
    return _award(question, answer is not None and correct_option is not None and answer == correct_option)


@register(*TEXT_MATCH_TYPES)
def evaluate_text_match(question: Question, answer: Any) -> Evaluation:
    return _award(question, _texts_match(answer, question.correct_text))


@register(QuestionType.SENTENCE_BUILDER)
def evaluate_sentence(question: Question, answer: Any) -> Evaluation:
    return _award(question, _texts_match(answer, question.correct_sentence))


@register(QuestionType.ORDERING)
def evaluate_ordering(question: Question, answer: Any) -> Evaluation:
    if not question.items or not isinstance(answer, (list, tuple)):
        return _award(question, False)
    return _award(question, list(answer) == list(question.items))


@register(QuestionType.MATCHING)
def evaluate_matching(question: Question, answer: Any) -> Evaluation:
    if not question.pairs:
        return _award(question, False)
    correct = all(_lookup(answer, i) == pair.right for i, pair in enumerate(question.pairs))
    return _award(question, correct)


@register(QuestionType.CATEGORIZE)
def evaluate_categorize(question: Question, answer: Any) -> Evaluation:
    # Items share one global index space, numbered in declaration order across categories.
    expected = [
        category_index
        for category_index, category in enumerate(question.categories)
        for _ in category.items
    ]
    if not expected:
        return _award(question, False)
    correct = all(
        _is_category_index(_lookup(answer, item_index), category_index)
        for item_index, category_index in enumerate(expected)
    )
    return _award(question, correct)


def _is_category_index(value: Any, category_index: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value == category_index


@register(*MANUALLY_GRADED_TYPES)
def evaluate_manual(question: Question, answer: Any) -> Evaluation:
    return Evaluation(points_awarded=0, is_correct=None, needs_manual_grading=True)

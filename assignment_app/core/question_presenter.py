"""Learner-facing view data for questions.

Everything randomized here goes through :mod:`seeded_shuffle` with seeds taken
from the question content and its position, so repeated renders of the same
attempt always show the same letters, words and orderings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from assignment_app.core.markdown_math_renderer import renderer
from assignment_app.core.models import Question, QuestionType
from assignment_app.core.seeded_shuffle import item_seed, letter_seed, seeded_shuffle, word_seed


@dataclass(slots=True)
class QuestionView:
    index: int
    question_id: str
    type: str
    points: int
    question_html: str
    options: list[str] = field(default_factory=list)
    letters: list[str] = field(default_factory=list)
    word_bank: list[str] = field(default_factory=list)
    items: list[str] = field(default_factory=list)
    left_items: list[str] = field(default_factory=list)
    right_choices: list[str] = field(default_factory=list)
    category_names: list[str] = field(default_factory=list)
    prompt_text: str | None = None


def sentence_words(sentence: str) -> list[str]:
    return [word for word in sentence.split(" ") if word]


def scrambled_letters(question: Question, index: int) -> list[str]:
    text = question.correct_text or ""
    return seeded_shuffle(list(text), letter_seed(text, index))


def shuffled_word_bank(question: Question, index: int) -> list[str]:
    sentence = question.correct_sentence or ""
    return seeded_shuffle(sentence_words(sentence), word_seed(sentence, index))


def initial_item_order(question: Question, index: int) -> list[str]:
    return seeded_shuffle(question.items, item_seed(question.items, index))


def letter_feedback(typed: str, correct_text: str) -> list[bool]:
    """Per typed character: does it match the correct text at that position (case-insensitive)?"""
    expected = correct_text.lower()
    return [i < len(expected) and char.lower() == expected[i] for i, char in enumerate(typed)]


def available_word_slots(word_bank: list[str], current_answer: str) -> list[bool]:
    """Mark word-bank entries that the current answer has not used yet.

    Each word typed consumes the first still-free bank entry with the same text.
    """
    taken: set[int] = set()
    for word in sentence_words(current_answer or ""):
        slot = next((i for i, w in enumerate(word_bank) if w == word and i not in taken), None)
        if slot is not None:
            taken.add(slot)
    return [i not in taken for i in range(len(word_bank))]


def present_question(question: Question, index: int) -> QuestionView:
    view = QuestionView(
        index=index,
        question_id=question.id,
        type=question.type.value,
        points=question.points,
        question_html=renderer.render_fragment(question.text),
    )
    qtype = question.type
    if qtype in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE):
        view.options = list(question.options)
    elif qtype is QuestionType.WORD_SCRAMBLE:
        view.letters = scrambled_letters(question, index)
    elif qtype is QuestionType.SENTENCE_BUILDER:
        view.word_bank = shuffled_word_bank(question, index)
    elif qtype is QuestionType.ORDERING:
        view.items = initial_item_order(question, index)
    elif qtype is QuestionType.MATCHING:
        view.left_items = [pair.left for pair in question.pairs]
        view.right_choices = sorted(pair.right for pair in question.pairs)
    elif qtype is QuestionType.CATEGORIZE:
        view.items = [item for category in question.categories for item in category.items]
        view.category_names = [category.name for category in question.categories]
    elif qtype is QuestionType.ERROR_CORRECTION:
        view.prompt_text = question.error_sentence
    elif qtype is QuestionType.TRANSLATION:
        view.prompt_text = question.source_text
    return view


def present_answer_feedback(question: Question, index: int, answer: Any) -> dict[str, Any]:
    """Live hints shown while typing; never used for grading."""
    if question.type is QuestionType.WORD_SCRAMBLE and isinstance(answer, str):
        return {"letter_feedback": letter_feedback(answer, question.correct_text or "")}
    if question.type is QuestionType.SENTENCE_BUILDER:
        current = answer if isinstance(answer, str) else ""
        return {"available_words": available_word_slots(shuffled_word_bank(question, index), current)}
    return {}

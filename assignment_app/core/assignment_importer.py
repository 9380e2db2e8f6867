"""Load assignments from the document shape used by the remote store.

Documents use camelCase keys, for example::

    {
      "id": "a1", "classId": "c1", "title": "Week 1 quiz",
      "totalPoints": 15, "timeLimit": 10,
      "questions": [
        {"type": "multiple-choice", "text": "Pick B", "points": 10,
         "options": ["A", "B"], "correctAnswer": 1},
        {"type": "fill-in-blank", "text": "Capital of France?", "points": 5,
         "correctText": "paris"}
      ]
    }

A file may hold a list of such documents, or an object with ``assignments``
and ``classes`` keys. Unknown question types are rejected here, at load time:
an assignment the engine cannot fully grade must never reach a learner.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
import json
from pathlib import Path
from typing import Any

from assignment_app.core.evaluators import UnknownQuestionTypeError, ensure_supported
from assignment_app.core.models import (
    CHOICE_TYPES,
    Assignment,
    Category,
    ClassRoster,
    MatchingPair,
    Question,
    QuestionType,
)

_TRUE_FALSE_OPTIONS = ("True", "False")


class AssignmentImportError(ValueError):
    """Raised when an assignment document cannot be turned into an Assignment."""


@dataclass(slots=True)
class ImportedCatalog:
    source_path: Path
    assignments: list[Assignment]
    rosters: list[ClassRoster] = field(default_factory=list)


def load_assignments_from_file(file_path: Path) -> ImportedCatalog:
    try:
        document = json.loads(file_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise AssignmentImportError(f"{file_path} is not valid JSON: {exc}") from exc

    if isinstance(document, list):
        raw_assignments, raw_classes = document, []
    elif isinstance(document, Mapping):
        raw_assignments = document.get("assignments", [])
        raw_classes = document.get("classes", [])
    else:
        raise AssignmentImportError("Assignment file must contain a list or an object.")

    assignments = [parse_assignment(raw) for raw in raw_assignments]
    if not assignments:
        raise AssignmentImportError("Assignment file did not contain any assignments.")
    rosters = [parse_roster(raw) for raw in raw_classes]
    return ImportedCatalog(source_path=file_path, assignments=assignments, rosters=rosters)


def parse_assignment(raw: Mapping[str, Any]) -> Assignment:
    if not isinstance(raw, Mapping):
        raise AssignmentImportError("Assignment entries must be objects.")
    assignment_id = _required_str(raw, "id", "assignment")
    context = f"assignment {assignment_id!r}"
    raw_questions = raw.get("questions") or []
    if not isinstance(raw_questions, list) or not raw_questions:
        raise AssignmentImportError(f"{context} must contain at least one question.")

    questions = tuple(
        parse_question(entry, index, context) for index, entry in enumerate(raw_questions)
    )
    return Assignment(
        id=assignment_id,
        class_id=_required_str(raw, "classId", context),
        title=_optional_str(raw, "title", context) or "",
        description=_optional_str(raw, "description", context) or "",
        due_date=_parse_due_date(raw.get("dueDate"), context),
        total_points=_non_negative_int(raw.get("totalPoints"), "totalPoints", context),
        time_limit_minutes=_non_negative_int(raw.get("timeLimit"), "timeLimit", context),
        questions=questions,
    )


def parse_question(raw: Mapping[str, Any], index: int, context: str = "assignment") -> Question:
    where = f"{context}, question {index + 1}"
    if not isinstance(raw, Mapping):
        raise AssignmentImportError(f"{where} must be an object.")
    try:
        question_type = ensure_supported(raw.get("type"))
    except UnknownQuestionTypeError as exc:
        raise AssignmentImportError(f"{where}: {exc}") from exc

    options = _str_tuple(raw.get("options"), "options", where)
    if question_type is QuestionType.TRUE_FALSE and not options:
        options = _TRUE_FALSE_OPTIONS
    correct_answer = raw.get("correctAnswer")
    if question_type in CHOICE_TYPES:
        if not options:
            raise AssignmentImportError(f"{where} needs at least one option.")
        if not _is_int(correct_answer) or not 0 <= correct_answer < len(options):
            raise AssignmentImportError(f"{where}: correctAnswer must index one of the options.")
    elif correct_answer is not None and not _is_int(correct_answer):
        raise AssignmentImportError(f"{where}: correctAnswer must be an integer.")

    return Question(
        id=str(raw.get("id") or f"q{index + 1}"),
        type=question_type,
        text=_optional_str(raw, "text", where) or "",
        points=_non_negative_int(raw.get("points"), "points", where),
        options=options,
        correct_answer=correct_answer,
        items=_str_tuple(raw.get("items"), "items", where),
        pairs=_parse_pairs(raw.get("pairs"), where),
        categories=_parse_categories(raw.get("categories"), where),
        correct_text=_optional_str(raw, "correctText", where),
        correct_sentence=_optional_str(raw, "correctSentence", where),
        error_sentence=_optional_str(raw, "errorSentence", where),
        source_text=_optional_str(raw, "sourceText", where),
    )


def parse_roster(raw: Mapping[str, Any]) -> ClassRoster:
    if not isinstance(raw, Mapping):
        raise AssignmentImportError("Class entries must be objects.")
    class_id = _required_str(raw, "id", "class")
    context = f"class {class_id!r}"
    return ClassRoster(
        class_id=class_id,
        name=_optional_str(raw, "name", context) or class_id,
        teacher_name=_optional_str(raw, "teacherName", context) or "",
        student_ids=set(_str_tuple(raw.get("students"), "students", context)),
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _non_negative_int(value: Any, name: str, where: str) -> int:
    if value is None:
        return 0
    if not _is_int(value) or value < 0:
        raise AssignmentImportError(f"{where}: {name} must be a non-negative integer.")
    return value


def _required_str(raw: Mapping[str, Any], key: str, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise AssignmentImportError(f"{where}: '{key}' is required.")
    return value.strip()


def _optional_str(raw: Mapping[str, Any], key: str, where: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise AssignmentImportError(f"{where}: '{key}' must be text.")
    return value


def _str_tuple(value: Any, name: str, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise AssignmentImportError(f"{where}: {name} must be a list of strings.")
    return tuple(value)


def _parse_pairs(value: Any, where: str) -> tuple[MatchingPair, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise AssignmentImportError(f"{where}: pairs must be a list.")
    pairs: list[MatchingPair] = []
    for entry in value:
        if not isinstance(entry, Mapping):
            raise AssignmentImportError(f"{where}: each pair must be an object.")
        left, right = entry.get("left"), entry.get("right")
        if not isinstance(left, str) or not isinstance(right, str):
            raise AssignmentImportError(f"{where}: pairs need 'left' and 'right' text.")
        pairs.append(MatchingPair(left=left, right=right))
    return tuple(pairs)


def _parse_categories(value: Any, where: str) -> tuple[Category, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise AssignmentImportError(f"{where}: categories must be a list.")
    categories: list[Category] = []
    for entry in value:
        if not isinstance(entry, Mapping):
            raise AssignmentImportError(f"{where}: each category must be an object.")
        categories.append(
            Category(
                name=_optional_str(entry, "name", where) or "",
                items=_str_tuple(entry.get("items"), "category items", where),
            )
        )
    return tuple(categories)


def _parse_due_date(value: Any, where: str) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise AssignmentImportError(f"{where}: dueDate must be an ISO timestamp.")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise AssignmentImportError(f"{where}: dueDate must be an ISO timestamp.") from exc

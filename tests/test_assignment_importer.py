from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from assignment_app.constants.assignment_constants import DEFAULT_DATA_PATH
from assignment_app.core.assignment_importer import (
    AssignmentImportError,
    load_assignments_from_file,
    parse_assignment,
    parse_question,
)
from assignment_app.core.models import QuestionType
from assignment_app.core.services.submission_builder import build_submission
from assignment_app.core.submission_exporter import save_submissions_to_file, submission_to_dict

SAMPLE_PATH = Path(__file__).resolve().parents[1] / "assignment_app" / "data" / "assignments.json"


def minimal_assignment(**overrides):
    raw = {
        "id": "a1",
        "classId": "c1",
        "title": "Quiz",
        "totalPoints": 15,
        "questions": [
            {"type": "multiple-choice", "text": "Pick", "points": 10, "options": ["A", "B"], "correctAnswer": 1},
            {"type": "fill-in-blank", "text": "Capital?", "points": 5, "correctText": "paris"},
        ],
    }
    raw.update(overrides)
    return raw


def test_bundled_sample_loads():
    catalog = load_assignments_from_file(SAMPLE_PATH)
    assert [a.id for a in catalog.assignments] == ["week-1-quiz", "grammar-exam"]
    exam = catalog.assignments[1]
    assert exam.time_limit_minutes == 20
    assert {q.type for a in catalog.assignments for q in a.questions} == set(QuestionType)
    assert catalog.rosters[0].student_ids == {"s-001", "s-002"}
    assert catalog.rosters[0].teacher_name == "Ms. Rivera"


def test_default_data_path_does_not_depend_on_working_directory():
    assert DEFAULT_DATA_PATH.is_absolute()
    assert DEFAULT_DATA_PATH == SAMPLE_PATH
    assert DEFAULT_DATA_PATH.is_file()


def test_parse_assignment_maps_camel_case_fields():
    assignment = parse_assignment(minimal_assignment(timeLimit=10, dueDate="2026-11-02T23:59:00Z"))
    assert assignment.class_id == "c1"
    assert assignment.total_points == 15
    assert assignment.time_limit_minutes == 10
    assert assignment.due_date == datetime(2026, 11, 2, 23, 59, tzinfo=timezone.utc)
    assert [q.id for q in assignment.questions] == ["q1", "q2"]
    assert assignment.questions[0].correct_option == "B"
    assert assignment.questions[1].correct_text == "paris"


def test_missing_time_limit_means_untimed():
    assignment = parse_assignment(minimal_assignment())
    assert assignment.time_limit_minutes == 0
    assert not assignment.has_time_limit


def test_unknown_question_type_is_rejected():
    raw = minimal_assignment(questions=[{"type": "hotspot", "text": "Click", "points": 1}])
    with pytest.raises(AssignmentImportError, match="hotspot"):
        parse_assignment(raw)


def test_true_false_gets_default_options():
    question = parse_question({"type": "true-false", "text": "Yes?", "points": 1, "correctAnswer": 1}, 0)
    assert question.options == ("True", "False")
    assert question.correct_option == "False"


@pytest.mark.parametrize("correct_answer", [None, 2, -1, "1", True])
def test_choice_needs_valid_correct_answer(correct_answer):
    raw = {"type": "multiple-choice", "text": "Pick", "points": 1, "options": ["A", "B"], "correctAnswer": correct_answer}
    with pytest.raises(AssignmentImportError):
        parse_question(raw, 0)


@pytest.mark.parametrize("points", [-1, 1.5, "3"])
def test_points_must_be_non_negative_integers(points):
    with pytest.raises(AssignmentImportError):
        parse_question({"type": "essay", "text": "Discuss", "points": points}, 0)


def test_structured_fields():
    question = parse_question(
        {
            "id": "m1",
            "type": "matching",
            "text": "Match",
            "points": 2,
            "pairs": [{"left": "hot", "right": "cold"}],
        },
        0,
    )
    assert question.pairs[0].right == "cold"

    categorize = parse_question(
        {
            "type": "categorize",
            "text": "Sort",
            "points": 2,
            "categories": [{"name": "A", "items": ["x", "y"]}, {"name": "B", "items": ["z"]}],
        },
        3,
    )
    assert categorize.id == "q4"
    assert categorize.categories[1].items == ("z",)

    with pytest.raises(AssignmentImportError):
        parse_question({"type": "matching", "text": "Match", "pairs": [{"left": "hot"}]}, 0)


def test_assignment_requires_questions_and_ids():
    with pytest.raises(AssignmentImportError):
        parse_assignment(minimal_assignment(questions=[]))
    with pytest.raises(AssignmentImportError):
        parse_assignment(minimal_assignment(classId=""))


def test_invalid_json_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(AssignmentImportError):
        load_assignments_from_file(path)


def test_list_document(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps([minimal_assignment()]), encoding="utf-8")
    catalog = load_assignments_from_file(path)
    assert len(catalog.assignments) == 1
    assert catalog.rosters == []


def test_export_submissions(tmp_path, student):
    assignment = parse_assignment(minimal_assignment())
    submission = build_submission(assignment, {0: "B", 1: "paris"}, student, auto_submitted=False)

    document = submission_to_dict(submission)
    assert document["assignmentId"] == "a1"
    assert document["answers"] == {"0": "B", "1": "paris"}
    assert document["status"] == "graded"
    assert document["autoSubmitted"] is False

    target = tmp_path / "out" / "submissions.json"
    save_submissions_to_file(target, [submission])
    assert json.loads(target.read_text(encoding="utf-8"))[0]["grade"] == 15

    with pytest.raises(ValueError):
        save_submissions_to_file(target, [])

import pytest

from assignment_app.constants.assignment_constants import INCOMPLETE_SUBMISSION_MESSAGE
from assignment_app.core.models import SubmissionStatus
from assignment_app.core.services.submission_builder import (
    IncompleteSubmissionError,
    build_submission,
    find_unanswered,
    grade_answers,
)

from conftest import (
    T0,
    categorize_question,
    essay_question,
    fill_question,
    make_assignment,
    matching_question,
    mc_question,
    ordering_question,
)


def test_fully_correct_submission(scenario_assignment, student):
    submission = build_submission(
        scenario_assignment,
        {0: "B", 1: "Paris "},
        student,
        auto_submitted=False,
        submitted_at=T0,
    )
    assert submission.grade == 15
    assert submission.max_points == 15
    assert submission.status is SubmissionStatus.GRADED
    assert submission.percentage == 100
    assert submission.auto_submitted is False
    assert submission.submitted_at == T0
    assert submission.student_name == "Ada"
    assert submission.id is None


def test_essay_makes_submission_pending(student):
    assignment = make_assignment([mc_question(points=10), essay_question(points=10)])
    submission = build_submission(assignment, {0: "B", 1: "My essay"}, student, auto_submitted=False)
    assert submission.grade == 10
    assert submission.status is SubmissionStatus.PENDING


def test_status_is_pending_even_when_essay_left_blank_on_auto_submit(student):
    assignment = make_assignment([mc_question(points=10), essay_question(points=10)])
    submission = build_submission(assignment, {0: "B"}, student, auto_submitted=True)
    assert submission.status is SubmissionStatus.PENDING


def test_manual_submission_must_be_complete(scenario_assignment, student):
    with pytest.raises(IncompleteSubmissionError) as excinfo:
        build_submission(scenario_assignment, {0: "B", 1: "  "}, student, auto_submitted=False)
    assert excinfo.value.unanswered == [1]
    assert str(excinfo.value) == INCOMPLETE_SUBMISSION_MESSAGE


def test_auto_submission_grades_the_answered_subset(scenario_assignment, student):
    submission = build_submission(scenario_assignment, {0: "B"}, student, auto_submitted=True)
    assert submission.grade == 10
    assert submission.auto_submitted is True
    assert submission.answers == {0: "B"}


def test_grade_is_sum_of_question_points(student):
    assignment = make_assignment(
        [
            mc_question(points=10),
            fill_question(points=5),
            ordering_question(points=4),
            matching_question(points=6),
            categorize_question(points=3),
        ]
    )
    answers = {
        0: "B",
        1: "wrong",
        2: ["a", "b", "c"],
        3: {"0": "cold", "1": "down"},
        4: [0, 1, 1],
    }
    report = grade_answers(assignment, answers)
    assert [r.evaluation.points_awarded for r in report.results] == [10, 0, 4, 6, 0]
    assert report.total_points == 20
    submission = build_submission(assignment, answers, student, auto_submitted=False)
    assert submission.grade == report.total_points


def test_grade_is_clamped_to_max_points(student):
    assignment = make_assignment([mc_question(points=10), fill_question(points=5)], total_points=12)
    submission = build_submission(assignment, {0: "B", 1: "paris"}, student, auto_submitted=False)
    assert submission.grade == 12
    assert submission.max_points == 12


def test_zero_total_points_falls_back_to_default_max(student):
    assignment = make_assignment([mc_question(points=10)], total_points=0)
    submission = build_submission(assignment, {0: "B"}, student, auto_submitted=False)
    assert submission.max_points == 100
    assert submission.percentage == 10


def test_submission_answers_are_a_copy(scenario_assignment, student):
    answers = {0: "B", 1: "paris"}
    submission = build_submission(scenario_assignment, answers, student, auto_submitted=False)
    answers[0] = "C"
    assert submission.answers[0] == "B"


def test_find_unanswered(scenario_assignment):
    assert find_unanswered(scenario_assignment, {}) == [0, 1]
    assert find_unanswered(scenario_assignment, {0: "B", 1: ""}) == [1]
    assert find_unanswered(scenario_assignment, {0: "B", 1: "x"}) == []

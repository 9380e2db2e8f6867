"""Serialize finalized submissions for the grading and reporting collaborators."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from assignment_app.core.models import Submission


def submission_to_dict(submission: Submission) -> dict[str, Any]:
    """Return the camelCase document shape the remote store expects."""
    return {
        "id": submission.id,
        "assignmentId": submission.assignment_id,
        "classId": submission.class_id,
        "studentId": submission.student_id,
        "studentName": submission.student_name,
        "answers": {str(index): value for index, value in sorted(submission.answers.items())},
        "grade": submission.grade,
        "maxPoints": submission.max_points,
        "submittedAt": submission.submitted_at.isoformat(),
        "status": submission.status.value,
        "autoSubmitted": submission.auto_submitted,
    }


def save_submissions_to_file(file_path: Path, submissions: list[Submission]) -> None:
    if not submissions:
        raise ValueError("Cannot export an empty list of submissions.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    document = [submission_to_dict(submission) for submission in submissions]
    file_path.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

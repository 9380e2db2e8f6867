"""Assignment-related constants shared across core and server layers."""

from pathlib import Path

TIMER_TICK_SECONDS: float = 1.0
PRACTICE_QUIZ_LIMIT: int = 10
DEFAULT_MAX_POINTS: int = 100
DEFAULT_STUDENT_NAME: str = "Student"
FLASHCARD_MISSING_ANSWER: str = "N/A"
FILL_BLANK_MARKER: str = "___"

INCOMPLETE_SUBMISSION_MESSAGE: str = "Please answer all questions before submitting."
LEAVE_WARNING_MESSAGE: str = "You have a timed exam in progress. Are you sure you want to leave?"
AUTO_SUBMITTED_MESSAGE: str = "Time is up! Your answers were auto-submitted."
SUBMISSION_FAILED_MESSAGE: str = "Submission failed. Please try again."

DEFAULT_DATA_PATH: Path = Path(__file__).resolve().parent.parent / "data" / "assignments.json"
DEFAULT_DEADLINE_STORE_PATH: Path = Path(".deadlines.json")
DEFAULT_SUBMISSIONS_EXPORT_PATH: Path = Path("submissions.json")

"""Static metadata describing the assignment engine."""

APP_NAME = "AssignmentRunner"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "AssignmentRunner presents classroom assignments to learners, enforces optional "
    "time limits, autogrades a dozen question types, and builds ungraded practice sessions."
)

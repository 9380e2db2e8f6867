"""Application entry point for the assignment server."""

from __future__ import annotations

from pathlib import Path
import sys

from assignment_app.constants.assignment_constants import (
    DEFAULT_DATA_PATH,
    DEFAULT_DEADLINE_STORE_PATH,
    DEFAULT_SUBMISSIONS_EXPORT_PATH,
)
from assignment_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from assignment_app.core.assignment_importer import AssignmentImportError, load_assignments_from_file
from assignment_app.core.attempt_manager import AttemptManager
from assignment_app.core.services.deadline_store import JsonFileDeadlineStore
from assignment_app.server.api_server import start_api_server
from assignment_app.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging, load assignments, and serve the learner API."""
    logger = configure_logging()
    data_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_DATA_PATH

    manager = AttemptManager(deadline_store=JsonFileDeadlineStore(DEFAULT_DEADLINE_STORE_PATH))
    try:
        catalog = load_assignments_from_file(data_path)
    except (OSError, AssignmentImportError) as exc:
        logger.error("Unable to load assignments from %s: %s", data_path, exc)
        sys.exit(1)
    manager.load_catalog(catalog)
    logger.info("Loaded %d assignment(s) from %s", len(catalog.assignments), data_path)

    server_thread = start_api_server(manager=manager, host=DEFAULT_HOST, port=DEFAULT_PORT)
    logger.info("Learner API available at http://%s:%d/", DEFAULT_HOST, DEFAULT_PORT)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        count = manager.export_submissions(DEFAULT_SUBMISSIONS_EXPORT_PATH)
        logger.info("Exported %d submission(s) to %s", count, DEFAULT_SUBMISSIONS_EXPORT_PATH)


if __name__ == "__main__":
    main()

"""Logging setup for the sigsecret command line."""

import logging
import os
from typing import Optional

_LOGGER_NAME = "sigsecret"

_WORKFLOW_COMMANDS = {
    logging.DEBUG: "::debug::",
    logging.WARNING: "::warning::",
    logging.ERROR: "::error::",
    logging.CRITICAL: "::error::",
}


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-scoped logger under the sigsecret hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class WorkflowCommandFormatter(logging.Formatter):
    """Render records as GitHub Actions workflow commands.

    Warnings and errors become annotations on the run summary; INFO is
    printed unchanged.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        prefix = _WORKFLOW_COMMANDS.get(record.levelno, "")
        if not prefix:
            return message
        # Workflow commands are single-line; escape per the runner's rules.
        escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"{prefix}{escaped}"


def running_in_github_actions() -> bool:
    return os.getenv("GITHUB_ACTIONS", "").lower() == "true"


def configure_logging(
    verbose: bool = False, github_actions: Optional[bool] = None
) -> logging.Logger:
    """
    Configure the sigsecret logger.

    Args:
        verbose: Emit DEBUG records
        github_actions: Force workflow-command output on or off
            (default: detect from GITHUB_ACTIONS)

    Returns:
        The configured package logger
    """
    if github_actions is None:
        github_actions = running_in_github_actions()

    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated CLI invocations don't duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    if github_actions:
        handler.setFormatter(WorkflowCommandFormatter("%(message)s"))
    else:
        handler.setFormatter(logging.Formatter("[sigsecret] %(levelname)s %(message)s"))
    logger.addHandler(handler)

    return logger

"""User-id logging context for tracing a conversation across modules.

Provides a user-aware logger that attaches the id of the user whose turn
is being processed to every log record, so one diner's dialogue can be
followed through the classifier, dialogue driver, and reservation service.

Usage:
    from table_assistant.logging_context import get_user_logger, set_user_id

    set_user_id(42)
    logger = get_user_logger(__name__)
    logger.info("Processing turn")  # record.user_id == "42"
"""

import logging
from contextvars import ContextVar

_user_id: ContextVar[str] = ContextVar("user_id", default="NO_USER")


def set_user_id(user_id: object) -> None:
    """Set the user id for the current context."""
    _user_id.set(str(user_id))


def get_user_id() -> str:
    """Retrieve the current user id."""
    return _user_id.get()


class UserIdFilter(logging.Filter):
    """Injects user_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = _user_id.get()  # type: ignore[attr-defined]
        return True


def get_user_logger(name: str) -> logging.Logger:
    """Return a logger with the UserIdFilter attached.

    The filter adds ``user_id`` to each record so formatters can
    include ``%(user_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, UserIdFilter) for f in logger.filters):
        logger.addFilter(UserIdFilter())
    return logger

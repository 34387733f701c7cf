"""
Table assistant entry point.

Usage:
    Console chat:      python main.py console
    Scripted scenario: python main.py scenario booking
"""

import logging
import sys

from table_assistant.config import settings

logger = logging.getLogger(__name__)


def _run_console_mode() -> None:
    """Start the interactive console demo."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


def _run_scenario(name: str) -> None:
    from console_demo import ConsoleSession

    ConsoleSession().run_scenario(name)


if __name__ == "__main__":
    logger.info("Starting table assistant for '%s'", settings.restaurant_name)
    if len(sys.argv) > 2 and sys.argv[1] == "scenario":
        _run_scenario(sys.argv[2])
    else:
        _run_console_mode()

"""
Keyword intent classification and role gating.

Each intent carries a keyword list and the roles allowed to use it. An
utterance scores one point per keyword found anywhere in the lower-cased
text; the strictly highest score wins and ties go to whichever intent is
declared first. Nothing matched means UNKNOWN.

Usage:
    classifier = KeywordClassifier()
    intent, confidence = classifier.classify("book a table for 4", session)
    if has_permission(Role.CUSTOMER, intent): ...
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from table_assistant.schemas.conversation_schema import Session
from table_assistant.schemas.customer_schema import Role

logger = logging.getLogger(__name__)

CHECK_TABLE = "CHECK_TABLE"
QUEUE_POSITION = "QUEUE_POSITION"
JOIN_QUEUE = "JOIN_QUEUE"
LEAVE_QUEUE = "LEAVE_QUEUE"
MAKE_RESERVATION = "MAKE_RESERVATION"
VIEW_RESERVATION = "VIEW_RESERVATION"
CANCEL_RESERVATION = "CANCEL_RESERVATION"
MANAGER_STATS = "MANAGER_STATS"
HELP = "HELP"
GREETING = "GREETING"
CONFIRM = "CONFIRM"
CANCEL = "CANCEL"
UNKNOWN = "UNKNOWN"

_EVERYONE = frozenset({Role.CUSTOMER, Role.MANAGER, Role.ADMIN})
_CUSTOMERS = frozenset({Role.CUSTOMER})
_STAFF = frozenset({Role.MANAGER, Role.ADMIN})


@dataclass(frozen=True)
class IntentDefinition:
    """Keywords that vote for an intent and who may use it."""
    name: str
    keywords: tuple[str, ...]
    roles: frozenset[Role]


# Declaration order is the tie-break order.
INTENTS: list[IntentDefinition] = [
    IntentDefinition(CHECK_TABLE, ("table", "available", "free", "seat", "capacity"), _EVERYONE),
    IntentDefinition(QUEUE_POSITION, ("queue", "position", "wait", "waiting", "line", "turn"),
                     _EVERYONE),
    IntentDefinition(JOIN_QUEUE, ("join", "add", "queue", "wait", "line"), _CUSTOMERS),
    IntentDefinition(LEAVE_QUEUE, ("leave", "exit", "queue", "remove"), _CUSTOMERS),
    IntentDefinition(MAKE_RESERVATION, ("book", "reserve", "reservation", "table"), _CUSTOMERS),
    IntentDefinition(VIEW_RESERVATION, ("my", "reservation", "booking", "show", "view"),
                     _EVERYONE),
    IntentDefinition(CANCEL_RESERVATION,
                     ("cancel", "delete", "remove", "reservation", "booking", "my"), _EVERYONE),
    IntentDefinition(MANAGER_STATS, ("stats", "statistics", "dashboard", "overview", "report"),
                     _STAFF),
    IntentDefinition(HELP, ("help", "what", "can", "do", "commands", "options"), _EVERYONE),
    IntentDefinition(GREETING, ("hi", "hello", "hey", "good morning", "good afternoon",
                                "good evening"), _EVERYONE),
    IntentDefinition(CONFIRM, ("yes", "confirm", "ok", "sure", "proceed", "go ahead"), _EVERYONE),
    IntentDefinition(CANCEL, ("no", "cancel", "stop", "nevermind", "abort"), _EVERYONE),
]

_BY_NAME: dict[str, IntentDefinition] = {d.name: d for d in INTENTS}


class Classifier(Protocol):
    """Anything that can map an utterance to (intent, confidence)."""

    def classify(self, text: str, session: Optional[Session] = None) -> tuple[str, int]: ...


class KeywordClassifier:
    """Counts keyword substring hits per intent."""

    def __init__(self, intents: Optional[list[IntentDefinition]] = None) -> None:
        self._intents = INTENTS if intents is None else intents

    def classify(self, text: str, session: Optional[Session] = None) -> tuple[str, int]:
        lower = text.lower()
        best_intent, best_score = UNKNOWN, 0
        for definition in self._intents:
            score = sum(1 for keyword in definition.keywords if keyword in lower)
            if score > best_score:
                best_intent, best_score = definition.name, score
        logger.debug("Classified %r as %s (%d)", text, best_intent, best_score)
        return best_intent, best_score


def has_permission(role: Union[Role, str], intent: str) -> bool:
    """True when `role` may use `intent`. Unknown intents are always denied."""
    definition = _BY_NAME.get(intent)
    if definition is None:
        return False
    try:
        return Role(role) in definition.roles
    except ValueError:
        return False

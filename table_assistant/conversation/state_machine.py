"""
Declarative transition table for the booking dialogue.

Every step change a conversational turn can make is listed in
TRANSITIONS. The dialogue driver reports what happened as a trigger and
the machine moves the session to the next step, or refuses with
InvalidTransitionError when that trigger means nothing in the current
step. IDLE is both the start and the resting step.

Usage:
    machine = DialogueStateMachine()
    machine.transition(session, DialogueTrigger.FLOW_STARTED)
    assert session.step == SessionStep.AWAITING_CAPACITY
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from table_assistant.conversation.intents import MAKE_RESERVATION
from table_assistant.schemas.conversation_schema import Session, SessionStep

logger = logging.getLogger(__name__)


class DialogueTrigger(str, Enum):
    """Events that move a session between steps."""
    FLOW_STARTED = "flow_started"
    TABLES_FOUND = "tables_found"
    NO_TABLES_FOUND = "no_tables_found"
    CAPACITY_INVALID = "capacity_invalid"
    TABLE_SELECTED = "table_selected"
    TABLE_UNRESOLVED = "table_unresolved"
    DATE_ACCEPTED = "date_accepted"
    NO_SLOTS = "no_slots"
    DATE_UNRESOLVED = "date_unresolved"
    TIME_ACCEPTED = "time_accepted"
    TIME_REJECTED = "time_rejected"
    RESERVATION_COMMITTED = "reservation_committed"
    RESERVATION_ABORTED = "reservation_aborted"
    CONFIRMATION_DECLINED = "confirmation_declined"
    GLOBAL_CANCEL = "global_cancel"


@dataclass
class Transition:
    """A single valid step transition."""
    from_step: SessionStep
    to_step: SessionStep
    trigger: DialogueTrigger
    guard: Optional[Callable[[Session], bool]] = None


class InvalidTransitionError(Exception):
    """Raised when a trigger has no transition from the current step."""


def _reserving(session: Session) -> bool:
    return session.current_intent == MAKE_RESERVATION


def _only_checking(session: Session) -> bool:
    return session.current_intent != MAKE_RESERVATION


class DialogueStateMachine:
    """Applies TRANSITIONS to a session's step."""

    TRANSITIONS: list[Transition] = [
        # --- Starting a flow ---
        Transition(SessionStep.IDLE, SessionStep.AWAITING_TABLE_SELECTION,
                   DialogueTrigger.TABLES_FOUND),
        Transition(SessionStep.IDLE, SessionStep.IDLE,
                   DialogueTrigger.NO_TABLES_FOUND),
        Transition(SessionStep.IDLE, SessionStep.AWAITING_CAPACITY,
                   DialogueTrigger.FLOW_STARTED),

        # --- Party size ---
        Transition(SessionStep.AWAITING_CAPACITY, SessionStep.AWAITING_TABLE_SELECTION,
                   DialogueTrigger.TABLES_FOUND),
        Transition(SessionStep.AWAITING_CAPACITY, SessionStep.IDLE,
                   DialogueTrigger.NO_TABLES_FOUND),
        Transition(SessionStep.AWAITING_CAPACITY, SessionStep.AWAITING_CAPACITY,
                   DialogueTrigger.CAPACITY_INVALID),

        # --- Table choice ---
        Transition(SessionStep.AWAITING_TABLE_SELECTION, SessionStep.AWAITING_DATE,
                   DialogueTrigger.TABLE_SELECTED, guard=_reserving),
        Transition(SessionStep.AWAITING_TABLE_SELECTION, SessionStep.IDLE,
                   DialogueTrigger.TABLE_SELECTED, guard=_only_checking),
        Transition(SessionStep.AWAITING_TABLE_SELECTION, SessionStep.AWAITING_TABLE_SELECTION,
                   DialogueTrigger.TABLE_UNRESOLVED),

        # --- Date ---
        Transition(SessionStep.AWAITING_DATE, SessionStep.AWAITING_TIME,
                   DialogueTrigger.DATE_ACCEPTED),
        Transition(SessionStep.AWAITING_DATE, SessionStep.IDLE,
                   DialogueTrigger.NO_SLOTS),
        Transition(SessionStep.AWAITING_DATE, SessionStep.AWAITING_DATE,
                   DialogueTrigger.DATE_UNRESOLVED),

        # --- Time ---
        Transition(SessionStep.AWAITING_TIME, SessionStep.AWAITING_CONFIRMATION,
                   DialogueTrigger.TIME_ACCEPTED),
        Transition(SessionStep.AWAITING_TIME, SessionStep.AWAITING_TIME,
                   DialogueTrigger.TIME_REJECTED),

        # --- Confirmation gate ---
        Transition(SessionStep.AWAITING_CONFIRMATION, SessionStep.IDLE,
                   DialogueTrigger.RESERVATION_COMMITTED),
        Transition(SessionStep.AWAITING_CONFIRMATION, SessionStep.IDLE,
                   DialogueTrigger.RESERVATION_ABORTED),
        Transition(SessionStep.AWAITING_CONFIRMATION, SessionStep.IDLE,
                   DialogueTrigger.CONFIRMATION_DECLINED),
    ] + [
        # --- Cancel from anywhere ---
        Transition(step, SessionStep.IDLE, DialogueTrigger.GLOBAL_CANCEL)
        for step in SessionStep
        if step != SessionStep.IDLE
    ]

    def transition(self, session: Session, trigger: DialogueTrigger) -> SessionStep:
        """
        Move the session to the step `trigger` leads to.

        Raises:
            InvalidTransitionError: If no transition matches.
        """
        for t in self.TRANSITIONS:
            if t.from_step == session.step and t.trigger == trigger:
                if t.guard is not None and not t.guard(session):
                    continue

                old_step = session.step
                session.step = t.to_step
                logger.debug(
                    "Dialogue transition: %s -> %s (trigger: %s)",
                    old_step.value, session.step.value, trigger.value,
                )
                return session.step

        valid = [t.value for t in self.get_valid_triggers(session.step)]
        raise InvalidTransitionError(
            f"No valid transition from '{session.step.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self, step: SessionStep) -> list[DialogueTrigger]:
        """Return all triggers valid from `step`, without duplicates."""
        seen: list[DialogueTrigger] = []
        for t in self.TRANSITIONS:
            if t.from_step == step and t.trigger not in seen:
                seen.append(t.trigger)
        return seen

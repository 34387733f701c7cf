"""Tests for the dialogue transition table."""

import pytest

from table_assistant.conversation import intents
from table_assistant.conversation.state_machine import (
    DialogueStateMachine,
    DialogueTrigger,
    InvalidTransitionError,
)
from table_assistant.schemas.conversation_schema import Session, SessionStep


@pytest.fixture
def machine():
    return DialogueStateMachine()


class TestFlowTransitions:
    def test_reservation_path(self, machine):
        session = Session(current_intent=intents.MAKE_RESERVATION)
        machine.transition(session, DialogueTrigger.FLOW_STARTED)
        assert session.step == SessionStep.AWAITING_CAPACITY
        machine.transition(session, DialogueTrigger.TABLES_FOUND)
        assert session.step == SessionStep.AWAITING_TABLE_SELECTION
        machine.transition(session, DialogueTrigger.TABLE_SELECTED)
        assert session.step == SessionStep.AWAITING_DATE
        machine.transition(session, DialogueTrigger.DATE_ACCEPTED)
        assert session.step == SessionStep.AWAITING_TIME
        machine.transition(session, DialogueTrigger.TIME_ACCEPTED)
        assert session.step == SessionStep.AWAITING_CONFIRMATION
        machine.transition(session, DialogueTrigger.RESERVATION_COMMITTED)
        assert session.step == SessionStep.IDLE

    def test_capacity_in_first_message_skips_capacity_step(self, machine):
        session = Session(current_intent=intents.MAKE_RESERVATION)
        machine.transition(session, DialogueTrigger.TABLES_FOUND)
        assert session.step == SessionStep.AWAITING_TABLE_SELECTION

    def test_checking_ends_at_table_selection(self, machine):
        session = Session(
            step=SessionStep.AWAITING_TABLE_SELECTION, current_intent=intents.CHECK_TABLE
        )
        machine.transition(session, DialogueTrigger.TABLE_SELECTED)
        assert session.step == SessionStep.IDLE

    @pytest.mark.parametrize("step,trigger", [
        (SessionStep.AWAITING_CAPACITY, DialogueTrigger.CAPACITY_INVALID),
        (SessionStep.AWAITING_TABLE_SELECTION, DialogueTrigger.TABLE_UNRESOLVED),
        (SessionStep.AWAITING_DATE, DialogueTrigger.DATE_UNRESOLVED),
        (SessionStep.AWAITING_TIME, DialogueTrigger.TIME_REJECTED),
    ])
    def test_reprompts_stay_in_place(self, machine, step, trigger):
        session = Session(step=step)
        machine.transition(session, trigger)
        assert session.step == step

    @pytest.mark.parametrize("step,trigger", [
        (SessionStep.AWAITING_CAPACITY, DialogueTrigger.NO_TABLES_FOUND),
        (SessionStep.AWAITING_DATE, DialogueTrigger.NO_SLOTS),
        (SessionStep.AWAITING_CONFIRMATION, DialogueTrigger.RESERVATION_ABORTED),
        (SessionStep.AWAITING_CONFIRMATION, DialogueTrigger.CONFIRMATION_DECLINED),
    ])
    def test_dead_ends_return_to_idle(self, machine, step, trigger):
        session = Session(step=step)
        machine.transition(session, trigger)
        assert session.step == SessionStep.IDLE


class TestGlobalCancel:
    @pytest.mark.parametrize("step", [s for s in SessionStep if s != SessionStep.IDLE])
    def test_cancel_from_every_active_step(self, machine, step):
        session = Session(step=step)
        machine.transition(session, DialogueTrigger.GLOBAL_CANCEL)
        assert session.step == SessionStep.IDLE

    def test_cancel_is_not_a_transition_at_rest(self, machine):
        with pytest.raises(InvalidTransitionError):
            machine.transition(Session(), DialogueTrigger.GLOBAL_CANCEL)


class TestInvalidTransitions:
    def test_cannot_skip_to_confirmation(self, machine):
        session = Session(step=SessionStep.AWAITING_DATE)
        with pytest.raises(InvalidTransitionError, match="AWAITING_DATE"):
            machine.transition(session, DialogueTrigger.TIME_ACCEPTED)
        assert session.step == SessionStep.AWAITING_DATE

    def test_valid_triggers_listed_once(self, machine):
        triggers = machine.get_valid_triggers(SessionStep.AWAITING_TABLE_SELECTION)
        assert triggers == [
            DialogueTrigger.TABLE_SELECTED,
            DialogueTrigger.TABLE_UNRESOLVED,
            DialogueTrigger.GLOBAL_CANCEL,
        ]

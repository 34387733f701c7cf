"""
Turn-by-turn driver for the booking conversation.

One call to `handle_message` is one conversational turn for one user:

    1. Take the user's lock and load their session (fresh if expired).
    2. A global cancel phrase ends any active flow.
    3. Mid-flow, parse the slot the current step is waiting for and
       report the outcome to the DialogueStateMachine.
    4. At rest (IDLE), classify the utterance, check the role may use
       that intent, and run it.

The turn works on a copy of the session. The copy replaces the stored
session only when the turn finishes; a store failure leaves the stored
session untouched so the user can simply try again. A session that ends
the turn back in IDLE is dropped.
"""

import copy
from datetime import datetime
from typing import Any, Callable, Optional

from table_assistant.config import AppConfig, settings
from table_assistant.conversation import intents
from table_assistant.conversation.intents import Classifier, KeywordClassifier, has_permission
from table_assistant.conversation.session_store import SessionStore
from table_assistant.conversation.slot_extractors import (
    extract_capacity,
    extract_date,
    extract_number,
    extract_table_number,
    extract_table_type,
    extract_time,
    is_global_cancel,
)
from table_assistant.conversation.state_machine import DialogueStateMachine, DialogueTrigger
from table_assistant.logging_context import get_user_logger, set_user_id
from table_assistant.prompts import responses
from table_assistant.schemas.conversation_schema import ChatResponse, Session, SessionStep
from table_assistant.schemas.customer_schema import Role
from table_assistant.schemas.table_schema import Table, TableStatus, TableType
from table_assistant.tools.availability import (
    generate_time_slots,
    is_far_enough_ahead,
    is_within_business_hours,
)
from table_assistant.tools.queue import WaitingQueue
from table_assistant.tools.reservations import ReservationService
from table_assistant.tools.tables import InvalidTableTransitionError, StoreError, TableStore
from table_assistant.utils import format_clock, format_date, parse_hhmm

logger = get_user_logger(__name__)


class DialogueManager:
    """Owns the per-user booking dialogue on top of the stores and services."""

    def __init__(
        self,
        sessions: SessionStore,
        table_store: TableStore,
        reservations: ReservationService,
        queue: WaitingQueue,
        classifier: Optional[Classifier] = None,
        clock: Callable[[], datetime] = datetime.now,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._sessions = sessions
        self._tables = table_store
        self._reservations = reservations
        self._queue = queue
        self._classifier = classifier or KeywordClassifier()
        self._machine = DialogueStateMachine()
        self._clock = clock
        self._config = config or settings
        self._dining = self._config.dining

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def handle_message(self, user_id: int, role: str, text: str) -> ChatResponse:
        """Process one conversational turn and return what to show the user."""
        set_user_id(user_id)
        text = (text or "").strip()

        with self._sessions.lock_for(user_id):
            stored = self._sessions.get(user_id)
            if not text:
                return ChatResponse(
                    response_text=responses.EMPTY_MESSAGE,
                    success=False,
                    session_step=stored.step,
                )

            session = copy.deepcopy(stored)
            try:
                response = self._dispatch(user_id, role, text, session)
            except (StoreError, InvalidTableTransitionError):
                logger.exception("Store failure during turn; session left unchanged")
                return ChatResponse(
                    response_text=responses.GENERIC_FAILURE,
                    success=False,
                    session_step=stored.step,
                )

            if session.step == SessionStep.IDLE:
                self._sessions.delete(user_id)
            else:
                self._sessions.put(user_id, session)
            response.session_step = session.step
            return response

    def clear_session(self, user_id: int) -> None:
        with self._sessions.lock_for(user_id):
            self._sessions.delete(user_id)
        logger.info("Session cleared for user %d", user_id)

    def _dispatch(self, user_id: int, role: str, text: str, session: Session) -> ChatResponse:
        intent, confidence = self._classifier.classify(text, session)

        if session.step != SessionStep.IDLE and is_global_cancel(text):
            self._reset(session, DialogueTrigger.GLOBAL_CANCEL)
            return ChatResponse(
                response_text=responses.PROCESS_CANCELLED,
                intent=intents.CANCEL,
                confidence=confidence,
                quick_replies=list(responses.MAIN_MENU),
            )

        handler = {
            SessionStep.AWAITING_CAPACITY: self._on_capacity,
            SessionStep.AWAITING_TABLE_SELECTION: self._on_table_selection,
            SessionStep.AWAITING_DATE: self._on_date,
            SessionStep.AWAITING_TIME: self._on_time,
            SessionStep.AWAITING_CONFIRMATION: self._on_confirmation,
        }.get(session.step)
        if handler is not None:
            response = handler(user_id, text, session, intent)
            response.confidence = confidence
            return response

        return self._on_idle(user_id, role, text, session, intent, confidence)

    # ------------------------------------------------------------------ #
    # Mid-flow steps
    # ------------------------------------------------------------------ #

    def _on_capacity(self, user_id: int, text: str, session: Session, intent: str) -> ChatResponse:
        capacity = extract_capacity(text)
        if capacity is None or not self._valid_party_size(capacity):
            self._machine.transition(session, DialogueTrigger.CAPACITY_INVALID)
            if capacity is None:
                lead = "I didn't catch the party size."
            else:
                lead = (
                    f"Party size must be between {self._dining.min_party_size} "
                    f"and {self._dining.max_party_size} people."
                )
            return self._reply(session, f"{lead} {self._step_help(session.step)}",
                               responses.CAPACITY_RETRY)
        return self._offer_tables(session, capacity)

    def _on_table_selection(
        self, user_id: int, text: str, session: Session, intent: str
    ) -> ChatResponse:
        number = extract_table_number(text)
        offered = session.available_tables
        choices = responses.table_choices(offered)

        if number is None:
            self._machine.transition(session, DialogueTrigger.TABLE_UNRESOLVED)
            numbers = ", ".join(f"#{t.table_number}" for t in offered)
            return self._reply(
                session,
                f"I didn't catch the table number. {self._step_help(session.step)}\n\n"
                f"Available tables: {numbers}",
                choices,
            )

        selected = next((t for t in offered if t.table_number == number), None)
        if selected is None:
            self._machine.transition(session, DialogueTrigger.TABLE_UNRESOLVED)
            numbers = ", ".join(str(t.table_number) for t in offered)
            return self._reply(
                session,
                f"Table #{number} is not in the available list.\n\n"
                f"Please choose from these tables: {numbers}\n\n"
                'Or type "cancel" to start over.',
                choices,
            )

        session.selected_table = selected
        self._machine.transition(session, DialogueTrigger.TABLE_SELECTED)
        if session.step == SessionStep.AWAITING_DATE:
            return self._reply(
                session,
                f"Table #{selected.table_number} selected "
                f"({selected.type.value}, {selected.capacity} seats).\n\n"
                'When would you like to reserve? Please specify a date like "tomorrow" '
                'or "Friday".',
                responses.DATE_CHOICES,
            )

        checked_intent = session.current_intent
        session.reset()
        return ChatResponse(
            response_text=(
                f"Table #{selected.table_number} is available!\n"
                f"- Type: {selected.type.value}\n"
                f"- Capacity: {selected.capacity} seats\n\n"
                "Would you like to make a reservation for this table?"
            ),
            intent=checked_intent,
            quick_replies=["Make reservation", "Check other tables", "Help"],
            data=selected,
        )

    def _on_date(self, user_id: int, text: str, session: Session, intent: str) -> ChatResponse:
        now = self._clock()
        day = extract_date(text, today=now.date())
        if day is None:
            self._machine.transition(session, DialogueTrigger.DATE_UNRESOLVED)
            return self._reply(
                session,
                f"I didn't understand that date. {self._step_help(session.step)}",
                responses.DATE_CHOICES,
            )

        options = generate_time_slots(day, now, self._dining)
        if not options["slots"]:
            reserving_intent = session.current_intent
            self._reset(session, DialogueTrigger.NO_SLOTS)
            return ChatResponse(
                response_text=(
                    f"Sorry, no available time slots for {format_date(day)}. "
                    "The restaurant may be closed or fully booked.\n\n"
                    "Would you like to try a different date?"
                ),
                intent=reserving_intent,
                quick_replies=["Tomorrow", "Make reservation", "Cancel"],
            )

        session.reservation_date = day
        self._machine.transition(session, DialogueTrigger.DATE_ACCEPTED)
        return self._reply(
            session,
            responses.time_slots(day, options["slots"], self._dining.max_slots_listed),
            options["quick_replies"],
            data=options["slots"],
        )

    def _on_time(self, user_id: int, text: str, session: Session, intent: str) -> ChatResponse:
        now = self._clock()
        day = session.reservation_date or now.date()
        slot_choices = generate_time_slots(day, now, self._dining)["quick_replies"]
        value = extract_time(text)

        if value is None:
            self._machine.transition(session, DialogueTrigger.TIME_REJECTED)
            return self._reply(
                session,
                f"I didn't understand that time. {self._step_help(session.step)}\n\n"
                "Please select from the available slots:",
                slot_choices,
            )

        start = datetime.combine(day, parse_hhmm(value))
        if not is_within_business_hours(start.hour, self._dining):
            self._machine.transition(session, DialogueTrigger.TIME_REJECTED)
            return self._reply(
                session,
                f"Sorry, we're only open from {format_clock(self._dining.open_hour, 0)} to "
                f"{format_clock(self._dining.close_hour % 24, 0)}. "
                "Please select a time within business hours:",
                slot_choices,
            )
        if not is_far_enough_ahead(start, now, self._dining):
            self._machine.transition(session, DialogueTrigger.TIME_REJECTED)
            return self._reply(
                session,
                "That time has already passed or is too soon. Please select a later time:",
                slot_choices,
            )

        session.reservation_time = value
        self._machine.transition(session, DialogueTrigger.TIME_ACCEPTED)
        return self._reply(
            session,
            responses.reservation_summary(session.selected_table, day, start, session.capacity),
            responses.CONFIRM_CHOICES,
        )

    def _on_confirmation(
        self, user_id: int, text: str, session: Session, intent: str
    ) -> ChatResponse:
        if intent != intents.CONFIRM:
            self._reset(session, DialogueTrigger.CONFIRMATION_DECLINED)
            return ChatResponse(
                response_text="No problem! Reservation cancelled. How else can I help you?",
                intent=intents.MAKE_RESERVATION,
                quick_replies=list(responses.BROWSE),
            )

        missing = session.missing_booking_details()
        if missing:
            logger.warning("Confirmation reached with missing details: %s", missing)
            return self._abort(
                session,
                f"I'm missing some information: {', '.join(missing)}.\n\n"
                "Let's start over. Would you like to make a reservation?",
            )

        start = datetime.combine(session.reservation_date, parse_hhmm(session.reservation_time))
        if start <= self._clock():
            return self._abort(
                session,
                "That time has already passed. Please start a new reservation "
                "with a future date and time.",
            )

        table = session.selected_table
        result = self._reservations.create_reservation(
            table.id,
            user_id,
            session.capacity or table.capacity,
            start,
            arm_vacate_alert=True,
        )
        if not result["success"]:
            return self._abort(session, f"Sorry, I couldn't complete the reservation: "
                                        f"{result['message']}.")

        party_size = session.capacity or table.capacity
        self._reset(session, DialogueTrigger.RESERVATION_COMMITTED)
        logger.info("Reservation committed from chat: Table #%d", table.table_number)
        return ChatResponse(
            response_text=responses.reservation_confirmed(result["table"], start, party_size),
            intent=intents.MAKE_RESERVATION,
            quick_replies=list(responses.AFTER_BOOKING),
            data={"table": result["table"], "reservation": result["reservation"]},
        )

    def _abort(self, session: Session, message: str) -> ChatResponse:
        self._reset(session, DialogueTrigger.RESERVATION_ABORTED)
        return ChatResponse(
            response_text=message,
            intent=intents.MAKE_RESERVATION,
            quick_replies=list(responses.RESTART),
            success=False,
        )

    # ------------------------------------------------------------------ #
    # At rest
    # ------------------------------------------------------------------ #

    def _on_idle(
        self, user_id: int, role: str, text: str, session: Session, intent: str, confidence: int
    ) -> ChatResponse:
        # A bare "cancel" at rest should not silently drop a reservation.
        if (
            intent == intents.CANCEL_RESERVATION
            and is_global_cancel(text)
            and not any(word in text.lower() for word in ("reservation", "booking"))
        ):
            intent = intents.CANCEL

        if intent != intents.UNKNOWN and not has_permission(role, intent):
            logger.info("Intent %s denied for role %s", intent, role)
            return ChatResponse(
                response_text=responses.PERMISSION_DENIED,
                intent=intent,
                confidence=confidence,
                success=False,
            )

        handler = {
            intents.GREETING: self._greeting,
            intents.HELP: self._help,
            intents.CHECK_TABLE: self._start_flow,
            intents.MAKE_RESERVATION: self._start_flow,
            intents.QUEUE_POSITION: self._queue_position,
            intents.JOIN_QUEUE: self._join_queue,
            intents.LEAVE_QUEUE: self._leave_queue,
            intents.VIEW_RESERVATION: self._view_reservations,
            intents.CANCEL_RESERVATION: self._cancel_reservation,
            intents.MANAGER_STATS: self._manager_stats,
            intents.CONFIRM: self._nothing_to_confirm,
            intents.CANCEL: self._nothing_to_cancel,
        }.get(intent, self._unknown)

        response = handler(user_id, role, text, session, intent)
        response.intent = intent
        response.confidence = confidence
        return response

    def _start_flow(
        self, user_id: int, role: str, text: str, session: Session, intent: str
    ) -> ChatResponse:
        if intent == intents.MAKE_RESERVATION and not self._reservations.is_enabled():
            return ChatResponse(
                response_text=f"Sorry, {responses.RESERVATIONS_DISABLED.lower()}.",
                quick_replies=list(responses.QUEUE_OUTSIDER),
                success=False,
            )

        session.current_intent = intent
        session.table_type = extract_table_type(text)
        capacity = extract_capacity(text)

        if capacity is not None and self._valid_party_size(capacity):
            return self._offer_tables(session, capacity)

        self._machine.transition(session, DialogueTrigger.FLOW_STARTED)
        if capacity is not None:
            return self._reply(
                session,
                f"Party size must be between {self._dining.min_party_size} and "
                f"{self._dining.max_party_size} people. {self._step_help(session.step)}",
                responses.CAPACITY_RETRY,
            )
        return self._reply(
            session,
            f"How many people will be dining? "
            f"({self._dining.min_party_size}-{self._dining.max_party_size})",
            responses.CAPACITY_CHOICES,
        )

    def _greeting(self, user_id: int, role: str, text: str, session: Session,
                  intent: str) -> ChatResponse:
        return ChatResponse(
            response_text=responses.greeting(self._config.restaurant_name),
            quick_replies=list(responses.MAIN_MENU),
        )

    def _help(self, user_id: int, role: str, text: str, session: Session,
              intent: str) -> ChatResponse:
        return ChatResponse(
            response_text=responses.help_text(role == Role.CUSTOMER.value),
            quick_replies=["Check tables", "Make reservation", "View reservations"],
        )

    def _queue_position(self, user_id: int, role: str, text: str, session: Session,
                        intent: str) -> ChatResponse:
        standing = self._queue.position(user_id)
        if standing is None:
            return ChatResponse(
                response_text="You're not currently in the queue. Would you like to join?",
                quick_replies=list(responses.QUEUE_OUTSIDER),
            )
        return ChatResponse(
            response_text=responses.queue_position(
                standing["position"],
                standing["total_waiting"],
                standing["estimated_wait_minutes"],
                standing["entry"].party_size,
            ),
            quick_replies=["Leave queue", "Check tables"],
            data=standing,
        )

    def _join_queue(self, user_id: int, role: str, text: str, session: Session,
                    intent: str) -> ChatResponse:
        if self._queue.position(user_id) is not None:
            return ChatResponse(
                response_text="You're already in the queue! Say \"What's my queue position?\" "
                              "to check your status.",
                quick_replies=list(responses.QUEUE_MEMBER),
            )

        party_size = extract_number(text)
        if party_size is None:
            party_size = 2
        table_type = extract_table_type(text) or TableType.REGULAR
        result = self._queue.join(user_id, party_size, table_type)
        if not result["success"]:
            return ChatResponse(
                response_text=f"Sorry, I couldn't add you to the queue: {result['message']}.",
                quick_replies=list(responses.BROWSE),
                success=False,
            )
        return ChatResponse(
            response_text=responses.queue_joined(result["entry"], result["estimated_wait_minutes"]),
            quick_replies=list(responses.QUEUE_MEMBER),
            data=result["entry"],
        )

    def _leave_queue(self, user_id: int, role: str, text: str, session: Session,
                     intent: str) -> ChatResponse:
        result = self._queue.leave(user_id)
        if not result["success"]:
            return ChatResponse(
                response_text="You're not currently in the queue.",
                quick_replies=list(responses.QUEUE_OUTSIDER),
            )
        return ChatResponse(
            response_text="You've been removed from the queue. Hope to see you again!",
            quick_replies=["Check tables", "Make reservation"],
        )

    def _view_reservations(self, user_id: int, role: str, text: str, session: Session,
                           intent: str) -> ChatResponse:
        reserved = self._tables.reservations_for_customer(user_id)
        if not reserved:
            return ChatResponse(
                response_text="You don't have any active reservations. Would you like to make one?",
                quick_replies=["Make reservation", "Check tables"],
            )
        return ChatResponse(
            response_text=responses.reservation_list(reserved),
            quick_replies=["Cancel reservation", "Make another"],
            data=reserved,
        )

    def _cancel_reservation(self, user_id: int, role: str, text: str, session: Session,
                            intent: str) -> ChatResponse:
        reserved = self._tables.reservations_for_customer(user_id)
        if not reserved:
            return ChatResponse(
                response_text="You don't have any reservations to cancel.",
                quick_replies=["Make reservation", "Check tables"],
            )
        result = self._reservations.cancel_reservation(reserved[0].id, user_id, role)
        return ChatResponse(
            response_text=result["message"],
            quick_replies=["Make reservation", "Check tables"],
            success=result["success"],
        )

    def _manager_stats(self, user_id: int, role: str, text: str, session: Session,
                       intent: str) -> ChatResponse:
        enabled = [t for t in self._tables.list_tables() if t.is_enabled]
        counts = {status: sum(1 for t in enabled if t.status == status) for status in TableStatus}
        waiting = self._queue.waiting_count()
        return ChatResponse(
            response_text=responses.manager_stats(
                counts[TableStatus.AVAILABLE],
                counts[TableStatus.OCCUPIED],
                counts[TableStatus.RESERVED],
                len(enabled),
                waiting,
            ),
            data={
                "tables": {
                    "total": len(enabled),
                    "available": counts[TableStatus.AVAILABLE],
                    "occupied": counts[TableStatus.OCCUPIED],
                    "reserved": counts[TableStatus.RESERVED],
                },
                "queue": {"waiting": waiting},
            },
        )

    def _nothing_to_confirm(self, user_id: int, role: str, text: str, session: Session,
                            intent: str) -> ChatResponse:
        return ChatResponse(
            response_text=responses.NOTHING_TO_CONFIRM,
            quick_replies=["Make reservation", "Check tables", "Join queue"],
        )

    def _nothing_to_cancel(self, user_id: int, role: str, text: str, session: Session,
                           intent: str) -> ChatResponse:
        return ChatResponse(
            response_text="There's nothing to cancel. How can I help you?",
            quick_replies=list(responses.BROWSE),
        )

    def _unknown(self, user_id: int, role: str, text: str, session: Session,
                 intent: str) -> ChatResponse:
        return ChatResponse(
            response_text=responses.UNKNOWN_REQUEST,
            quick_replies=list(responses.BROWSE),
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _offer_tables(self, session: Session, capacity: int) -> ChatResponse:
        tables = self._find_tables(capacity, session.table_type)
        session.capacity = capacity

        if not tables:
            flow_intent = session.current_intent
            kind = session.table_type.value if session.table_type else None
            self._reset(session, DialogueTrigger.NO_TABLES_FOUND)
            return ChatResponse(
                response_text=responses.no_tables(capacity, kind),
                intent=flow_intent,
                quick_replies=list(responses.NO_TABLES),
            )

        session.available_tables = tables
        self._machine.transition(session, DialogueTrigger.TABLES_FOUND)
        reserving = session.current_intent == intents.MAKE_RESERVATION
        return self._reply(
            session,
            responses.tables_found(tables, capacity, reserving),
            responses.table_choices(tables),
            data=tables,
        )

    def _find_tables(self, capacity: int, table_type: Optional[TableType]) -> list[Table]:
        return self._tables.find_available(capacity, table_type)[: self._dining.max_tables_offered]

    def _valid_party_size(self, capacity: int) -> bool:
        return self._dining.min_party_size <= capacity <= self._dining.max_party_size

    def _step_help(self, step: SessionStep) -> str:
        return responses.step_help(step, self._dining.min_party_size, self._dining.max_party_size)

    def _reset(self, session: Session, trigger: DialogueTrigger) -> None:
        self._machine.transition(session, trigger)
        session.reset()

    @staticmethod
    def _reply(
        session: Session, text: str, quick_replies: list[str], data: Any = None
    ) -> ChatResponse:
        return ChatResponse(
            response_text=text,
            intent=session.current_intent,
            quick_replies=list(quick_replies),
            data=data,
        )

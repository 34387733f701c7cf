"""Conversation session state and chat turn schemas."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from table_assistant.schemas.table_schema import Table, TableType


class SessionStep(str, Enum):
    """Where a user's dialogue currently stands."""

    IDLE = "IDLE"
    AWAITING_CAPACITY = "AWAITING_CAPACITY"
    AWAITING_TABLE_SELECTION = "AWAITING_TABLE_SELECTION"
    AWAITING_DATE = "AWAITING_DATE"
    AWAITING_TIME = "AWAITING_TIME"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"


@dataclass
class Session:
    """
    Per-user dialogue state carried between conversational turns.

    Owned by the session store; the dialogue driver works on a copy and
    writes it back only when the turn completes without a store failure.
    """
    step: SessionStep = SessionStep.IDLE
    current_intent: Optional[str] = None
    capacity: Optional[int] = None
    table_type: Optional[TableType] = None
    available_tables: list[Table] = field(default_factory=list)
    selected_table: Optional[Table] = None
    reservation_date: Optional[date] = None
    reservation_time: Optional[str] = None
    last_updated: datetime = field(default_factory=datetime.now)

    def reset(self) -> None:
        """Drop every collected slot and return to rest."""
        self.step = SessionStep.IDLE
        self.current_intent = None
        self.capacity = None
        self.table_type = None
        self.available_tables = []
        self.selected_table = None
        self.reservation_date = None
        self.reservation_time = None

    def missing_booking_details(self) -> list[str]:
        """Names of the pieces a reservation still needs before commit."""
        missing = []
        if self.selected_table is None:
            missing.append("table selection")
        if self.reservation_date is None:
            missing.append("date")
        if self.reservation_time is None:
            missing.append("time")
        return missing


class ChatResponse(BaseModel):
    """Result of a single conversational turn."""

    response_text: str
    intent: Optional[str] = None
    confidence: int = 0
    quick_replies: list[str] = Field(default_factory=list)
    data: Any = None
    session_step: SessionStep = SessionStep.IDLE
    success: bool = True

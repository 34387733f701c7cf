"""Reservation history and waiting-queue data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from table_assistant.schemas.table_schema import TableType


class ReservationStatus(str, Enum):
    RESERVED = "RESERVED"
    OCCUPIED = "OCCUPIED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ReservationRecord(BaseModel):
    """Audit trail entry for one reservation or seating."""

    id: int
    customer_id: int
    table_id: int
    table_number: int
    table_type: TableType
    party_size: int
    reservation_time: Optional[datetime] = None
    reservation_duration: int
    status: ReservationStatus = ReservationStatus.RESERVED
    created_by_id: Optional[int] = None
    created_by_role: Optional[str] = None
    seated_by_id: Optional[int] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class QueueStatus(str, Enum):
    WAITING = "Waiting"
    SEATED = "Seated"
    CANCELLED = "Cancelled"


class QueueEntry(BaseModel):
    """A party waiting for a walk-in table."""

    id: int
    customer_id: int
    party_size: int
    table_type: TableType = TableType.REGULAR
    position: int
    status: QueueStatus = QueueStatus.WAITING
    joined_at: datetime

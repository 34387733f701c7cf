"""Restaurant table data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TableType(str, Enum):
    REGULAR = "Regular"
    VIP = "VIP"


class TableStatus(str, Enum):
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    RESERVED = "Reserved"


class Table(BaseModel):
    """A restaurant table row as held by the table store."""

    id: int
    table_number: int
    capacity: int
    type: TableType = TableType.REGULAR
    status: TableStatus = TableStatus.AVAILABLE
    current_customer_id: Optional[int] = None
    reservation_time: Optional[datetime] = None
    reservation_duration: Optional[int] = None
    occupied_at: Optional[datetime] = None
    is_enabled: bool = True

    def label(self) -> str:
        """Short description used in dialogue text."""
        return f"Table #{self.table_number} ({self.type.value}, {self.capacity} seats)"

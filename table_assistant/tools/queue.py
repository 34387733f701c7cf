"""
Walk-in waiting queue.

In production, this would be the `queue` relation. Positions are 1-based
and contiguous among waiting parties: whenever a party leaves or is
seated, everyone behind it moves up one place.
"""

import itertools
import logging
import threading
from datetime import datetime
from typing import Callable, Optional, TypedDict

from table_assistant.config import DiningConfig, settings
from table_assistant.schemas.reservation_schema import QueueEntry, QueueStatus
from table_assistant.schemas.table_schema import TableType
from table_assistant.tools.reservations import ReservationService
from table_assistant.tools.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class QueueResult(TypedDict, total=False):
    """Result from a queue write."""

    success: bool
    message: str
    entry: QueueEntry
    estimated_wait_minutes: int


class QueuePosition(TypedDict):
    """Where a waiting party currently stands."""

    entry: QueueEntry
    position: int
    total_waiting: int
    estimated_wait_minutes: int


class WaitingQueue:
    """Thread-safe waiting list for parties without a table."""

    def __init__(
        self,
        settings_store: SettingsStore,
        reservations: ReservationService,
        clock: Callable[[], datetime] = datetime.now,
        config: Optional[DiningConfig] = None,
    ) -> None:
        self._settings = settings_store
        self._reservations = reservations
        self._clock = clock
        self._config = config or settings.dining
        self._lock = threading.Lock()
        self._entries: list[QueueEntry] = []
        self._ids = itertools.count(1)

    def is_enabled(self) -> bool:
        return self._settings.get_bool("queue_enabled", True)

    def estimated_wait(self, position: int) -> int:
        return position * self._config.queue_minutes_per_party

    def join(
        self,
        customer_id: int,
        party_size: int = 2,
        table_type: TableType = TableType.REGULAR,
    ) -> QueueResult:
        if not self.is_enabled():
            return {"success": False, "message": "Queue system is currently disabled"}
        if not self._config.min_party_size <= party_size <= self._config.max_party_size:
            return {
                "success": False,
                "message": (
                    f"Party size must be between {self._config.min_party_size} "
                    f"and {self._config.max_party_size}"
                ),
            }

        max_size = self._settings.get_int("max_queue_size", 50)
        with self._lock:
            waiting = self._waiting_locked()
            if any(e.customer_id == customer_id for e in waiting):
                return {"success": False, "message": "You are already in the queue"}
            if len(waiting) >= max_size:
                return {"success": False, "message": f"Queue is full (max {max_size} parties)"}

            entry = QueueEntry(
                id=next(self._ids),
                customer_id=customer_id,
                party_size=party_size,
                table_type=table_type,
                position=len(waiting) + 1,
                joined_at=self._clock(),
            )
            self._entries.append(entry)

        logger.info(
            "Customer %d joined the queue at position %d (party of %d)",
            customer_id, entry.position, party_size,
        )
        return {
            "success": True,
            "message": "Successfully joined the queue",
            "entry": entry.model_copy(),
            "estimated_wait_minutes": self.estimated_wait(entry.position),
        }

    def leave(self, customer_id: int) -> QueueResult:
        with self._lock:
            entry = self._find_waiting_locked(customer_id)
            if entry is None:
                return {"success": False, "message": "You are not in the queue"}
            self._remove_locked(entry, QueueStatus.CANCELLED)

        logger.info("Customer %d left the queue", customer_id)
        return {"success": True, "message": "Successfully left the queue", "entry": entry.model_copy()}

    def position(self, customer_id: int) -> Optional[QueuePosition]:
        with self._lock:
            entry = self._find_waiting_locked(customer_id)
            if entry is None:
                return None
            total = len(self._waiting_locked())
            return {
                "entry": entry.model_copy(),
                "position": entry.position,
                "total_waiting": total,
                "estimated_wait_minutes": self.estimated_wait(entry.position),
            }

    def seat(self, entry_id: int, table_id: int, seated_by_id: Optional[int] = None) -> QueueResult:
        """Seat a waiting party at an available table and arm its vacate alert."""
        with self._lock:
            entry = next(
                (e for e in self._entries if e.id == entry_id and e.status == QueueStatus.WAITING),
                None,
            )
            if entry is None:
                return {"success": False, "message": "Queue entry not found"}

            result = self._reservations.seat_walk_in(
                table_id, entry.customer_id, entry.party_size, seated_by_id=seated_by_id
            )
            if not result["success"]:
                return {"success": False, "message": result["message"]}
            self._remove_locked(entry, QueueStatus.SEATED)

        return {"success": True, "message": result["message"], "entry": entry.model_copy()}

    def waiting(self) -> list[QueueEntry]:
        with self._lock:
            return [e.model_copy() for e in self._waiting_locked()]

    def waiting_count(self) -> int:
        with self._lock:
            return len(self._waiting_locked())

    def _waiting_locked(self) -> list[QueueEntry]:
        return sorted(
            (e for e in self._entries if e.status == QueueStatus.WAITING),
            key=lambda e: e.position,
        )

    def _find_waiting_locked(self, customer_id: int) -> Optional[QueueEntry]:
        return next(
            (
                e for e in self._entries
                if e.customer_id == customer_id and e.status == QueueStatus.WAITING
            ),
            None,
        )

    def _remove_locked(self, entry: QueueEntry, status: QueueStatus) -> None:
        entry.status = status
        for other in self._entries:
            if other.status == QueueStatus.WAITING and other.position > entry.position:
                other.position -= 1

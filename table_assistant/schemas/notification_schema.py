"""Vacate scheduling and manager notification models."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel


@dataclass
class ScheduledNotification:
    """A pending vacate alert for one table."""
    table_id: int
    table_number: int
    customer_id: int
    customer_name: str
    expected_vacate_time: datetime
    notify_at: datetime
    job_id: str


class ManagerNotification(BaseModel):
    """An alert in the manager-facing feed."""

    id: int
    table_id: int
    table_number: int
    customer_name: str
    expected_vacate_time: datetime
    message: str
    created_at: datetime
    read: bool = False


class TableAlert(BaseModel):
    """A table expected to free up soon."""

    table_id: int
    table_number: int
    customer_name: str
    expected_vacate_time: datetime
    minutes_remaining: int

"""User records as seen by the booking engine."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Role(str, Enum):
    CUSTOMER = "Customer"
    MANAGER = "Manager"
    ADMIN = "Admin"


class User(BaseModel):
    """A verified user known to the user directory."""
    id: int
    name: str
    role: Role = Role.CUSTOMER
    email: Optional[str] = None
    contact_info: Optional[str] = None

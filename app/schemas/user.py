# app/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "admin"]


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: str
    name: str
    phone: str | None
    role: Role
    created_at: datetime


class AccountDeleted(SQLModel):
    """Result of deleting one's own account."""

    message: str
    anonymized_orders: int

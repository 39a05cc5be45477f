# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: MUST match the identity provider's user id (JWT "sub")

    Role:
      - "user" | "admin"
      - "guest" is represented by the absence of a row / missing token.

    This table is *not* responsible for password hashes. The identity
    provider owns credentials; we only mirror identity, name, phone,
    and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches the JWT 'sub' claim",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from the identity provider",
    )

    # Display name for the user (e.g. customer name)
    name: str = Field(
        max_length=50,
        description="Customer display name; first part of email by default",
    )

    phone: str | None = Field(
        default=None,
        max_length=20,
        description="Optional contact phone",
    )

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

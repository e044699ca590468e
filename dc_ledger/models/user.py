"""
Account models used by the identity service.

The ledger itself only ever sees the owner id; these models live here so
the storage backends can persist accounts next to people and transactions.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dc_ledger.models.ledger import utc_now


class User(BaseModel):
    """A stored account. Never hand this to the presentation layer."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password_hash: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now)

    def to_public(self) -> "PublicUser":
        return PublicUser(id=self.id, name=self.name, email=self.email)


class PublicUser(BaseModel):
    """Account details that are safe to show."""
    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    email: str


class AuthSession(BaseModel):
    """Result of a successful register or login."""
    model_config = ConfigDict(frozen=True)

    token: str
    user: PublicUser

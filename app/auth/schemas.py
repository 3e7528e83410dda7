from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Authenticated caller as asserted by the access token."""

    id: UUID
    role: str

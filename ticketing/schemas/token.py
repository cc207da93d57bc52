# ticketing/schemas/token.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    ATTENDEE = "ATTENDEE"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    # Parses 'orgId' from the token and maps it to 'org_id'.
    org_id: Optional[str] = Field(default=None, alias="orgId")
    role: UserRole = UserRole.ATTENDEE
    name: Optional[str] = None
    exp: int  # Standard claim for expiration time

    model_config = {
        "populate_by_name": True,  # Allow populating by alias
        "from_attributes": True,
    }

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

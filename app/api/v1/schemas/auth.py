"""
Identity schemas
The caller's profile as resolved from WorkOS
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkOSUserResponse(BaseModel):
    object: str = Field("user", description="Object")
    id: str = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    first_name: str | None = Field(None, description="User first name")
    last_name: str | None = Field(None, description="User last name")
    email_verified: bool = Field(False, description="User email verified")
    profile_picture_url: str | None = Field(
        None, description="User profile picture URL"
    )
    created_at: Optional[datetime] = Field(None, description="User created at")
    updated_at: Optional[datetime] = Field(None, description="User updated at")

    model_config = ConfigDict(from_attributes=True)

    @property
    def display_name(self) -> str:
        """
        Name shown next to the user's reviews.

        "First Last" when a first name is set, otherwise the local part of
        the email address, otherwise "Anonymous".
        """
        if self.first_name:
            return f"{self.first_name} {self.last_name}" if self.last_name else self.first_name
        if self.email:
            return self.email.split("@", 1)[0]
        return "Anonymous"

    @property
    def avatar_url(self) -> Optional[str]:
        return self.profile_picture_url or None

"""
User Models for the Football Journal backend

Users are owned by the authentication collaborator; the journal only reads
them to resolve roles, author identity and the author's profile image.
"""

from datetime import datetime, timezone
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict

# Helper function for timezone-aware UTC datetime
def utc_now():
    """Get current UTC datetime (timezone-aware)"""
    return datetime.now(timezone.utc)

class UserRole(str, Enum):
    """User role enumeration"""

    USER = "user"
    WRITER = "writer"
    ADMIN = "admin"

# Roles allowed to author articles
EDITORIAL_ROLES = (UserRole.WRITER, UserRole.ADMIN)

class User(BaseModel):
    """
    User as stored in Firestore

    Collection: users/
    Document ID: uid
    """

    uid: str = Field(..., description="User identifier (JWT subject)")
    email: Optional[str] = None
    name: str = Field(default="User", description="Display name")
    role: UserRole = Field(default=UserRole.USER)
    profile_image: Optional[str] = Field(
        default=None, description="URL to profile image", alias="profileImage"
    )
    created_at: Optional[datetime] = Field(
        default_factory=utc_now, alias="createdAt")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "uid": "writer_123",
                "email": "writer@example.com",
                "name": "Jane Writer",
                "role": "writer",
                "profileImage": "/uploads/profile/jane.jpg",
            }
        }
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# Helper function to convert Firestore document to User model
def firestore_user_to_model(doc_data: dict, uid: str) -> User:
    return User.model_validate({**doc_data, "uid": uid})

"""Pydantic models shared by the store, the API and the client."""

from datetime import datetime
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Level = Literal["beginner", "intermediate", "advanced"]

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialising to the camelCase names used on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Course(CamelModel):
    """A catalog course."""

    id: str
    title: str
    description: str
    category: str
    level: Level
    duration: int = Field(..., gt=0, description="Length in hours")
    published: bool
    user_id: str = Field(..., description="Owner reference, not enforced")
    created_at: datetime
    updated_at: datetime


class PublicUser(CamelModel):
    """User fields safe to return to clients."""

    id: str
    username: str
    email: str
    last_login: Optional[datetime] = None


class User(PublicUser):
    """Stored user record including the plaintext password."""

    password: str

    def public(self) -> PublicUser:
        return PublicUser(
            id=self.id,
            username=self.username,
            email=self.email,
            last_login=self.last_login,
        )


class Profile(PublicUser):
    """Public user data plus the number of courses they own."""

    courses_created: int = 0


class AuthResult(CamelModel):
    """Successful login payload."""

    token: str
    user: PublicUser


class MessageData(CamelModel):
    message: str


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""

    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None

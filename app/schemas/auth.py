import uuid

from pydantic import EmailStr, ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel

from app.schemas.user import MIN_PASSWORD_LENGTH, Role


class LoginRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class RegisterRequest(SQLModel):
    """
    Self sign-up from the register form.

    Rules:
      - password must be at least 6 characters
      - confirm_password must match password
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def check_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("passwords do not match")
        return self


class SessionRead(SQLModel):
    """Tokens handed back to the caller after sign-in."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user_id: uuid.UUID


class CurrentUser(SQLModel):
    """Auth identity joined with its profile row."""

    id: uuid.UUID
    email: str
    name: str | None = None
    role: Role

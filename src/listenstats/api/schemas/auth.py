"""API schemas for registration and login."""

from pydantic import BaseModel, Field


# Both fields are optional here so a missing one reaches AuthService and gets the
# "Email and password are required" message instead of a generic validation error.
class CredentialsRequest(BaseModel):
    """Email/password pair for /register and /login."""

    email: str | None = Field(default=None, description="Account email")
    password: str | None = Field(default=None, description="Plain-text password")


class RegisterResponse(BaseModel):
    id: int = Field(..., description="New user id")


class LoginResponse(BaseModel):
    """Bearer token returned by /login."""

    accessToken: str = Field(..., description="JWT, valid for one hour")  # noqa: N815

"""Session authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Session configuration for account holders.

    Logging in happens elsewhere; this service only validates the session
    cookie it is handed.
    """

    session_expiry_hours: int = Field(
        default=2160,  # 90 days
        description="Session lifetime in hours",
        ge=1,
        le=2160,
    )
    session_extend_on_activity: bool = Field(
        default=True,
        description="Whether to slide session expiry forward on each request",
    )
    session_cookie_name: str = Field(
        default="session_token",
        description="Cookie carrying the session token",
        min_length=1,
    )

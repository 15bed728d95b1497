"""Session authentication and request throttling."""

from auth.exceptions import AuthError, SessionExpiredError, RateLimitedError
from auth.types import Session
from auth.config import AuthConfig
from auth.rate_limiter import RateLimiter
from auth.session import SessionManager
from auth.security_middleware import AuthMiddleware

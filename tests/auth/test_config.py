"""Tests for auth/config.py - session configuration bounds."""

import pytest
from pydantic import ValidationError

from auth.config import AuthConfig


class TestAuthConfig:

    def test_defaults(self):
        config = AuthConfig()

        assert config.session_expiry_hours == 2160  # 90 days
        assert config.session_extend_on_activity is True
        assert config.session_cookie_name == "session_token"

    @pytest.mark.parametrize("hours", [0, 2161])
    def test_session_expiry_bounds(self, hours):
        with pytest.raises(ValidationError):
            AuthConfig(session_expiry_hours=hours)

    def test_cookie_name_required(self):
        with pytest.raises(ValidationError):
            AuthConfig(session_cookie_name="")

"""Tests for the User entity."""

import time

import pytest

from oidc_session.core.exceptions import StorageError
from oidc_session.entities.navigation import SigninResponse
from oidc_session.entities.user import User


class TestUser:
    """Tests for User serialization and token state."""

    def test_storage_string_round_trip(self, sample_user):
        """Test a user survives serialization unchanged."""
        assert User.from_storage_string(sample_user.to_storage_string()) == sample_user

    def test_from_storage_string_invalid_json(self):
        """Test corrupted storage raises StorageError."""
        with pytest.raises(StorageError):
            User.from_storage_string("{not json")

    def test_from_storage_string_not_object(self):
        """Test a JSON value other than an object is rejected."""
        with pytest.raises(StorageError):
            User.from_storage_string("[1, 2]")

    def test_expiry(self):
        """Test expires_in and expired follow expires_at."""
        now = int(time.time())

        assert User().expires_in is None
        assert User().expired is None
        assert User(expires_at=now + 100).expired is False
        assert User(expires_at=now - 1).expired is True
        assert 95 <= User(expires_at=now + 100).expires_in <= 100

    def test_scopes(self):
        """Test scope is split into a list."""
        assert User(scope="openid profile email").scopes == ["openid", "profile", "email"]
        assert User().scopes == []

    def test_clear_access_token(self, sample_user):
        """Test only access-token fields are cleared."""
        sample_user.clear_access_token()

        assert sample_user.access_token is None
        assert sample_user.expires_at is None
        assert sample_user.token_type is None
        assert sample_user.id_token == "header.payload.signature"
        assert sample_user.refresh_token == "refresh-tok"
        assert sample_user.session_state == "abc"
        assert sample_user.profile == {"sub": "u1", "name": "Alice"}

    def test_from_signin_response(self):
        """Test a processed response maps onto a user."""
        response = SigninResponse(
            profile={"sub": "u1"},
            access_token="tok",
            id_token="a.b.c",
            token_type="Bearer",
            expires_at=123,
            session_state="abc",
            refresh_token="r",
            scope="openid",
            state={"return_to": "/home"},
        )

        user = User.from_signin_response(response)

        assert user.profile == {"sub": "u1"}
        assert user.access_token == "tok"
        assert user.expires_at == 123
        assert user.state == {"return_to": "/home"}
        assert user.profile is not response.profile

"""Tests for access token decoding and principal resolution."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from blog_comments.auth.dependencies import get_token_from_header, principal_from_token
from blog_comments.auth.permissions import UserRole
from blog_comments.auth.security import decode_access_token
from blog_comments.config import get_settings


def encode(**claims) -> str:
    settings = get_settings()
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


class TestDecodeAccessToken:
    """Tests for decode_access_token."""

    def test_valid_token(self) -> None:
        user_id = str(uuid4())
        payload = decode_access_token(encode(sub=user_id, type="access"))
        assert payload["sub"] == user_id

    def test_type_defaults_to_access(self) -> None:
        assert decode_access_token(encode(sub=str(uuid4())))["sub"]

    def test_expired(self) -> None:
        token = encode(sub=str(uuid4()), exp=datetime.now(UTC) - timedelta(minutes=1))
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_refresh_token_rejected(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token(encode(sub=str(uuid4()), type="refresh"))

    def test_missing_subject(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token(encode(type="access"))

    def test_bad_signature(self) -> None:
        token = jwt.encode({"sub": str(uuid4())}, "not-the-secret", algorithm="HS256")
        with pytest.raises(JWTError):
            decode_access_token(token)


class TestPrincipalFromToken:
    """Tests for principal_from_token."""

    def test_admin_claims(self) -> None:
        user_id = uuid4()
        principal = principal_from_token(encode(sub=str(user_id), role="admin", name="Mod"))

        assert principal.id == user_id
        assert principal.role is UserRole.ADMIN
        assert principal.is_admin is True
        assert principal.display_name == "Mod"

    def test_defaults_to_user_without_name(self) -> None:
        principal = principal_from_token(encode(sub=str(uuid4())))

        assert principal.role is UserRole.USER
        assert principal.display_name == "Anonymous"

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(JWTError):
            principal_from_token(encode(sub=str(uuid4()), role="owner"))

    def test_non_uuid_subject_rejected(self) -> None:
        with pytest.raises(JWTError):
            principal_from_token(encode(sub="user-42"))


class TestTokenFromHeader:
    """Bearer header parsing."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
        ],
    )
    def test_parsing(self, header: str, expected) -> None:
        request = type("FakeRequest", (), {"headers": {"Authorization": header}})()
        assert get_token_from_header(request) == expected

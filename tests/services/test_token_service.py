from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from watchtime.core.config import SETTINGS
from watchtime.services import token_service


def test_round_trip_returns_claims() -> None:
    token = token_service.create_access_token(sub="u1")
    claims = token_service.decode_access_token(token)
    assert claims["sub"] == "u1"
    assert "exp" in claims
    assert "jti" in claims


def test_expired_token_raises() -> None:
    token = token_service.create_access_token(sub="u1", ttl=timedelta(seconds=-1))
    with pytest.raises(jwt.ExpiredSignatureError):
        token_service.decode_access_token(token)


def test_wrong_secret_rejected() -> None:
    forged = jwt.encode(
        {"sub": "u1", "exp": 9_999_999_999}, "not-the-secret", algorithm="HS256"
    )
    with pytest.raises(jwt.InvalidTokenError):
        token_service.decode_access_token(forged)


def test_unsigned_token_rejected() -> None:
    unsigned = jwt.encode({"sub": "u1", "exp": 9_999_999_999}, None, algorithm="none")
    with pytest.raises(jwt.InvalidTokenError):
        token_service.decode_access_token(unsigned)


def test_token_without_exp_rejected() -> None:
    token = jwt.encode(
        {"sub": "u1"}, SETTINGS.jwt_secret, algorithm=SETTINGS.jwt_algorithm
    )
    with pytest.raises(jwt.MissingRequiredClaimError):
        token_service.decode_access_token(token)


@pytest.mark.parametrize(
    "claims,expected",
    [
        ({"sub": "u1"}, "u1"),
        ({"userId": "u2"}, "u2"),
        ({"sub": "u1", "userId": "u2"}, "u1"),
        ({"userId": 42}, "42"),
        ({"sub": "   "}, None),
        ({}, None),
    ],
)
def test_subject_of(claims: dict, expected: str | None) -> None:
    assert token_service.subject_of(claims) == expected

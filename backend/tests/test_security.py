import pytest
from jose import JWTError, jwt

from campus.core.config import settings
from campus.core.security import (
    ACCESS_TOKEN,
    PASSWORD_RESET_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    create_password_reset_token,
    create_token_pair,
    decode_token,
    get_password_hash,
    safe_decode_token,
    verify_password,
)


def test_password_hash_roundtrip_and_garbage_hash():
    hashed = get_password_hash("Secret123")
    assert hashed != "Secret123"
    assert verify_password("Secret123", hashed)
    assert not verify_password("secret123", hashed)
    assert not verify_password("Secret123", "not-a-bcrypt-hash")


def test_token_pair_carries_types_and_subject():
    pair = create_token_pair(subject="7", email="a@example.com")
    access = decode_token(pair["access_token"], expected_type=ACCESS_TOKEN)
    refresh = decode_token(pair["refresh_token"], expected_type=REFRESH_TOKEN)
    assert access["sub"] == "7" and refresh["sub"] == "7"
    assert access["email"] == "a@example.com"


def test_tokens_issued_back_to_back_differ():
    first = create_token_pair(subject="7", email="a@example.com")
    second = create_token_pair(subject="7", email="a@example.com")
    assert first["refresh_token"] != second["refresh_token"]
    assert first["access_token"] != second["access_token"]


def test_refresh_token_is_signed_with_its_own_secret():
    pair = create_token_pair(subject="7", email="a@example.com")
    with pytest.raises(JWTError):
        jwt.decode(pair["refresh_token"], settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def test_wrong_token_type_is_rejected():
    reset = create_password_reset_token(subject="7", email="a@example.com")
    assert decode_token(reset, expected_type=PASSWORD_RESET_TOKEN)["sub"] == "7"
    with pytest.raises(JWTError):
        decode_token(reset, expected_type=ACCESS_TOKEN)
    assert safe_decode_token(reset, expected_type=ACCESS_TOKEN) is None


def test_expired_access_token_is_rejected():
    token = create_access_token(subject="7", email="a@example.com", expires_minutes=-1)
    assert safe_decode_token(token, expected_type=ACCESS_TOKEN) is None

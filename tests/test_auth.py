import jwt
import pytest

from config import settings
from core.errors import Unauthorized
from services.auth import check_password, create_token, hash_password, verify_token


def test_password_roundtrip():
    h = hash_password("s3cret!")
    assert h != "s3cret!"
    assert check_password("s3cret!", h)
    assert not check_password("wrong", h)
    assert not check_password("s3cret!", "not-a-bcrypt-hash")


def test_token_carries_user_id():
    assert verify_token(create_token(42, "asha@example.com")) == 42


@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_missing_or_malformed_token(token):
    with pytest.raises(Unauthorized):
        verify_token(token)


def test_expired_and_forged_tokens():
    expired = jwt.encode({"sub": "1", "exp": 0}, settings.jwt_secret, algorithm="HS256")
    forged = jwt.encode({"sub": "1"}, "someone-else", algorithm="HS256")
    for token in (expired, forged):
        with pytest.raises(Unauthorized):
            verify_token(token)

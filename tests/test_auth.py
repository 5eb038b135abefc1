import jwt
import pytest

from minispace.auth import DevAuthProvider
from minispace.auth.dev import DEV_USER_ID
from minispace.auth.dev import decode_jwt_payload
from minispace.exceptions import InvalidSessionError
from minispace.exceptions import InvalidTokenError


@pytest.fixture
def provider() -> DevAuthProvider:
    return DevAuthProvider()


def test_decode_jwt_payload(id_token):
    assert decode_jwt_payload(id_token(uid="u1", name="Alice")) == {"uid": "u1", "name": "Alice"}


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.!!!.c", "a.bm90IGpzb24.c"])
def test_decode_jwt_payload_rejects_malformed(token):
    with pytest.raises(InvalidTokenError):
        decode_jwt_payload(token)


def test_decode_jwt_payload_ignores_signature_and_expiry():
    token = jwt.encode({"uid": "u1", "exp": 1}, "some-other-key-" + "y" * 32, algorithm="HS256")

    assert decode_jwt_payload(token) == {"uid": "u1", "exp": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize("claim", ["user_id", "sub", "uid"])
async def test_verify_bearer_token_subject_claims(provider, id_token, claim):
    decoded = await provider.verify_bearer_token(id_token(**{claim: "u1"}))

    assert decoded.subject_id == "u1"
    assert decoded.claims["uid"] == "u1"
    assert decoded.claims["iss"] == "https://securetoken.google.com/minispace-app-dev"


@pytest.mark.asyncio
async def test_verify_bearer_token_without_subject(provider, id_token):
    with pytest.raises(InvalidTokenError, match="does not contain a user ID"):
        await provider.verify_bearer_token(id_token(email="a@example.com"))


@pytest.mark.asyncio
async def test_session_token_is_the_id_token(provider, id_token):
    token = id_token(uid="u1")
    blob = await provider.create_session_token(token, ttl_ms=1000)

    assert blob == token
    assert (await provider.verify_session_token(blob)).subject_id == "u1"


@pytest.mark.asyncio
@pytest.mark.parametrize("blob", [None, "", "not-a-jwt"])
async def test_verify_session_rejects_missing_without_fallback(provider, blob):
    with pytest.raises(InvalidSessionError):
        await provider.verify_session_token(blob)


@pytest.mark.asyncio
async def test_verify_session_with_fallback_user():
    provider = DevAuthProvider(fallback_user_id=DEV_USER_ID)

    decoded = await provider.verify_session_token(None)

    assert decoded.subject_id == DEV_USER_ID


@pytest.mark.asyncio
async def test_verify_session_wraps_token_errors(provider, id_token):
    with pytest.raises(InvalidSessionError):
        await provider.verify_session_token(id_token(email="a@example.com"))

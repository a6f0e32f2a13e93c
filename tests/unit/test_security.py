from datetime import timedelta

from flashhold.core.security import (
    create_access_token,
    decode_token,
    sign_payload,
    verify_signature,
)


def test_access_token_round_trip():
    token = create_access_token({"sub": 42})
    payload = decode_token(token)

    assert payload["sub"] == "42"
    assert payload["type"] == "access"
    assert payload["jti"]


def test_expired_token_is_rejected():
    token = create_access_token({"sub": 1}, expires_delta=timedelta(seconds=-5))
    assert decode_token(token) is None


def test_garbage_token_is_rejected():
    assert decode_token("not-a-jwt") is None


def test_signature_matches_body_and_secret():
    body = b'{"order_id": 1, "status": "paid"}'
    signature = sign_payload(body, "whsec")

    assert verify_signature(body, signature, "whsec")
    assert not verify_signature(body, signature, "other")
    assert not verify_signature(body + b" ", signature, "whsec")
    assert not verify_signature(body, None, "whsec")
    assert not verify_signature(body, "", "whsec")

from zoomzone.core.security import (
    create_access_token,
    create_oauth_state,
    decode_access_token,
    hash_password,
    verify_oauth_state,
    verify_password,
)
from zoomzone.models.integration import GOOGLE, ZOOM


def test_password_round_trip():
    hashed = hash_password("correct horse")
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)


def test_empty_hash_never_verifies():
    assert not verify_password("anything", "")


def test_access_token_carries_subject():
    assert decode_access_token(create_access_token("owner@example.com")) == "owner@example.com"


def test_oauth_state_is_bound_to_provider():
    state = create_oauth_state(GOOGLE)
    assert verify_oauth_state(state, GOOGLE)
    assert not verify_oauth_state(state, ZOOM)
    assert not verify_oauth_state(None, GOOGLE)
    assert not verify_oauth_state("garbage", GOOGLE)


def test_token_types_are_not_interchangeable():
    assert decode_access_token(create_oauth_state(GOOGLE)) is None
    assert not verify_oauth_state(create_access_token(GOOGLE), GOOGLE)

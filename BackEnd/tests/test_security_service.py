from app.services.security_service import (
    generate_session_token,
    hash_password,
    verify_password,
)


def test_hash_uses_argon2id_parameters():
    hashed = hash_password("clave-segura-1")

    assert hashed.startswith("$argon2id$")
    assert "m=65536,t=3,p=1" in hashed


def test_verify_round_trip():
    hashed = hash_password("clave-segura-1")

    assert verify_password("clave-segura-1", hashed)
    assert not verify_password("clave-segura-2", hashed)


def test_same_password_hashes_differently():
    assert hash_password("clave-segura-1") != hash_password("clave-segura-1")


def test_malformed_hash_is_rejected():
    assert verify_password("x" * 10, "$argon2id$garbage") is False
    assert verify_password("x" * 10, "texto-plano") is False


def test_missing_hash_or_password_is_rejected():
    hashed = hash_password("clave-segura-1")

    assert verify_password("x" * 10, "") is False
    assert verify_password("x" * 10, None) is False
    assert verify_password("", hashed) is False


def test_session_token_is_256_bit_hex():
    token = generate_session_token()

    assert len(token) == 64
    int(token, 16)
    assert generate_session_token() != token

import pytest

from app.services.crypto_service import (
    DECRYPTION_ERROR,
    CryptoVault,
    blind_index,
    looks_encrypted,
)


def test_encrypt_produces_hex_triplet(vault):
    stored = vault.encrypt("Juan Pérez")

    iv, tag, ciphertext = stored.split(":")
    assert len(iv) == 24
    assert len(tag) == 32
    assert len(ciphertext) == len("Juan Pérez".encode("utf-8")) * 2
    assert looks_encrypted(stored)


def test_decrypt_returns_original(vault):
    assert vault.decrypt(vault.encrypt("ana@empresa.cl")) == "ana@empresa.cl"


def test_same_plaintext_encrypts_differently(vault):
    """Cada cifrado usa un nonce nuevo."""
    assert vault.encrypt("mismo texto") != vault.encrypt("mismo texto")


def test_empty_values_are_not_encrypted(vault):
    assert vault.encrypt("") is None
    assert vault.encrypt(None) is None


def test_plain_text_passes_through(vault):
    assert vault.decrypt("Nombre sin cifrar") == "Nombre sin cifrar"
    assert vault.decrypt("a:b:c") == "a:b:c"
    assert vault.decrypt(None) is None


def test_tampered_ciphertext_returns_sentinel(vault):
    iv, tag, ciphertext = vault.encrypt("dato sensible").split(":")
    flipped = ("0" if ciphertext[0] != "0" else "1") + ciphertext[1:]

    result = vault.decrypt(f"{iv}:{tag}:{flipped}")

    assert result == DECRYPTION_ERROR
    assert CryptoVault.is_decryption_error(result)


def test_wrong_key_returns_sentinel(vault):
    other = CryptoVault(bytes.fromhex("b2" * 32))
    assert other.decrypt(vault.encrypt("secreto")) == DECRYPTION_ERROR


def test_vault_rejects_short_key():
    with pytest.raises(ValueError):
        CryptoVault(b"corta")


def test_blind_index_is_normalized():
    assert blind_index("  Ana@Empresa.CL ") == blind_index("ana@empresa.cl")
    assert len(blind_index("ana@empresa.cl")) == 64


def test_blind_index_differs_between_values():
    assert blind_index("ana@empresa.cl") != blind_index("ana@empresa.com")


@pytest.mark.parametrize("value, fragment", [
    ("ana@empresa.cl", "ana"),
    ("ana@empresa.cl", "empresa"),
    ("11.111.111-1", "11.111"),
    ("Juan Soto", "soto"),
])
def test_blind_index_hides_original_text(value, fragment):
    digest = blind_index(value)
    assert fragment not in digest
    assert value.strip().lower() not in digest


def test_blind_index_of_empty_is_none():
    assert blind_index("") is None
    assert blind_index("   ") is None
    assert blind_index(None) is None

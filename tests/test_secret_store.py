try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from storefront.services import SecretCipher, SecretStore
from storefront.services.secret_cipher import CIPHERTEXT_PREFIX

from conftest import stored_oauth_token


def test_cipher_roundtrip() -> None:
    cipher = SecretCipher(secret="super-secret-key")

    encrypted = cipher.encrypt("sensitive-token")

    assert encrypted.startswith(CIPHERTEXT_PREFIX)
    assert "sensitive-token" not in encrypted
    assert cipher.decrypt(encrypted) == "sensitive-token"


def test_cipher_rejects_bad_ciphertext() -> None:
    cipher = SecretCipher(secret="another-secret")

    with pytest.raises(ValueError):
        cipher.decrypt("fernet:not-valid")


def test_cipher_requires_a_key() -> None:
    with pytest.raises(ValueError):
        SecretCipher(secret="")


def test_values_are_encrypted_at_rest(services) -> None:
    store = SecretStore(services.secrets_ns, SecretCipher(secret="k"))

    store.put("STRIPE_KEY", "sk_live_1")

    raw = services.secrets_ns.get("secret:STRIPE_KEY")
    assert raw.startswith(CIPHERTEXT_PREFIX)
    assert store.get("STRIPE_KEY") == "sk_live_1"


def test_plaintext_written_before_encryption_is_still_readable(services) -> None:
    services.secrets_ns.put("secret:LEGACY", "plain-value")
    store = SecretStore(services.secrets_ns, SecretCipher(secret="k"))

    assert store.get("LEGACY") == "plain-value"


def test_encrypted_value_without_key_is_an_error(services) -> None:
    SecretStore(services.secrets_ns, SecretCipher(secret="k")).put("A", "b")

    with pytest.raises(ValueError):
        SecretStore(services.secrets_ns).get("A")


def test_oauth_token_roundtrip_keyed_by_provider(services) -> None:
    services.secret_store.put_oauth_token("GitHub", {"access_token": "one"})
    services.secret_store.put_oauth_token("github", {"access_token": "two"})

    assert stored_oauth_token(services, "github") == {"access_token": "two"}
    assert services.secrets_ns.get("secret:oauth:github:token") is not None
    assert stored_oauth_token(services, "gitlab") is None


def test_initialization_flag(services) -> None:
    assert services.secret_store.is_initialized() is False
    assert services.secret_store.mark_initialized() is True
    assert services.secret_store.is_initialized() is True
    assert services.secret_store.mark_initialized() is False

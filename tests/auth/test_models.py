from typing import Any

import pytest
from pydantic import ValidationError

from socialauth.auth.models import ALIPAY_GATEWAY_URL, AlipayAuthConfigModel
from socialauth.auth.signing import SignatureScheme


def test_rsa2_is_the_default_scheme(app_keys: Any) -> None:
    config = AlipayAuthConfigModel(client_id="cid", private_key=app_keys.private_body)
    assert config.sign_scheme is SignatureScheme.RSA2
    assert config.sign_type == "RSA2"
    assert config.gateway_url == ALIPAY_GATEWAY_URL
    assert config.timezone == "Asia/Shanghai"
    assert config.verifies_responses is False


def test_keyed_hash_sign_type_follows_algorithm() -> None:
    config = AlipayAuthConfigModel(
        client_id="cid",
        client_secret="s3cr3t",
        sign_scheme="keyed_hash",
        hash_algorithm="sha256",
    )
    assert config.sign_type == "SHA256"


def test_keyed_hash_requires_secret() -> None:
    with pytest.raises(ValidationError, match="client_secret"):
        AlipayAuthConfigModel(client_id="cid", sign_scheme="keyed_hash")


def test_keyed_hash_rejects_unknown_algorithm() -> None:
    with pytest.raises(ValidationError, match="hash algorithm"):
        AlipayAuthConfigModel(
            client_id="cid",
            client_secret="s3cr3t",
            sign_scheme="keyed_hash",
            hash_algorithm="crc32",
        )


@pytest.mark.parametrize("algorithm", ["shake_128", "SHAKE_256"])
def test_keyed_hash_rejects_variable_length_algorithm(algorithm: str) -> None:
    with pytest.raises(ValidationError, match="hash algorithm"):
        AlipayAuthConfigModel(
            client_id="cid",
            client_secret="s3cr3t",
            sign_scheme="keyed_hash",
            hash_algorithm=algorithm,
        )


def test_rsa2_requires_private_key() -> None:
    with pytest.raises(ValidationError, match="private_key"):
        AlipayAuthConfigModel(client_id="cid")


def test_private_key_sources_are_exclusive() -> None:
    with pytest.raises(ValidationError, match="mutually exclusive"):
        AlipayAuthConfigModel(client_id="cid", private_key="abc", private_key_path="/k.pem")


def test_public_key_sources_are_exclusive() -> None:
    with pytest.raises(ValidationError, match="mutually exclusive"):
        AlipayAuthConfigModel(
            client_id="cid",
            private_key="abc",
            alipay_public_key="abc",
            alipay_public_key_path="/alipay.pem",
        )


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ValidationError, match="timezone"):
        AlipayAuthConfigModel(client_id="cid", private_key="abc", timezone="Mars/Olympus")


def test_config_is_immutable() -> None:
    config = AlipayAuthConfigModel(client_id="cid", private_key="abc")
    with pytest.raises(ValidationError):
        config.client_id = "other"  # type: ignore[misc]


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        AlipayAuthConfigModel(client_id="cid", private_key="abc", app_secret="x")

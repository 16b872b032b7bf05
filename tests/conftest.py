"""
Global pytest configuration and fixtures.
"""

from datetime import datetime

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from socialauth.auth.models import AlipayAuthConfigModel
from socialauth.auth.signing import SignatureScheme


class RsaKeyPair:
    """PEM and bare-body renderings of one RSA key pair."""

    def __init__(self) -> None:
        self.key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = self.key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        ).decode("ascii")
        self.public_pem = (
            self.key.public_key()
            .public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode("ascii")
        )

    @staticmethod
    def _body(pem: str) -> str:
        return "".join(line for line in pem.strip().splitlines() if not line.startswith("-----"))

    @property
    def private_body(self) -> str:
        return self._body(self.private_pem)

    @property
    def public_body(self) -> str:
        return self._body(self.public_pem)


@pytest.fixture(scope="session")
def app_keys() -> RsaKeyPair:
    """The application's own key pair, used to sign requests."""
    return RsaKeyPair()


@pytest.fixture(scope="session")
def alipay_keys() -> RsaKeyPair:
    """The provider's key pair, used to sign responses."""
    return RsaKeyPair()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 3, 1, 12, 30, 45)


@pytest.fixture
def keyed_hash_config() -> AlipayAuthConfigModel:
    return AlipayAuthConfigModel(
        client_id="2021000000000000",
        client_secret="s3cr3t",
        sign_scheme=SignatureScheme.KEYED_HASH,
        redirect_uri="https://server/alipay/callback",
    )


@pytest.fixture
def rsa_config(app_keys: RsaKeyPair) -> AlipayAuthConfigModel:
    return AlipayAuthConfigModel(
        client_id="2021000000000000",
        private_key=app_keys.private_body,
        redirect_uri="https://server/alipay/callback",
    )


@pytest.fixture
def verifying_config(app_keys: RsaKeyPair, alipay_keys: RsaKeyPair) -> AlipayAuthConfigModel:
    return AlipayAuthConfigModel(
        client_id="2021000000000000",
        private_key=app_keys.private_body,
        alipay_public_key=alipay_keys.public_body,
        redirect_uri="https://server/alipay/callback",
    )

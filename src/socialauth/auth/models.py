"""Pydantic models for the auth module.

## Security-relevant configuration fields

- `client_secret`, `private_key` and `private_key_path` hold signing material.
  They are never logged and never leave the process except as signatures.
- `alipay_public_key` decides whether provider responses are trusted without
  a signature check. Leaving it unset disables response verification.
- `scope` affects what the user is asked to grant at the provider.

Treat changes to these fields as security-sensitive and ensure they are covered by
tests and documented behavior.
"""

import hashlib
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator

from socialauth.models import SdkBaseModel

from .signing import SignatureScheme

ALIPAY_AUTH_URL = "https://openauth.alipay.com/oauth2/publicAppAuthorize.htm"
ALIPAY_GATEWAY_URL = "https://openapi.alipay.com/gateway.do"


class AlipayAuthConfigModel(SdkBaseModel):
    """Alipay OAuth provider configuration.

    `sign_scheme` picks the signing generation: RSA2 needs `private_key` or
    `private_key_path`, the legacy keyed hash needs `client_secret`.
    """

    client_id: str
    client_secret: str | None = None
    private_key: str | None = None
    private_key_path: str | None = None
    alipay_public_key: str | None = None
    alipay_public_key_path: str | None = None
    sign_scheme: SignatureScheme = SignatureScheme.RSA2
    # Only used by the keyed-hash scheme.
    hash_algorithm: str = "md5"
    callback_path: str = "/alipay/callback"
    redirect_uri: str | None = None
    auth_url: str = ALIPAY_AUTH_URL
    gateway_url: str = ALIPAY_GATEWAY_URL
    scope: str = "auth_user"
    format: str = "JSON"
    charset: str = "utf-8"
    version: str = "1.0"
    # The gateway checks timestamps against its own clock (China Standard Time).
    timezone: str = "Asia/Shanghai"

    @model_validator(mode="after")
    def _check_signing_material(self) -> "AlipayAuthConfigModel":
        if self.sign_scheme is SignatureScheme.KEYED_HASH:
            if not self.client_secret:
                raise ValueError("client_secret is required for the keyed_hash sign scheme")
            if self.hash_algorithm.lower() not in hashlib.algorithms_available:
                raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")
            if hashlib.new(self.hash_algorithm.lower()).digest_size == 0:
                raise ValueError(
                    f"Variable-length hash algorithm is not supported: {self.hash_algorithm}"
                )
        else:
            if not self.private_key and not self.private_key_path:
                raise ValueError("private_key or private_key_path is required for RSA2")
            if self.private_key and self.private_key_path:
                raise ValueError("private_key and private_key_path are mutually exclusive")
        if self.alipay_public_key and self.alipay_public_key_path:
            raise ValueError("alipay_public_key and alipay_public_key_path are mutually exclusive")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {self.timezone}") from exc
        return self

    @property
    def sign_type(self) -> str:
        """Value sent in the `sign_type` request field."""
        if self.sign_scheme is SignatureScheme.KEYED_HASH:
            return self.hash_algorithm.upper()
        return "RSA2"

    @property
    def verifies_responses(self) -> bool:
        return bool(self.alipay_public_key or self.alipay_public_key_path)

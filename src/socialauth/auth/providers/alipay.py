"""Alipay OAuth ProviderAdapter implementation.

Request building is split into module-level functions that take the
configuration explicitly; `AlipayProviderAdapter` wires them to the gateway.

All gateway calls are HTTP GETs against one endpoint; the ``method`` field
selects the operation and every request carries a ``sign`` computed with the
configured `SignatureScheme`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any
from urllib.parse import urlencode
from zoneinfo import ZoneInfo

import httpx
from mcp.shared._httpx_utils import create_mcp_http_client

from ..contracts import GrantResult, ProviderAdapter, TransportError, UserProfile
from ..envelope import parse_token_response, parse_user_info_response, response_key
from ..models import AlipayAuthConfigModel
from ..signing import KeyedHashSigner, RsaSigner, RsaVerifier, SignatureScheme, Signer

logger = logging.getLogger(__name__)

TOKEN_METHOD = "alipay.system.oauth.token"
USER_INFO_METHOD = "alipay.user.info.share"
TOKEN_RESPONSE_KEY = response_key(TOKEN_METHOD)
USER_INFO_RESPONSE_KEY = response_key(USER_INFO_METHOD)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

Clock = Callable[[], datetime]


def format_timestamp(config: AlipayAuthConfigModel, clock: Clock | None = None) -> str:
    """Render the current time as ``YYYY-MM-DD HH:MM:SS`` in the gateway's timezone.

    Naive datetimes from `clock` are taken to be in the configured timezone.
    """
    zone = ZoneInfo(config.timezone)
    now = clock() if clock is not None else datetime.now(zone)
    if now.tzinfo is not None:
        now = now.astimezone(zone)
    return now.strftime(TIMESTAMP_FORMAT)


def build_signer(config: AlipayAuthConfigModel) -> Signer:
    if config.sign_scheme is SignatureScheme.KEYED_HASH:
        return KeyedHashSigner(config.client_secret or "", config.hash_algorithm, config.charset)
    return RsaSigner(config.private_key, config.private_key_path, config.charset)


def build_verifier(config: AlipayAuthConfigModel) -> RsaVerifier | None:
    if not config.verifies_responses:
        return None
    return RsaVerifier(config.alipay_public_key, config.alipay_public_key_path, config.charset)


def build_authorize_url(
    config: AlipayAuthConfigModel,
    *,
    state: str,
    redirect_uri: str | None = None,
    scopes: Sequence[str] | None = None,
    extra_params: Mapping[str, str] | None = None,
) -> str:
    """Build the browser redirect to the authorization page. Not signed."""
    redirect = redirect_uri or config.redirect_uri
    if not redirect:
        raise ValueError("redirect_uri must be passed or configured")
    scope_str = ",".join(scopes) if scopes else config.scope
    params: list[tuple[str, str]] = [
        ("client_id", config.client_id),
        ("redirect_uri", redirect),
        ("scope", scope_str),
        ("state", state),
        ("response_type", "code"),
    ]
    if extra_params:
        params.extend(extra_params.items())
    return f"{config.auth_url}?{urlencode(params)}"


def _param_value(value: Any) -> str:
    # Structured values such as biz_content travel as compact JSON text.
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def build_signed_request(
    config: AlipayAuthConfigModel,
    fields: Mapping[str, str],
    *,
    extra_params: Mapping[str, Any] | None = None,
    clock: Clock | None = None,
    signer: Signer | None = None,
) -> dict[str, str]:
    """Merge caller parameters under the base fields and append ``sign``.

    Base fields (the operation `fields` plus the common gateway fields) take
    precedence over `extra_params` on key collision.
    """
    base: dict[str, str] = {
        **fields,
        "app_id": config.client_id,
        "format": config.format,
        "charset": config.charset,
        "sign_type": config.sign_type,
        "timestamp": format_timestamp(config, clock),
        "version": config.version,
    }
    params: dict[str, str] = {
        key: _param_value(value)
        for key, value in (extra_params or {}).items()
        if value is not None
    }
    params.update(base)
    params.pop("sign", None)
    params["sign"] = (signer or build_signer(config)).sign(params)
    logger.debug(
        "Built signed Alipay request",
        extra={
            "provider": "alipay",
            "method": params.get("method"),
            "sign_type": params["sign_type"],
        },
    )
    return params


def build_token_request(
    config: AlipayAuthConfigModel,
    code: str,
    *,
    extra_params: Mapping[str, Any] | None = None,
    clock: Clock | None = None,
    signer: Signer | None = None,
) -> dict[str, str]:
    fields = {"method": TOKEN_METHOD, "code": code, "grant_type": "authorization_code"}
    return build_signed_request(
        config, fields, extra_params=extra_params, clock=clock, signer=signer
    )


def build_refresh_request(
    config: AlipayAuthConfigModel,
    refresh_token: str,
    *,
    clock: Clock | None = None,
    signer: Signer | None = None,
) -> dict[str, str]:
    fields = {
        "method": TOKEN_METHOD,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }
    return build_signed_request(config, fields, clock=clock, signer=signer)


def build_profile_request(
    config: AlipayAuthConfigModel,
    access_token: str,
    *,
    extra_params: Mapping[str, Any] | None = None,
    clock: Clock | None = None,
    signer: Signer | None = None,
) -> dict[str, str]:
    fields = {"method": USER_INFO_METHOD, "auth_token": access_token}
    return build_signed_request(
        config, fields, extra_params=extra_params, clock=clock, signer=signer
    )


class AlipayProviderAdapter(ProviderAdapter):
    """Alipay OAuth ProviderAdapter that uses real HTTP calls."""

    provider_name = "alipay"

    def __init__(self, alipay_config: AlipayAuthConfigModel, *, clock: Clock | None = None):
        self.config = alipay_config
        self._clock = clock
        self._signer = build_signer(alipay_config)
        self._verifier = build_verifier(alipay_config)

    @property
    def callback_path(self) -> str:
        return self.config.callback_path

    def build_authorize_url(
        self,
        *,
        state: str,
        redirect_uri: str | None = None,
        scopes: Sequence[str] | None = None,
        extra_params: Mapping[str, str] | None = None,
    ) -> str:
        return build_authorize_url(
            self.config,
            state=state,
            redirect_uri=redirect_uri,
            scopes=scopes,
            extra_params=extra_params,
        )

    def build_token_request(
        self, code: str, extra_params: Mapping[str, Any] | None = None
    ) -> dict[str, str]:
        return build_token_request(
            self.config, code, extra_params=extra_params, clock=self._clock, signer=self._signer
        )

    def build_profile_request(self, access_token: str) -> dict[str, str]:
        return build_profile_request(
            self.config, access_token, clock=self._clock, signer=self._signer
        )

    async def exchange_code(
        self, *, code: str, extra_params: Mapping[str, str] | None = None
    ) -> GrantResult:
        params = self.build_token_request(code, extra_params)
        text = await self._call_gateway(params, context="exchange_code")
        return parse_token_response(text, TOKEN_RESPONSE_KEY, self._verifier)

    async def refresh_token(self, *, refresh_token: str) -> GrantResult:
        params = build_refresh_request(
            self.config, refresh_token, clock=self._clock, signer=self._signer
        )
        text = await self._call_gateway(params, context="refresh_token")
        return parse_token_response(text, TOKEN_RESPONSE_KEY, self._verifier)

    async def fetch_user_info(self, *, access_token: str) -> UserProfile:
        params = self.build_profile_request(access_token)
        text = await self._call_gateway(params, context="user_info")
        return parse_user_info_response(text, USER_INFO_RESPONSE_KEY, self._verifier)

    async def revoke_token(self, *, token: str, token_type_hint: str | None = None) -> bool:
        # Alipay has no token revocation endpoint.
        return False

    def verify_callback(self, params: Mapping[str, Any]) -> bool:
        """Verify RSA2-signed parameters posted back by the provider."""
        if self._verifier is None:
            raise ValueError("alipay_public_key is not configured")
        return self._verifier.verify_params(params)

    # ── helpers ──────────────────────────────────────────────────────────────
    async def _call_gateway(self, params: Mapping[str, str], *, context: str) -> str:
        try:
            async with create_mcp_http_client() as client:
                resp = await client.get(self.config.gateway_url, params=dict(params))
        except httpx.HTTPError as exc:
            logger.warning(
                "Alipay gateway request failed",
                extra={"provider": self.provider_name, "context": context, "error": repr(exc)},
            )
            raise TransportError("Alipay gateway request failed") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning(
                "Alipay gateway returned non-2xx",
                extra={
                    "provider": self.provider_name,
                    "context": context,
                    "status_code": resp.status_code,
                },
            )
            raise TransportError(
                f"Alipay gateway returned HTTP {resp.status_code}", status_code=resp.status_code
            )

        return resp.text

"""Decoding of Alipay gateway response envelopes.

Every gateway response is a JSON object with a single payload key: either the
method-specific ``<namespace>_response`` object or ``error_response``. A
sibling ``sign`` field carries the provider's RSA2 signature over the raw text
of the payload object.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ConfigDict, ValidationError

from socialauth.models import SdkBaseModel

from .contracts import DecodeError, GrantResult, ProviderError, SignatureError, UserProfile
from .signing import SIGN_FIELD, RsaVerifier

logger = logging.getLogger(__name__)

ERROR_RESPONSE_KEY = "error_response"
SUCCESS_CODE = "10000"

_DECODER = json.JSONDecoder()

# source field -> UserProfile fields
PROFILE_FIELD_MAP: dict[str, tuple[str, ...]] = {
    "user_id": ("id",),
    "nick_name": ("nickname", "name"),
    "avatar": ("avatar",),
    "province": ("province",),
    "city": ("city",),
    "is_student_certified": ("is_student_certified",),
    "user_status": ("user_status",),
    "is_certified": ("is_certified",),
    "gender": ("gender",),
}


class _AlipayStatus(SdkBaseModel):
    """Status fields shared by error envelopes and business failures."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    code: str | None = None
    msg: str | None = None
    sub_code: str | None = None
    sub_msg: str | None = None


class _AlipayTokenBody(SdkBaseModel):
    """Minimal `alipay.system.oauth.token` payload."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str | None = None
    expires_in: int | None = None
    refresh_token: str | None = None
    re_expires_in: int | None = None
    user_id: str | int | None = None


def response_key(method: str) -> str:
    """Map a gateway method name to its success payload key."""
    return method.replace(".", "_") + "_response"


def decode_body(body: str | bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError("Gateway response is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise DecodeError("Gateway response is not a JSON object")
    return payload


def _provider_error(body: Any) -> ProviderError:
    if not isinstance(body, Mapping):
        return ProviderError("unknown_error", "Malformed error envelope")
    status = _AlipayStatus.model_validate(
        {key: str(value) for key, value in body.items() if value is not None}
    )
    code = status.code or status.sub_code or "unknown_error"
    message = status.sub_msg or status.msg or code
    return ProviderError(code, message, sub_code=status.sub_code)


def _log_provider_error(message: str, error: ProviderError) -> None:
    logger.warning(
        message,
        extra={"provider": "alipay", "provider_error": error.code, "sub_code": error.sub_code},
    )


def unwrap_envelope(payload: Mapping[str, Any], root_key: str) -> dict[str, Any]:
    """Return the success payload under `root_key` or raise the provider's error.

    Raises:
        ProviderError: ``error_response`` is present, or the success payload
            reports a business failure (``code`` other than ``10000``).
        DecodeError: The envelope has neither payload, or both.
    """
    has_error = ERROR_RESPONSE_KEY in payload
    has_success = root_key in payload
    if has_error and has_success:
        raise DecodeError(f"Response carries both '{root_key}' and '{ERROR_RESPONSE_KEY}'")
    if has_error:
        error = _provider_error(payload[ERROR_RESPONSE_KEY])
        _log_provider_error("Alipay gateway returned an error envelope", error)
        raise error

    body = payload.get(root_key)
    if not isinstance(body, dict):
        raise DecodeError(f"Response has no '{root_key}' object")

    code = body.get("code")
    if code is not None and str(code) != SUCCESS_CODE:
        error = _provider_error(body)
        _log_provider_error("Alipay gateway reported a business failure", error)
        raise error
    return body


def extract_signed_content(body: str, root_key: str) -> str | None:
    """Return the raw JSON text of the `root_key` object exactly as sent.

    The provider signs the bytes it sent, so the payload must not be
    re-serialized before verification.
    """
    marker = f'"{root_key}"'
    start = body.find(marker)
    if start < 0:
        return None
    colon = body.find(":", start + len(marker))
    if colon < 0:
        return None
    index = colon + 1
    while index < len(body) and body[index] in " \t\r\n":
        index += 1
    try:
        _, end = _DECODER.raw_decode(body, index)
    except json.JSONDecodeError:
        return None
    return body[index:end]


def verify_response_signature(
    body: str, payload: Mapping[str, Any], root_key: str, verifier: RsaVerifier
) -> None:
    """Raise `SignatureError` unless the success payload carries a valid signature."""
    signature = payload.get(SIGN_FIELD)
    if not signature:
        raise SignatureError(f"Response for '{root_key}' is not signed")
    content = extract_signed_content(body, root_key)
    if content is None:
        raise DecodeError(f"Response has no '{root_key}' object")
    if not verifier.verify_content(content, str(signature)):
        logger.warning(
            "Alipay response signature mismatch",
            extra={"provider": "alipay", "response_key": root_key},
        )
        raise SignatureError(f"Invalid signature on '{root_key}'")


def map_token(body: Mapping[str, Any]) -> GrantResult:
    try:
        token = _AlipayTokenBody.model_validate(body)
    except ValidationError as exc:
        raise DecodeError("Invalid token response payload") from exc
    if not token.access_token:
        raise ProviderError("invalid_grant", "No access_token in response")
    return GrantResult(
        access_token=token.access_token,
        expires_in=token.expires_in,
        refresh_token=token.refresh_token,
        re_expires_in=token.re_expires_in,
        user_id=None if token.user_id is None else str(token.user_id),
        raw_response=dict(body),
    )


def map_user_profile(raw: Mapping[str, Any]) -> UserProfile:
    """Project a raw profile onto `UserProfile`; absent fields become ``""``."""
    fields: dict[str, str] = {}
    for source, targets in PROFILE_FIELD_MAP.items():
        value = raw.get(source)
        for target in targets:
            fields[target] = "" if value is None else str(value)
    return UserProfile(**fields, raw_profile=dict(raw))


def parse_success_body(
    body: str | bytes, root_key: str, verifier: RsaVerifier | None = None
) -> dict[str, Any]:
    """Decode a gateway response and return the success object under `root_key`.

    When `verifier` is given the response signature is checked against the raw
    text of that object after the envelope split, so error envelopes still
    surface as `ProviderError`.
    """
    payload = decode_body(body)
    success = unwrap_envelope(payload, root_key)
    if verifier is not None:
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError("Gateway response is not valid UTF-8") from exc
        verify_response_signature(body, payload, root_key, verifier)
    return success


def parse_token_response(
    body: str | bytes, root_key: str, verifier: RsaVerifier | None = None
) -> GrantResult:
    return map_token(parse_success_body(body, root_key, verifier))


def parse_user_info_response(
    body: str | bytes, root_key: str, verifier: RsaVerifier | None = None
) -> UserProfile:
    return map_user_profile(parse_success_body(body, root_key, verifier))

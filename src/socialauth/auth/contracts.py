"""Contracts and shared types for the socialauth authentication stack."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from socialauth.models import SdkBaseModel


class SocialAuthError(Exception):
    """Base class for every error raised by provider adapters."""


class TransportError(SocialAuthError):
    """The HTTP collaborator failed or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(SocialAuthError):
    """A provider response body could not be decoded into the expected envelope."""


class ProviderError(SocialAuthError):
    """Standardized provider error carrying the provider's own code and message."""

    def __init__(
        self,
        code: str,
        message: str | None = None,
        status_code: int = 400,
        *,
        sub_code: str | None = None,
    ):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.sub_code = sub_code
        self.status_code = status_code


class SignatureError(SocialAuthError):
    """Signing or signature verification failed."""


class KeyMaterialError(SignatureError):
    """Key material is missing, unreadable or malformed."""


class GrantResult(SdkBaseModel):
    """Result of exchanging or refreshing a grant with an IdP."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    re_expires_in: int | None = None
    user_id: str | None = None
    raw_response: dict[str, Any] | None = None


class UserProfile(SdkBaseModel):
    """Normalized user profile returned by the Alipay adapter.

    Every field defaults to an empty string: a field the provider omits is
    never an error.
    """

    id: str = ""
    nickname: str = ""
    name: str = ""
    avatar: str = ""
    province: str = ""
    city: str = ""
    is_student_certified: str = ""
    user_status: str = ""
    is_certified: str = ""
    gender: str = ""
    raw_profile: dict[str, Any] | None = None


@runtime_checkable
class ProviderAdapter(Protocol):
    """Interface all provider adapters must implement."""

    provider_name: str

    def build_authorize_url(
        self,
        *,
        state: str,
        redirect_uri: str | None = None,
        scopes: Sequence[str] | None = None,
        extra_params: Mapping[str, str] | None = None,
    ) -> str:
        """Construct the provider authorize URL."""

    async def exchange_code(
        self, *, code: str, extra_params: Mapping[str, str] | None = None
    ) -> GrantResult:
        """Exchange an authorization code for provider tokens."""

    async def refresh_token(self, *, refresh_token: str) -> GrantResult:
        """Refresh provider tokens."""

    async def fetch_user_info(self, *, access_token: str) -> UserProfile:
        """Fetch the profile associated with a provider access token."""

    async def revoke_token(self, *, token: str, token_type_hint: str | None = None) -> bool:
        """Revoke a provider token if supported."""


__all__ = [
    "DecodeError",
    "GrantResult",
    "KeyMaterialError",
    "ProviderAdapter",
    "ProviderError",
    "SignatureError",
    "SocialAuthError",
    "TransportError",
    "UserProfile",
]

"""socialauth authentication - provider adapters and their signing helpers.

## Key Components

### Provider adapters
- `AlipayProviderAdapter`: authorize URL, code exchange, token refresh and
  profile fetch against the Alipay open platform gateway

### Signing
- `SignatureScheme`: keyed hash (legacy) or RSA2
- `canonicalize()`: the ``key=value&...`` signature input
- `KeyedHashSigner`, `RsaSigner`, `RsaVerifier`

### Errors
- `TransportError`, `DecodeError`, `ProviderError`, `SignatureError`,
  `KeyMaterialError`, all deriving from `SocialAuthError`

## Quick Example

```python
from socialauth.auth import AlipayAuthConfigModel, AlipayProviderAdapter, SignatureScheme

config = AlipayAuthConfigModel(
    client_id="2021000000000000",
    sign_scheme=SignatureScheme.KEYED_HASH,
    client_secret="s3cr3t",
    redirect_uri="https://example.com/alipay/callback",
)
adapter = AlipayProviderAdapter(config)
params = adapter.build_token_request("auth-code")
```
"""

from .config import load_alipay_config
from .contracts import (
    DecodeError,
    GrantResult,
    KeyMaterialError,
    ProviderAdapter,
    ProviderError,
    SignatureError,
    SocialAuthError,
    TransportError,
    UserProfile,
)
from .models import AlipayAuthConfigModel
from .providers import AlipayProviderAdapter
from .signing import (
    KeyedHashSigner,
    RsaSigner,
    RsaVerifier,
    SignatureScheme,
    canonicalize,
)

__all__ = [
    # Config
    "AlipayAuthConfigModel",
    "load_alipay_config",
    # Adapters
    "AlipayProviderAdapter",
    # Contracts
    "GrantResult",
    "ProviderAdapter",
    "UserProfile",
    # Errors
    "DecodeError",
    "KeyMaterialError",
    "ProviderError",
    "SignatureError",
    "SocialAuthError",
    "TransportError",
    # Signing
    "KeyedHashSigner",
    "RsaSigner",
    "RsaVerifier",
    "SignatureScheme",
    "canonicalize",
]

"""socialauth - provider adapters for social login.

The SDK ships thin Identity Provider clients that build authorization URLs,
exchange authorization codes, fetch user profiles and take care of the
provider-specific request signing.

## Quick Start

```python
from socialauth.auth import AlipayAuthConfigModel, AlipayProviderAdapter

config = AlipayAuthConfigModel(
    client_id="2021000000000000",
    private_key_path="/etc/socialauth/alipay_app_private_key.pem",
    callback_path="/alipay/callback",
)
adapter = AlipayProviderAdapter(config)

url = adapter.build_authorize_url(
    redirect_uri="https://example.com/alipay/callback",
    state="opaque-state",
)
grant = await adapter.exchange_code(code="auth-code-from-callback")
profile = await adapter.fetch_user_info(access_token=grant.access_token)
```
"""

__version__ = "0.1.0"

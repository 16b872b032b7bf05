"""OAuth provider implementations.

This module contains concrete implementations of OAuth providers.
"""

from .alipay import AlipayProviderAdapter

__all__ = [
    "AlipayProviderAdapter",
]

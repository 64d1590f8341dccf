"""casedesk.store -- Supabase transport and endpoint wrappers.

This sub-package provides:

* :mod:`.rate_limit` -- Token bucket rate limiters (sync and async).
* :mod:`.retries` -- Retry decision logic and exponential backoff.
* :mod:`.transport` -- HTTP transport with auth, retries, and rate limiting.
* :mod:`.tables` -- PostgREST table and RPC wrappers.
* :mod:`.storage` -- Storage bucket download and signed-URL wrappers.
"""

from __future__ import annotations

from .rate_limit import AsyncTokenBucket, TokenBucket
from .retries import compute_backoff, should_retry
from .storage import AsyncStorageAPI, StorageAPI
from .tables import AsyncRpcAPI, AsyncTableAPI, RpcAPI, TableAPI, filter_params
from .transport import AsyncStoreTransport, StoreTransport

__all__ = [
    "AsyncRpcAPI",
    "AsyncStorageAPI",
    "AsyncStoreTransport",
    "AsyncTableAPI",
    "AsyncTokenBucket",
    "RpcAPI",
    "StorageAPI",
    "StoreTransport",
    "TableAPI",
    "TokenBucket",
    "compute_backoff",
    "filter_params",
    "should_retry",
]

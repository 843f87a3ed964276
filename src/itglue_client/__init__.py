"""
IT Glue API Client

Async client for the IT Glue JSON:API REST interface.

Features:
- Flat resource dicts with camelCase keys (JSON:API envelopes handled for you)
- Lazy auto-pagination with async iterators
- Sliding-window rate limiting with early throttling
- Retry with exponential backoff for 429 and 5xx responses
- Typed errors with a dispatchable ``ErrorKind``

Quick Start:
    async with ITGlueClient(api_key="ITG.xxxx") as client:
        async for org in client.organizations.iter_all():
            print(org["name"])
"""

from itglue_client.client import ITGlueClient
from itglue_client.config import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    REGION_URLS,
    ClientConfig,
    RateLimitConfig,
)
from itglue_client.errors import (
    ErrorKind,
    ITGlueAuthenticationError,
    ITGlueError,
    ITGlueNetworkError,
    ITGlueNotFoundError,
    ITGlueRateLimitError,
    ITGlueServerError,
    ITGlueTimeoutError,
    ITGlueValidationError,
    UnsupportedOperationError,
)
from itglue_client.http import HttpClient
from itglue_client.jsonapi import (
    JsonApiDecodeError,
    decode_resource,
    decode_response,
    encode_request,
    internal_key_to_wire,
    wire_key_to_internal,
)
from itglue_client.models import (
    DecodedDocument,
    JsonApiErrorObject,
    LinkRef,
    Page,
    PaginationMeta,
    RateLimitStatus,
)
from itglue_client.pagination import ItemIterator, PageIterator, collect_all, take
from itglue_client.query import build_filter_params, build_query_params
from itglue_client.rate_limiter import SlidingWindowRateLimiter, retry_with_backoff
from itglue_client.resources import RESOURCE_SPECS, Capability, Resource, ResourceSpec

__version__ = "1.0.0"
__all__ = [
    # Client
    "ITGlueClient",
    "HttpClient",

    # Configuration
    "ClientConfig",
    "RateLimitConfig",
    "REGION_URLS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",

    # Errors
    "ErrorKind",
    "ITGlueError",
    "ITGlueAuthenticationError",
    "ITGlueNotFoundError",
    "ITGlueValidationError",
    "ITGlueRateLimitError",
    "ITGlueServerError",
    "ITGlueNetworkError",
    "ITGlueTimeoutError",
    "UnsupportedOperationError",
    "JsonApiDecodeError",

    # JSON:API
    "wire_key_to_internal",
    "internal_key_to_wire",
    "decode_resource",
    "decode_response",
    "encode_request",
    "build_filter_params",
    "build_query_params",

    # Models
    "DecodedDocument",
    "JsonApiErrorObject",
    "LinkRef",
    "Page",
    "PaginationMeta",
    "RateLimitStatus",

    # Pagination
    "ItemIterator",
    "PageIterator",
    "collect_all",
    "take",

    # Rate limiting
    "SlidingWindowRateLimiter",
    "retry_with_backoff",

    # Resources
    "RESOURCE_SPECS",
    "Capability",
    "Resource",
    "ResourceSpec",
]

"""
Client configuration.

All defaults live on these immutable models and are threaded explicitly into
the rate limiter, the request executor and the pagination helpers.
"""

import os
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = structlog.get_logger(__name__)

Region = Literal["us", "eu", "au"]

REGION_URLS: dict[str, str] = {
    "us": "https://api.itglue.com",
    "eu": "https://api.eu.itglue.com",
    "au": "https://api.au.itglue.com",
}

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000

USER_AGENT = "itglue-client/1.0"


class RateLimitConfig(BaseModel):
    """
    Client-side rate limiting.

    IT Glue allows 3000 requests per 5 minutes per key. Throttling starts at
    ``throttle_threshold`` of that budget, before the hard limit is reached.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    max_requests: int = Field(3000, gt=0)
    window_seconds: float = Field(300.0, gt=0)
    throttle_threshold: float = Field(0.8, gt=0, le=1)
    retry_after_seconds: float = Field(5.0, ge=0)
    max_retries: int = Field(3, ge=0)


class ClientConfig(BaseModel):
    """
    Resolved client configuration.

    Example:
        config = ClientConfig(api_key="ITG.xxxx", region="eu")
        config.base_url  # "https://api.eu.itglue.com"
    """

    model_config = ConfigDict(frozen=True)

    api_key: str
    region: Region = "us"
    base_url: str = ""
    timeout: float = Field(30.0, gt=0)
    rate_limiter: RateLimitConfig = Field(default_factory=RateLimitConfig)
    page_size: int = Field(DEFAULT_PAGE_SIZE, gt=0, le=MAX_PAGE_SIZE)
    max_retry_delay: float = Field(60.0, gt=0)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("IT Glue API key is required")
        # Key format may change, so only warn
        if not v.startswith("ITG."):
            logger.warning("API key does not start with 'ITG.', it may be invalid")
        return v

    @model_validator(mode="before")
    @classmethod
    def resolve_base_url(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        # Explicit base URL takes precedence over region
        base_url = data.get("base_url")
        if base_url:
            return {**data, "base_url": str(base_url).rstrip("/")}

        region = data.get("region") or "us"
        if region not in REGION_URLS:
            raise ValueError(
                f"Invalid region {region!r}. Valid regions are: {', '.join(REGION_URLS)}"
            )
        return {**data, "region": region, "base_url": REGION_URLS[region]}

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientConfig":
        """
        Build a config from ``ITGLUE_*`` environment variables.

        Keyword overrides win over the environment.
        """
        env_mappings = {
            "api_key": "ITGLUE_API_KEY",
            "region": "ITGLUE_REGION",
            "base_url": "ITGLUE_BASE_URL",
            "timeout": "ITGLUE_TIMEOUT",
        }
        values: dict[str, Any] = {}
        for field, env_var in env_mappings.items():
            env_value = os.environ.get(env_var)
            if env_value:
                values[field] = env_value
        values.update({k: v for k, v in overrides.items() if v is not None})
        values.setdefault("api_key", "")
        return cls(**values)

    def headers(self) -> dict[str, str]:
        """Standard headers for every IT Glue request."""
        return {
            "x-api-key": self.api_key,
            "Content-Type": "application/vnd.api+json",
            "Accept": "application/vnd.api+json",
            "User-Agent": USER_AGENT,
        }

    def __repr__(self) -> str:
        masked = f"{self.api_key[:8]}..." if len(self.api_key) > 8 else "***"
        return f"ClientConfig(base_url={self.base_url!r}, api_key={masked!r})"

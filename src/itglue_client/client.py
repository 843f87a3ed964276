"""
IT Glue API client entry point.

Example:
    async with ITGlueClient(api_key="ITG.xxxx", region="eu") as client:
        page = await client.organizations.list(
            filter={"organizationStatusId": 1},
            page={"size": 50},
        )

        async for org in client.organizations.iter_all():
            print(org["name"])
"""

from typing import Any

import httpx
import structlog

from itglue_client.config import ClientConfig
from itglue_client.errors import ErrorKind, ITGlueError
from itglue_client.http import HttpClient
from itglue_client.models import RateLimitStatus
from itglue_client.resources import RESOURCE_SPECS, Resource

logger = structlog.get_logger(__name__)


class ITGlueClient:
    """
    Access to every IT Glue resource with pagination, rate limiting and
    JSON:API handling.

    Resources are available as attributes named after ``RESOURCE_SPECS``
    (``client.organizations``, ``client.flexible_assets``, ...).
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        **config_overrides: Any,
    ):
        if config is None:
            config = ClientConfig(**config_overrides)
        elif config_overrides:
            raise TypeError("Pass either a ClientConfig or keyword options, not both")

        self.config = config
        self.http = HttpClient(config, transport=transport)
        self._resources: dict[str, Resource] = {}

    async def __aenter__(self) -> "ITGlueClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def resource(self, name: str) -> Resource:
        """Get the façade for a resource by name."""
        if name not in self._resources:
            spec = RESOURCE_SPECS.get(name)
            if spec is None:
                raise KeyError(f"Unknown resource: {name}")
            self._resources[name] = Resource(self.http, spec, page_size=self.config.page_size)
        return self._resources[name]

    def __getattr__(self, name: str) -> Resource:
        if name.startswith("_") or name not in RESOURCE_SPECS:
            raise AttributeError(f"{type(self).__name__!s} has no attribute {name!r}")
        return self.resource(name)

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(RESOURCE_SPECS))

    def get_config(self) -> ClientConfig:
        return self.config

    def get_rate_limit_status(self) -> RateLimitStatus:
        return self.http.rate_limiter.get_status()

    def get_stats(self) -> dict[str, Any]:
        return self.http.get_stats()

    async def check_connection(self) -> dict[str, Any]:
        """Verify API connectivity and credentials."""
        try:
            page = await self.organizations.list(page={"size": 1})
            return {
                "status": "healthy",
                "base_url": self.config.base_url,
                "organizations": page.meta.total_count,
            }
        except ITGlueError as e:
            logger.warning("Connection check failed", kind=e.kind.value, error=str(e))
            if e.kind is ErrorKind.AUTHENTICATION:
                return {"status": "auth_error", "message": "Invalid API key"}
            return {"status": "error", "kind": e.kind.value, "message": str(e)}

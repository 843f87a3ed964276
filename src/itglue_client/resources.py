"""
Resource façades.

Every IT Glue endpoint is described by a ``ResourceSpec`` (path, JSON:API
type, supported operations, optional parent path) and served by the single
generic ``Resource`` class. Read-only or partially writable endpoints are a
matter of their capability set, checked before any request is made.
"""

from dataclasses import dataclass
from enum import Flag, auto
from typing import Any

from itglue_client.config import DEFAULT_PAGE_SIZE
from itglue_client.errors import UnsupportedOperationError
from itglue_client.http import HttpClient
from itglue_client.jsonapi import ResourceList
from itglue_client.models import Page
from itglue_client.pagination import ItemIterator, PageIterator
from itglue_client.query import build_list_params


class Capability(Flag):
    LIST = auto()
    GET = auto()
    CREATE = auto()
    UPDATE = auto()
    DELETE = auto()
    PUBLISH = auto()
    BULK_UPDATE = auto()

    READ_ONLY = LIST | GET
    ALL = LIST | GET | CREATE | UPDATE | DELETE


@dataclass(frozen=True)
class ResourceSpec:
    """
    Static description of one endpoint.

    ``path`` is ``None`` for resources that only exist under a parent;
    ``parent_path`` is a template with a ``{parent_id}`` placeholder. Resources
    that hang off several parent kinds also carry ``{parent_type}`` in the
    template and list the allowed kinds in ``parent_types``.
    """

    name: str
    type: str
    path: str | None
    capabilities: Capability = Capability.ALL
    parent_path: str | None = None
    list_requires_parent: bool = False
    parent_types: tuple[str, ...] = ()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities


IncludeParam = str | list[str] | None
ParentId = str | int | None

# Resources that accept attachments and related items
_POLYMORPHIC_PARENTS = (
    "organizations",
    "configurations",
    "contacts",
    "documents",
    "passwords",
    "flexible_assets",
    "locations",
)


def _org_child(name: str) -> str:
    return f"/organizations/{{parent_id}}/relationships/{name}"


_C = Capability
_WRITABLE_NO_DELETE = _C.LIST | _C.GET | _C.CREATE | _C.UPDATE
_NESTED_WRITES = _C.LIST | _C.CREATE | _C.UPDATE | _C.DELETE

RESOURCE_SPECS: dict[str, ResourceSpec] = {
    spec.name: spec
    for spec in [
        # Organizations
        ResourceSpec("organizations", "organizations", "/organizations"),
        ResourceSpec("organization_types", "organization-types", "/organization_types"),
        ResourceSpec("organization_statuses", "organization-statuses", "/organization_statuses"),
        # Configurations
        ResourceSpec(
            "configurations", "configurations", "/configurations",
            parent_path=_org_child("configurations"),
        ),
        ResourceSpec("configuration_types", "configuration-types", "/configuration_types"),
        ResourceSpec("configuration_statuses", "configuration-statuses", "/configuration_statuses"),
        ResourceSpec(
            "configuration_interfaces", "configuration-interfaces", "/configuration_interfaces",
            capabilities=_NESTED_WRITES,
            parent_path="/configurations/{parent_id}/relationships/configuration_interfaces",
            list_requires_parent=True,
        ),
        # Contacts
        ResourceSpec("contacts", "contacts", "/contacts", parent_path=_org_child("contacts")),
        ResourceSpec("contact_types", "contact-types", "/contact_types"),
        # Documents
        ResourceSpec(
            "documents", "documents", "/documents",
            capabilities=_C.ALL | _C.PUBLISH,
            parent_path=_org_child("documents"),
        ),
        ResourceSpec(
            "document_sections", "document-sections", None,
            capabilities=_NESTED_WRITES,
            parent_path="/documents/{parent_id}/relationships/sections",
        ),
        ResourceSpec(
            "document_images", "document-images", "/document_images",
            capabilities=_C.LIST | _C.CREATE | _C.DELETE,
        ),
        # Passwords
        ResourceSpec("passwords", "passwords", "/passwords", parent_path=_org_child("passwords")),
        ResourceSpec("password_categories", "password-categories", "/password_categories"),
        ResourceSpec(
            "password_folders", "password-folders", None,
            capabilities=_NESTED_WRITES,
            parent_path=_org_child("password_folders"),
        ),
        # Flexible assets
        ResourceSpec("flexible_asset_types", "flexible-asset-types", "/flexible_asset_types"),
        ResourceSpec(
            "flexible_asset_fields", "flexible-asset-fields", "/flexible_asset_fields",
            capabilities=_NESTED_WRITES,
            parent_path="/flexible_asset_types/{parent_id}/relationships/flexible_asset_fields",
            list_requires_parent=True,
        ),
        ResourceSpec("flexible_assets", "flexible-assets", "/flexible_assets"),
        # Locations
        ResourceSpec("locations", "locations", "/locations", parent_path=_org_child("locations")),
        # Users
        ResourceSpec(
            "users", "users", "/users",
            capabilities=_C.LIST | _C.GET | _C.UPDATE | _C.BULK_UPDATE,
        ),
        ResourceSpec("user_metrics", "user-metrics", "/user_metrics", capabilities=_C.LIST),
        ResourceSpec("groups", "groups", "/groups"),
        # Metadata
        ResourceSpec("manufacturers", "manufacturers", "/manufacturers", capabilities=_WRITABLE_NO_DELETE),
        ResourceSpec(
            "models", "models", "/models",
            capabilities=_C.LIST | _C.CREATE | _C.UPDATE,
            parent_path="/manufacturers/{parent_id}/relationships/models",
            list_requires_parent=True,
        ),
        ResourceSpec("platforms", "platforms", "/platforms", capabilities=_C.LIST),
        ResourceSpec("operating_systems", "operating-systems", "/operating_systems", capabilities=_C.LIST),
        ResourceSpec("countries", "countries", "/countries", capabilities=_C.READ_ONLY),
        ResourceSpec(
            "regions", "regions", None,
            capabilities=_C.LIST,
            parent_path="/countries/{parent_id}/relationships/regions",
        ),
        # Misc
        ResourceSpec(
            "domains", "domains", None,
            capabilities=_C.LIST,
            parent_path=_org_child("domains"),
        ),
        ResourceSpec("expirations", "expirations", "/expirations", capabilities=_C.READ_ONLY),
        ResourceSpec("logs", "logs", "/logs", capabilities=_C.LIST),
        ResourceSpec(
            "exports", "exports", "/exports",
            capabilities=_C.LIST | _C.GET | _C.CREATE | _C.DELETE,
        ),
        ResourceSpec(
            "checklists", "checklists", "/checklists",
            capabilities=_C.LIST | _C.GET | _C.UPDATE | _C.DELETE,
            parent_path=_org_child("checklists"),
            list_requires_parent=True,
        ),
        # Nested under any of several parent kinds
        ResourceSpec(
            "attachments", "attachments", None,
            capabilities=_NESTED_WRITES,
            parent_path="/{parent_type}/{parent_id}/relationships/attachments",
            parent_types=_POLYMORPHIC_PARENTS,
        ),
        ResourceSpec(
            "related_items", "related-items", None,
            capabilities=_C.CREATE | _C.UPDATE | _C.DELETE,
            parent_path="/{parent_type}/{parent_id}/relationships/related_items",
            parent_types=_POLYMORPHIC_PARENTS,
        ),
    ]
}


class Resource:
    """
    Generic CRUD façade over one IT Glue endpoint.

    Example:
        orgs = Resource(http, RESOURCE_SPECS["organizations"])
        page = await orgs.list(filter={"organizationStatusId": 1})

        async for contact in contacts.iter_all(parent_id=org_id):
            ...

        await attachments.list(parent_type="contacts", parent_id=contact_id)
    """

    def __init__(
        self,
        http: HttpClient,
        spec: ResourceSpec,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.http = http
        self.spec = spec
        self.page_size = page_size

    def __repr__(self) -> str:
        return f"Resource({self.spec.name!r})"

    def _require(self, capability: Capability) -> None:
        if not self.spec.supports(capability):
            raise UnsupportedOperationError(
                f"{self.spec.name} does not support {capability.name.lower()}"
            )

    def _parent_type(self, parent_type: str | None) -> str:
        if parent_type is None:
            raise ValueError(f"{self.spec.name} requires a parent_type")
        # Accept the JSON:API type ("flexible-assets") as well as the path name
        normalized = parent_type.replace("-", "_")
        if normalized not in self.spec.parent_types:
            raise ValueError(
                f"{self.spec.name} cannot be nested under {parent_type!r}. "
                f"Valid parents are: {', '.join(self.spec.parent_types)}"
            )
        return normalized

    def _base_path(
        self,
        parent_id: ParentId,
        listing: bool = False,
        parent_type: str | None = None,
    ) -> str:
        if parent_id is not None:
            if not self.spec.parent_path:
                raise UnsupportedOperationError(
                    f"{self.spec.name} has no parent resource"
                )
            if self.spec.parent_types:
                return self.spec.parent_path.format(
                    parent_type=self._parent_type(parent_type), parent_id=parent_id
                )
            return self.spec.parent_path.format(parent_id=parent_id)

        if self.spec.path is None or (listing and self.spec.list_requires_parent):
            raise ValueError(f"{self.spec.name} requires a parent_id")
        return self.spec.path

    def _item_path(
        self,
        resource_id: str | int,
        parent_id: ParentId,
        parent_type: str | None = None,
    ) -> str:
        return f"{self._base_path(parent_id, parent_type=parent_type)}/{resource_id}"

    async def list(
        self,
        *,
        filter: dict[str, Any] | None = None,
        page: dict[str, Any] | None = None,
        sort: str | None = None,
        include: IncludeParam = None,
        parent_id: ParentId = None,
        parent_type: str | None = None,
    ) -> Page:
        """One page of results with its pagination meta."""
        self._require(Capability.LIST)
        path = self._base_path(parent_id, listing=True, parent_type=parent_type)
        params = build_list_params(filter=filter, page=page, sort=sort, include=include)
        return await self.http.list(path, params)

    def _page_fetcher(
        self,
        filter: dict[str, Any] | None,
        sort: str | None,
        include: IncludeParam,
        parent_id: ParentId,
        parent_type: str | None,
    ):
        self._require(Capability.LIST)
        path = self._base_path(parent_id, listing=True, parent_type=parent_type)
        base_params = build_list_params(filter=filter, sort=sort, include=include)

        async def fetch_page(page: dict[str, int]) -> Page:
            return await self.http.list(path, {**base_params, "page": page})

        return fetch_page

    def iter_all(
        self,
        *,
        filter: dict[str, Any] | None = None,
        sort: str | None = None,
        include: IncludeParam = None,
        parent_id: ParentId = None,
        parent_type: str | None = None,
        page_size: int | None = None,
        max_items: int | None = None,
    ) -> ItemIterator:
        """
        Iterate every matching resource, fetching pages on demand.

        Example:
            async for org in client.organizations.iter_all():
                print(org["name"])
        """
        return ItemIterator(
            self._page_fetcher(filter, sort, include, parent_id, parent_type),
            page_size=page_size or self.page_size,
            max_items=max_items,
        )

    def iter_pages(
        self,
        *,
        filter: dict[str, Any] | None = None,
        sort: str | None = None,
        include: IncludeParam = None,
        parent_id: ParentId = None,
        parent_type: str | None = None,
        page_size: int | None = None,
    ) -> PageIterator:
        return PageIterator(
            self._page_fetcher(filter, sort, include, parent_id, parent_type),
            page_size=page_size or self.page_size,
        )

    async def get(
        self,
        resource_id: str | int,
        *,
        include: IncludeParam = None,
        parent_id: ParentId = None,
        **params: Any,
    ) -> dict[str, Any]:
        self._require(Capability.GET)
        query = {**params, "include": include} if include else params
        return await self.http.get_one(self._item_path(resource_id, parent_id), query)

    async def create(
        self,
        data: dict[str, Any],
        *,
        parent_id: ParentId = None,
        parent_type: str | None = None,
    ) -> dict[str, Any] | None:
        self._require(Capability.CREATE)
        path = self._base_path(parent_id, parent_type=parent_type)
        return await self.http.create(path, self.spec.type, data)

    async def update(
        self,
        resource_id: str | int,
        data: dict[str, Any],
        *,
        parent_id: ParentId = None,
        parent_type: str | None = None,
    ) -> dict[str, Any] | None:
        self._require(Capability.UPDATE)
        return await self.http.update(
            self._item_path(resource_id, parent_id, parent_type),
            self.spec.type,
            resource_id,
            data,
        )

    async def delete(
        self,
        resource_id: str | int,
        *,
        parent_id: ParentId = None,
        parent_type: str | None = None,
    ) -> None:
        self._require(Capability.DELETE)
        await self.http.delete(self._item_path(resource_id, parent_id, parent_type))

    async def publish(self, resource_id: str | int) -> dict[str, Any] | None:
        """Publish a draft (documents only)."""
        self._require(Capability.PUBLISH)
        return await self.http.update(
            f"{self._item_path(resource_id, None)}/publish",
            self.spec.type,
            resource_id,
            {},
        )

    async def bulk_update(self, items: ResourceList) -> ResourceList:
        """
        Update several resources in one PATCH.

        Each item is a resource dict with its ``id`` plus the attributes to
        change, e.g. ``{"id": 7, "roleName": "Editor"}``.
        """
        self._require(Capability.BULK_UPDATE)
        return await self.http.update_many(self._base_path(None), self.spec.type, items)

"""
JSON:API envelope transcoding.

Converts between IT Glue's wire format (nested resources with kebab-case
attribute keys) and flat resource dicts with camelCase keys.

Key naming precondition: internal keys are single-capital camelCase
(``organizationTypeName``). Acronym runs such as ``someURLValue`` do not
round-trip; they encode to ``some-urlvalue``.
"""

import re
from typing import Any

from pydantic import ValidationError

from itglue_client.models import DecodedDocument, LinkRef, PaginationMeta

_HYPHEN_LETTER = re.compile(r"-([a-z])")
_LOWER_UPPER = re.compile(r"([a-z])([A-Z])")

ResourceList = list[dict[str, Any]]

_META_KEYS = {
    "current-page": "current_page",
    "next-page": "next_page",
    "prev-page": "prev_page",
    "total-pages": "total_pages",
    "total-count": "total_count",
}


class JsonApiDecodeError(ValueError):
    """The remote service returned an envelope that violates JSON:API."""


def wire_key_to_internal(key: str) -> str:
    """``organization-type-name`` -> ``organizationTypeName``."""
    return _HYPHEN_LETTER.sub(lambda m: m.group(1).upper(), key)


def internal_key_to_wire(key: str) -> str:
    """``organizationTypeName`` -> ``organization-type-name``."""
    return _LOWER_UPPER.sub(r"\1-\2", key).lower()


def decode_value(value: Any) -> Any:
    """Recursively rename mapping keys from wire to internal naming."""
    if isinstance(value, dict):
        return {wire_key_to_internal(k): decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


def encode_value(value: Any) -> Any:
    """Recursively rename mapping keys from internal to wire naming."""
    if isinstance(value, dict):
        return {internal_key_to_wire(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [encode_value(item) for item in value]
    return value


def _link_ref(ref: Any) -> dict[str, Any] | None:
    # Malformed refs are dropped rather than failing the whole document
    if not isinstance(ref, dict) or ref.get("id") is None or ref.get("type") is None:
        return None
    return LinkRef(id=str(ref["id"]), type=str(ref["type"])).model_dump()


def _decode_relationships(relationships: Any) -> dict[str, list[dict[str, Any]]]:
    if not isinstance(relationships, dict):
        return {}

    result: dict[str, list[dict[str, Any]]] = {}
    for key, value in relationships.items():
        data = value.get("data") if isinstance(value, dict) else None
        if data is None:
            raw_refs = []
        elif isinstance(data, list):
            raw_refs = data
        else:
            raw_refs = [data]
        refs = [_link_ref(ref) for ref in raw_refs]
        result[wire_key_to_internal(key)] = [ref for ref in refs if ref is not None]
    return result


def decode_resource(resource: dict[str, Any]) -> dict[str, Any]:
    """Flatten one wire resource into an internal resource dict."""
    result: dict[str, Any] = {
        "id": resource.get("id"),
        "type": resource.get("type"),
    }

    attributes = resource.get("attributes")
    if not isinstance(attributes, dict):
        attributes = {}
    for key, value in attributes.items():
        result[wire_key_to_internal(key)] = decode_value(value)

    relationships = _decode_relationships(resource.get("relationships"))
    if relationships:
        result["relationships"] = relationships

    return result


def decode_meta(meta: Any) -> PaginationMeta | None:
    """Map wire pagination meta onto ``PaginationMeta``; ``None`` if absent.

    A present but empty meta object still yields the defaults.
    """
    if not isinstance(meta, dict):
        return None
    values = {
        field: meta[wire_key]
        for wire_key, field in _META_KEYS.items()
        if meta.get(wire_key) is not None
    }
    try:
        return PaginationMeta(**values)
    except ValidationError as e:
        raise JsonApiDecodeError(f"Invalid pagination meta: {e}") from e


def decode_response(envelope: Any) -> DecodedDocument:
    """Decode a full JSON:API response (single resource or collection)."""
    if not isinstance(envelope, dict):
        raise JsonApiDecodeError(
            f"Expected a JSON:API object, got {type(envelope).__name__}"
        )

    raw = envelope.get("data")
    if isinstance(raw, list):
        data: Any = [decode_resource(item) for item in raw if isinstance(item, dict)]
    elif isinstance(raw, dict):
        data = decode_resource(raw)
    else:
        raise JsonApiDecodeError(
            f"JSON:API 'data' must be an object or a list, got {type(raw).__name__}"
        )

    included = envelope.get("included")
    return DecodedDocument(
        data=data,
        meta=decode_meta(envelope.get("meta")),
        included=(
            [decode_resource(item) for item in included if isinstance(item, dict)]
            if isinstance(included, list)
            else None
        ),
    )


def encode_attributes(data: dict[str, Any]) -> dict[str, Any]:
    """Wire attributes for a write; ``id`` and ``type`` are framed separately."""
    return {
        internal_key_to_wire(key): encode_value(value)
        for key, value in data.items()
        if key not in ("id", "type")
    }


def encode_request(
    resource_type: str,
    data: dict[str, Any],
    resource_id: str | int | None = None,
) -> dict[str, Any]:
    """
    Build the JSON:API body for a POST or PATCH.

    The ``id`` member is only present for updates.
    """
    resource: dict[str, Any] = {
        "type": resource_type,
        "attributes": encode_attributes(data),
    }
    if resource_id is not None:
        resource = {"id": str(resource_id), **resource}
    return {"data": resource}


def encode_bulk_request(
    resource_type: str,
    items: ResourceList,
) -> dict[str, Any]:
    """Build the JSON:API body for a bulk PATCH; every item needs an ``id``."""
    data = []
    for item in items:
        if item.get("id") is None:
            raise ValueError(f"Bulk update of {resource_type} needs an id on every item")
        data.append({
            "id": str(item["id"]),
            "type": resource_type,
            "attributes": encode_attributes(item),
        })
    return {"data": data}

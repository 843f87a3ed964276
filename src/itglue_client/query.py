"""
Query string construction for list and get requests.

Callers describe a request with internal (camelCase) names; the bracketed
JSON:API syntax and kebab-case conversion happen here, at serialization time:

    {"filter": {"organizationTypeId": 42}, "page": {"size": 50}}
    -> filter[organization-type-id]=42&page[size]=50
"""

from typing import Any

from itglue_client.jsonapi import internal_key_to_wire

FILTER_OPERATORS = ("gt", "gte", "lt", "lte")


def build_filter_params(filter: dict[str, Any] | None) -> dict[str, Any]:
    """
    Expand comparison operators into ``field[op]`` keys.

    Field names are not case-converted here; ``build_query_params`` does that.
    """
    if not filter:
        return {}

    result: dict[str, Any] = {}
    for key, value in filter.items():
        if value is None:
            continue

        if isinstance(value, dict) and any(op in value for op in FILTER_OPERATORS):
            for op in FILTER_OPERATORS:
                if value.get(op) is not None:
                    result[f"{key}[{op}]"] = value[op]
        else:
            result[key] = value

    return result


def _to_wire_key(key: str) -> tuple[str, str]:
    # "createdAt[gt]" -> "created-at" plus "[gt]" kept outside the prefix bracket
    field, bracket, rest = key.partition("[")
    return internal_key_to_wire(field), f"{bracket}{rest}"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_params(params: dict[str, Any] | None) -> list[tuple[str, str]]:
    """Flatten a params tree into ordered ``(key, value)`` query pairs."""
    pairs: list[tuple[str, str]] = []

    def add(prefix: str, value: Any) -> None:
        if value is None:
            return

        if isinstance(value, dict):
            for key, nested in value.items():
                field, suffix = _to_wire_key(key)
                add(f"{prefix}[{field}]{suffix}", nested)
        elif isinstance(value, (list, tuple)):
            pairs.append((prefix, ",".join(_stringify(v) for v in value if v is not None)))
        else:
            pairs.append((prefix, _stringify(value)))

    for key, value in (params or {}).items():
        if value is None:
            continue
        field, suffix = _to_wire_key(key)
        add(f"{field}{suffix}", value)

    return pairs


def build_list_params(
    filter: dict[str, Any] | None = None,
    page: dict[str, Any] | None = None,
    sort: str | None = None,
    include: str | list[str] | None = None,
) -> dict[str, Any]:
    """Params tree for a list request; unset parts are left out."""
    result: dict[str, Any] = {}
    if filter:
        result["filter"] = build_filter_params(filter)
    if page:
        result["page"] = page
    if sort:
        result["sort"] = sort
    if include:
        result["include"] = include
    return result

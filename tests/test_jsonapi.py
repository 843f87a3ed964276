"""
Tests for JSON:API envelope transcoding.
"""

import pytest

from itglue_client.jsonapi import (
    JsonApiDecodeError,
    decode_resource,
    decode_response,
    encode_bulk_request,
    encode_request,
    internal_key_to_wire,
    wire_key_to_internal,
)


class TestKeyConversion:
    """Tests for kebab-case <-> camelCase key conversion."""

    @pytest.mark.parametrize(
        "wire,internal",
        [
            ("organization-type-name", "organizationTypeName"),
            ("name", "name"),
            ("created-at", "createdAt"),
            ("psa-integration-type", "psaIntegrationType"),
        ],
    )
    def test_wire_to_internal(self, wire, internal):
        """Test hyphenated wire keys become camelCase."""
        assert wire_key_to_internal(wire) == internal

    @pytest.mark.parametrize(
        "key",
        ["organizationTypeName", "name", "createdAt", "restrictedOrganizationIds", "x"],
    )
    def test_round_trip(self, key):
        """Test single-capital camelCase keys survive encode then decode."""
        assert wire_key_to_internal(internal_key_to_wire(key)) == key

    def test_acronym_runs_are_lossy(self):
        """Test acronym runs collapse into one lowercase word."""
        assert internal_key_to_wire("someURLValue") == "some-urlvalue"

    def test_digits_untouched(self):
        """Test digits do not trigger a boundary."""
        assert internal_key_to_wire("address1") == "address1"
        assert wire_key_to_internal("address-1") == "address-1"


class TestDecodeResource:
    """Tests for flattening a single wire resource."""

    def test_attributes_flattened(self, sample_organization_wire):
        """Test attributes are lifted to the top level with camelCase keys."""
        sample_organization_wire["attributes"] = {
            "organization-type-name": "Customer",
            "created-at": "2024-01-15T10:30:00.000Z",
        }
        result = decode_resource(sample_organization_wire)

        assert result["id"] == "12345"
        assert result["type"] == "organizations"
        assert result["organizationTypeName"] == "Customer"
        assert result["createdAt"] == "2024-01-15T10:30:00.000Z"

    def test_null_relationship_becomes_empty_list(self, sample_organization_wire):
        """Test a null relationship decodes to an empty list, not None."""
        result = decode_resource(sample_organization_wire)

        assert result["relationships"]["adaptersResources"] == []

    def test_single_relationship_wrapped_in_list(self, sample_organization_wire):
        """Test a to-one relationship becomes a one-element list."""
        result = decode_resource(sample_organization_wire)

        assert result["relationships"]["organizationType"] == [
            {"id": "7", "type": "organization-types"}
        ]

    def test_missing_attributes_and_relationships(self):
        """Test a bare resource decodes to id and type only."""
        result = decode_resource({"id": "1", "type": "countries"})

        assert result == {"id": "1", "type": "countries"}

    def test_non_mapping_attributes_ignored(self):
        """Test attributes that are not an object decode as empty."""
        result = decode_resource({"id": "1", "type": "contacts", "attributes": ["oops"]})

        assert result == {"id": "1", "type": "contacts"}

    def test_malformed_refs_skipped(self):
        """Test refs that are not id/type objects are dropped."""
        result = decode_resource({
            "id": "1",
            "type": "contacts",
            "relationships": {
                "locations": {"data": ["1", {"id": 5, "type": "locations"}, {"id": "6"}]},
                "organization": "nope",
            },
        })

        assert result["relationships"] == {
            "locations": [{"id": "5", "type": "locations"}],
            "organization": [],
        }

    def test_nested_values_converted(self):
        """Test keys inside nested attribute values are converted too."""
        result = decode_resource({
            "id": "9",
            "type": "flexible-assets",
            "attributes": {
                "traits": {"serial-number": "ABC", "ip-addresses": [{"ip-v4": "10.0.0.1"}]},
            },
        })

        assert result["traits"] == {
            "serialNumber": "ABC",
            "ipAddresses": [{"ipV4": "10.0.0.1"}],
        }


class TestDecodeResponse:
    """Tests for decoding whole envelopes."""

    def test_collection(self, sample_list_envelope):
        """Test a collection decodes to a list with pagination meta."""
        document = decode_response(sample_list_envelope)

        assert [item["name"] for item in document.data] == ["Acme Corporation", "Globex"]
        assert document.meta.current_page == 1
        assert document.meta.next_page == 2
        assert document.meta.prev_page is None
        assert document.meta.total_pages == 3
        assert document.meta.total_count == 6

    def test_single(self, sample_organization_wire):
        """Test a single resource decodes to a dict without meta."""
        document = decode_response({"data": sample_organization_wire})

        assert document.data["shortName"] == "ACME"
        assert document.meta is None
        assert document.included is None

    def test_included(self, sample_organization_wire):
        """Test included resources are decoded like primary data."""
        document = decode_response({
            "data": sample_organization_wire,
            "included": [{"id": "3", "type": "contacts", "attributes": {"first-name": "Jane"}}],
        })

        assert document.included == [{"id": "3", "type": "contacts", "firstName": "Jane"}]

    def test_empty_meta_gets_defaults(self):
        """Test a present but empty meta decodes to defaults, not None."""
        document = decode_response({"data": [], "meta": {}})

        assert document.meta is not None
        assert document.meta.current_page == 1
        assert document.meta.total_count == 0
        assert document.meta.has_next is False

    def test_invalid_meta(self):
        """Test non-numeric pagination meta is a decode error."""
        with pytest.raises(JsonApiDecodeError):
            decode_response({"data": [], "meta": {"next-page": "soon"}})

    @pytest.mark.parametrize("envelope", [None, [], "text", {"data": None}, {"data": 3}])
    def test_contract_violation(self, envelope):
        """Test envelopes without object/list data are rejected."""
        with pytest.raises(JsonApiDecodeError):
            decode_response(envelope)


class TestEncodeRequest:
    """Tests for building write bodies."""

    def test_create_body(self):
        """Test a create body has type and kebab-case attributes but no id."""
        body = encode_request(
            "organizations",
            {"name": "Acme", "organizationTypeId": 7, "id": "ignored", "type": "ignored"},
        )

        assert body == {
            "data": {
                "type": "organizations",
                "attributes": {"name": "Acme", "organization-type-id": 7},
            }
        }

    def test_update_body_has_string_id(self):
        """Test an update body carries the id as a string."""
        body = encode_request("contacts", {"firstName": "Jane"}, 42)

        assert body["data"]["id"] == "42"
        assert body["data"]["type"] == "contacts"
        assert body["data"]["attributes"] == {"first-name": "Jane"}

    def test_nested_attributes_encoded(self):
        """Test nested dicts and lists are encoded recursively."""
        body = encode_request(
            "flexible-assets",
            {"traits": {"serialNumber": "ABC", "tags": [{"tagName": "x"}]}},
        )

        assert body["data"]["attributes"] == {
            "traits": {"serial-number": "ABC", "tags": [{"tag-name": "x"}]}
        }

    def test_bulk_body(self):
        """Test a bulk body frames each item with its own id."""
        body = encode_bulk_request(
            "users", [{"id": 1, "roleName": "Editor"}, {"id": "2", "roleName": "Lite"}]
        )

        assert body == {
            "data": [
                {"id": "1", "type": "users", "attributes": {"role-name": "Editor"}},
                {"id": "2", "type": "users", "attributes": {"role-name": "Lite"}},
            ]
        }

    def test_bulk_requires_ids(self):
        """Test a bulk item without an id is rejected before sending."""
        with pytest.raises(ValueError):
            encode_bulk_request("users", [{"roleName": "Editor"}])

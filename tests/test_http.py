"""
Tests for the request executor, using httpx.MockTransport.
"""

import json

import httpx
import pytest
from conftest import Recorder, json_response

from itglue_client.errors import (
    ITGlueError,
    ITGlueNetworkError,
    ITGlueNotFoundError,
    ITGlueServerError,
    ITGlueTimeoutError,
    ITGlueValidationError,
)
from itglue_client.http import HttpClient


def make_http(config, recorder):
    return HttpClient(config, transport=recorder.transport())


class TestRequest:
    """Tests for single requests."""

    async def test_headers(self, config):
        """Test auth and JSON:API headers are sent."""
        recorder = Recorder(json_response(200, {"data": []}))
        async with make_http(config, recorder) as http:
            await http.get("/organizations")

        request = recorder.requests[0]
        assert request.headers["x-api-key"] == "ITG.test-key-1234567890"
        assert request.headers["accept"] == "application/vnd.api+json"
        assert request.headers["content-type"] == "application/vnd.api+json"
        assert request.url.host == "api.itglue.com"

    async def test_query_encoding(self, config):
        """Test params are sent as bracketed kebab-case query keys."""
        recorder = Recorder(json_response(200, {"data": []}))
        async with make_http(config, recorder) as http:
            await http.get(
                "organizations",
                {"filter": {"organizationTypeId": 7, "name": "Acme"}, "page": {"size": 5}},
            )

        request = recorder.requests[0]
        assert request.url.path == "/organizations"
        assert dict(request.url.params) == {
            "filter[organization-type-id]": "7",
            "filter[name]": "Acme",
            "page[size]": "5",
        }

    async def test_no_content(self, config):
        """Test 204 returns None."""
        recorder = Recorder(json_response(204))
        async with make_http(config, recorder) as http:
            assert await http.request("DELETE", "/contacts/1") is None

    async def test_invalid_json(self, config):
        """Test an unparseable 200 body raises a generic error."""
        recorder = Recorder(httpx.Response(200, content=b"<html>"))
        async with make_http(config, recorder) as http:
            with pytest.raises(ITGlueError, match="Invalid JSON response"):
                await http.request("GET", "/organizations")

    async def test_timeout_mapped(self, config):
        """Test transport timeouts become timeout errors."""
        recorder = Recorder(httpx.ReadTimeout("timed out"))
        async with make_http(config, recorder) as http:
            with pytest.raises(ITGlueTimeoutError) as exc_info:
                await http.get("/organizations")

        assert exc_info.value.timeout == 30.0
        assert len(recorder.requests) == 1

    async def test_network_error_mapped(self, config):
        """Test connection failures become network errors."""
        recorder = Recorder(httpx.ConnectError("refused"))
        async with make_http(config, recorder) as http:
            with pytest.raises(ITGlueNetworkError) as exc_info:
                await http.get("/organizations")

        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    async def test_records_rate_limit(self, config):
        """Test every request is recorded in the rate limiter."""
        recorder = Recorder(json_response(200, {"data": []}), json_response(200, {"data": []}))
        async with make_http(config, recorder) as http:
            await http.get("/organizations")
            await http.get("/contacts")

            assert http.rate_limiter.current_count == 2
            assert http.get_stats()["request_count"] == 2


class TestRetry:
    """Tests for retry through the executor."""

    async def test_server_error_retried(self, config):
        """Test a 500 followed by success returns the success."""
        recorder = Recorder(
            json_response(500, {"errors": [{"detail": "boom"}]}),
            json_response(200, {"data": [{"id": "1", "type": "organizations"}]}),
        )
        async with make_http(config, recorder) as http:
            page = await http.list("/organizations")

        assert [item["id"] for item in page.data] == ["1"]
        assert len(recorder.requests) == 2

    async def test_server_error_exhausted(self, config):
        """Test the last server error is raised after max_retries."""
        recorder = Recorder(*[json_response(503) for _ in range(3)])
        async with make_http(config, recorder) as http:
            with pytest.raises(ITGlueServerError):
                await http.get("/organizations")

        assert len(recorder.requests) == 3

    async def test_not_found_not_retried(self, config):
        """Test a 404 fails on the first attempt."""
        recorder = Recorder(json_response(404, {"errors": [{"detail": "x"}]}))
        async with make_http(config, recorder) as http:
            with pytest.raises(ITGlueNotFoundError, match="x"):
                await http.get("/organizations/9")

        assert len(recorder.requests) == 1


class TestOperations:
    """Tests for list/get/create/update/delete."""

    async def test_list(self, config, sample_list_envelope):
        """Test a list returns decoded items with meta."""
        recorder = Recorder(json_response(200, sample_list_envelope))
        async with make_http(config, recorder) as http:
            page = await http.list("/organizations")

        assert page.data[0]["organizationTypeName"] == "Customer"
        assert page.meta.next_page == 2
        assert page.meta.total_count == 6

    async def test_list_without_meta(self, config):
        """Test missing meta falls back to the item count."""
        recorder = Recorder(json_response(200, {"data": [{"id": "1", "type": "countries"}]}))
        async with make_http(config, recorder) as http:
            page = await http.list("/countries")

        assert page.meta.total_count == 1
        assert page.meta.next_page is None

    async def test_get_one(self, config, sample_organization_wire):
        """Test a single resource is decoded."""
        recorder = Recorder(json_response(200, {"data": sample_organization_wire}))
        async with make_http(config, recorder) as http:
            org = await http.get_one("/organizations/12345")

        assert org["name"] == "Acme Corporation"

    async def test_get_one_empty_list(self, config):
        """Test an empty collection for a single lookup is not found."""
        recorder = Recorder(json_response(200, {"data": []}))
        async with make_http(config, recorder) as http:
            with pytest.raises(ITGlueNotFoundError):
                await http.get_one("/organizations/1")

    async def test_create(self, config):
        """Test create POSTs a JSON:API body and decodes the reply."""
        recorder = Recorder(json_response(201, {
            "data": {"id": "55", "type": "contacts", "attributes": {"first-name": "Jane"}},
        }))
        async with make_http(config, recorder) as http:
            contact = await http.create("/contacts", "contacts", {"firstName": "Jane"})

        request = recorder.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {
            "data": {"type": "contacts", "attributes": {"first-name": "Jane"}}
        }
        assert contact == {"id": "55", "type": "contacts", "firstName": "Jane"}

    async def test_update(self, config):
        """Test update PATCHes with the id in the body."""
        recorder = Recorder(json_response(200, {
            "data": {"id": "55", "type": "contacts", "attributes": {"title": "CTO"}},
        }))
        async with make_http(config, recorder) as http:
            await http.update("/contacts/55", "contacts", 55, {"title": "CTO"})

        request = recorder.requests[0]
        assert request.method == "PATCH"
        assert json.loads(request.content)["data"]["id"] == "55"

    async def test_validation_error(self, config, sample_validation_body):
        """Test a 422 surfaces field errors without retrying."""
        recorder = Recorder(json_response(422, sample_validation_body))
        async with make_http(config, recorder) as http:
            with pytest.raises(ITGlueValidationError) as exc_info:
                await http.create("/organizations", "organizations", {"name": ""})

        assert len(exc_info.value.errors) == 2
        assert len(recorder.requests) == 1

    async def test_delete(self, config):
        """Test delete issues a DELETE and returns None."""
        recorder = Recorder(json_response(204))
        async with make_http(config, recorder) as http:
            assert await http.delete("/contacts/55") is None

        assert recorder.requests[0].method == "DELETE"

    async def test_update_many(self, config):
        """Test a bulk PATCH sends a data array and decodes every item."""
        recorder = Recorder(json_response(200, {
            "data": [{"id": "1", "type": "users", "attributes": {"role-name": "Editor"}}],
        }))
        async with make_http(config, recorder) as http:
            users = await http.update_many("/users", "users", [{"id": 1, "roleName": "Editor"}])

        assert json.loads(recorder.requests[0].content) == {
            "data": [{"id": "1", "type": "users", "attributes": {"role-name": "Editor"}}]
        }
        assert users == [{"id": "1", "type": "users", "roleName": "Editor"}]

    async def test_update_many_no_content(self, config):
        """Test a 204 bulk reply returns an empty list."""
        recorder = Recorder(json_response(204))
        async with make_http(config, recorder) as http:
            assert await http.update_many("/users", "users", [{"id": 1}]) == []

    async def test_list_empty_meta(self, config):
        """Test an empty meta object keeps its defaults rather than the item count."""
        recorder = Recorder(json_response(200, {"data": [{"id": "1", "type": "countries"}], "meta": {}}))
        async with make_http(config, recorder) as http:
            page = await http.list("/countries")

        assert page.meta.total_count == 0
        assert page.meta.has_next is False

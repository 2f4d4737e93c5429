"""Supabase PostgREST client and record repositories over httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from service_broker.db import (
    DuplicateRecordError,
    RecordStoreError,
    SupabaseAuthError,
    SupabaseBindingRepository,
    SupabaseClient,
    SupabaseConflictError,
    SupabaseError,
    SupabaseInstanceRepository,
    SupabaseProvisionRequestRepository,
    SupabaseUnavailableError,
)
from service_broker.models import (
    OperationType,
    ProvisionRequestRecord,
    ServiceBindingRecord,
    ServiceInstanceRecord,
)

INSTANCE_ROW = {
    "id": "i-1",
    "service_id": "svc-postgres",
    "plan_id": "plan-small",
    "space_guid": "space-1",
    "organization_guid": "org-1",
    "other_details": '{"name": "res-i-1"}',
    "operation_id": "op-1",
    "operation_type": "provision",
}


def _make_client(handler) -> tuple[httpx.AsyncClient, SupabaseClient]:
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(transport=transport)
    client = SupabaseClient(
        supabase_url="https://test.supabase.co",
        service_role_key="test-key",
        http_client=http,
    )
    return http, client


class TestSupabaseClient:
    def test_requires_url_and_key(self):
        with pytest.raises(ValueError):
            SupabaseClient(supabase_url="", service_role_key="k")
        with pytest.raises(ValueError):
            SupabaseClient(supabase_url="https://x.supabase.co", service_role_key="")

    @pytest.mark.asyncio
    async def test_select_encodes_filters_and_headers(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["headers"] = request.headers
            return httpx.Response(200, json=[])

        http, client = _make_client(handler)
        async with http:
            await client.select(
                "t", {"id": "i-1", "operation_id": None, "flag": True}, limit=1,
            )

        assert seen["path"] == "/rest/v1/t"
        assert seen["params"] == {
            "id": "eq.i-1",
            "operation_id": "is.null",
            "flag": "eq.true",
            "select": "*",
            "limit": "1",
        }
        assert seen["headers"]["apikey"] == "test-key"
        assert seen["headers"]["authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_auth_error(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "invalid api key"})

        http, client = _make_client(handler)
        async with http:
            with pytest.raises(SupabaseAuthError) as exc_info:
                await client.select("t")
        assert exc_info.value.status_code == 401
        assert "test-key" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http, client = _make_client(handler)
        async with http:
            with pytest.raises(SupabaseUnavailableError) as exc_info:
                await client.select("t")
        assert exc_info.value.status_code == 0
        assert isinstance(exc_info.value, RecordStoreError)

    @pytest.mark.asyncio
    async def test_non_list_payload_rejected(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        http, client = _make_client(handler)
        async with http:
            with pytest.raises(SupabaseError):
                await client.select("t")

    @pytest.mark.asyncio
    async def test_empty_body_is_empty_list(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        http, client = _make_client(handler)
        async with http:
            assert await client.delete("t", {"id": "x"}) == []


class TestInstanceRepository:
    @pytest.mark.asyncio
    async def test_get_maps_row(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[INSTANCE_ROW])

        http, client = _make_client(handler)
        async with http:
            record = await SupabaseInstanceRepository(client).get("i-1")

        assert record.id == "i-1"
        assert record.operation_type is OperationType.PROVISION
        assert record.details() == {"name": "res-i-1"}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        http, client = _make_client(handler)
        async with http:
            repo = SupabaseInstanceRepository(client)
            assert await repo.get("i-1") is None
            assert await repo.exists("i-1") is False

    @pytest.mark.asyncio
    async def test_create_posts_row(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            seen["prefer"] = request.headers.get("prefer")
            return httpx.Response(201, json=[seen["body"]])

        http, client = _make_client(handler)
        record = ServiceInstanceRecord(id="i-1", service_id="svc", plan_id="p")
        async with http:
            await SupabaseInstanceRepository(client).create(record)

        assert seen["method"] == "POST"
        assert seen["body"]["id"] == "i-1"
        assert seen["body"]["operation_type"] == ""
        assert seen["body"]["operation_id"] is None
        assert seen["prefer"] == "return=representation"

    @pytest.mark.asyncio
    async def test_create_conflict_is_duplicate(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                409, json={"message": "duplicate key value", "code": "23505"},
            )

        http, client = _make_client(handler)
        record = ServiceInstanceRecord(id="i-1", service_id="svc", plan_id="p")
        async with http:
            with pytest.raises(DuplicateRecordError) as exc_info:
                await SupabaseInstanceRepository(client).create(record)
        assert isinstance(exc_info.value.__cause__, SupabaseConflictError)

    @pytest.mark.asyncio
    async def test_save_patches_by_id(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[INSTANCE_ROW])

        http, client = _make_client(handler)
        record = ServiceInstanceRecord.from_row(INSTANCE_ROW)
        record.clear_operation()
        async with http:
            await SupabaseInstanceRepository(client).save(record)

        assert seen["method"] == "PATCH"
        assert seen["params"] == {"id": "eq.i-1"}
        assert "id" not in seen["body"]
        assert seen["body"]["operation_type"] == ""

    @pytest.mark.asyncio
    async def test_save_missing_row_raises(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        http, client = _make_client(handler)
        record = ServiceInstanceRecord.from_row(INSTANCE_ROW)
        async with http:
            with pytest.raises(RecordStoreError):
                await SupabaseInstanceRepository(client).save(record)


class TestBindingRepository:
    @pytest.mark.asyncio
    async def test_lookup_by_composite_key(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{
                "service_instance_id": "i-1",
                "binding_id": "b-1",
                "service_id": "svc",
                "other_details": '{"username": "u"}',
            }])

        http, client = _make_client(handler)
        async with http:
            record = await SupabaseBindingRepository(client).get("i-1", "b-1")

        assert seen["params"]["service_instance_id"] == "eq.i-1"
        assert seen["params"]["binding_id"] == "eq.b-1"
        assert record.details() == {"username": "u"}

    @pytest.mark.asyncio
    async def test_create_conflict_is_duplicate(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"message": "duplicate key value"})

        http, client = _make_client(handler)
        record = ServiceBindingRecord(service_instance_id="i-1", binding_id="b-1", service_id="svc")
        async with http:
            with pytest.raises(DuplicateRecordError):
                await SupabaseBindingRepository(client).create(record)

    @pytest.mark.asyncio
    async def test_delete_by_composite_key(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["params"] = dict(request.url.params)
            return httpx.Response(204)

        http, client = _make_client(handler)
        record = ServiceBindingRecord(service_instance_id="i-1", binding_id="b-1", service_id="svc")
        async with http:
            await SupabaseBindingRepository(client).delete(record)

        assert seen["method"] == "DELETE"
        assert seen["params"] == {"service_instance_id": "eq.i-1", "binding_id": "eq.b-1"}


class TestProvisionRequestRepository:
    @pytest.mark.asyncio
    async def test_save_overwrites_existing_row(self):
        methods: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(200, json=[{
                "service_instance_id": "i-1", "request_details": '{"a": 2}',
            }])

        http, client = _make_client(handler)
        async with http:
            await SupabaseProvisionRequestRepository(client).save(
                ProvisionRequestRecord(service_instance_id="i-1", request_details='{"a": 2}'),
            )
        assert methods == ["PATCH"]

    @pytest.mark.asyncio
    async def test_save_inserts_when_missing(self):
        methods: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            if request.method == "PATCH":
                return httpx.Response(200, json=[])
            return httpx.Response(201, json=[json.loads(request.content)])

        http, client = _make_client(handler)
        async with http:
            await SupabaseProvisionRequestRepository(client).save(
                ProvisionRequestRecord(service_instance_id="i-1", request_details=""),
            )
        assert methods == ["PATCH", "POST"]

"""Unit tests for servicemanager.remote — simulated and HTTP folder remotes."""

import json
import random

import httpx
import pytest

from servicemanager.engine.config import RemoteConfig
from servicemanager.engine.errors import RemoteFailure
from servicemanager.models import Service
from servicemanager.remote import (
    HttpFolderRemote,
    SimulatedFolderRemote,
    build_remote,
    canned_folder,
)


class TestCannedFolder:
    def test_contents(self):
        folder = canned_folder("42")
        assert folder.id == "42"
        assert folder.name == "Folder 42"
        assert [(s.id, s.title) for s in folder.services] == [
            ("1", "Web Service"),
            ("2", "Mobile Service"),
        ]


class TestSimulatedFolderRemote:
    @pytest.mark.asyncio
    async def test_fetch_unknown_returns_canned(self, remote):
        folder = await remote.fetch_folder("abc")
        assert folder == canned_folder("abc")
        assert remote.calls == ["fetch_folder"]

    @pytest.mark.asyncio
    async def test_create_then_fetch(self, remote):
        ref = await remote.create_folder("Ops")
        folder = await remote.fetch_folder(ref.id)
        assert folder.name == "Ops"
        assert folder.services == []

    @pytest.mark.asyncio
    async def test_save_replaces_services(self, remote):
        ref = await remote.create_folder("Ops")
        services = [Service(id="1", title="A", description="a")]
        await remote.save_services(ref.id, services)
        await remote.save_services(ref.id, services)

        folder = await remote.fetch_folder(ref.id)
        assert folder.services == services

    @pytest.mark.asyncio
    async def test_fetch_returns_copy(self, remote):
        ref = await remote.create_folder("Ops")
        folder = await remote.fetch_folder(ref.id)
        folder.services.append(Service(id="x", title="X", description="X"))
        assert remote.stored_folder(ref.id).services == []

    @pytest.mark.asyncio
    async def test_failure_rate_one_always_fails(self):
        remote = SimulatedFolderRemote(latency=0, failure_rate=1.0, rng=random.Random(1))
        with pytest.raises(RemoteFailure) as exc_info:
            await remote.fetch_folder("1")
        assert exc_info.value.operation == "fetch_folder"
        assert exc_info.value.folder_id == "1"

    @pytest.mark.asyncio
    async def test_failure_does_not_store(self):
        remote = SimulatedFolderRemote(latency=0, failure_rate=1.0)
        with pytest.raises(RemoteFailure):
            await remote.save_services("f", [])
        assert remote.stored_folder("f") is None


def _http_remote(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpFolderRemote("http://folders.test/", client=client)


class TestHttpFolderRemote:
    @pytest.mark.asyncio
    async def test_fetch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/folders/42"
            return httpx.Response(200, json=canned_folder("42").model_dump())

        remote = _http_remote(handler)
        folder = await remote.fetch_folder("42")
        assert folder == canned_folder("42")
        await remote.aclose()

    @pytest.mark.asyncio
    async def test_create(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert json.loads(request.content) == {"name": "Ops"}
            return httpx.Response(201, json={"id": "f-1", "name": "Ops"})

        ref = await _http_remote(handler).create_folder("Ops")
        assert ref.id == "f-1"

    @pytest.mark.asyncio
    async def test_save(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.raw_path
            seen["body"] = json.loads(request.content)
            return httpx.Response(204)

        services = [Service(id="1", title="A", description="a")]
        await _http_remote(handler).save_services("f 1", services)
        assert seen["method"] == "PUT"
        assert seen["path"] == b"/folders/f%201/services"
        assert seen["body"] == [{"id": "1", "title": "A", "description": "a"}]

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        remote = _http_remote(lambda request: httpx.Response(404, text="not found"))
        with pytest.raises(RemoteFailure) as exc_info:
            await remote.fetch_folder("nope")
        assert exc_info.value.status_code == 404
        assert exc_info.value.folder_id == "nope"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RemoteFailure, match="refused"):
            await _http_remote(handler).create_folder("Ops")

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        remote = _http_remote(lambda request: httpx.Response(200, json={"name": "no id"}))
        with pytest.raises(RemoteFailure, match="malformed"):
            await remote.fetch_folder("1")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        remote = _http_remote(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RemoteFailure, match="non-JSON"):
            await remote.fetch_folder("1")


class TestBuildRemote:
    def test_simulated_default(self):
        assert isinstance(build_remote(RemoteConfig()), SimulatedFolderRemote)

    def test_http(self):
        remote = build_remote(RemoteConfig(mode="http", base_url="http://x"))
        assert isinstance(remote, HttpFolderRemote)

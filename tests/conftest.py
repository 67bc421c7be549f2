"""
Service Manager Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import asyncio
from typing import Dict, Sequence

import pytest

from servicemanager.controller import FolderSessionController
from servicemanager.engine.errors import RemoteFailure
from servicemanager.models import Folder, FolderRef, Service
from servicemanager.remote import SimulatedFolderRemote, canned_folder


# ---------------------------------------------------------------------------
# Global state isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset the config singleton and the global log queue between tests."""
    import servicemanager.engine.config as cfg_mod
    from servicemanager.engine.logging import shutdown_logging

    cfg_mod._config = None
    yield
    shutdown_logging()
    cfg_mod._config = None


# ---------------------------------------------------------------------------
# Remote stand-ins
# ---------------------------------------------------------------------------

class FlakyRemote:
    """Zero-latency simulated remote that fails every call while ``failing`` is set."""

    def __init__(self):
        self.inner = SimulatedFolderRemote(latency=0)
        self.failing = False
        self.calls = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.failing:
            raise RemoteFailure(f"{operation} unavailable", operation=operation)

    async def fetch_folder(self, folder_id: str) -> Folder:
        self._check("fetch_folder")
        return await self.inner.fetch_folder(folder_id)

    async def create_folder(self, name: str) -> FolderRef:
        self._check("create_folder")
        return await self.inner.create_folder(name)

    async def save_services(self, folder_id: str, services: Sequence[Service]) -> None:
        self._check("save_services")
        await self.inner.save_services(folder_id, services)


class GatedRemote:
    """Remote whose calls block until the test releases them, for ordering tests."""

    def __init__(self):
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls = []

    def _gate(self, key: str) -> asyncio.Event:
        return self.gates.setdefault(key, asyncio.Event())

    def release(self, key: str) -> None:
        self._gate(key).set()

    async def fetch_folder(self, folder_id: str) -> Folder:
        self.calls.append(("fetch_folder", folder_id))
        await self._gate(f"fetch:{folder_id}").wait()
        return canned_folder(folder_id)

    async def create_folder(self, name: str) -> FolderRef:
        self.calls.append(("create_folder", name))
        await self._gate(f"create:{name}").wait()
        return FolderRef(id=f"id-{name}", name=name)

    async def save_services(self, folder_id: str, services: Sequence[Service]) -> None:
        self.calls.append(("save_services", folder_id))
        await self._gate(f"save:{folder_id}").wait()


@pytest.fixture
def remote():
    """Zero-latency simulated remote that never fails."""
    return SimulatedFolderRemote(latency=0)


@pytest.fixture
def flaky_remote():
    return FlakyRemote()


@pytest.fixture
def gated_remote():
    return GatedRemote()


@pytest.fixture
def controller(remote):
    return FolderSessionController(remote)


@pytest.fixture
def config_file(tmp_path):
    """Write a servicemanager.yaml with an instant simulated remote."""
    path = tmp_path / "servicemanager.yaml"
    path.write_text(
        "app:\n"
        "  name: Test Manager\n"
        "  environment: dev\n"
        "remote:\n"
        "  mode: simulated\n"
        "  latency_seconds: 0\n"
        "  failure_rate: 0\n"
        "session:\n"
        "  single_flight: true\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  directory: " + str(tmp_path / "logs") + "\n",
        encoding="utf-8",
    )
    return path

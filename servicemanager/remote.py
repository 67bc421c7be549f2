"""
Remote folder collaborators — the async boundary the session controller awaits.

Implementations:
- SimulatedFolderRemote: fixed delay, optional random failure, canned folder data
- HttpFolderRemote: JSON over HTTP via httpx.AsyncClient

Every failure is raised as RemoteFailure; the controller never sees
transport or parsing exceptions.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, TypeVar
from urllib.parse import quote

import httpx
import pydantic

from servicemanager.engine.config import RemoteConfig
from servicemanager.engine.errors import RemoteFailure
from servicemanager.engine.logging import log, log_remote_call
from servicemanager.ids import IdAllocator
from servicemanager.models import Folder, FolderRef, Service

logger = logging.getLogger("servicemanager.remote")

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


class FolderRemote(Protocol):
    """Contract for the external folder service."""

    async def fetch_folder(self, folder_id: str) -> Folder:
        """Return the folder with its ordered services."""
        ...

    async def create_folder(self, name: str) -> FolderRef:
        """Create an empty folder and return its remote-issued id."""
        ...

    async def save_services(self, folder_id: str, services: Sequence[Service]) -> None:
        """Replace the folder's stored services. Repeating a save is harmless."""
        ...


def canned_folder(folder_id: str) -> Folder:
    """The demo folder returned for any id the simulation does not know."""
    return Folder(
        id=folder_id,
        name=f"Folder {folder_id}",
        services=[
            Service(id="1", title="Web Service", description="Modern website development"),
            Service(id="2", title="Mobile Service", description="iOS and Android mobile apps"),
        ],
    )


# ---------------------------------------------------------------------------
# Simulated remote
# ---------------------------------------------------------------------------

class SimulatedFolderRemote:
    """
    In-process stand-in for the folder backend.

    Each call sleeps ``latency`` seconds, then fails with probability
    ``failure_rate``. Folders created or saved through this instance are
    remembered and returned by later fetches; any other id yields the
    canned demo folder.
    """

    name = "simulated"

    def __init__(
        self,
        latency: float = 1.0,
        failure_rate: float = 0.0,
        ids: Optional[IdAllocator] = None,
        rng: Optional[random.Random] = None,
    ):
        self._latency = latency
        self._failure_rate = failure_rate
        self._ids = ids or IdAllocator()
        self._rng = rng or random.Random()
        self._folders: Dict[str, Folder] = {}
        self.calls: List[str] = []

    async def _simulate(self, operation: str, folder_id: Optional[str] = None) -> float:
        self.calls.append(operation)
        start = time.monotonic()
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._failure_rate and self._rng.random() < self._failure_rate:
            duration_ms = (time.monotonic() - start) * 1000
            log(log_remote_call(
                operation, self.name, duration_ms, False,
                folder_id=folder_id, error="simulated failure",
            ))
            raise RemoteFailure(
                f"Simulated failure during {operation}",
                operation=operation,
                folder_id=folder_id,
            )
        return start

    def _done(self, operation: str, start: float, folder_id: Optional[str]) -> None:
        duration_ms = (time.monotonic() - start) * 1000
        log(log_remote_call(operation, self.name, duration_ms, True, folder_id=folder_id))

    async def fetch_folder(self, folder_id: str) -> Folder:
        start = await self._simulate("fetch_folder", folder_id)
        stored = self._folders.get(folder_id)
        folder = stored.model_copy(deep=True) if stored else canned_folder(folder_id)
        self._done("fetch_folder", start, folder_id)
        return folder

    async def create_folder(self, name: str) -> FolderRef:
        start = await self._simulate("create_folder")
        folder_id = self._ids.allocate(taken=self._folders.keys())
        self._folders[folder_id] = Folder(id=folder_id, name=name)
        self._done("create_folder", start, folder_id)
        return FolderRef(id=folder_id, name=name)

    async def save_services(self, folder_id: str, services: Sequence[Service]) -> None:
        start = await self._simulate("save_services", folder_id)
        existing = self._folders.get(folder_id)
        name = existing.name if existing else f"Folder {folder_id}"
        self._folders[folder_id] = Folder(id=folder_id, name=name, services=list(services))
        self._done("save_services", start, folder_id)

    def stored_folder(self, folder_id: str) -> Optional[Folder]:
        return self._folders.get(folder_id)


# ---------------------------------------------------------------------------
# HTTP remote
# ---------------------------------------------------------------------------

class HttpFolderRemote:
    """
    Folder backend over HTTP.

    Endpoints (relative to base_url):
        GET  /folders/{id}            -> {"id", "name", "services": [...]}
        POST /folders {"name"}        -> {"id", "name"}
        PUT  /folders/{id}/services   <- [{"id", "title", "description"}, ...]

    One pooled httpx.AsyncClient per instance, created lazily; call
    ``aclose()`` on shutdown.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = 15,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                headers=self._headers,
                follow_redirects=True,
            )
            logger.info(f"Created httpx client for {self._base_url}")
        return self._client

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        folder_id: Optional[str] = None,
        body: Optional[Any] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        start = time.monotonic()
        try:
            response = await self._get_client().request(method, url, json=body)
        except httpx.HTTPError as e:
            duration_ms = (time.monotonic() - start) * 1000
            log(log_remote_call(
                operation, self.name, duration_ms, False, folder_id=folder_id, error=str(e),
            ))
            raise RemoteFailure(
                f"{operation} failed: {e}", operation=operation, folder_id=folder_id,
            ) from e

        duration_ms = (time.monotonic() - start) * 1000
        success = 200 <= response.status_code < 300
        log(log_remote_call(
            operation, self.name, duration_ms, success,
            folder_id=folder_id, status_code=response.status_code,
        ))
        if not success:
            raise RemoteFailure(
                f"{operation} failed with HTTP {response.status_code}",
                operation=operation,
                folder_id=folder_id,
                status_code=response.status_code,
                response_body=response.text[:500],
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteFailure(
                f"{operation} returned a non-JSON body",
                operation=operation,
                folder_id=folder_id,
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, operation: str, folder_id: Optional[str]) -> ModelT:
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as e:
            raise RemoteFailure(
                f"{operation} returned a malformed payload: {e.error_count()} error(s)",
                operation=operation,
                folder_id=folder_id,
            ) from e

    async def fetch_folder(self, folder_id: str) -> Folder:
        data = await self._request(
            "fetch_folder", "GET", f"/folders/{quote(folder_id, safe='')}", folder_id,
        )
        return self._parse(Folder, data, "fetch_folder", folder_id)

    async def create_folder(self, name: str) -> FolderRef:
        data = await self._request("create_folder", "POST", "/folders", body={"name": name})
        return self._parse(FolderRef, data, "create_folder", None)

    async def save_services(self, folder_id: str, services: Sequence[Service]) -> None:
        await self._request(
            "save_services",
            "PUT",
            f"/folders/{quote(folder_id, safe='')}/services",
            folder_id,
            body=[s.model_dump() for s in services],
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_remote(config: RemoteConfig, ids: Optional[IdAllocator] = None) -> FolderRemote:
    """Create the remote selected by ``remote.mode``."""
    if config.mode == "http":
        return HttpFolderRemote(
            base_url=config.base_url,
            timeout=config.timeout,
            headers=config.headers,
        )
    return SimulatedFolderRemote(
        latency=config.latency_seconds,
        failure_rate=config.failure_rate,
        ids=ids,
    )

"""
Service Manager — Reflex State bridging the page to FolderSessionController.

Reflex vars are the per-client store. Each event handler rebuilds a
controller around a FolderSession read from the vars, runs exactly one
operation, and writes the session back. Async handlers yield once after the
operation starts so the busy flag reaches the browser.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import reflex as rx

from servicemanager.controller import MSG_FOLDER_ID_REQUIRED, FolderSessionController
from servicemanager.engine.config import get_config
from servicemanager.models import FolderSession
from servicemanager.remote import FolderRemote, build_remote

logger = logging.getLogger("servicemanager.state")

SESSION_VARS = (
    "has_folder",
    "folder_id",
    "folder_title",
    "services",
    "folder_name",
    "service_title",
    "service_description",
    "loading",
    "message",
)

_remote: Optional[FolderRemote] = None


def get_remote() -> FolderRemote:
    """The process-wide remote collaborator, built from config on first use."""
    global _remote
    if _remote is None:
        _remote = build_remote(get_config().remote)
    return _remote


def session_from_vars(values: Mapping[str, Any]) -> FolderSession:
    """Rebuild a FolderSession from the flat Reflex vars named in SESSION_VARS."""
    # Reflex hands back proxied containers; copy to plain dicts for pydantic
    services = [dict(s) for s in values["services"]]
    folder = None
    if values["has_folder"]:
        folder = {"id": values["folder_id"], "name": values["folder_title"], "services": services}
    return FolderSession.from_snapshot({
        "folder": folder,
        "folder_name": values["folder_name"],
        "draft": {"title": values["service_title"], "description": values["service_description"]},
        "status": {"busy": values["loading"], "message": values["message"]},
        "loose_services": [] if folder else services,
    })


def session_to_vars(session: FolderSession) -> Dict[str, Any]:
    """Flatten a FolderSession into the Reflex vars named in SESSION_VARS."""
    snapshot = session.to_snapshot()
    folder = snapshot["folder"]
    return {
        "has_folder": folder is not None,
        "folder_id": folder["id"] if folder else "",
        "folder_title": folder["name"] if folder else "",
        "services": folder["services"] if folder else snapshot["loose_services"],
        "folder_name": snapshot["folder_name"],
        "service_title": snapshot["draft"]["title"],
        "service_description": snapshot["draft"]["description"],
        "loading": snapshot["status"]["busy"],
        "message": snapshot["status"]["message"],
    }


class ServiceManagerState(rx.State):
    """Per-client view of one folder session."""

    # Folder
    has_folder: bool = False
    folder_id: str = ""
    folder_title: str = ""
    services: list[dict] = []

    # Form drafts
    folder_name: str = ""
    fetch_id: str = ""
    service_title: str = ""
    service_description: str = ""

    # Status
    loading: bool = False
    message: str = ""

    # -----------------------------------------------------------------------
    # Session <-> vars
    # -----------------------------------------------------------------------

    def _session(self) -> FolderSession:
        return session_from_vars({name: getattr(self, name) for name in SESSION_VARS})

    def _controller(self) -> FolderSessionController:
        return FolderSessionController(
            get_remote(),
            self._session(),
            single_flight=get_config().session.single_flight,
        )

    def _pull(self, controller: FolderSessionController) -> None:
        for name, value in session_to_vars(controller.session).items():
            setattr(self, name, value)

    # -----------------------------------------------------------------------
    # Input handlers
    # -----------------------------------------------------------------------

    def set_folder_name(self, value: str) -> None:
        self.folder_name = value

    def set_fetch_id(self, value: str) -> None:
        self.fetch_id = value

    def set_service_title(self, value: str) -> None:
        self.service_title = value

    def set_service_description(self, value: str) -> None:
        self.service_description = value

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    async def create_folder(self):
        """Create a folder from the folder-name input."""
        controller = self._controller()
        operation = asyncio.ensure_future(controller.create_folder())
        await asyncio.sleep(0)
        self._pull(controller)
        yield
        await operation
        self._pull(controller)

    async def fetch_folder(self):
        """Load the folder whose id is in the fetch input."""
        folder_id = self.fetch_id.strip()
        if not folder_id:
            self.message = MSG_FOLDER_ID_REQUIRED
            return
        controller = self._controller()
        operation = asyncio.ensure_future(controller.fetch_folder(folder_id))
        await asyncio.sleep(0)
        self._pull(controller)
        yield
        folder = await operation
        self._pull(controller)
        if folder is not None:
            self.fetch_id = ""

    async def save_services(self):
        """Persist the current services to the remote."""
        controller = self._controller()
        operation = asyncio.ensure_future(controller.save_services())
        await asyncio.sleep(0)
        self._pull(controller)
        yield
        await operation
        self._pull(controller)

    def add_service(self) -> None:
        controller = self._controller()
        controller.add_service()
        self._pull(controller)

    def delete_service(self, service_id: str) -> None:
        controller = self._controller()
        controller.delete_service(service_id)
        self._pull(controller)

    def reset_session(self) -> None:
        controller = self._controller()
        controller.reset_session()
        self._pull(controller)

    @rx.var
    def service_count(self) -> int:
        return len(self.services)

    @rx.var
    def has_services(self) -> bool:
        return len(self.services) > 0

"""
Folder session controller — the only place session state changes.

One controller drives one FolderSession. Async operations (fetch, create,
save) suspend only while awaiting the remote; everything else is
synchronous. The busy flag is advisory unless ``single_flight`` is set:
overlapping operations are allowed and the one that finishes last wins.

Errors never leave the controller. Validation problems, remote failures
and single-flight rejections all end up in ``status.message``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from servicemanager.engine.errors import (
    RemoteFailure,
    ServiceManagerError,
    SessionBusyError,
    ValidationError,
)
from servicemanager.engine.logging import log, log_session_event
from servicemanager.ids import IdAllocator
from servicemanager.models import (
    Folder,
    FolderSession,
    NewServiceDraft,
    Service,
    SessionPhase,
)
from servicemanager.remote import FolderRemote

logger = logging.getLogger("servicemanager.controller")

MSG_FETCH_OK = "Folder successfully fetched!"
MSG_FETCH_FAILED = "Error while fetching folder"
MSG_FOLDER_ID_REQUIRED = "Please enter a folder ID"
MSG_NAME_REQUIRED = "Please enter a folder name"
MSG_CREATE_FAILED = "Error while creating folder"
MSG_SERVICE_ADDED = "Service successfully added!"
MSG_SERVICE_DELETED = "Service deleted"
MSG_SAVE_OK = "Services successfully saved!"
MSG_SAVE_FAILED = "Error while saving services"
MSG_BUSY = "Another operation is already in progress"


def folder_created_message(folder: Folder) -> str:
    return f'Folder "{folder.name}" created successfully! ID: {folder.id}'


class FolderSessionController:
    """
    Owns a FolderSession and applies every transition to it.

    States: NO_FOLDER and FOLDER_ACTIVE. create_folder / fetch_folder move
    to FOLDER_ACTIVE on success, reset_session moves back. Only
    save_services requires an active folder; add_service and
    delete_service work on whatever collection the session holds.
    """

    def __init__(
        self,
        remote: FolderRemote,
        session: Optional[FolderSession] = None,
        *,
        ids: Optional[IdAllocator] = None,
        single_flight: bool = False,
    ):
        self._remote = remote
        self._session = session if session is not None else FolderSession()
        self._ids = ids or IdAllocator()
        self._single_flight = single_flight

    # -----------------------------------------------------------------------
    # Observable state
    # -----------------------------------------------------------------------

    @property
    def session(self) -> FolderSession:
        return self._session

    @property
    def folder(self) -> Optional[Folder]:
        return self._session.folder

    @property
    def services(self) -> List[Service]:
        return list(self._session.services)

    @property
    def draft(self) -> NewServiceDraft:
        return self._session.draft

    @property
    def folder_name(self) -> str:
        return self._session.folder_name

    @property
    def busy(self) -> bool:
        return self._session.status.busy

    @property
    def message(self) -> str:
        return self._session.status.message

    @property
    def phase(self) -> SessionPhase:
        return self._session.phase

    # -----------------------------------------------------------------------
    # Draft inputs
    # -----------------------------------------------------------------------

    def set_folder_name(self, value: str) -> None:
        self._session.folder_name = value

    def set_draft_title(self, value: str) -> None:
        self._session.draft = self._session.draft.model_copy(update={"title": value})

    def set_draft_description(self, value: str) -> None:
        self._session.draft = self._session.draft.model_copy(update={"description": value})

    # -----------------------------------------------------------------------
    # Async operations
    # -----------------------------------------------------------------------

    async def fetch_folder(self, folder_id: str) -> Optional[Folder]:
        """Replace the current folder with the remote one. None on failure."""
        try:
            self._begin("fetch_folder")
        except SessionBusyError as e:
            self._reject("fetch_folder", e)
            return None
        try:
            folder = await self._remote.fetch_folder(folder_id)
        except RemoteFailure as e:
            self._fail("fetch_folder", e, MSG_FETCH_FAILED, folder_id=folder_id)
            return None
        finally:
            self._end()

        self._install(folder)
        self._set_message(MSG_FETCH_OK)
        self._record("fetch_folder", "success", folder_id=folder.id)
        return folder

    async def create_folder(self, name: Optional[str] = None) -> Optional[Folder]:
        """
        Create an empty folder named *name* (default: the folder-name draft).

        An empty or whitespace-only name is rejected before the remote is
        called, so no delay is incurred and busy never turns on.
        """
        if name is None:
            name = self._session.folder_name
        try:
            self._require_name(name)
        except ValidationError as e:
            self._reject("create_folder", e)
            return None

        try:
            self._begin("create_folder")
        except SessionBusyError as e:
            self._reject("create_folder", e)
            return None
        try:
            ref = await self._remote.create_folder(name)
        except RemoteFailure as e:
            self._fail("create_folder", e, MSG_CREATE_FAILED)
            return None
        finally:
            self._end()

        folder = Folder(id=ref.id, name=ref.name, services=[])
        self._install(folder)
        self._session.folder_name = ""
        self._set_message(folder_created_message(folder))
        self._record("create_folder", "success", folder_id=folder.id)
        return folder

    async def save_services(self) -> bool:
        """Push the current services to the remote. No-op without a folder."""
        folder = self._session.folder
        if folder is None:
            self._record("save_services", "noop")
            return False
        try:
            self._begin("save_services")
        except SessionBusyError as e:
            self._reject("save_services", e)
            return False

        snapshot = list(folder.services)
        try:
            await self._remote.save_services(folder.id, snapshot)
        except RemoteFailure as e:
            self._fail("save_services", e, MSG_SAVE_FAILED, folder_id=folder.id)
            return False
        finally:
            self._end()

        self._set_message(MSG_SAVE_OK)
        self._record(
            "save_services", "success", folder_id=folder.id, service_count=len(snapshot),
        )
        return True

    # -----------------------------------------------------------------------
    # Sync operations
    # -----------------------------------------------------------------------

    def add_service(self, draft: Optional[NewServiceDraft] = None) -> Optional[Service]:
        """Append a service built from *draft* (default: the session draft)."""
        if draft is None:
            draft = self._session.draft
        try:
            draft.require_complete()
        except ValidationError as e:
            self._reject("add_service", e)
            return None

        services = self._session.services
        service = Service(
            id=self._ids.allocate(taken=(s.id for s in services)),
            title=draft.title,
            description=draft.description,
        )
        services.append(service)
        self._session.draft = NewServiceDraft()
        self._set_message(MSG_SERVICE_ADDED)
        self._record(
            "add_service", "success",
            folder_id=self._folder_id(), service_id=service.id, service_count=len(services),
        )
        return service

    def delete_service(self, service_id: str) -> bool:
        """
        Remove the first service with *service_id*.

        An unknown id leaves the collection untouched but still reports
        the deletion message. Returns whether a service was removed.
        """
        services = self._session.services
        removed = False
        for index, service in enumerate(services):
            if service.id == service_id:
                del services[index]
                removed = True
                break

        self._set_message(MSG_SERVICE_DELETED)
        self._record(
            "delete_service", "success" if removed else "noop",
            folder_id=self._folder_id(), service_id=service_id, service_count=len(services),
        )
        return removed

    def reset_session(self) -> None:
        """Drop the folder and its services. Drafts are left as they are."""
        self._session.folder = None
        self._session.loose_services = []
        self._set_message("")
        self._record("reset_session", "success")

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    @staticmethod
    def _require_name(name: str) -> None:
        if not name.strip():
            raise ValidationError(MSG_NAME_REQUIRED, operation="create_folder", fields=["name"])

    def _begin(self, operation: str) -> None:
        if self._single_flight and self._session.status.busy:
            raise SessionBusyError(MSG_BUSY, operation=operation)
        self._session.status.busy = True

    def _end(self) -> None:
        self._session.status.busy = False

    def _install(self, folder: Folder) -> None:
        self._session.folder = folder
        self._session.loose_services = []

    def _reject(self, operation: str, error: ServiceManagerError) -> None:
        self._set_message(error.message)
        self._record(operation, "rejected", message=error.message)

    def _fail(
        self,
        operation: str,
        error: RemoteFailure,
        message: str,
        folder_id: Optional[str] = None,
    ) -> None:
        logger.warning(f"{operation} failed: {error.message}")
        self._set_message(message)
        self._record(operation, "failure", folder_id=folder_id, error=error.to_dict())

    def _set_message(self, message: str) -> None:
        self._session.status.message = message

    def _folder_id(self) -> Optional[str]:
        folder = self._session.folder
        return folder.id if folder else None

    def _record(self, operation: str, outcome: str, **fields) -> None:
        logger.debug(f"{operation}: {outcome}")
        log(log_session_event(operation, outcome, **fields))

"""Folder / Service records and the per-session state they live in."""

from __future__ import annotations

import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from servicemanager.engine.errors import ValidationError


class Service(BaseModel):
    """A titled, described item in a folder. Immutable; removed only by deletion."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)


class Folder(BaseModel):
    """The single top-level container of a session. Service order is display order."""

    id: str = Field(min_length=1)
    name: str
    services: List[Service] = Field(default_factory=list)


class FolderRef(BaseModel):
    """What the remote hands back after creating a folder."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str


class NewServiceDraft(BaseModel):
    """Unsaved input of the add-service form."""

    title: str = ""
    description: str = ""

    def missing_fields(self) -> List[str]:
        return [
            name for name, value in (("title", self.title), ("description", self.description))
            if not value.strip()
        ]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def require_complete(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise ValidationError(
                "Please fill in all service fields",
                operation="add_service",
                fields=missing,
            )


class SessionStatus(BaseModel):
    busy: bool = False
    message: str = ""


class SessionPhase(str, enum.Enum):
    NO_FOLDER = "no_folder"
    FOLDER_ACTIVE = "folder_active"


class FolderSession(BaseModel):
    """
    Everything one user session holds.

    ``services`` is a view: the active folder's list while a folder exists,
    otherwise ``loose_services`` (services added before any folder was
    created). There is only ever one backing list at a time, so the
    session's services and ``folder.services`` cannot diverge.
    """

    folder: Optional[Folder] = None
    folder_name: str = ""
    draft: NewServiceDraft = Field(default_factory=NewServiceDraft)
    status: SessionStatus = Field(default_factory=SessionStatus)
    loose_services: List[Service] = Field(default_factory=list)

    @property
    def services(self) -> List[Service]:
        if self.folder is not None:
            return self.folder.services
        return self.loose_services

    @property
    def phase(self) -> SessionPhase:
        if self.folder is None:
            return SessionPhase.NO_FOLDER
        return SessionPhase.FOLDER_ACTIVE

    def to_snapshot(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "FolderSession":
        return cls.model_validate(data)

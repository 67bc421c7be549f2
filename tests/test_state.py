"""Unit tests for servicemanager.state — Reflex vars <-> FolderSession mapping."""

from types import SimpleNamespace

import pytest

from servicemanager.controller import MSG_FOLDER_ID_REQUIRED, FolderSessionController
from servicemanager.models import FolderSession, NewServiceDraft
from servicemanager.remote import canned_folder
from servicemanager.state import (
    SESSION_VARS,
    ServiceManagerState,
    session_from_vars,
    session_to_vars,
)


def _empty_vars(**overrides):
    values = {
        "has_folder": False,
        "folder_id": "",
        "folder_title": "",
        "services": [],
        "folder_name": "",
        "service_title": "",
        "service_description": "",
        "loading": False,
        "message": "",
    }
    values.update(overrides)
    return values


class TestSessionVars:
    def test_keys_match_session_vars(self):
        assert set(session_to_vars(FolderSession())) == set(SESSION_VARS)

    def test_empty_session(self):
        assert session_to_vars(FolderSession()) == _empty_vars()

    def test_folder_session_flattens(self):
        session = FolderSession(
            folder=canned_folder("42"),
            folder_name="Next",
            draft=NewServiceDraft(title="T", description="D"),
        )
        session.status.busy = True
        session.status.message = "Folder successfully fetched!"

        values = session_to_vars(session)

        assert values["has_folder"] is True
        assert values["folder_id"] == "42"
        assert values["folder_title"] == "Folder 42"
        assert [s["title"] for s in values["services"]] == ["Web Service", "Mobile Service"]
        assert values["service_title"] == "T"
        assert values["loading"] is True
        assert values["message"] == "Folder successfully fetched!"

    def test_round_trip_through_vars(self):
        session = FolderSession(folder=canned_folder("7"), folder_name="x")
        restored = session_from_vars(session_to_vars(session))
        assert restored.to_snapshot() == session.to_snapshot()

    def test_services_without_folder_become_loose(self):
        service = {"id": "a1", "title": "A", "description": "B"}
        session = session_from_vars(_empty_vars(services=[service]))

        assert session.folder is None
        assert [s.id for s in session.loose_services] == ["a1"]
        assert session_to_vars(session)["services"] == [service]

    @pytest.mark.asyncio
    async def test_controller_changes_reach_vars(self, remote):
        ctrl = FolderSessionController(remote, session_from_vars(_empty_vars(folder_name="Ops")))
        folder = await ctrl.create_folder()

        values = session_to_vars(ctrl.session)
        assert values["has_folder"] is True
        assert values["folder_id"] == folder.id
        assert values["folder_name"] == ""
        assert values["services"] == []


class TestFetchHandler:
    @pytest.mark.asyncio
    async def test_blank_id_sets_message(self):
        state = SimpleNamespace(fetch_id="   ", message="", loading=False)
        handler = ServiceManagerState.event_handlers["fetch_folder"].fn

        async for _ in handler(state):
            pass

        assert state.message == MSG_FOLDER_ID_REQUIRED
        assert state.loading is False

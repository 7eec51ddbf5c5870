"""Fixtures for the client-side tests: fake API, recording renderer, context."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from accessilist.client.autosave import ManualScheduler
from accessilist.client.checklist import RecordingRenderer
from accessilist.client.exceptions import ApiError, ApiNotFoundError
from accessilist.client.session import AppContext
from accessilist.config.checklist_types import builtin_registry


class FakeSessionApi:
    """In-memory stand-in for SessionApiClient.

    Set ``fail_with`` to make every call raise that error.
    """

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.saves: list[dict[str, Any]] = []
        self.deleted: list[str] = []
        self.fail_with: ApiError | None = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def instantiate(self, session_key: str, type_slug: str, state: Any = None) -> str:
        self._check()
        if session_key in self.documents:
            return "Instance already exists"
        self.documents[session_key] = {
            "sessionKey": session_key,
            "typeSlug": type_slug,
            "state": state or {},
        }
        return "Instance created"

    def save(self, session_key: str, type_slug: str, state: dict[str, Any]) -> None:
        self._check()
        self.saves.append(copy.deepcopy(state))
        self.documents[session_key] = {
            "sessionKey": session_key,
            "typeSlug": type_slug,
            "state": copy.deepcopy(state),
        }

    def restore(self, session_key: str) -> dict[str, Any] | None:
        self._check()
        document = self.documents.get(session_key)
        return copy.deepcopy(document) if document else None

    def delete(self, session_key: str) -> None:
        self._check()
        if session_key not in self.documents:
            raise ApiNotFoundError("Instance not found")
        del self.documents[session_key]
        self.deleted.append(session_key)


@pytest.fixture
def fake_api() -> FakeSessionApi:
    return FakeSessionApi()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def scheduler(fake_clock: Any) -> ManualScheduler:
    return ManualScheduler(clock=fake_clock)


@pytest.fixture
def ctx(
    fake_api: FakeSessionApi,
    renderer: RecordingRenderer,
    scheduler: ManualScheduler,
    fake_clock: Any,
) -> AppContext:
    """Context for a camtasia session ``ABC``."""
    return AppContext.create(
        fake_api,  # type: ignore[arg-type]
        "ABC",
        "camtasia",
        renderer,
        scheduler,
        registry=builtin_registry(),
        time_provider=fake_clock,
    )

"""Schema definitions for persisted AccessiList sessions.

A session file holds::

    {
      "sessionKey": "ABC",
      "typeSlug": "word",
      "metadata": {"version": "1.0", "created": 1700000000000, "lastModified": ...},
      "state": {...}
    }

The server treats ``state`` as an opaque JSON object. ``ChecklistState``
describes its shape for the client layer, which owns its meaning.

Invariants:
- manual row ids are unique within their checkpoint array
- row order is insertion order
- timestamps in metadata are integer milliseconds since the epoch
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"

DEFAULT_ACTIVE_SECTION = "checkpoint-1"


class TaskStatus(str, Enum):
    """Three-state status cycle of a task row."""

    READY = "ready"
    ACTIVE = "active"
    DONE = "done"

    @classmethod
    def _missing_(cls, value: object) -> TaskStatus | None:
        # Report-era values written by older clients
        legacy = {"pending": cls.READY, "in-progress": cls.ACTIVE, "completed": cls.DONE}
        if isinstance(value, str):
            return legacy.get(value)
        return None

    def next(self) -> TaskStatus:
        order = (TaskStatus.READY, TaskStatus.ACTIVE, TaskStatus.DONE)
        return order[(order.index(self) + 1) % len(order)]


class StatusFlag(str, Enum):
    """How the current status was reached."""

    TEXT_MANUAL = "text-manual"
    ACTIVE_AUTO = "active-auto"
    ACTIVE_MANUAL = "active-manual"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SidePanelState(_CamelModel):
    expanded: bool = True
    active_section: str = Field(default=DEFAULT_ACTIVE_SECTION, alias="activeSection")


class StatusButtonState(_CamelModel):
    state: TaskStatus = TaskStatus.READY
    flag: StatusFlag = StatusFlag.TEXT_MANUAL


class CheckpointRow(_CamelModel):
    """A task row added by the user at runtime."""

    id: str = Field(pattern=r"^\d+\.\d+$")
    task: str = ""
    notes: str = ""
    status: TaskStatus = TaskStatus.READY
    status_flag: StatusFlag = Field(default=StatusFlag.TEXT_MANUAL, alias="statusFlag")
    is_manual: bool = Field(default=True, alias="isManual")
    info_link: str = Field(default="", alias="infoLink")


class ChecklistState(_CamelModel):
    """The client state document."""

    side_panel: SidePanelState = Field(default_factory=SidePanelState, alias="sidePanel")
    notes: dict[str, str] = Field(default_factory=dict)
    status_buttons: dict[str, StatusButtonState] = Field(
        default_factory=dict, alias="statusButtons"
    )
    restart_buttons: dict[str, bool] = Field(default_factory=dict, alias="restartButtons")
    checkpoint_rows: dict[str, list[CheckpointRow]] = Field(
        default_factory=dict,
        alias="checkpointRows",
        validation_alias=AliasChoices("checkpointRows", "principleRows"),
    )

    @field_validator("checkpoint_rows")
    @classmethod
    def unique_row_ids(
        cls, value: dict[str, list[CheckpointRow]]
    ) -> dict[str, list[CheckpointRow]]:
        for checkpoint_id, rows in value.items():
            ids = [row.id for row in rows]
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate manual row id in {checkpoint_id}")
        return value


class SessionMetadata(_CamelModel):
    """Session metadata. Unknown fields are preserved."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    version: str = SCHEMA_VERSION
    created: int | None = None
    last_modified: int | None = Field(default=None, alias="lastModified")


class SessionDocument(_CamelModel):
    session_key: str = Field(alias="sessionKey")
    type_slug: str = Field(alias="typeSlug")
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)
    state: dict[str, Any] = Field(default_factory=dict)


class SessionSummary(_CamelModel):
    """One entry of the session listing."""

    session_key: str = Field(alias="sessionKey")
    timestamp: int
    created: int
    type_slug: str = Field(alias="typeSlug")
    metadata: dict[str, Any] = Field(default_factory=dict)
    state: dict[str, Any] | None = None
    status: str | None = None
    progress: float | None = None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

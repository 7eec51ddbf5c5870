"""
Checklist templates.

A template is the static part of a checklist: numbered checkpoints, each with
an ordered table of tasks. Templates ship as JSON package data under
``accessilist/templates/<slug>.json`` in the layout

    {
      "checkpoint-1": {
        "caption": "Introduction",
        "table": [{"id": "1.1", "task": "...", "example": "..."}]
      }
    }
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from importlib import resources

from pydantic import BaseModel, Field

from accessilist.config.checklist_types import ChecklistType, TypeRegistry
from accessilist.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

_SECTION_ID = re.compile(r"^(?:checkpoint|checklist)-(\d+)$")


class TemplateTask(BaseModel):
    id: str = Field(pattern=r"^\d+\.\d+$")
    task: str
    example: str = ""


class Checkpoint(BaseModel):
    id: str
    number: int
    caption: str
    tasks: list[TemplateTask] = Field(default_factory=list)


class ChecklistTemplate(BaseModel):
    type_slug: str
    checkpoints: list[Checkpoint]

    def checkpoint(self, checkpoint_id: str) -> Checkpoint | None:
        for checkpoint in self.checkpoints:
            if checkpoint.id == checkpoint_id:
                return checkpoint
        return None

    @property
    def task_ids(self) -> list[str]:
        return [task.id for cp in self.checkpoints for task in cp.tasks]


def checkpoint_number(checkpoint_id: str) -> int | None:
    """``checkpoint-3`` (or legacy ``checklist-3``) -> 3."""
    match = _SECTION_ID.match(checkpoint_id)
    return int(match.group(1)) if match else None


def parse_template(type_slug: str, data: dict) -> ChecklistTemplate:
    """Build a template from the JSON layout, sorted by checkpoint number.

    Keys that are not ``checkpoint-N``/``checklist-N`` are ignored.
    """
    checkpoints = []
    for key, section in data.items():
        number = checkpoint_number(key)
        if number is None or not isinstance(section, dict):
            continue
        checkpoints.append(
            Checkpoint(
                id=key,
                number=number,
                caption=section.get("caption", ""),
                tasks=[TemplateTask(**row) for row in section.get("table", [])],
            )
        )
    checkpoints.sort(key=lambda cp: cp.number)
    return ChecklistTemplate(type_slug=type_slug, checkpoints=checkpoints)


@lru_cache(maxsize=32)
def _load_packaged(template_name: str) -> dict:
    resource = resources.files("accessilist").joinpath("templates").joinpath(template_name)
    try:
        return json.loads(resource.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Checklist template {template_name!r} not found") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Checklist template {template_name!r} is not valid JSON") from e


def load_template(
    checklist_type: ChecklistType | str, registry: TypeRegistry | None = None
) -> ChecklistTemplate:
    """Load the bundled template for a checklist type.

    Args:
        checklist_type: Type object or slug
        registry: Needed when a slug is passed and the registry overrides file names

    Raises:
        ConfigurationError: If no template exists for the type.
    """
    if isinstance(checklist_type, str):
        resolved = registry.get(checklist_type) if registry is not None else None
        slug = checklist_type
        template_name = resolved.template_name if resolved else f"{checklist_type}.json"
    else:
        slug = checklist_type.slug
        template_name = checklist_type.template_name

    template = parse_template(slug, _load_packaged(template_name))
    logger.debug("Loaded template %s with %d checkpoints", slug, len(template.checkpoints))
    return template

"""
Checklist type registry.

Each checklist type has a slug (``word``, ``camtasia``...), a display name,
a category and a reserved three-letter demo key. The built-in registry can be
replaced by a YAML file pointed to by ``ACCESSILIST_TYPES_FILE``:

    default: camtasia
    types:
      word:
        display_name: Word
        category: Microsoft
        demo_key: WRD
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from accessilist.utils.errors import ConfigurationError, ErrorCode

logger = logging.getLogger(__name__)


class ChecklistType(BaseModel):
    """One checklist template type."""

    slug: str = Field(pattern=r"^[a-z0-9\-]+$")
    display_name: str
    category: str = "Other"
    demo_key: str | None = Field(default=None, pattern=r"^[A-Z0-9]{3}$")
    template_file: str | None = None

    @property
    def template_name(self) -> str:
        return self.template_file or f"{self.slug}.json"


_BUILTIN_TYPES: tuple[ChecklistType, ...] = (
    ChecklistType(slug="word", display_name="Word", category="Microsoft", demo_key="WRD"),
    ChecklistType(
        slug="powerpoint", display_name="PowerPoint", category="Microsoft", demo_key="PPT"
    ),
    ChecklistType(slug="excel", display_name="Excel", category="Microsoft", demo_key="XLS"),
    ChecklistType(slug="docs", display_name="Google Docs", category="Google", demo_key="DOC"),
    ChecklistType(slug="slides", display_name="Google Slides", category="Google", demo_key="SLD"),
    ChecklistType(slug="camtasia", display_name="Camtasia", category="Other", demo_key="CAM"),
    ChecklistType(slug="dojo", display_name="Dojo", category="Other", demo_key="DJO"),
)

DEFAULT_TYPE_SLUG = "camtasia"


class TypeRegistry:
    """Lookup table of known checklist types."""

    def __init__(
        self, types: list[ChecklistType] | tuple[ChecklistType, ...], default: str
    ) -> None:
        self._types: dict[str, ChecklistType] = {t.slug: t for t in types}
        if default not in self._types:
            raise ConfigurationError(
                f"Default checklist type {default!r} is not a registered type",
                code=ErrorCode.E801_INVALID_TYPES_FILE,
            )
        self.default_slug = default

    def __contains__(self, slug: object) -> bool:
        return isinstance(slug, str) and slug in self._types

    def __iter__(self) -> Iterator[ChecklistType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    @property
    def slugs(self) -> list[str]:
        return list(self._types)

    @property
    def default(self) -> ChecklistType:
        return self._types[self.default_slug]

    def get(self, slug: str) -> ChecklistType | None:
        return self._types.get(slug)

    def is_valid(self, slug: object) -> bool:
        return slug in self

    def validate(self, slug: object) -> str:
        """Return ``slug`` when known, otherwise the default type slug."""
        if isinstance(slug, str) and slug in self._types:
            return slug
        return self.default_slug

    def display_name(self, slug: str | None) -> str:
        if not slug:
            return "Unknown"
        checklist_type = self._types.get(slug)
        if checklist_type is not None:
            return checklist_type.display_name
        return slug[:1].upper() + slug[1:]

    def slug_from_display_name(self, display_name: object) -> str | None:
        """Map a legacy display name ("Google Docs") back to its slug.

        Matching is case-insensitive and also accepts the slug itself.
        """
        if not isinstance(display_name, str) or not display_name.strip():
            return None
        wanted = display_name.strip().lower()
        for checklist_type in self._types.values():
            if wanted in (checklist_type.display_name.lower(), checklist_type.slug):
                return checklist_type.slug
        return None

    @property
    def reserved_keys(self) -> frozenset[str]:
        """Demo keys that generated session keys must never collide with."""
        return frozenset(t.demo_key for t in self._types.values() if t.demo_key)

    def by_category(self) -> dict[str, list[str]]:
        categories: dict[str, list[str]] = {}
        for checklist_type in self._types.values():
            categories.setdefault(checklist_type.category, []).append(checklist_type.slug)
        return categories

    def to_dict(self) -> dict[str, Any]:
        return {
            "default": self.default_slug,
            "types": {
                t.slug: {
                    "displayName": t.display_name,
                    "category": t.category,
                    "demoKey": t.demo_key,
                }
                for t in self._types.values()
            },
            "categories": self.by_category(),
        }


def builtin_registry() -> TypeRegistry:
    return TypeRegistry(_BUILTIN_TYPES, DEFAULT_TYPE_SLUG)


def load_type_registry(path: str | Path | None = None) -> TypeRegistry:
    """Load the type registry from a YAML file, or the built-in one.

    Raises:
        ConfigurationError: If the file cannot be read or does not validate.
    """
    if path is None:
        return builtin_registry()

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML syntax in '{path}': {e}", code=ErrorCode.E801_INVALID_TYPES_FILE
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Error reading types file '{path}': {e}", code=ErrorCode.E801_INVALID_TYPES_FILE
        ) from e

    types_section = raw.get("types") if isinstance(raw, dict) else None
    if not isinstance(types_section, dict) or not types_section:
        raise ConfigurationError(
            f"Types file '{path}' must define a non-empty 'types' mapping",
            code=ErrorCode.E801_INVALID_TYPES_FILE,
        )

    try:
        types = [
            ChecklistType(slug=slug, **(fields or {})) for slug, fields in types_section.items()
        ]
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(
            f"Invalid checklist type in '{path}': {e}", code=ErrorCode.E801_INVALID_TYPES_FILE
        ) from e

    default = raw.get("default", DEFAULT_TYPE_SLUG)
    registry = TypeRegistry(types, default)
    logger.info("Loaded %d checklist types from %s", len(registry), path)
    return registry

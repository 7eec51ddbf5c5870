"""Configuration: runtime settings, checklist types and templates."""

from .checklist_types import (
    DEFAULT_TYPE_SLUG,
    ChecklistType,
    TypeRegistry,
    builtin_registry,
    load_type_registry,
)
from .runtime import RuntimeConfig, RuntimeMode, get_runtime_config, get_runtime_mode
from .templates import ChecklistTemplate, Checkpoint, TemplateTask, load_template

__all__ = [
    "DEFAULT_TYPE_SLUG",
    "ChecklistType",
    "TypeRegistry",
    "builtin_registry",
    "load_type_registry",
    "RuntimeConfig",
    "RuntimeMode",
    "get_runtime_config",
    "get_runtime_mode",
    "ChecklistTemplate",
    "Checkpoint",
    "TemplateTask",
    "load_template",
]

"""Tests for runtime configuration, the type registry and templates."""

import os

import pytest

from accessilist.config.checklist_types import (
    ChecklistType,
    TypeRegistry,
    builtin_registry,
    load_type_registry,
)
from accessilist.config.runtime import (
    RuntimeMode,
    get_runtime_config,
    get_runtime_mode,
)
from accessilist.config.templates import checkpoint_number, load_template, parse_template
from accessilist.utils.errors import ConfigurationError, ErrorCode


class TestRuntimeMode:
    """Mode detection and defaults."""

    def test_mode_from_environment(self, isolate_environment):
        os.environ["ACCESSILIST_RUNTIME_MODE"] = "Production"
        assert get_runtime_mode() == RuntimeMode.PRODUCTION

    def test_unknown_mode_falls_back_to_local(self, isolate_environment):
        os.environ["ACCESSILIST_RUNTIME_MODE"] = "moon"
        assert get_runtime_mode() == RuntimeMode.LOCAL

    @pytest.mark.parametrize(
        "mode, multiplier",
        [(RuntimeMode.PRODUCTION, 1), (RuntimeMode.STAGING, 5), (RuntimeMode.LOCAL, 50)],
    )
    def test_rate_limit_multiplier(self, mode, multiplier):
        assert mode.rate_limit_multiplier == multiplier
        assert get_runtime_config(mode).security.rate_limit_multiplier == multiplier

    def test_production_defaults(self, isolate_environment):
        for key in ("HOST", "JSON_LOGGING", "ACCESSILIST_SECURE_COOKIES", "DISABLE_RATE_LIMIT"):
            os.environ.pop(key, None)
        config = get_runtime_config(RuntimeMode.PRODUCTION)

        assert config.server.host == "0.0.0.0"
        assert config.observability.json_logging is True
        assert config.security.secure_cookies is True
        assert config.security.rate_limit_enabled is True
        assert config.debug is False

    def test_local_defaults(self, isolate_environment):
        os.environ.pop("ACCESSILIST_DEBUG", None)
        os.environ.pop("LOG_LEVEL", None)
        config = get_runtime_config(RuntimeMode.LOCAL)

        assert config.debug is True
        assert config.observability.log_level == "DEBUG"
        assert config.security.secure_cookies is False


class TestRuntimeEnvironmentOverrides:
    """Environment variables beat mode defaults."""

    def test_disable_rate_limit(self, isolate_environment):
        os.environ["DISABLE_RATE_LIMIT"] = "1"
        assert get_runtime_config(RuntimeMode.PRODUCTION).security.rate_limit_enabled is False

    def test_storage_paths(self, isolate_environment, tmp_path):
        os.environ["ACCESSILIST_SESSIONS_DIR"] = str(tmp_path / "s")
        os.environ["ACCESSILIST_RATE_LIMIT_DIR"] = str(tmp_path / "r")
        os.environ["ACCESSILIST_TYPES_FILE"] = str(tmp_path / "types.yaml")
        storage = get_runtime_config().storage

        assert storage.sessions_dir == str(tmp_path / "s")
        assert storage.rate_limit_dir == str(tmp_path / "r")
        assert storage.types_file == str(tmp_path / "types.yaml")

    def test_invalid_int_uses_default(self, isolate_environment):
        os.environ["PORT"] = "not-a-port"
        os.environ["ACCESSILIST_CSRF_TTL"] = "soon"
        config = get_runtime_config()

        assert config.server.port == 8000
        assert config.security.csrf_ttl == 3600

    def test_csrf_secret_from_environment(self, isolate_environment):
        os.environ["ACCESSILIST_CSRF_SECRET"] = "shared"
        assert get_runtime_config().security.csrf_secret == "shared"

    def test_random_csrf_secret_when_unset(self, isolate_environment):
        os.environ.pop("ACCESSILIST_CSRF_SECRET", None)
        first = get_runtime_config().security.csrf_secret
        second = get_runtime_config().security.csrf_secret
        assert first and second and first != second

    def test_to_env_dict_omits_secret(self):
        env = get_runtime_config(RuntimeMode.STAGING).to_env_dict()

        assert env["ACCESSILIST_RUNTIME_MODE"] == "staging"
        assert "ACCESSILIST_CSRF_SECRET" not in env
        assert not any(value == "test-secret" for value in env.values())


class TestTypeRegistry:
    """Checklist type lookups."""

    def test_builtin_types(self):
        registry = builtin_registry()
        assert registry.slugs == [
            "word", "powerpoint", "excel", "docs", "slides", "camtasia", "dojo"
        ]
        assert registry.default_slug == "camtasia"
        assert registry.reserved_keys == frozenset(
            {"WRD", "PPT", "XLS", "DOC", "SLD", "CAM", "DJO"}
        )

    def test_validate_falls_back_to_default(self):
        registry = builtin_registry()
        assert registry.validate("excel") == "excel"
        assert registry.validate("nonsense") == "camtasia"
        assert registry.validate(None) == "camtasia"

    def test_display_names(self):
        registry = builtin_registry()
        assert registry.display_name("docs") == "Google Docs"
        assert registry.display_name("custom") == "Custom"
        assert registry.display_name(None) == "Unknown"

    def test_by_category(self):
        categories = builtin_registry().by_category()
        assert categories["Google"] == ["docs", "slides"]

    def test_unknown_default_rejected(self):
        with pytest.raises(ConfigurationError):
            TypeRegistry([ChecklistType(slug="a", display_name="A")], default="b")

    def test_to_dict(self):
        data = builtin_registry().to_dict()
        assert data["default"] == "camtasia"
        assert data["types"]["word"] == {
            "displayName": "Word",
            "category": "Microsoft",
            "demoKey": "WRD",
        }


class TestLoadTypeRegistry:
    """YAML override of the type registry."""

    def test_none_returns_builtin(self):
        assert load_type_registry(None).slugs == builtin_registry().slugs

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "types.yaml"
        path.write_text(
            "default: notes\n"
            "types:\n"
            "  notes:\n"
            "    display_name: Notes\n"
            "    demo_key: NTS\n"
            "    template_file: word.json\n"
            "  word:\n"
            "    display_name: Word\n"
        )
        registry = load_type_registry(path)

        assert registry.slugs == ["notes", "word"]
        assert registry.default_slug == "notes"
        assert registry.reserved_keys == frozenset({"NTS"})
        assert registry.get("notes").template_name == "word.json"

    @pytest.mark.parametrize(
        "content",
        [
            "types: [unclosed",
            "default: word\n",
            "types:\n  Bad Slug:\n    display_name: X\n",
            "types:\n  word:\n    display_name: Word\n    demo_key: toolong\n",
        ],
    )
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "types.yaml"
        path.write_text(content)
        with pytest.raises(ConfigurationError) as exc_info:
            load_type_registry(path)
        assert exc_info.value.code == ErrorCode.E801_INVALID_TYPES_FILE

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_type_registry(tmp_path / "nope.yaml")


class TestTemplates:
    """Bundled checklist templates."""

    @pytest.mark.parametrize("slug", builtin_registry().slugs)
    def test_every_type_has_template(self, slug):
        template = load_template(slug)
        assert template.type_slug == slug
        assert template.checkpoints
        assert all(cp.tasks for cp in template.checkpoints)

    @pytest.mark.parametrize("slug", builtin_registry().slugs)
    def test_task_ids_follow_checkpoint_numbers(self, slug):
        for checkpoint in load_template(slug).checkpoints:
            for task in checkpoint.tasks:
                assert task.id.split(".")[0] == str(checkpoint.number)

    def test_checkpoints_sorted_by_number(self):
        template = parse_template(
            "x",
            {
                "checkpoint-10": {"caption": "Ten", "table": []},
                "checkpoint-2": {"caption": "Two", "table": [{"id": "2.1", "task": "t"}]},
                "title": "ignored",
            },
        )
        assert [cp.id for cp in template.checkpoints] == ["checkpoint-2", "checkpoint-10"]
        assert template.task_ids == ["2.1"]

    @pytest.mark.parametrize(
        "section, number",
        [("checkpoint-3", 3), ("checklist-4", 4), ("checkpoint-x", None), ("intro", None)],
    )
    def test_checkpoint_number(self, section, number):
        assert checkpoint_number(section) == number

    def test_missing_template(self):
        with pytest.raises(ConfigurationError):
            load_template("no-such-type")

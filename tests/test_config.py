"""
Tests for configuration loading and MvcConfig.
"""

import json

import pytest

from aerie import Application
from aerie.cache import DEVELOPMENT_TTL
from aerie.config import ConfigLoader, Environment, MvcConfig
from aerie.faults import ConfigFault


class TestEnvironment:

    @pytest.mark.parametrize("value,mode", [
        (None, "development"),
        ("", "development"),
        ("dev", "development"),
        ("TEST", "development"),
        ("prod", "production"),
        (" Production ", "production"),
    ])
    def test_parse(self, value, mode):
        assert Environment.parse(value).mode == mode

    def test_unknown_mode(self):
        with pytest.raises(ConfigFault):
            Environment.parse("staging")

    def test_from_env(self):
        env = Environment.from_env({"AERIE_ENV": "production"})
        assert env.production
        assert not env.development
        assert str(env) == "production"
        assert Environment.from_env({}).development


class TestMvcConfig:

    def test_defaults(self):
        config = MvcConfig()
        assert config.mode == "development"
        assert config.vendor_dir == "vendor"
        assert config.template_ttl == DEVELOPMENT_TTL
        assert config.model_json is True

    def test_production_derivations(self):
        config = MvcConfig(mode="prod")
        assert config.mode == "production"
        assert config.template_ttl is None
        assert config.model_json is False

    def test_explicit_values_win(self):
        config = MvcConfig(mode="production", cache_ttl=5, expose_model=True)
        assert config.template_ttl == 5
        assert config.model_json is True

    def test_negative_ttl(self):
        with pytest.raises(ConfigFault):
            MvcConfig(cache_ttl=-1)

    def test_with_options(self, tmp_path):
        base = MvcConfig(name="zoo")
        config = base.with_options(directory=str(tmp_path), statics="/assets/")
        assert config.name == "zoo"
        assert config.root == tmp_path.resolve()
        assert config.statics == "/assets/"
        assert base.statics is None

    def test_with_unknown_option(self):
        with pytest.raises(ConfigFault) as info:
            MvcConfig().with_options(colour="blue")
        assert "colour" in str(info.value)


class TestConfigLoader:

    def test_json_files_merge_in_order(self, tmp_path):
        (tmp_path / "a.json").write_text(json.dumps({"name": "zoo", "helpers": {"a": 1}}))
        (tmp_path / "b.json").write_text(json.dumps({"version": "2.0.0", "helpers": {"b": 2}}))

        loader = ConfigLoader.load(paths=[str(tmp_path / "*.json")], environ={})

        assert loader.get("name") == "zoo"
        assert loader.get("version") == "2.0.0"
        assert loader.get("helpers") == {"a": 1, "b": 2}
        assert loader.get("helpers.b") == 2
        assert loader.get("missing.key", "fallback") == "fallback"

    def test_invalid_json(self, tmp_path):
        (tmp_path / "bad.json").write_text("{nope")
        with pytest.raises(ConfigFault):
            ConfigLoader.load(paths=[str(tmp_path / "bad.json")], environ={})

    def test_non_object_json(self, tmp_path):
        (tmp_path / "list.json").write_text("[1, 2]")
        with pytest.raises(ConfigFault):
            ConfigLoader.load(paths=[str(tmp_path / "list.json")], environ={})

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("AERIE_NAME=from-dotenv\nAERIE_MAX_BODY_SIZE=1024\nOTHER=ignored\n")

        loader = ConfigLoader.load(env_file=str(env_file), environ={})

        assert loader.get("name") == "from-dotenv"
        assert loader.get("max_body_size") == 1024
        assert loader.get("other") is None

    def test_missing_env_file_is_ignored(self, tmp_path):
        loader = ConfigLoader.load(env_file=str(tmp_path / "absent.env"), environ={})
        assert loader.to_dict() == {}

    def test_environment_variables(self):
        loader = ConfigLoader.load(environ={
            "AERIE_NOT_FOUND": "true",
            "AERIE_CACHE_TTL": "2.5",
            "AERIE_HELPERS__SITE_NAME": "Zoo",
            "AERIE_OTHER_STATICS": '["media", "docs"]',
            "PATH": "/usr/bin",
        })

        assert loader.get("not_found") is True
        assert loader.get("cache_ttl") == 2.5
        assert loader.get("helpers.site_name") == "Zoo"
        assert loader.get("other_statics") == ["media", "docs"]
        assert loader.get("path") is None

    def test_precedence(self, tmp_path):
        (tmp_path / "app.json").write_text(json.dumps({"name": "json", "version": "1.0.0", "description": "json"}))
        env_file = tmp_path / ".env"
        env_file.write_text("AERIE_NAME=dotenv\nAERIE_VERSION=9.0.0\n")

        loader = ConfigLoader.load(
            paths=[str(tmp_path / "app.json")],
            env_file=str(env_file),
            environ={"AERIE_NAME": "environ"},
            overrides={"description": "override"},
        )

        assert loader.get("name") == "environ"
        # "9.0.0" is not numeric, so it stays a string
        assert loader.get("version") == "9.0.0"
        assert loader.get("description") == "override"

    def test_mvc_config(self, tmp_path):
        loader = ConfigLoader.load(environ={"AERIE_ENV": "production", "AERIE_STATICS": "/assets/"})
        config = loader.mvc_config(directory=str(tmp_path))

        assert isinstance(config, MvcConfig)
        assert config.mode == "production"
        assert config.statics == "/assets/"
        assert config.directory == str(tmp_path)

    def test_mode_beats_env_alias(self):
        loader = ConfigLoader.load(overrides={"env": "production", "mode": "development"}, environ={})
        assert loader.mvc_config().mode == "development"

    def test_mvc_config_type_check(self):
        loader = ConfigLoader.load(environ={"AERIE_MAX_BODY_SIZE": "lots"})
        with pytest.raises(ConfigFault) as info:
            loader.mvc_config()
        assert "max_body_size" in str(info.value)

    def test_int_accepted_for_float_field(self):
        loader = ConfigLoader.load(environ={"AERIE_CACHE_TTL": "3"})
        assert loader.mvc_config().cache_ttl == 3

    def test_numeric_env_values_for_text_fields(self):
        loader = ConfigLoader.load(environ={"AERIE_VERSION": "1.10", "AERIE_NAME": "123"})
        config = loader.mvc_config()

        assert loader.get("version") == 1.1
        assert config.version == "1.10"
        assert config.name == "123"

    def test_numeric_json_value_for_text_field(self):
        loader = ConfigLoader.load(overrides={"version": 2}, environ={})
        assert loader.mvc_config().version == "2"

    def test_cache_ttl_reaches_application(self, tmp_path):
        loader = ConfigLoader.load(overrides={"cache_ttl": 30.0, "directory": str(tmp_path)}, environ={})
        app = Application.from_loader(loader)

        assert app.base_config.template_ttl == 30.0
        assert app.cache.ttl == 30.0

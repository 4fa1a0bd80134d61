# tests/test_config_loader.py
"""Tests for loading toml configuration, profiles and overrides."""

import pytest

from templatepipe.config.loader import config_from_mapping, load_and_merge_configs, run_settings
from templatepipe.config.settings import EngineWiring, PipelineConfig, UnmatchedStripPolicy
from templatepipe.exceptions import ConfigError


class TestLoadConfigFiles:
    def test_dedicated_config_file_is_loaded(self, tmp_path):
        (tmp_path / ".templatepipe.toml").write_text('strip_prefix = "templates"\nout_dir = "public"\n')
        raw = load_and_merge_configs(tmp_path)
        assert raw == {"strip_prefix": "templates", "out_dir": "public"}

    def test_pyproject_tool_section_is_loaded(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "site"\n\n[tool.templatepipe]\nsuffix = ".html"\n'
        )
        assert load_and_merge_configs(tmp_path) == {"suffix": ".html"}

    def test_dedicated_file_wins_over_pyproject(self, tmp_path):
        (tmp_path / "templatepipe.toml").write_text('suffix = ".txt"\n')
        (tmp_path / "pyproject.toml").write_text('[tool.templatepipe]\nsuffix = ".html"\n')
        assert load_and_merge_configs(tmp_path) == {"suffix": ".txt"}

    def test_no_config_files_gives_empty_settings(self, tmp_path):
        assert load_and_merge_configs(tmp_path) == {}

    def test_broken_config_file_is_a_config_error(self, tmp_path):
        (tmp_path / ".templatepipe.toml").write_text("strip_prefix = = nope\n")
        with pytest.raises(ConfigError):
            load_and_merge_configs(tmp_path)


class TestConfigFromMapping:
    def test_defaults(self):
        config = config_from_mapping({})
        assert config == PipelineConfig()
        assert config.unmatched_strip_policy is UnmatchedStripPolicy.FALLBACK
        assert config.engine_wiring is EngineWiring.INCREMENTAL

    def test_aliases_and_enum_strings(self):
        config = config_from_mapping({"suffix": ".html", "unmatched": "error", "wiring": "batch"})
        assert config.output_suffix == ".html"
        assert config.unmatched_strip_policy is UnmatchedStripPolicy.ERROR
        assert config.engine_wiring is EngineWiring.BATCH

    def test_engine_table_becomes_engine_options(self):
        config = config_from_mapping({"engine": {"ignore_paths": ["partials/*"]}})
        assert config.engine_options == {"ignore_paths": ["partials/*"]}

    def test_pattern_map_keeps_declaration_order(self, tmp_path):
        (tmp_path / ".templatepipe.toml").write_text(
            '[strip_prefix]\n"pages/blog/" = "pages/blog"\n"pages/" = "pages"\n'
        )
        config = config_from_mapping(load_and_merge_configs(tmp_path))
        assert list(config.strip_prefix) == ["pages/blog/", "pages/"]

    def test_invalid_enum_value_is_a_config_error(self):
        with pytest.raises(ConfigError):
            config_from_mapping({"unmatched": "shrug"})

    def test_non_string_prefix_is_a_config_error(self):
        with pytest.raises(ConfigError):
            config_from_mapping({"strip_prefix": 3})

    def test_overrides_win_and_none_is_ignored(self):
        config = config_from_mapping(
            {"suffix": ".html", "base_dir": "/site"},
            overrides={"output_suffix": ".txt", "base_dir": None},
        )
        assert config.output_suffix == ".txt"
        assert config.base_dir == "/site"

    def test_unknown_override_is_a_config_error(self):
        with pytest.raises(ConfigError):
            config_from_mapping({}, overrides={"no_such_thing": 1})


class TestProfiles:
    RAW = {
        "suffix": ".html",
        "out_dir": "dist",
        "profiles": {"preview": {"suffix": ".preview.html", "out_dir": "preview"}},
    }

    def test_profile_overlays_top_level(self):
        assert config_from_mapping(self.RAW, profile="preview").output_suffix == ".preview.html"
        assert run_settings(self.RAW, "preview") == {"out_dir": "preview"}

    def test_without_profile_top_level_applies(self):
        assert config_from_mapping(self.RAW).output_suffix == ".html"
        assert run_settings(self.RAW) == {"out_dir": "dist"}

    def test_missing_profile_is_a_config_error(self):
        with pytest.raises(ConfigError):
            config_from_mapping(self.RAW, profile="nope")

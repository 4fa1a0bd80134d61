# templatepipe/config/loader.py
"""
Loads configuration from TOML files and turns it into a PipelineConfig.
"""
import toml
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from dataclasses import fields as dataclass_fields
import structlog

from templatepipe.exceptions import ConfigError

from .settings import PipelineConfig

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".templatepipe.toml", "templatepipe.toml", "pyproject.toml"]

# toml key -> PipelineConfig attribute
CONFIG_KEY_TO_PIPELINECONFIG_ATTR_MAP: Dict[str, str] = {
    "strip_prefix": "strip_prefix",
    "locals": "locals",
    "base_dir": "base_dir",
    "output_suffix": "output_suffix",
    "suffix": "output_suffix",
    "unmatched_strip_policy": "unmatched_strip_policy",
    "unmatched": "unmatched_strip_policy",
    "encoding": "encoding",
    "require_full_coverage": "require_full_coverage",
    "engine_wiring": "engine_wiring",
    "wiring": "engine_wiring",
    "engine": "engine_options",
}

# keys that configure the cli run rather than the batch itself.
RUN_KEYS = ("include_patterns", "exclude_patterns", "hidden", "out_dir", "fail_fast")


def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file():
        return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"could not read config file {file_path}: {e}") from e
    return data.get("tool", {}).get("templatepipe", {}) if file_path.name == "pyproject.toml" else data


def load_and_merge_configs(search_dir: Optional[Path] = None) -> Dict[str, Any]:
    # the first project config file found in search_dir wins.
    search_dir = search_dir or Path.cwd()
    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = search_dir / filename
        if candidate.is_file():
            settings = _load_toml_file_data(candidate)
            if settings:
                log.info("loading_project_local_config", path=str(candidate))
                return settings
    log.debug("no_configuration_files_loaded", search_dir=str(search_dir))
    return {}


def apply_profile(raw: Mapping[str, Any], profile: Optional[str]) -> Dict[str, Any]:
    # top-level settings overlaid with the named profile; 'profiles' itself is dropped.
    merged = {k: v for k, v in raw.items() if k != "profiles"}
    if not profile:
        return merged
    profiles = raw.get("profiles", {})
    if not isinstance(profiles, dict) or profile not in profiles:
        raise ConfigError(f"config profile not found: {profile}")
    profile_data = profiles[profile]
    if not isinstance(profile_data, dict):
        raise ConfigError(f"config profile '{profile}' must be a table")
    log.info("applying_profile_from_file", profile_name=profile)
    merged.update(profile_data)
    return merged


def config_from_mapping(
    raw: Mapping[str, Any],
    profile: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> PipelineConfig:
    """
    Builds a PipelineConfig from loaded toml data.

    Args:
        raw: Settings as returned by load_and_merge_configs.
        profile: Optional profile name whose table overrides the top level.
        overrides: PipelineConfig attributes that win over everything (e.g. cli flags).
    """
    settings = apply_profile(raw, profile)
    known_attrs = {f.name for f in dataclass_fields(PipelineConfig)}
    kwargs: Dict[str, Any] = {}

    for toml_key, value in settings.items():
        attr = CONFIG_KEY_TO_PIPELINECONFIG_ATTR_MAP.get(toml_key)
        if attr is None:
            if toml_key not in RUN_KEYS and toml_key != "description":
                log.warning("unknown_config_key_ignored", key=toml_key)
            continue
        kwargs[attr] = value

    for attr, value in (overrides or {}).items():
        if attr not in known_attrs:
            raise ConfigError(f"unknown configuration attribute: {attr}")
        if value is not None:
            kwargs[attr] = value

    if isinstance(kwargs.get("require_full_coverage"), str):
        raise ConfigError("require_full_coverage must be a boolean")
    try:
        return PipelineConfig(**kwargs)
    except TypeError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def run_settings(raw: Mapping[str, Any], profile: Optional[str] = None) -> Dict[str, Any]:
    # the cli-only settings (out_dir, include/exclude, ...) from loaded toml data.
    settings = apply_profile(raw, profile)
    return {k: settings[k] for k in RUN_KEYS if k in settings}

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from templatepipe.exceptions import ConfigError

StripPrefix = Union[str, Mapping[str, str], None]


class UnmatchedStripPolicy(Enum):
    # what to do when no pattern of a pattern->prefix strip rule matches a path.
    FALLBACK = "fallback"
    ERROR = "error"

    @classmethod
    def from_string(cls, s: Optional[str]) -> "UnmatchedStripPolicy":
        if not s:
            return cls.FALLBACK
        try:
            return cls(s.lower())
        except ValueError:
            raise ConfigError(f"invalid unmatched strip policy: {s!r} (expected 'fallback' or 'error')")


class EngineWiring(Enum):
    # incremental: register each file as it arrives; batch: hand the whole set over at flush.
    INCREMENTAL = "incremental"
    BATCH = "batch"

    @classmethod
    def from_string(cls, s: Optional[str]) -> "EngineWiring":
        if not s:
            return cls.INCREMENTAL
        try:
            return cls(s.lower())
        except ValueError:
            raise ConfigError(f"invalid engine wiring: {s!r} (expected 'incremental' or 'batch')")


DEFAULT_ENCODING = "utf-8"
DEFAULT_OUTPUT_SUFFIX = ""


@dataclass(frozen=True)
class PipelineConfig:
    # holds all configuration for one batch; never mutated after construction.
    strip_prefix: StripPrefix = None
    locals: Optional[Dict[str, Any]] = None
    base_dir: str = ""
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX
    unmatched_strip_policy: UnmatchedStripPolicy = UnmatchedStripPolicy.FALLBACK
    encoding: str = DEFAULT_ENCODING
    require_full_coverage: bool = False
    engine_wiring: EngineWiring = EngineWiring.INCREMENTAL
    engine_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        prefix = self.strip_prefix
        if prefix is not None and not isinstance(prefix, (str, Mapping)):
            raise ConfigError(f"strip_prefix must be a string or a pattern->prefix mapping, got {type(prefix).__name__}")
        if isinstance(prefix, Mapping):
            for pattern, pattern_prefix in prefix.items():
                if not isinstance(pattern, str) or not isinstance(pattern_prefix, str):
                    raise ConfigError(f"strip_prefix entries must map strings to strings: {pattern!r} -> {pattern_prefix!r}")
        if self.locals is not None and not isinstance(self.locals, Mapping):
            raise ConfigError(f"locals must be a mapping, got {type(self.locals).__name__}")
        if not isinstance(self.base_dir, str):
            raise ConfigError("base_dir must be a string")
        if not isinstance(self.output_suffix, str):
            raise ConfigError("output_suffix must be a string")
        if not isinstance(self.engine_options, Mapping):
            raise ConfigError("engine_options must be a mapping")
        # accept plain strings for enum fields, as they arrive from toml or the cli.
        if isinstance(self.unmatched_strip_policy, str):
            object.__setattr__(self, "unmatched_strip_policy", UnmatchedStripPolicy.from_string(self.unmatched_strip_policy))
        if isinstance(self.engine_wiring, str):
            object.__setattr__(self, "engine_wiring", EngineWiring.from_string(self.engine_wiring))

# templatepipe/core/path_resolution.py
"""
Reduces file locations to keys and turns rendered keys back into locations.

Everything here is a pure function of its arguments: the process working
directory is never consulted. An empty base directory stands for the root
when the path is absolute and for "." when it is relative.
"""
import os
import posixpath
import re
from dataclasses import dataclass
from typing import List, Mapping, Optional, Pattern, Tuple, Union

import structlog

from templatepipe.config.settings import StripPrefix, UnmatchedStripPolicy
from templatepipe.core.files import relative_path, to_posix
from templatepipe.exceptions import (
    ConfigError,
    PathResolutionError,
    UnmatchedStripRuleError,
    UnresolvableOutputKeyError,
)

log = structlog.get_logger(__name__)

# characters that cannot appear in an output location on common filesystems.
RESERVED_KEY_CHARS = frozenset('<>:"|?*\\')


@dataclass(frozen=True)
class StripRule:
    """Either a literal prefix or an ordered list of (pattern, prefix) pairs."""

    prefix: Optional[str] = None
    patterns: Tuple[Tuple[Pattern, str], ...] = ()

    @classmethod
    def from_config(cls, value: StripPrefix) -> Optional["StripRule"]:
        if value is None:
            return None
        if isinstance(value, str):
            return cls(prefix=value)
        if isinstance(value, Mapping):
            compiled: List[Tuple[Pattern, str]] = []
            for pattern, prefix in value.items():
                try:
                    compiled.append((re.compile(pattern), prefix))
                except re.error as e:
                    raise ConfigError(f"invalid strip pattern {pattern!r}: {e}") from e
            return cls(patterns=tuple(compiled))
        raise ConfigError(f"unsupported strip rule: {value!r}")

    @property
    def is_pattern_map(self) -> bool:
        return self.prefix is None

    def select_prefix(self, posix_path: str) -> Optional[str]:
        # literal prefix, or the prefix of the first pattern found in the path.
        if self.prefix is not None:
            return self.prefix
        for pattern, prefix in self.patterns:
            if pattern.search(posix_path):
                return prefix
        return None


def resolve_key(
    raw_path: Union[str, os.PathLike],
    strip_rule: Optional[StripRule] = None,
    base_dir: str = "",
    unmatched: UnmatchedStripPolicy = UnmatchedStripPolicy.FALLBACK,
) -> str:
    """
    Computes the key under which a file is registered and later matched.

    Args:
        raw_path: The file location.
        strip_rule: Optional prefix or pattern->prefix rule.
        base_dir: Explicit base directory the prefixes are relative to.
        unmatched: Policy applied when a pattern map has no matching entry.

    Returns:
        A "/"-separated key relative to base_dir plus the selected prefix.

    Pattern-map patterns are searched in the path relative to base_dir, so
    the base directory itself never selects a prefix. Different files can
    reduce to the same key (a/page.html and b/page.html under a/.* -> a and
    b/.* -> b); the engine rejects the second one as a duplicate key.
    """
    posix_path = to_posix(raw_path)
    base = to_posix(base_dir) or ("/" if posixpath.isabs(posix_path) else "")
    rel_to_base = relative_path(posix_path, base)

    prefix: Optional[str] = None
    if strip_rule is not None:
        prefix = strip_rule.select_prefix(rel_to_base)
        if prefix is None:
            if unmatched is UnmatchedStripPolicy.ERROR:
                raise UnmatchedStripRuleError(f"no strip pattern matches path: {posix_path}")
            log.debug("strip_rule_unmatched_falling_back", path=posix_path)

    start = posixpath.join(base, to_posix(prefix)) if prefix else base
    return relative_path(posix_path, start)


def build_output_path(key: str, base_dir: str = "", suffix: str = "") -> str:
    """Reattaches the base directory and output suffix to a rendered key."""
    if not isinstance(key, str) or not key:
        raise UnresolvableOutputKeyError(f"rendered key is not a usable path: {key!r}")
    bad_chars = {c for c in key if c in RESERVED_KEY_CHARS or ord(c) < 32}
    if bad_chars:
        raise UnresolvableOutputKeyError(f"rendered key contains reserved characters {sorted(bad_chars)!r}: {key!r}")
    if posixpath.isabs(key):
        raise UnresolvableOutputKeyError(f"rendered key is absolute: {key!r}")
    normalized = posixpath.normpath(key)
    if normalized == "." or normalized == ".." or normalized.startswith("../"):
        raise UnresolvableOutputKeyError(f"rendered key escapes the output directory: {key!r}")

    relative = normalized + suffix
    base = to_posix(base_dir)
    return posixpath.join(base, relative) if base else relative

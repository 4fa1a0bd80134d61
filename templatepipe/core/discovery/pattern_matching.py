# templatepipe/core/discovery/pattern_matching.py
from pathlib import PurePath
from typing import Iterable, Optional
import pathspec
import structlog

from templatepipe.exceptions import DiscoveryError

log = structlog.get_logger(__name__)


def _gitwildmatch_spec(patterns: Iterable[str], what: str) -> Optional[pathspec.PathSpec]:
    patterns = [p for p in patterns if p and p.strip()]
    if not patterns:
        return None
    try:
        return pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, patterns)
    except Exception as e:
        raise DiscoveryError(f"invalid {what} pattern in {patterns}: {e}") from e


def is_hidden(rel_path: PurePath) -> bool:
    return any(part.startswith(".") and part not in (".", "..") for part in rel_path.parts)


class FileSelector:
    """Decides which files under the source directory join the batch."""

    def __init__(
        self,
        include_patterns: Optional[Iterable[str]] = None,
        exclude_patterns: Optional[Iterable[str]] = None,
        hidden: bool = False,
    ):
        self.include_spec = _gitwildmatch_spec(include_patterns or (), "include")
        self.exclude_spec = _gitwildmatch_spec(exclude_patterns or (), "exclude")
        self.hidden = hidden

    def enters_dir(self, rel_dir: PurePath) -> bool:
        return self.hidden or not is_hidden(rel_dir)

    def selects(self, rel_path: PurePath) -> bool:
        if not self.hidden and is_hidden(rel_path):
            return False
        key = rel_path.as_posix()
        # no include patterns means everything is included.
        if self.include_spec is not None and not self.include_spec.match_file(key):
            return False
        if self.exclude_spec is not None and self.exclude_spec.match_file(key):
            log.debug("file_excluded", path=key)
            return False
        return True

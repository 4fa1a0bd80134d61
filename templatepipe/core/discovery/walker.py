# templatepipe/core/discovery/walker.py
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple
import structlog

from templatepipe.core.discovery.pattern_matching import FileSelector
from templatepipe.core.files import VirtualFile
from templatepipe.exceptions import DiscoveryError

log = structlog.get_logger(__name__)


def discover_files(
    source_dir: Path,
    include_patterns: Optional[Iterable[str]] = None,
    exclude_patterns: Optional[Iterable[str]] = None,
    hidden: bool = False,
    follow_symlinks: bool = False,
) -> Iterator[VirtualFile]:
    """
    Walks source_dir and yields a buffered VirtualFile for every selected file.

    Paths are absolute and the file base is source_dir, so the relative path of
    each file is its location inside the tree. Hidden files and directories are
    skipped unless hidden is set. Files come out sorted
    by relative path.
    """
    source_dir = Path(source_dir).resolve()
    if not source_dir.is_dir():
        raise DiscoveryError(f"source directory does not exist: {source_dir}")

    selector = FileSelector(include_patterns, exclude_patterns, hidden)
    log.info("file_discovery_started", source_dir=str(source_dir))
    selected: List[Tuple[str, Path]] = []

    for root, dirs, files in os.walk(source_dir, followlinks=follow_symlinks):
        root_path = Path(root)
        dirs[:] = [d for d in dirs if selector.enters_dir((root_path / d).relative_to(source_dir))]
        for file_name in files:
            file_path = root_path / file_name
            rel_path = file_path.relative_to(source_dir)
            if selector.selects(rel_path):
                selected.append((rel_path.as_posix(), file_path))

    # relative-path order, not walk order.
    selected.sort()
    for _rel, file_path in selected:
        try:
            contents = file_path.read_bytes()
            stat = file_path.stat()
        except OSError as e:
            raise DiscoveryError(f"failed to read '{file_path}': {e}") from e
        yield VirtualFile(path=file_path, contents=contents, base=source_dir, stat=stat)

    log.info("file_discovery_finished", source_dir=str(source_dir), files=len(selected))

# templatepipe/core/output.py
from pathlib import Path
from typing import Iterable, List
import structlog

from templatepipe.core.files import VirtualFile
from templatepipe.exceptions import OutputError

log = structlog.get_logger(__name__)

def write_outputs(files: Iterable[VirtualFile], out_dir: Path) -> List[Path]:
    # writes each file under out_dir at its relative path.
    written: List[Path] = []
    out_dir = out_dir.resolve()
    for file in files:
        target = (out_dir / file.relative).resolve()
        if out_dir != target and out_dir not in target.parents:
            raise OutputError(f"refusing to write outside the output directory: {file.relative}")
        log.info("writing_output_file", path=str(target))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(file.contents)
        except Exception as e:
            raise OutputError(f"failed to write to file '{target}': {e}")
        written.append(target)
    return written

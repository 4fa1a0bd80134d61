# templatepipe/core/pipeline.py
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

import structlog

from templatepipe.config.settings import PipelineConfig
from templatepipe.core.files import VirtualFile
from templatepipe.core.orchestrator import BatchOrchestrator, create_orchestrator
from templatepipe.core.templating import TemplateEngine

log = structlog.get_logger(__name__)


@dataclass
class BatchResult:
    # outputs of one batch plus every error reported along the way.
    outputs: List[VirtualFile] = field(default_factory=list)
    # (source path or None for the flush, error)
    errors: List[Tuple[Optional[str], Exception]] = field(default_factory=list)
    accepted: int = 0
    flushed: bool = False

    @property
    def ok(self) -> bool:
        return self.flushed and not self.errors


class BatchRunner:
    # drives one orchestrator over a sequence of files in push style.
    def __init__(
        self,
        config: PipelineConfig,
        engine: Optional[TemplateEngine] = None,
        fail_fast: bool = False,
        on_file: Optional[Callable[[VirtualFile], None]] = None,
    ):
        self.config = config
        self.fail_fast = fail_fast
        self.on_file = on_file
        self.result = BatchResult()
        self.orchestrator: BatchOrchestrator = create_orchestrator(config, push=self.result.outputs.append, engine=engine)
        self.log = structlog.get_logger(f"{__name__}.{self.__class__.__name__}")

    def _record(self, path: Optional[str]) -> Callable[[Optional[Exception]], None]:
        def done(err: Optional[Exception]) -> None:
            if err is not None:
                self.log.warning("batch_step_failed", path=path, error_type=type(err).__name__, error=str(err))
                self.result.errors.append((path, err))
        return done

    def run(self, files: Iterable[VirtualFile]) -> BatchResult:
        self.log.info("batch_started", fail_fast=self.fail_fast)
        for file in files:
            errors_before = len(self.result.errors)
            self.orchestrator.accept(file, self._record(file.path))
            self.result.accepted += 1
            if self.on_file is not None:
                self.on_file(file)
            if self.fail_fast and len(self.result.errors) > errors_before:
                self.log.info("batch_aborted", path=file.path)
                return self.result

        self.orchestrator.flush(self._record(None))
        self.result.flushed = True
        self.log.info(
            "batch_finished",
            accepted=self.result.accepted,
            emitted=len(self.result.outputs),
            errors=len(self.result.errors),
        )
        return self.result


def run_batch(
    files: Iterable[VirtualFile],
    config: Optional[PipelineConfig] = None,
    engine: Optional[TemplateEngine] = None,
    fail_fast: bool = False,
) -> BatchResult:
    """Accepts every file, flushes once, and returns what came out."""
    log.debug("run_batch_called", fail_fast=fail_fast, custom_engine=engine is not None)
    return BatchRunner(config or PipelineConfig(), engine=engine, fail_fast=fail_fast).run(files)

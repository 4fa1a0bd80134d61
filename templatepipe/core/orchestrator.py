# templatepipe/core/orchestrator.py
"""
Buffer-then-render orchestration for one batch of files.

1. Each accepted file is decoded, its key resolved and its source registered
   with the templating engine.

2. When the upstream source runs dry, ``flush`` performs exactly one render
   call across everything registered.

3. Every rendered entry becomes an outgoing file (base directory + key +
   output suffix). All of them are built before any is pushed, so a bad key
   leaves the downstream pipeline untouched.

Both entry points report through a ``done`` callback, invoked exactly once
with ``None`` or an exception; nothing is raised to the caller.
"""
from collections.abc import Mapping
from enum import Enum
from typing import Callable, Dict, List, Optional

import structlog

from templatepipe.config.settings import EngineWiring, PipelineConfig
from templatepipe.core.files import FileKind, VirtualFile
from templatepipe.core.path_resolution import StripRule, build_output_path, resolve_key
from templatepipe.core.templating import BatchEngineAdapter, HandlebarsEngine, TemplateEngine
from templatepipe.exceptions import (
    BatchStateError,
    RegistrationError,
    RenderError,
    UnsupportedInputError,
)
from templatepipe.util import strip_utf8_bom

log = structlog.get_logger(__name__)

Done = Callable[[Optional[Exception]], None]
Push = Callable[[VirtualFile], None]


class BatchState(Enum):
    ACCEPTING = "accepting"
    FLUSHING = "flushing"
    RENDERED = "rendered"


def build_engine(config: PipelineConfig) -> TemplateEngine:
    # a fresh engine per batch, wired the way the config asks.
    if config.engine_wiring is EngineWiring.BATCH:
        return BatchEngineAdapter(options=config.engine_options)
    return HandlebarsEngine.from_options(config.engine_options)


class BatchOrchestrator:
    """Accepts files, renders them once, pushes the results downstream."""

    def __init__(self, config: PipelineConfig, engine: TemplateEngine, push: Optional[Push] = None):
        self.config = config
        self.engine = engine
        self.strip_rule: Optional[StripRule] = StripRule.from_config(config.strip_prefix)
        self.state = BatchState.ACCEPTING
        self.emitted: List[VirtualFile] = []
        self._push = push if push is not None else self.emitted.append
        # key -> source file, used to carry file attributes over to outputs.
        self._sources: Dict[str, VirtualFile] = {}
        self.log = structlog.get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def registered_keys(self) -> List[str]:
        return list(self._sources)

    def accept(self, file: VirtualFile, done: Done) -> None:
        try:
            self._accept(file)
        except Exception as e:
            done(e)
            return
        done(None)

    def _accept(self, file: VirtualFile) -> None:
        if self.state is not BatchState.ACCEPTING:
            raise BatchStateError(f"cannot accept {file.path}: batch is already {self.state.value}")

        kind = file.kind
        if kind in (FileKind.NULL, FileKind.DIRECTORY):
            self.log.debug("file_skipped", path=file.path, kind=kind.value)
            return
        if kind is FileKind.STREAM:
            raise UnsupportedInputError(f"streaming contents are not supported: {file.path}")

        try:
            text = strip_utf8_bom(bytes(file.contents)).decode(self.config.encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise RegistrationError(f"cannot decode {file.path} as {self.config.encoding}: {e}") from e

        key = resolve_key(
            file.path,
            self.strip_rule,
            base_dir=self.config.base_dir,
            unmatched=self.config.unmatched_strip_policy,
        )

        try:
            self.engine.register(text, key)
        except Exception as e:
            raise RegistrationError(f"failed to register {file.path} as '{key}': {e}") from e

        self._sources[key] = file
        self.log.debug("file_registered", path=file.path, key=key)

    def flush(self, done: Done) -> None:
        if self.state is not BatchState.ACCEPTING:
            done(BatchStateError(f"flush called twice: batch is already {self.state.value}"))
            return
        self.state = BatchState.FLUSHING
        try:
            outputs = self._render_outputs()
        except Exception as e:
            self.state = BatchState.RENDERED
            self._sources.clear()
            done(e)
            return

        self.state = BatchState.RENDERED
        self._sources.clear()
        try:
            for output in outputs:
                self._push(output)
        except Exception as e:
            done(e)
            return
        self.log.info("batch_flushed", emitted=len(outputs))
        done(None)

    def _render_outputs(self) -> List[VirtualFile]:
        try:
            rendered = self.engine.render(self.config.locals)
        except Exception as e:
            raise RenderError(f"rendering failed: {e}") from e
        if not isinstance(rendered, Mapping):
            raise RenderError(f"unexpected return value from render: {rendered!r}")

        if self.config.require_full_coverage:
            omitted = set(getattr(self.engine, "omitted_keys", ()))
            missing = sorted(k for k in self._sources if k not in rendered and k not in omitted)
            if missing:
                raise RenderError(f"couldn't render templates at keys: {', '.join(missing)}")

        outputs: List[VirtualFile] = []
        for key, text in rendered.items():
            if not isinstance(text, str):
                raise RenderError(f"rendered value for '{key}' is not text: {type(text).__name__}")
            path = build_output_path(key, self.config.base_dir, self.config.output_suffix)
            contents = text.encode(self.config.encoding)
            source = self._sources.get(key)
            if source is not None:
                output = source.clone(path=path, base=self.config.base_dir, contents=contents)
            else:
                output = VirtualFile(path=path, base=self.config.base_dir, contents=contents)
            outputs.append(output)
        return outputs


def create_orchestrator(
    config: Optional[PipelineConfig] = None,
    push: Optional[Push] = None,
    engine: Optional[TemplateEngine] = None,
) -> BatchOrchestrator:
    """Builds an orchestrator with its own, fresh buffering state."""
    config = config or PipelineConfig()
    if engine is None:
        engine = build_engine(config)
        log.debug("engine_built", wiring=config.engine_wiring.value)
    return BatchOrchestrator(config, engine, push=push)

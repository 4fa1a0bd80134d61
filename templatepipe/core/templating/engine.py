# templatepipe/core/templating/engine.py
"""
Handlebars templating engine used to render a batch.

Templates are registered one by one under their key and compiled straight
away, so syntax errors surface per file. A single render call then produces a
mapping from output key to rendered text. Besides templates, a batch may
contain metadata files (``_meta.toml`` by default) whose values are visible to
every template in the same directory and below. Metadata can also repeat a
template, rendering it once per entry under a new key:

    [[repeat]]
    template = "post.html"
    path = "posts/first.html"
    title = "First post"

Every registered template is usable as a partial (``{{> key}}``) by the
others, including templates excluded from output via ``ignore_paths``.
"""
import posixpath
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Set, Tuple

import pathspec
import pybars  # type: ignore
import structlog
import toml

from templatepipe.exceptions import ConfigError, TemplateRegistrationError, TemplateRenderError

from .helpers import BUILTIN_HELPERS

log = structlog.get_logger(__name__)

DEFAULT_META_NAME = "_meta.toml"
REPEAT_TABLE = "repeat"
ENGINE_OPTION_NAMES = ("data", "helpers", "ignore_paths", "meta_name")


class TemplateEngine(Protocol):
    """What the orchestrator needs from a templating engine."""

    def register(self, content: str, key: str) -> None: ...

    def render(self, locals: Optional[Mapping[str, Any]] = None) -> Mapping[str, str]: ...


def _ancestor_dirs(key: str) -> List[str]:
    # "a/b/c.html" -> ["", "a", "a/b"]
    parts = posixpath.dirname(key).split("/") if posixpath.dirname(key) else []
    return [""] + ["/".join(parts[: i + 1]) for i in range(len(parts))]


def _validate_repeat_table(meta: Dict[str, Any], key: str) -> None:
    repeat = meta.get(REPEAT_TABLE)
    if repeat is None:
        return
    if not isinstance(repeat, list) or not all(isinstance(entry, dict) for entry in repeat):
        raise TemplateRegistrationError(f"'{REPEAT_TABLE}' in {key} must be an array of tables")
    for entry in repeat:
        for field_name in ("template", "path"):
            if not isinstance(entry.get(field_name), str) or not entry[field_name]:
                raise TemplateRegistrationError(f"every '{REPEAT_TABLE}' entry in {key} needs a '{field_name}'")


class HandlebarsEngine:
    """Compiles registered templates with pybars and renders them in one pass."""

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        helpers: Optional[Mapping[str, Callable[..., Any]]] = None,
        ignore_paths: Optional[List[str]] = None,
        meta_name: str = DEFAULT_META_NAME,
    ):
        if data is not None and not isinstance(data, Mapping):
            raise ConfigError("engine option 'data' must be a mapping")
        self.data: Dict[str, Any] = dict(data or {})
        self.helpers: Dict[str, Callable[..., Any]] = {**BUILTIN_HELPERS, **(helpers or {})}
        self.meta_name = meta_name
        try:
            self.ignore_spec = pathspec.PathSpec.from_lines(
                pathspec.patterns.GitWildMatchPattern, ignore_paths or []
            )
        except Exception as e:
            raise ConfigError(f"error compiling ignore_paths {ignore_paths}: {e}") from e

        self.handlebars_compiler = pybars.Compiler()
        self._sources: Dict[str, str] = {}
        self._templates: Dict[str, Callable[..., Any]] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "HandlebarsEngine":
        options = dict(options or {})
        unknown = sorted(set(options) - set(ENGINE_OPTION_NAMES))
        if unknown:
            raise ConfigError(f"unknown engine options: {', '.join(unknown)}")
        return cls(**options)

    @property
    def registered_keys(self) -> List[str]:
        return list(self._sources)

    @property
    def omitted_keys(self) -> Set[str]:
        # registered keys that intentionally have no output of their own.
        omitted = {key for key in self._sources if self._is_meta_key(key)}
        omitted.update(key for key in self._templates if self._is_ignored(key))
        omitted.update(template_key for template_key, _, _ in self._repeat_declarations())
        return omitted

    def _is_meta_key(self, key: str) -> bool:
        return posixpath.basename(key) == self.meta_name

    def _is_ignored(self, key: str) -> bool:
        return self.ignore_spec.match_file(key)

    def register(self, content: str, key: str) -> None:
        if not isinstance(key, str) or not key:
            raise TemplateRegistrationError(f"template key must be a non-empty string, got {key!r}")
        if not isinstance(content, str):
            raise TemplateRegistrationError(f"template content for '{key}' must be a string")
        if key in self._sources:
            raise TemplateRegistrationError(f"duplicate template key: {key}")

        if self._is_meta_key(key):
            try:
                meta = toml.loads(content)
            except toml.TomlDecodeError as e:
                raise TemplateRegistrationError(f"invalid metadata in '{key}': {e}") from e
            _validate_repeat_table(meta, key)
            self._metadata[posixpath.dirname(key)] = meta
            log.debug("metadata_registered", key=key, fields=sorted(meta))
        else:
            try:
                self._templates[key] = self.handlebars_compiler.compile(content)
            except Exception as e:
                raise TemplateRegistrationError(f"failed to compile template '{key}': {e}") from e
            log.debug("template_compiled", key=key)

        self._sources[key] = content

    def _repeat_declarations(self) -> List[Tuple[str, str, Dict[str, Any]]]:
        # (template key, metadata dir, entry) for every repetition declared by metadata.
        declarations: List[Tuple[str, str, Dict[str, Any]]] = []
        for meta_dir, meta in self._metadata.items():
            for entry in meta.get(REPEAT_TABLE, []):
                template_name = entry["template"]
                template_key = posixpath.join(meta_dir, template_name) if meta_dir else template_name
                declarations.append((template_key, meta_dir, entry))
        return declarations

    def _context_for(self, key: str, locals: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        context: Dict[str, Any] = dict(self.data)
        context.update(locals or {})
        for directory in _ancestor_dirs(key):
            meta = self._metadata.get(directory)
            if meta:
                context.update({k: v for k, v in meta.items() if k != REPEAT_TABLE})
        return context

    def _render_one(self, key: str, context: Dict[str, Any]) -> str:
        try:
            output = self._templates[key](context, helpers=self.helpers, partials=self._templates)
        except Exception as e:
            log.error("template_rendering_error", key=key, error=str(e), exc_info=True)
            raise TemplateRenderError(f"template render failed for '{key}': {e}") from e
        return output if isinstance(output, str) else "".join(output)

    def render(self, locals: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
        if locals is not None and not isinstance(locals, Mapping):
            raise TemplateRenderError(f"locals must be a mapping, got {type(locals).__name__}")

        repeated: Dict[str, List[Tuple[str, Dict[str, Any]]]] = {}
        for template_key, meta_dir, entry in self._repeat_declarations():
            if template_key not in self._templates:
                raise TemplateRenderError(f"metadata repeats unknown template: {template_key}")
            repeated.setdefault(template_key, []).append((meta_dir, entry))

        rendered: Dict[str, str] = {}

        def put(output_key: str, text: str) -> None:
            if output_key in rendered:
                raise TemplateRenderError(f"two templates render to the same key: {output_key}")
            rendered[output_key] = text

        for key in self._templates:
            if self._is_ignored(key):
                continue
            base_context = self._context_for(key, locals)
            if key in repeated:
                for meta_dir, entry in repeated[key]:
                    output_key = posixpath.normpath(posixpath.join(meta_dir, entry["path"]))
                    put(output_key, self._render_one(key, {**base_context, **entry}))
                continue
            put(key, self._render_one(key, base_context))

        log.info("templates_rendered", registered=len(self._sources), rendered=len(rendered))
        return rendered


def handlebars_batch(files: Mapping[str, str], options: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
    """Renders a whole key->source mapping in one call; options['locals'] feeds the render."""
    options = dict(options or {})
    locals = options.pop("locals", None)
    engine = HandlebarsEngine.from_options(options)
    for key, content in files.items():
        engine.register(content, key)
    return engine.render(locals)


class BatchEngineAdapter:
    """Buffers registrations and issues one batch call at render time."""

    def __init__(
        self,
        batch_fn: Callable[[Mapping[str, str], Mapping[str, Any]], Mapping[str, str]] = handlebars_batch,
        options: Optional[Mapping[str, Any]] = None,
    ):
        self.batch_fn = batch_fn
        self.options: Dict[str, Any] = dict(options or {})
        self._files: Dict[str, str] = {}

    def register(self, content: str, key: str) -> None:
        if key in self._files:
            raise TemplateRegistrationError(f"duplicate template key: {key}")
        self._files[key] = content

    def render(self, locals: Optional[Mapping[str, Any]] = None) -> Mapping[str, str]:
        options = dict(self.options)
        if locals is not None:
            options["locals"] = locals
        log.debug("batch_render_started", files=len(self._files))
        return self.batch_fn(dict(self._files), options)

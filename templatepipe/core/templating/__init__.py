# templatepipe/core/templating/__init__.py
"""
Templating engines for templatepipe.

HandlebarsEngine implements the incremental register/render contract on top
of pybars; handlebars_batch is the same engine behind a single batch call, and
BatchEngineAdapter wires any batch-style callable into the incremental shape.
"""
from .engine import (
    TemplateEngine,
    HandlebarsEngine,
    BatchEngineAdapter,
    handlebars_batch,
)

__all__ = [
    "TemplateEngine",
    "HandlebarsEngine",
    "BatchEngineAdapter",
    "handlebars_batch",
]

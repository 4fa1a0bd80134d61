"""
templatepipe: buffer a batch of files, render them with handlebars, emit the results.
"""
__version__ = "0.1.0"

from templatepipe.core.files import VirtualFile, FileKind
from templatepipe.core.orchestrator import BatchOrchestrator, BatchState, create_orchestrator
from templatepipe.core.path_resolution import StripRule, resolve_key
from templatepipe.config.settings import PipelineConfig

__all__ = [
    "__version__",
    "VirtualFile",
    "FileKind",
    "BatchOrchestrator",
    "BatchState",
    "create_orchestrator",
    "StripRule",
    "resolve_key",
    "PipelineConfig",
]

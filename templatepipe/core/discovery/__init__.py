# templatepipe/core/discovery/__init__.py
"""
Reads a source tree into virtual files for a batch.
"""
from .pattern_matching import FileSelector
from .walker import discover_files

__all__ = ["FileSelector", "discover_files"]

"""
boxexport - Package an existing Vagrant machine into a box file.

Halts the machine, pulls its provider artifacts, adds metadata and the
box template files, and writes a gzip-compressed .box archive.
"""

__version__ = "0.3.0"
__author__ = "boxexport contributors"

from boxexport.errors import (
    BoxExportError,
    ExportToolError,
    NotCreatedError,
    TarFailed,
)
from boxexport.pipeline import ExportPipeline, ExportResult

__all__ = [
    "BoxExportError",
    "ExportPipeline",
    "ExportResult",
    "ExportToolError",
    "NotCreatedError",
    "TarFailed",
    "__version__",
]

"""Export pipeline stages, in the order they run."""

from .compression import CompressionStage
from .extraction import ExtractionStage, OvfExtractor, VmwareExtractor
from .assembly import AssemblyStage
from .packaging import FileManifestEntry, Manifest, PackagingStage
from .finalization import FinalizationStage, target_box_path

__all__ = [
    "CompressionStage",
    "ExtractionStage",
    "OvfExtractor",
    "VmwareExtractor",
    "AssemblyStage",
    "FileManifestEntry",
    "Manifest",
    "PackagingStage",
    "FinalizationStage",
    "target_box_path",
]

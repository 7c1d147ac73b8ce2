"""
Turn the staging directory into a gzip-compressed box file.

With bash, pv, tar and gzip available the progress script is used and its
pv output drives the progress line. Otherwise bsdtar builds the archive,
and when bsdtar is missing too the archive is written with tarfile.
"""

import os
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import structlog

from ..context import ExportContext
from ..errors import TarFailed
from ..progress import first_number

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FileManifestEntry:
    """A staged file, relative to the staging root."""

    relative_path: str
    size: int


@dataclass
class Manifest:
    entries: List[FileManifestEntry] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.entries)

    @property
    def paths(self) -> List[str]:
        return [entry.relative_path for entry in self.entries]

    @classmethod
    def scan(cls, root: Path) -> "Manifest":
        entries = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in sorted(filenames):
                full = Path(dirpath) / name
                if not full.is_file():
                    continue
                relative = str(full)[len(str(root)):].lstrip("/\\")
                entries.append(FileManifestEntry(relative, full.stat().st_size))
        return cls(entries)


def _discard_failed(ctx: ExportContext, target: Path, result) -> None:
    """Drop whatever a failed archiver left behind so it is never published."""
    log.error("archiver_failed", returncode=result.returncode, stderr=result.stderr.strip()[:200])
    ctx.ui.error(f"Archiver exited with status {result.returncode}")
    if target.is_file():
        target.unlink()


class ProgressArchiver:
    """bash + progress_tar.sh (tar | pv | gzip)."""

    name = "progress"

    def __init__(self, ctx: ExportContext, shell: str):
        self.ctx = ctx
        self.shell = shell

    def _sink(self, stream: str, text: str):
        log.debug("package_output", stream=stream, chunk=text)
        number = first_number(text)
        if number is not None:
            self.ctx.progress.show(number + "%")
        return None

    def archive(self, staging: Path, manifest: Manifest, target: Path) -> None:
        script = Path(self.ctx.settings.progress_script).resolve()
        self.ctx.ui.info("Starting compression", new_line=False)
        try:
            result = self.ctx.runner.stream(
                [
                    self.shell,
                    str(script),
                    str(staging),
                    str(manifest.total_size),
                    str(target),
                    " ".join(manifest.paths),
                ],
                sink=self._sink,
                cwd=staging,
            )
        finally:
            self.ctx.progress.clear()
        if not result.success:
            _discard_failed(self.ctx, target, result)


class ExternalArchiver:
    """bsdtar -czf, no progress output."""

    name = "bsdtar"

    def __init__(self, ctx: ExportContext, executable: str):
        self.ctx = ctx
        self.executable = executable

    def archive(self, staging: Path, manifest: Manifest, target: Path) -> None:
        result = self.ctx.runner.stream(
            [self.executable, "-czf", str(target), "-C", str(staging), *manifest.paths],
            cwd=staging,
        )
        if not result.success:
            _discard_failed(self.ctx, target, result)


class TarfileArchiver:
    """Portable last resort when no archiver binary is installed."""

    name = "tarfile"

    def __init__(self, ctx: ExportContext):
        self.ctx = ctx

    def archive(self, staging: Path, manifest: Manifest, target: Path) -> None:
        with tarfile.open(target, "w:gz") as tar:
            for relative in manifest.paths:
                tar.add(staging / relative, arcname=relative, recursive=False)


class PackagingStage:
    """Archives the staging directory into ``<staging>.box``."""

    def __init__(self, ctx: ExportContext):
        self.ctx = ctx

    def choose_archiver(self):
        settings = self.ctx.settings
        runner = self.ctx.runner

        shell = runner.which(settings.shell)
        if shell and all(runner.which(t) for t in settings.progress_tools):
            return ProgressArchiver(self.ctx, shell)

        external: Optional[str] = runner.which(settings.fallback_archiver)
        if external:
            return ExternalArchiver(self.ctx, external)
        return TarfileArchiver(self.ctx)

    def package(self) -> int:
        staging = self.ctx.workspace.require_staging()
        target = Path(str(staging) + ".box")
        self.ctx.workspace.archive_path = target

        self.ctx.ui.info("Packaging box file")
        manifest = Manifest.scan(staging)
        log.debug("package_manifest", files=manifest.paths, total_size=manifest.total_size)

        archiver = self.choose_archiver()
        log.debug("package_strategy", strategy=archiver.name, target=str(target))
        archiver.archive(staging, manifest, target)

        if not target.is_file():
            raise TarFailed(target)
        return 0

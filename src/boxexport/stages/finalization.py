"""Publish the packaged box under its final name."""

import re
import shutil
from pathlib import Path
from typing import Optional

import structlog

from ..context import ExportContext

log = structlog.get_logger(__name__)

_UNSAFE_RE = re.compile(r"[^a-z0-9\-]+")


def target_box_path(name: str, cwd: Path) -> Path:
    """``My VM/2`` -> ``<cwd>/my_vm_2.box``."""
    return Path(cwd) / (_UNSAFE_RE.sub("_", name.lower()) + ".box")


class FinalizationStage:
    def __init__(self, ctx: ExportContext):
        self.ctx = ctx

    @property
    def target(self) -> Path:
        return target_box_path(self.ctx.machine.name, self.ctx.cwd)

    def finalize(self) -> Optional[Path]:
        archive = self.ctx.workspace.archive_path
        if archive is None or not archive.exists():
            log.debug("finalize_skipped", archive=str(archive) if archive else None)
            return None

        target = self.target
        shutil.move(str(archive), str(target))
        log.debug("box_published", source=str(archive), target=str(target))
        self.ctx.ui.success(f"Created {target}")
        return target

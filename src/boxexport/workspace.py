"""
Temporary state owned by one export run.
"""

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog

log = structlog.get_logger(__name__)


@dataclass
class Workspace:
    """
    Staging directory and temporary box file of a single export.

    Usage:
        with Workspace() as ws:
            staging = ws.create_staging(settings.scratch_dir)
            ...
        # staging dir and leftover box file are gone here
    """

    staging_dir: Optional[Path] = None
    archive_path: Optional[Path] = None
    private_key: Optional[Path] = None
    _torn_down: bool = False

    def create_staging(self, root: Path) -> Path:
        """Create ``<root>/export-<timestamp>`` and remember it."""
        base = Path(root).resolve() / ("export-" + datetime.now().strftime("%Y%m%d%H%M%S"))
        candidate = base
        suffix = 1
        while candidate.exists():
            candidate = base.with_name(f"{base.name}-{suffix}")
            suffix += 1
        candidate.mkdir(parents=True)
        self.staging_dir = candidate
        log.debug("staging_created", path=str(candidate))
        return candidate

    def require_staging(self) -> Path:
        if self.staging_dir is None:
            raise RuntimeError("Staging directory has not been created")
        return self.staging_dir

    def teardown(self) -> None:
        """Remove the staging tree and an unpublished box file. Runs once."""
        if self._torn_down:
            return
        self._torn_down = True

        if self.staging_dir is not None and self.staging_dir.is_dir():
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            log.debug("staging_removed", path=str(self.staging_dir))

        if self.archive_path is not None and self.archive_path.is_file():
            try:
                self.archive_path.unlink()
                log.debug("archive_removed", path=str(self.archive_path))
            except FileNotFoundError:
                pass

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.teardown()
        return False

#!/usr/bin/env python3
"""
Export a machine into a box file.

Stages run strictly in order: compression (unless fast), extraction,
assembly + packaging, finalization. The staging directory and any
unpublished box file are removed when the run ends, whatever the outcome.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from .backends.subprocess_runner import SubprocessRunner
from .config import ExportSettings
from .context import ExportContext
from .errors import CompressionUnsupportedError, NotCreatedError
from .interfaces.machine import MachineState, VirtualMachineHandle
from .interfaces.process import ProcessRunner
from .logging import export_context, log_stage
from .stages import (
    AssemblyStage,
    CompressionStage,
    ExtractionStage,
    FinalizationStage,
    PackagingStage,
    target_box_path,
)
from .ui import ExportUI

log = structlog.get_logger(__name__)

SUCCESS = 0
FAILURE = 1


@dataclass
class ExportResult:
    """Outcome of one export.

    ``target`` is always the name the box would be published under, even
    when ``status`` is FAILURE; ``archive`` is only set once it exists.
    """

    status: int
    target: Path
    archive: Optional[Path] = None

    @property
    def success(self) -> bool:
        return self.status == SUCCESS and self.archive is not None


class ExportPipeline:
    """Runs the export stages against one machine."""

    def __init__(
        self,
        machine: VirtualMachineHandle,
        settings: Optional[ExportSettings] = None,
        ui: Optional[ExportUI] = None,
        runner: Optional[ProcessRunner] = None,
        cwd: Optional[Path] = None,
    ):
        self.machine = machine
        self.settings = settings or ExportSettings()
        self.ui = ui or ExportUI()
        self.runner = runner or SubprocessRunner()
        self.cwd = Path(cwd) if cwd else Path.cwd()

    def target_box(self) -> Path:
        return target_box_path(self.machine.name, self.cwd)

    def run(self, fast: bool = False, bare: bool = False) -> ExportResult:
        if self.machine.state is MachineState.NOT_CREATED:
            raise NotCreatedError(self.machine.name)

        ctx = ExportContext.build(self.machine, self.settings, self.ui, self.runner, self.cwd)
        with export_context(self.machine.name, self.machine.provider_name):
            log.debug("export_start", fast=fast, bare=bare, kind=ctx.kind.value)

            info = self.machine.ssh_info()
            if info is not None:
                ctx.workspace.private_key = info.private_key_path

            try:
                status, archive = self._run_stages(ctx, fast, bare)
            finally:
                ctx.workspace.teardown()

        return ExportResult(status=status, target=self.target_box(), archive=archive)

    def _run_stages(self, ctx: ExportContext, fast: bool, bare: bool):
        if not fast:
            compression = CompressionStage(ctx)
            with log_stage(log, "compress"):
                try:
                    compression.ensure_supported()
                except CompressionUnsupportedError as exc:
                    ctx.ui.error(str(exc))
                    return FAILURE, None
                compression.compress()

        with log_stage(log, "extract"):
            if not ExtractionStage(ctx).extract():
                return FAILURE, None

        with log_stage(log, "package"):
            AssemblyStage(ctx).assemble(bare)
            PackagingStage(ctx).package()

        with log_stage(log, "finalize"):
            archive = FinalizationStage(ctx).finalize()

        if archive is None:
            return FAILURE, None
        return SUCCESS, archive

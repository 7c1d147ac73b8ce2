"""
Halt the machine and pull its provider artifacts into the staging directory.

VMware machines are exported by copying their data files next to the .vmx
and compacting every disk. Everything else goes through an OVF export.
"""

import shutil
from pathlib import Path
from typing import List

import structlog

from ..context import ExportContext
from ..errors import ExportToolError
from ..interfaces.machine import MachineState
from ..interfaces.process import STDOUT, Abort
from ..progress import find_percent
from ..provider import ProviderKind

log = structlog.get_logger(__name__)

OVF_NAME = "box.ovf"


def _regular_files(root: Path) -> List[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file())


class VmwareExtractor:
    """Copies the VM's data files and compacts its disks."""

    def __init__(self, ctx: ExportContext):
        self.ctx = ctx

    def harvest(self, staging: Path) -> List[Path]:
        source_dir = Path(self.ctx.machine.id).parent
        wanted = set(self.ctx.settings.vmware_data_extensions)
        files = [
            f for f in _regular_files(source_dir)
            if f.suffix.lstrip(".").lower() in wanted
        ]
        log.debug("vmware_files", source=str(source_dir), files=[str(f) for f in files])

        copied = []
        for f in files:
            dest = staging / f.relative_to(source_dir)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(f, dest)
            copied.append(dest)
        return copied

    def compact(self, staging: Path) -> None:
        tool = self.ctx.settings.vdisk_tool
        self.ctx.ui.info("Compacting VMware virtual disks")
        for disk in sorted(staging.rglob("*.vmdk")):
            log.debug("compact_disk", disk=str(disk))
            for flag in ("-d", "-k"):
                result = self.ctx.runner.stream([tool, flag, str(disk)])
                if not result.success:
                    log.warning(
                        "compact_disk_failed",
                        disk=str(disk),
                        flag=flag,
                        returncode=result.returncode,
                        stderr=result.stderr.strip()[:200],
                    )

    def extract(self, staging: Path) -> bool:
        self.harvest(staging)
        self.compact(staging)
        return True


class OvfExtractor:
    """Exports the VM to an OVF descriptor with the provider's CLI."""

    def __init__(self, ctx: ExportContext):
        self.ctx = ctx

    def _sink(self, stream: str, text: str):
        log.debug("export_tool_output", stream=stream, chunk=text)
        if stream == STDOUT:
            return None
        percent = find_percent(text)
        if percent is None:
            # VBoxManage writes its progress to stderr; only digit-free
            # stderr chunks are real errors.
            return Abort(text)
        self.ctx.progress.show(percent)
        return None

    def extract(self, staging: Path) -> bool:
        ovf_file = staging / OVF_NAME
        vm_id = str(self.ctx.machine.id)
        log.debug("ovf_export", vm_id=vm_id, target=str(ovf_file))

        self.ctx.progress.show("0%")
        result = self.ctx.runner.stream(
            [self.ctx.settings.export_tool, "export", vm_id, "-o", str(ovf_file)],
            sink=self._sink,
        )
        if result.aborted is not None:
            log.error("export_tool_error", message=result.aborted.reason.strip())
            raise ExportToolError(result.aborted.reason)
        if result.returncode != 0:
            log.error("export_tool_exit", returncode=result.returncode)
            self.ctx.ui.error(f"{self.ctx.settings.export_tool} exited with status {result.returncode}")
            return False
        return True


class ExtractionStage:
    """Halts the machine and writes its artifacts into a new staging dir."""

    def __init__(self, ctx: ExportContext):
        self.ctx = ctx
        if ctx.kind is ProviderKind.VMWARE:
            self.extractor = VmwareExtractor(ctx)
        else:
            self.extractor = OvfExtractor(ctx)

    def extract(self) -> bool:
        machine = self.ctx.machine
        if machine.state is MachineState.RUNNING:
            self.ctx.ui.info("Halting VM for export")
            machine.halt()

        staging = self.ctx.workspace.create_staging(self.ctx.settings.scratch_dir)
        self.ctx.ui.info("Exporting machine")
        try:
            produced = self.extractor.extract(staging)
        finally:
            self.ctx.progress.clear()

        log.debug("extracted", staging=str(staging), produced=produced)
        return produced

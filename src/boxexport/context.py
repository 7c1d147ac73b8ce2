"""Per-run state shared by the export stages."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import ExportSettings
from .interfaces.machine import VirtualMachineHandle
from .interfaces.process import ProcessRunner
from .progress import ProgressReporter
from .provider import ProviderKind
from .ui import ExportUI
from .workspace import Workspace


@dataclass
class ExportContext:
    """Everything a stage needs; built once per run by the pipeline."""

    machine: VirtualMachineHandle
    settings: ExportSettings
    ui: ExportUI
    runner: ProcessRunner
    cwd: Path
    workspace: Workspace = field(default_factory=Workspace)
    kind: ProviderKind = ProviderKind.OTHER
    progress: Optional[ProgressReporter] = None

    def __post_init__(self):
        if self.progress is None:
            self.progress = ProgressReporter(self.ui)

    @classmethod
    def build(cls, machine, settings, ui, runner, cwd) -> "ExportContext":
        return cls(
            machine=machine,
            settings=settings,
            ui=ui,
            runner=runner,
            cwd=Path(cwd),
            kind=ProviderKind.from_name(machine.provider_name),
        )

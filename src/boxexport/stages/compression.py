"""In-guest disk cleanup before export."""

import re
import time

import structlog

from ..context import ExportContext
from ..errors import CommandChannelError, CompressionUnsupportedError
from ..interfaces.machine import MachineState
from ..interfaces.process import STDOUT

log = structlog.get_logger(__name__)

DISTRIBUTION_COMMAND = "lsb_release -i -s"


class CompressionStage:
    """Runs the cleanup script inside Debian-family guests."""

    def __init__(self, ctx: ExportContext):
        self.ctx = ctx
        families = "|".join(re.escape(name) for name in ctx.settings.compressible_distributions)
        self._families = re.compile(families, re.IGNORECASE) if families else None

    def _refresh_private_key(self) -> None:
        info = self.ctx.machine.ssh_info()
        if info is not None:
            self.ctx.workspace.private_key = info.private_key_path

    def supported(self) -> bool:
        machine = self.ctx.machine
        if machine.state is not MachineState.RUNNING:
            self.ctx.ui.info("Machine not running, bringing it up")
            machine.up()

        if machine.communicator == "winrm" or self._families is None:
            return False

        self._refresh_private_key()
        found = []

        def sink(stream, text):
            if stream == STDOUT and self._families.search(text):
                found.append(text.strip())
            return None

        try:
            machine.communicate.execute(DISTRIBUTION_COMMAND, sink=sink)
        except CommandChannelError as exc:
            log.debug("distribution_probe_failed", error=str(exc))
            return False

        log.debug("distribution_probe", matches=found)
        return bool(found)

    def ensure_supported(self) -> None:
        if not self.supported():
            raise CompressionUnsupportedError("Cannot compress this type of machine")

    def _sudo(self, command: str) -> int:
        ui = self.ctx.ui

        def sink(stream, text):
            data = text.strip()
            if not data:
                return None
            if stream == STDOUT:
                ui.info(data)
            else:
                ui.error(data)
            return None

        log.debug("guest_sudo", command=command)
        rc = self.ctx.machine.communicate.sudo(command, sink=sink)
        if rc != 0:
            ui.error(f"Command '{command}' exited with status {rc}")
        return rc

    def compress(self) -> int:
        target_script = f"{self.ctx.settings.guest_tmp_dir.rstrip('/')}/_cleanup_{int(time.time())}.sh"
        source_script = self.ctx.settings.cleanup_script

        log.debug("cleanup_upload", source=str(source_script), target=target_script)
        self.ctx.ui.info("Compressing machine disk")
        self.ctx.machine.communicate.upload(source_script, target_script)

        self._sudo(f"chmod +x {target_script}")
        self._sudo(target_script)
        return 0

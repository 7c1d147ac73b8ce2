"""
Machine handle backed by the ``vagrant`` command line.

Reads machine state from ``vagrant status --machine-readable``, the
provider id and box metadata from the project's ``.vagrant`` directory,
and SSH details from ``vagrant ssh-config``.
"""

import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import structlog

from .backends.ssh_channel import SSHCommandChannel
from .config import ExportSettings, vagrant_home
from .errors import VagrantError
from .interfaces.machine import CommandChannel, MachineState, SSHInfo, VirtualMachineHandle
from .interfaces.process import ProcessRunner

log = structlog.get_logger(__name__)

VAGRANTSLASH = "-VAGRANTSLASH-"
MAC_RE = re.compile(r'^macaddress1="?([0-9A-Fa-f]{12})"?\s*$', re.MULTILINE)


def parse_machine_readable(output: str) -> List[Tuple[str, str, str]]:
    """Split ``timestamp,target,type,data`` records into (target, type, data)."""
    records = []
    for line in output.splitlines():
        parts = line.split(",", 3)
        if len(parts) < 4:
            continue
        data = parts[3].replace("%!(VAGRANT_COMMA)", ",").replace("\\n", "\n")
        records.append((parts[1], parts[2], data))
    return records


def parse_ssh_config(output: str) -> Dict[str, str]:
    """``vagrant ssh-config`` output as a lowercase-key dict (first value wins)."""
    values: Dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition(" ")
        values.setdefault(key.lower(), value.strip().strip('"'))
    return values


def parse_mac_address(output: str) -> Optional[str]:
    """MAC of adapter 1 from ``VBoxManage showvminfo --machinereadable``."""
    match = MAC_RE.search(output)
    return match.group(1).upper() if match else None


class VagrantMachine(VirtualMachineHandle):
    """A machine of a Vagrant project, driven through the vagrant CLI."""

    def __init__(
        self,
        runner: ProcessRunner,
        machine: str = "default",
        project_dir: Optional[Path] = None,
        settings: Optional[ExportSettings] = None,
    ):
        self.runner = runner
        self.machine = machine
        self.project_dir = Path(project_dir or Path.cwd()).resolve()
        self.settings = settings or ExportSettings()
        self._status: Optional[Dict[str, str]] = None
        self._channel: Optional[SSHCommandChannel] = None

    def _vagrant(self, *args: str, check: bool = True) -> str:
        result = self.runner.stream(["vagrant", *args], cwd=self.project_dir)
        if check and result.returncode != 0:
            raise VagrantError(
                f"vagrant {' '.join(args)} failed ({result.returncode}): {result.stderr.strip()}"
            )
        return result.stdout

    def _load_status(self, refresh: bool = False) -> Dict[str, str]:
        if self._status is None or refresh:
            output = self._vagrant("status", self.machine, "--machine-readable")
            status = {}
            for target, kind, data in parse_machine_readable(output):
                if target == self.machine:
                    status[kind] = data
            self._status = status
        return self._status

    @property
    def state(self) -> MachineState:
        return MachineState.parse(self._load_status(refresh=True).get("state", "unknown"))

    @property
    def provider_name(self) -> str:
        return self._load_status().get("provider-name", "virtualbox")

    @property
    def data_dir(self) -> Optional[Path]:
        return self.project_dir / ".vagrant" / "machines" / self.machine / self.provider_name

    @property
    def id(self) -> str:
        id_file = self.data_dir / "id"
        if not id_file.is_file():
            return ""
        return id_file.read_text().strip()

    def box_meta(self) -> Dict[str, str]:
        meta_file = self.data_dir / "box_meta"
        if not meta_file.is_file():
            return {}
        try:
            return json.loads(meta_file.read_text())
        except ValueError as exc:
            log.warning("box_meta_unreadable", path=str(meta_file), error=str(exc))
            return {}

    @property
    def name(self) -> str:
        return self.box_meta().get("name") or self.machine

    @property
    def box_directory(self) -> Optional[Path]:
        meta = self.box_meta()
        if not meta.get("name") or not meta.get("version"):
            return None
        return (
            vagrant_home()
            / "boxes"
            / meta["name"].replace("/", VAGRANTSLASH)
            / str(meta["version"])
            / meta.get("provider", self.provider_name)
        )

    @property
    def communicator(self) -> str:
        return self.settings.communicator

    def ssh_info(self) -> Optional[SSHInfo]:
        output = self._vagrant("ssh-config", self.machine, check=False)
        values = parse_ssh_config(output)
        if "hostname" not in values:
            log.debug("ssh_config_unavailable", machine=self.machine)
            return None
        key = values.get("identityfile")
        return SSHInfo(
            host=values["hostname"],
            port=int(values.get("port", "22")),
            username=values.get("user", "vagrant"),
            private_key_path=Path(key) if key else None,
        )

    @property
    def communicate(self) -> CommandChannel:
        if self._channel is None:
            self._channel = SSHCommandChannel(self.ssh_info, self.runner)
        return self._channel

    def up(self) -> None:
        log.info("vagrant_up", machine=self.machine)
        self._vagrant("up", self.machine)
        self._status = None

    def halt(self) -> None:
        log.info("vagrant_halt", machine=self.machine)
        self._vagrant("halt", self.machine)
        self._status = None

    def read_mac_address(self) -> str:
        result = self.runner.stream(
            [self.settings.export_tool, "showvminfo", self.id, "--machinereadable"]
        )
        mac = parse_mac_address(result.stdout)
        if mac is None:
            raise VagrantError(f"Could not read MAC address of {self.id}")
        return mac

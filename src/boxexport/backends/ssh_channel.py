"""
Guest command channel over the OpenSSH client.
"""

import shlex
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from ..errors import CommandChannelError, ToolNotFoundError
from ..interfaces.machine import CommandChannel, SSHInfo
from ..interfaces.process import ProcessRunner, StreamSink

log = structlog.get_logger(__name__)

# ── default SSH flags (used everywhere) ──────────────────────────────────────

DEFAULT_SSH_OPTS: List[str] = [
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
    "-o", "BatchMode=yes",
    "-o", "LogLevel=ERROR",
]


def build_ssh_command(info: SSHInfo, connect_timeout: int = 10) -> List[str]:
    """Build the ssh base command for *info*.

    >>> build_ssh_command(SSHInfo("127.0.0.1", 2222))[-1]
    'vagrant@127.0.0.1'
    """
    cmd: List[str] = ["ssh"] + list(DEFAULT_SSH_OPTS)
    cmd.extend(["-o", f"ConnectTimeout={connect_timeout}"])
    if info.private_key_path is not None:
        cmd.extend(["-i", str(info.private_key_path)])
    cmd.extend(["-p", str(info.port)])
    cmd.append(f"{info.username}@{info.host}")
    return cmd


def build_scp_command(info: SSHInfo, source: Path, destination: str) -> List[str]:
    """Build an scp command copying *source* to *destination* on the guest."""
    cmd: List[str] = ["scp"] + list(DEFAULT_SSH_OPTS)
    if info.private_key_path is not None:
        cmd.extend(["-i", str(info.private_key_path)])
    cmd.extend(["-P", str(info.port)])
    cmd.extend([str(source), f"{info.username}@{info.host}:{destination}"])
    return cmd


class SSHCommandChannel(CommandChannel):
    """Run guest commands through ``ssh`` and upload files through ``scp``.

    The descriptor is looked up on every call so a machine that was just
    booted gets its fresh port/key.
    """

    def __init__(self, ssh_info: Callable[[], Optional[SSHInfo]], runner: ProcessRunner):
        self._ssh_info = ssh_info
        self.runner = runner

    def _info(self) -> SSHInfo:
        info = self._ssh_info()
        if info is None:
            raise CommandChannelError("Machine is not reachable over SSH")
        return info

    def _run(self, command: List[str], sink: Optional[StreamSink]) -> int:
        try:
            result = self.runner.stream(command, sink=sink)
        except ToolNotFoundError as exc:
            raise CommandChannelError(str(exc)) from exc
        return result.returncode

    def execute(self, command: str, sink: Optional[StreamSink] = None) -> int:
        log.debug("ssh_execute", command=command)
        return self._run(build_ssh_command(self._info()) + [command], sink)

    def sudo(self, command: str, sink: Optional[StreamSink] = None) -> int:
        log.debug("ssh_sudo", command=command)
        wrapped = f"sudo -n sh -c {shlex.quote(command)}"
        return self._run(build_ssh_command(self._info()) + [wrapped], sink)

    def upload(self, source: Path, destination: str) -> None:
        log.debug("scp_upload", source=str(source), destination=destination)
        rc = self._run(build_scp_command(self._info(), source, destination), None)
        if rc != 0:
            raise CommandChannelError(f"Upload of {source} to {destination} failed (exit {rc})")

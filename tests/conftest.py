"""
Pytest fixtures and fakes for boxexport tests.
"""
import io
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from rich.console import Console

from boxexport.config import ExportSettings
from boxexport.context import ExportContext
from boxexport.errors import ToolNotFoundError
from boxexport.interfaces.machine import (
    CommandChannel,
    MachineState,
    SSHInfo,
    VirtualMachineHandle,
)
from boxexport.interfaces.process import ProcessRunner, ToolResult
from boxexport.ui import ExportUI

Chunks = List[Tuple[str, str]]


class ScriptedTool:
    """Canned behaviour for one executable."""

    def __init__(
        self,
        chunks: Optional[Chunks] = None,
        returncode: int = 0,
        effect: Optional[Callable[[List[str], Optional[Path]], None]] = None,
    ):
        self.chunks = chunks or []
        self.returncode = returncode
        self.effect = effect


class FakeRunner(ProcessRunner):
    """ProcessRunner that replays scripted output instead of spawning processes."""

    def __init__(self, tools: Optional[Dict[str, ScriptedTool]] = None, available=()):
        self.tools = tools or {}
        self.available = set(available)
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[Path]] = []

    def stream(self, command, sink=None, cwd=None, env=None):
        self.calls.append(list(command))
        self.cwds.append(cwd)
        tool = self.tools.get(Path(command[0]).name)
        if tool is None:
            raise ToolNotFoundError(command[0])

        aborted = None
        out, err = [], []
        for stream, text in tool.chunks:
            (out if stream == "stdout" else err).append(text)
            if sink is not None:
                aborted = sink(stream, text)
                if aborted is not None:
                    return ToolResult(returncode=-9, stdout="".join(out), stderr="".join(err), aborted=aborted)
        if tool.effect is not None:
            tool.effect(list(command), cwd)
        return ToolResult(returncode=tool.returncode, stdout="".join(out), stderr="".join(err))

    def which(self, name):
        return f"/usr/bin/{name}" if name in self.available else None


class FakeChannel(CommandChannel):
    """Records guest commands and answers them from a table."""

    def __init__(self, responses: Optional[Dict[str, Tuple[Chunks, int]]] = None):
        self.responses = responses or {}
        self.executed: List[str] = []
        self.sudoed: List[str] = []
        self.uploads: List[Tuple[Path, str]] = []

    def _answer(self, command, sink):
        chunks, rc = self.responses.get(command, ([], 0))
        for stream, text in chunks:
            if sink is not None:
                sink(stream, text)
        return rc

    def execute(self, command, sink=None):
        self.executed.append(command)
        return self._answer(command, sink)

    def sudo(self, command, sink=None):
        self.sudoed.append(command)
        return self._answer(command, sink)

    def upload(self, source, destination):
        self.uploads.append((Path(source), destination))


class FakeMachine(VirtualMachineHandle):
    """In-memory machine handle."""

    def __init__(
        self,
        state: MachineState = MachineState.RUNNING,
        provider: str = "virtualbox",
        machine_id: str = "0b8f6f6e-1111-2222-3333-444455556666",
        name: str = "My VM/2",
        box_directory: Optional[Path] = None,
        data_dir: Optional[Path] = None,
        communicator: str = "ssh",
        channel: Optional[FakeChannel] = None,
        mac: str = "080027A1B2C3",
        ssh: Optional[SSHInfo] = None,
    ):
        self._state = state
        self._provider = provider
        self._id = machine_id
        self._name = name
        self._box_directory = box_directory
        self._data_dir = data_dir
        self._communicator = communicator
        self.channel = channel or FakeChannel()
        self.mac = mac
        self.ssh = ssh or SSHInfo("127.0.0.1", 2222, "vagrant", Path("/keys/insecure"))
        self.actions: List[str] = []

    @property
    def state(self):
        return self._state

    @property
    def provider_name(self):
        return self._provider

    @property
    def id(self):
        return self._id

    @property
    def name(self):
        return self._name

    @property
    def box_directory(self):
        return self._box_directory

    @property
    def data_dir(self):
        return self._data_dir

    @property
    def communicator(self):
        return self._communicator

    @property
    def communicate(self):
        return self.channel

    def ssh_info(self):
        return self.ssh

    def up(self):
        self.actions.append("up")
        self._state = MachineState.RUNNING

    def halt(self):
        self.actions.append("halt")
        self._state = MachineState.HALTED

    def read_mac_address(self):
        self.actions.append("read_mac")
        return self.mac


def write_files(root: Path, files: Dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def out():
    """Captured console output."""
    return io.StringIO()


@pytest.fixture
def ui(out):
    return ExportUI(Console(file=out, force_terminal=False, width=200))


@pytest.fixture
def settings(tmp_path):
    return ExportSettings(scratch_dir=tmp_path / "scratch")


@pytest.fixture
def machine():
    return FakeMachine()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def ctx(machine, settings, ui, runner, tmp_path):
    cwd = tmp_path / "project"
    cwd.mkdir()
    return ExportContext.build(machine, settings, ui, runner, cwd)

"""Interfaces for the machine being exported and its command channel."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .process import StreamSink


class MachineState(Enum):
    """Lifecycle state of a machine, as far as exports care."""

    NOT_CREATED = "not created"
    RUNNING = "running"
    HALTED = "halted"
    SAVED = "saved"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, description: str) -> "MachineState":
        """Map a provider's short state description to a MachineState."""
        value = description.strip().lower().replace("_", " ")
        if value == "not created":
            return cls.NOT_CREATED
        if value == "running":
            return cls.RUNNING
        if value in ("poweroff", "powered off", "aborted", "shutoff", "stopped", "not running"):
            return cls.HALTED
        if value in ("saved", "suspended", "paused"):
            return cls.SAVED
        return cls.UNKNOWN


@dataclass
class SSHInfo:
    """SSH connection descriptor for a guest."""

    host: str
    port: int = 22
    username: str = "vagrant"
    private_key_path: Optional[Path] = None


class CommandChannel(ABC):
    """Runs commands inside the guest."""

    @abstractmethod
    def execute(self, command: str, sink: Optional[StreamSink] = None) -> int:
        """Run *command* and return its exit status."""
        pass

    @abstractmethod
    def sudo(self, command: str, sink: Optional[StreamSink] = None) -> int:
        """Run *command* with elevated privilege and return its exit status."""
        pass

    @abstractmethod
    def upload(self, source: Path, destination: str) -> None:
        """Copy a host file into the guest."""
        pass


class VirtualMachineHandle(ABC):
    """The machine being exported. The pipeline only reads it and asks for up/halt."""

    @property
    @abstractmethod
    def state(self) -> MachineState:
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier, e.g. 'virtualbox' or 'vmware_fusion'."""
        pass

    @property
    @abstractmethod
    def id(self) -> str:
        """Provider identity token (VM uuid, or the .vmx path for VMware)."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name the box file is named after."""
        pass

    @property
    @abstractmethod
    def box_directory(self) -> Optional[Path]:
        pass

    @property
    @abstractmethod
    def data_dir(self) -> Optional[Path]:
        pass

    @property
    def communicator(self) -> str:
        return "ssh"

    @property
    @abstractmethod
    def communicate(self) -> CommandChannel:
        pass

    @abstractmethod
    def ssh_info(self) -> Optional[SSHInfo]:
        pass

    @abstractmethod
    def up(self) -> None:
        pass

    @abstractmethod
    def halt(self) -> None:
        pass

    @abstractmethod
    def read_mac_address(self) -> str:
        """Current MAC address of the first network adapter."""
        pass

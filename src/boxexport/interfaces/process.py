"""Abstract interface for host process execution."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

STDOUT = "stdout"
STDERR = "stderr"


@dataclass(frozen=True)
class Abort:
    """Returned by a stream sink to stop the running process."""

    reason: str


# A sink receives (stream, text) and returns None to keep going.
StreamSink = Callable[[str, str], Optional[Abort]]


@dataclass
class ToolResult:
    """Result of a streamed process execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    aborted: Optional[Abort] = None

    @property
    def success(self) -> bool:
        return self.returncode == 0 and self.aborted is None


class ProcessRunner(ABC):
    """Abstract interface for running host executables."""

    @abstractmethod
    def stream(
        self,
        command: List[str],
        sink: Optional[StreamSink] = None,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> ToolResult:
        """Run a command, passing output chunks to *sink* as they arrive.

        Raises ToolNotFoundError when the executable does not exist.
        """
        pass

    @abstractmethod
    def which(self, name: str) -> Optional[str]:
        """Resolve an executable on PATH."""
        pass

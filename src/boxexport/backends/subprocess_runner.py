"""Subprocess process runner implementation."""

import os
import queue
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from ..errors import ToolNotFoundError
from ..interfaces.process import STDERR, STDOUT, ProcessRunner, StreamSink, ToolResult

log = structlog.get_logger(__name__)

CHUNK_SIZE = 4096


def _pump(pipe, stream: str, chunks: "queue.Queue") -> None:
    """Copy raw reads from *pipe* into *chunks* until EOF."""
    try:
        for data in iter(lambda: os.read(pipe.fileno(), CHUNK_SIZE), b""):
            chunks.put((stream, data.decode("utf-8", errors="replace")))
    finally:
        pipe.close()
        chunks.put((stream, None))


class SubprocessRunner(ProcessRunner):
    """Run host executables using the subprocess module."""

    def stream(
        self,
        command: List[str],
        sink: Optional[StreamSink] = None,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> ToolResult:
        """Run a command, delivering output chunks on the calling thread."""
        log.debug("process_start", command=command, cwd=str(cwd) if cwd else None)
        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                env=env,
            )
        except FileNotFoundError:
            raise ToolNotFoundError(command[0])

        chunks: "queue.Queue" = queue.Queue()
        readers = [
            threading.Thread(target=_pump, args=(proc.stdout, STDOUT, chunks), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, STDERR, chunks), daemon=True),
        ]
        for reader in readers:
            reader.start()

        collected = {STDOUT: [], STDERR: []}
        aborted = None
        open_streams = 2
        try:
            while open_streams:
                stream, text = chunks.get()
                if text is None:
                    open_streams -= 1
                    continue
                collected[stream].append(text)
                if sink is None or aborted is not None:
                    continue
                aborted = sink(stream, text)
                if aborted is not None:
                    log.debug("process_abort", command=command[0], reason=aborted.reason)
                    proc.kill()
        except BaseException:
            log.debug("process_interrupted", command=command[0])
            proc.kill()
            proc.wait()
            for reader in readers:
                reader.join()
            raise

        returncode = proc.wait()
        for reader in readers:
            reader.join()

        log.debug("process_exit", command=command[0], returncode=returncode)
        return ToolResult(
            returncode=returncode,
            stdout="".join(collected[STDOUT]),
            stderr="".join(collected[STDERR]),
            aborted=aborted,
        )

    def which(self, name: str) -> Optional[str]:
        """Resolve an executable on PATH."""
        return shutil.which(name)

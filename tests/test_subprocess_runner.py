"""Tests for the streaming subprocess runner."""
import subprocess
import sys
from unittest.mock import patch

import pytest

from boxexport.backends.subprocess_runner import SubprocessRunner
from boxexport.errors import ToolNotFoundError
from boxexport.interfaces.process import Abort


def py(code):
    return [sys.executable, "-c", code]


class TestSubprocessRunner:
    """Test SubprocessRunner.stream against real child processes."""

    def test_collects_both_streams(self):
        seen = []
        result = SubprocessRunner().stream(
            py("import sys; print('out'); print('err', file=sys.stderr)"),
            sink=lambda stream, text: seen.append((stream, text)),
        )

        assert result.success
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"
        assert {stream for stream, _ in seen} == {"stdout", "stderr"}

    def test_nonzero_exit_is_a_result(self):
        result = SubprocessRunner().stream(py("import sys; sys.exit(3)"))

        assert result.returncode == 3
        assert not result.success
        assert result.aborted is None

    def test_missing_executable_raises(self):
        with pytest.raises(ToolNotFoundError) as exc_info:
            SubprocessRunner().stream(["definitely-not-a-real-tool-xyz", "--help"])

        assert exc_info.value.tool == "definitely-not-a-real-tool-xyz"

    def test_sink_abort_stops_process(self):
        code = "import sys, time\nsys.stderr.write('fatal\\n')\nsys.stderr.flush()\ntime.sleep(30)"
        result = SubprocessRunner().stream(py(code), sink=lambda stream, text: Abort(text))

        assert isinstance(result.aborted, Abort)
        assert result.aborted.reason.startswith("fatal")
        assert not result.success

    def test_raising_sink_kills_process(self, tmp_path):
        marker = tmp_path / "finished"
        code = f"import time\nprint('hi', flush=True)\ntime.sleep(30)\nopen({str(marker)!r}, 'w').close()"
        spawned = []
        real_popen = subprocess.Popen

        def spawn(*args, **kwargs):
            proc = real_popen(*args, **kwargs)
            spawned.append(proc)
            return proc

        def sink(stream, text):
            raise KeyboardInterrupt

        with patch("subprocess.Popen", side_effect=spawn):
            with pytest.raises(KeyboardInterrupt):
                SubprocessRunner().stream(py(code), sink=sink)

        assert spawned[0].returncode is not None
        assert spawned[0].returncode != 0
        assert not marker.exists()

    def test_cwd(self, tmp_path):
        result = SubprocessRunner().stream(py("import os; print(os.getcwd())"), cwd=tmp_path)

        assert result.stdout.strip() == str(tmp_path)

    def test_which(self):
        assert SubprocessRunner().which("definitely-not-a-real-tool-xyz") is None

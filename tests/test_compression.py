"""Tests for the in-guest cleanup stage."""
from unittest.mock import patch

import pytest

from boxexport.errors import CommandChannelError, CompressionUnsupportedError
from boxexport.interfaces.machine import MachineState
from boxexport.stages.compression import DISTRIBUTION_COMMAND, CompressionStage

from conftest import FakeChannel


class TestSupported:
    """Test CompressionStage.supported."""

    def test_ubuntu_guest(self, ctx, machine):
        machine.channel.responses[DISTRIBUTION_COMMAND] = ([("stdout", "Ubuntu\n")], 0)

        assert CompressionStage(ctx).supported() is True
        assert machine.channel.executed == [DISTRIBUTION_COMMAND]

    def test_substring_match_is_case_insensitive(self, ctx, machine):
        machine.channel.responses[DISTRIBUTION_COMMAND] = ([("stdout", "LinuxMint\n")], 0)

        assert CompressionStage(ctx).supported() is True

    def test_unknown_family(self, ctx, machine):
        machine.channel.responses[DISTRIBUTION_COMMAND] = ([("stdout", "CentOS\n")], 0)

        assert CompressionStage(ctx).supported() is False

    def test_stderr_is_ignored(self, ctx, machine):
        machine.channel.responses[DISTRIBUTION_COMMAND] = ([("stderr", "debian: not found\n")], 127)

        assert CompressionStage(ctx).supported() is False

    def test_winrm_guest(self, ctx, machine):
        machine._communicator = "winrm"

        assert CompressionStage(ctx).supported() is False
        assert machine.channel.executed == []

    def test_brings_machine_up(self, ctx, machine):
        machine._state = MachineState.HALTED

        CompressionStage(ctx).supported()

        assert machine.actions == ["up"]

    def test_refreshes_private_key(self, ctx, machine):
        CompressionStage(ctx).supported()

        assert ctx.workspace.private_key == machine.ssh.private_key_path

    def test_unreachable_guest(self, ctx, machine):
        class Unreachable(FakeChannel):
            def execute(self, command, sink=None):
                raise CommandChannelError("no ssh")

        machine.channel = Unreachable()

        assert CompressionStage(ctx).supported() is False


class TestCompress:
    """Test CompressionStage.compress."""

    def test_uploads_and_runs_script(self, ctx, machine, settings):
        with patch("boxexport.stages.compression.time.time", return_value=1700000000):
            assert CompressionStage(ctx).compress() == 0

        assert machine.channel.uploads == [(settings.cleanup_script, "/tmp/_cleanup_1700000000.sh")]
        assert machine.channel.sudoed == [
            "chmod +x /tmp/_cleanup_1700000000.sh",
            "/tmp/_cleanup_1700000000.sh",
        ]

    def test_failures_are_reported_not_raised(self, ctx, machine, out):
        with patch("boxexport.stages.compression.time.time", return_value=42):
            script = "/tmp/_cleanup_42.sh"
            machine.channel.responses[script] = (
                [("stdout", "Zeroing free space\n"), ("stderr", "dd: no space left\n")],
                1,
            )
            assert CompressionStage(ctx).compress() == 0

        output = out.getvalue()
        assert "Zeroing free space" in output
        assert "dd: no space left" in output
        assert "exited with status 1" in output


class TestEnsureSupported:
    """Test the raising variant used by the pipeline."""

    def test_raises_for_unknown_family(self, ctx, machine):
        machine.channel.responses[DISTRIBUTION_COMMAND] = ([("stdout", "Arch\n")], 0)

        with pytest.raises(CompressionUnsupportedError, match="Cannot compress"):
            CompressionStage(ctx).ensure_supported()

    def test_passes_for_debian(self, ctx, machine):
        machine.channel.responses[DISTRIBUTION_COMMAND] = ([("stdout", "Debian\n")], 0)

        CompressionStage(ctx).ensure_supported()

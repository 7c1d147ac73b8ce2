"""Tests for publishing the box file."""
from pathlib import Path

import pytest

from boxexport.stages.finalization import FinalizationStage, target_box_path


class TestTargetBoxPath:
    """Test box file naming."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("My VM/2", "my_vm_2.box"),
            ("hashicorp/bionic64", "hashicorp_bionic64.box"),
            ("ubuntu-22.04", "ubuntu-22_04.box"),
            ("already-safe", "already-safe.box"),
        ],
    )
    def test_sanitization(self, name, expected):
        assert target_box_path(name, Path("/work")) == Path("/work") / expected


class TestFinalize:
    """Test FinalizationStage.finalize."""

    def test_moves_archive(self, ctx, out):
        archive = ctx.cwd / "export-1.box"
        archive.write_text("box")
        ctx.workspace.archive_path = archive

        target = FinalizationStage(ctx).finalize()

        assert target == ctx.cwd / "my_vm_2.box"
        assert target.read_text() == "box"
        assert not archive.exists()
        assert f"Created {target}" in out.getvalue()

    def test_noop_without_archive(self, ctx):
        ctx.workspace.archive_path = ctx.cwd / "missing.box"

        assert FinalizationStage(ctx).finalize() is None

    def test_noop_before_packaging(self, ctx):
        assert FinalizationStage(ctx).finalize() is None

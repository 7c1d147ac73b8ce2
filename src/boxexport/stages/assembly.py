"""
Fill the staging directory with everything besides the provider artifacts:
metadata.json, box template files, the generated SSH key and the
Vagrantfile fragments that go with them.
"""

import json
import re
import shutil
from pathlib import Path
from typing import Iterable, List

import structlog

from ..context import ExportContext
from ..provider import ProviderKind, normalize_provider

log = structlog.get_logger(__name__)

METADATA_FILE = "metadata.json"
VAGRANTFILE = "Vagrantfile"
PRIVATE_KEY_FILE = "vagrant_private_key"

BASE_MAC_RE = re.compile(r"base_mac\s*=\s*(\"|')", re.IGNORECASE)


def metadata_json(provider: str) -> str:
    """Serialized metadata: ``{"provider":"<name>"}``."""
    return json.dumps({"provider": provider}, separators=(",", ":"))


def append_vagrantfile(path: Path, assignments: Iterable[str]) -> None:
    """Append a ``Vagrant.configure`` block, creating the file if needed."""
    lines = ["", 'Vagrant.configure("2") do |config|']
    lines.extend(f"  {assignment}" for assignment in assignments)
    lines.append("end")
    with open(path, "ab") as f:
        f.write(("\n".join(lines) + "\n").encode("utf-8"))


def vagrantfile_has_base_mac(path: Path) -> bool:
    if not path.is_file():
        return False
    with open(path, encoding="utf-8", errors="replace") as f:
        return any(BASE_MAC_RE.search(line) for line in f)


class AssemblyStage:
    """Writes metadata and auxiliary files next to the extracted artifacts."""

    def __init__(self, ctx: ExportContext):
        self.ctx = ctx

    @property
    def staging(self) -> Path:
        return self.ctx.workspace.require_staging()

    def write_metadata(self) -> str:
        provider = normalize_provider(self.ctx.machine.provider_name)
        if provider != self.ctx.machine.provider_name:
            log.debug("provider_normalized", original=self.ctx.machine.provider_name, provider=provider)
        (self.staging / METADATA_FILE).write_bytes(metadata_json(provider).encode("utf-8"))
        return provider

    def template_files(self) -> List[Path]:
        """Box template files to copy, relative to the box directory."""
        box_dir = self.ctx.machine.box_directory
        if box_dir is None or not Path(box_dir).is_dir():
            return []
        box_dir = Path(box_dir)
        excluded = set(self.ctx.settings.template_excluded_extensions)

        selected = []
        for f in sorted(box_dir.rglob("*")):
            if not f.is_file():
                continue
            if f.suffix.lstrip(".").lower() in excluded or f.name.lower() in excluded:
                continue
            relative = f.relative_to(box_dir)
            if (self.staging / relative).is_file():
                continue
            selected.append(relative)
        return selected

    def copy_template(self) -> List[Path]:
        box_dir = self.ctx.machine.box_directory
        files = self.template_files()
        log.debug("template_copy", source=str(box_dir), files=[str(f) for f in files])
        for relative in files:
            dest = self.staging / relative
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(Path(box_dir) / relative, dest)
        return files

    def setup_private_key(self) -> bool:
        """Ship the machine's generated key so the box keeps booting with it."""
        data_dir = self.ctx.machine.data_dir
        if data_dir is None:
            return False
        key = Path(data_dir) / "private_key"
        if not key.is_file():
            return False

        shutil.copy2(key, self.staging / PRIVATE_KEY_FILE)
        append_vagrantfile(
            self.staging / VAGRANTFILE,
            ['config.ssh.private_key_path = File.expand_path("../vagrant_private_key", __FILE__)'],
        )
        log.debug("private_key_included", source=str(key))
        return True

    def setup_base_mac(self) -> bool:
        """Pin the VirtualBox MAC address unless the Vagrantfile already does."""
        vagrantfile = self.staging / VAGRANTFILE
        if vagrantfile_has_base_mac(vagrantfile):
            log.debug("base_mac_present", path=str(vagrantfile))
            return False

        mac = self.ctx.machine.read_mac_address()
        append_vagrantfile(vagrantfile, [f'config.vm.base_mac = "{mac}"'])
        log.debug("base_mac_added", mac=mac)
        return True

    def assemble(self, bare: bool) -> int:
        self.write_metadata()
        if not bare:
            self.copy_template()
        self.setup_private_key()
        if self.ctx.kind is ProviderKind.VIRTUALBOX:
            self.setup_base_mac()
        return 0

#!/usr/bin/env python3
"""
Pydantic settings for box exports.
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

RES_DIR = Path(__file__).resolve().parent / "res"
CONFIG_FILE = ".boxexport.yaml"


def vagrant_home() -> Path:
    """$VAGRANT_HOME, or ~/.vagrant.d."""
    return Path(os.getenv("VAGRANT_HOME", str(Path.home() / ".vagrant.d")))


def default_scratch_dir() -> Path:
    """Root directory for staging directories."""
    return Path(os.getenv("BOXEXPORT_TMP_DIR", str(vagrant_home() / "tmp")))


class ExportSettings(BaseModel):
    """Tunables for one export run."""

    scratch_dir: Path = Field(default_factory=default_scratch_dir, description="Staging root")
    compressible_distributions: List[str] = Field(
        default_factory=lambda: ["mint", "ubuntu", "debian"],
        description="Distribution ids the cleanup script supports",
    )
    vmware_data_extensions: List[str] = Field(
        default_factory=lambda: ["vmdk", "nvram", "vmtm", "vmx", "vmxf"],
        description="VMware files harvested into the box",
    )
    template_excluded_extensions: List[str] = Field(
        default_factory=lambda: [
            "gz", "core", "lck", "log", "vmdk", "ovf", "ova",
            "nvram", "vmem", "vmsd", "vmsn", "vmss", "vmtm", "vmx", "vmxf",
        ],
        description="Box template files never copied into the box",
    )
    export_tool: str = Field(default="VBoxManage", description="OVF export CLI")
    vdisk_tool: str = Field(default="vmware-vdiskmanager", description="VMware disk compactor")
    fallback_archiver: str = Field(default="bsdtar", description="Archiver used without pv")
    progress_tools: List[str] = Field(
        default_factory=lambda: ["pv", "tar", "gzip"],
        description="Tools the progress packaging script needs",
    )
    shell: str = Field(default="bash", description="Shell running the progress script")
    communicator: str = Field(default="ssh", description="Guest transport: ssh|winrm")
    guest_tmp_dir: str = Field(default="/tmp", description="Upload directory in the guest")
    cleanup_script: Path = Field(default=RES_DIR / "cleanup.sh")
    progress_script: Path = Field(default=RES_DIR / "progress_tar.sh")

    @field_validator(
        "compressible_distributions",
        "vmware_data_extensions",
        "template_excluded_extensions",
    )
    @classmethod
    def normalize_names(cls, v: List[str]) -> List[str]:
        return [item.strip().lstrip(".").lower() for item in v if item.strip()]

    @field_validator("communicator")
    @classmethod
    def communicator_must_be_valid(cls, v: str) -> str:
        valid = {"ssh", "winrm"}
        if v not in valid:
            raise ValueError(f"communicator must be one of: {valid}")
        return v

    @field_validator("scratch_dir", "cleanup_script", "progress_script")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ExportSettings":
        """Load settings from YAML; a missing file gives the defaults."""
        if path is None:
            return cls()
        path = Path(path)
        if path.is_dir():
            path = path / CONFIG_FILE
        if not path.exists():
            return cls()
        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return cls.model_validate(data)

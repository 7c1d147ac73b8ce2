"""Provider classification."""

import re
from enum import Enum

VMWARE_DESKTOP = "vmware_desktop"

_VMWARE_RE = re.compile("vmware", re.IGNORECASE)


class ProviderKind(Enum):
    """Export strategy family of a provider."""

    VIRTUALBOX = "virtualbox"
    VMWARE = "vmware"
    OTHER = "other"

    @classmethod
    def from_name(cls, provider_name: str) -> "ProviderKind":
        if provider_name == "virtualbox":
            return cls.VIRTUALBOX
        if _VMWARE_RE.search(provider_name):
            return cls.VMWARE
        return cls.OTHER

    @property
    def uses_ovf_export(self) -> bool:
        return self is not ProviderKind.VMWARE


def normalize_provider(provider_name: str) -> str:
    """Provider label written into metadata.json.

    vmware_fusion and vmware_workstation boxes are both published as
    vmware_desktop, the name the VMware plugins look boxes up by.
    """
    if ProviderKind.from_name(provider_name) is ProviderKind.VMWARE:
        return VMWARE_DESKTOP
    return provider_name

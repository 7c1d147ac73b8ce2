"""Exception hierarchy for box exports."""


class BoxExportError(Exception):
    """Base class for every error raised by boxexport."""


class NotCreatedError(BoxExportError):
    """The machine has not been created, there is nothing to export."""

    def __init__(self, machine: str = ""):
        self.machine = machine
        target = f"'{machine}' " if machine else ""
        super().__init__(f"Machine {target}is not created, nothing to export")


class CompressionUnsupportedError(BoxExportError):
    """The guest OS family has no in-guest cleanup script."""


class ExportToolError(BoxExportError):
    """The OVF export tool reported an error on its error channel."""

    def __init__(self, message: str):
        self.tool_message = message
        super().__init__(f"Export tool failed: {message.strip()}")


class TarFailed(BoxExportError):
    """Packaging finished without producing an archive."""

    def __init__(self, archive_path=None):
        self.archive_path = archive_path
        super().__init__(f"Box file was not created: {archive_path}")


class ToolNotFoundError(BoxExportError):
    """An external executable is not available on this host."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Required tool not found: {tool}")


class CommandChannelError(BoxExportError):
    """The guest command channel cannot be used."""


class VagrantError(BoxExportError):
    """A vagrant CLI call failed."""

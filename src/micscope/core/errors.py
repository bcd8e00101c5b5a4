"""
Error taxonomy for capture and visualization failures.

Capture errors are surfaced to the user as a status message and never
terminate the process.  Visualization errors are isolated per visualization
by the registry.
"""


class MicscopeError(Exception):
    """Base class for all micscope errors."""


class CaptureError(MicscopeError):
    """The audio capture device could not be brought up."""

    status_message = "Microphone unavailable"


class PermissionDenied(CaptureError):
    """The host refused access to the microphone."""

    status_message = "Microphone access denied"


class DeviceUnavailable(CaptureError):
    """An input device exists but could not be opened."""

    status_message = "Microphone device unavailable"


class UnsupportedPlatform(CaptureError):
    """No audio capture capability on this host."""

    status_message = "Audio capture is not supported on this platform"


class VisualizationRuntimeError(MicscopeError):
    """A single visualization raised during update."""

    def __init__(self, viz_id: str, cause: BaseException):
        super().__init__(f"Visualization {viz_id!r} failed: {cause!r}")
        self.viz_id = viz_id
        self.cause = cause

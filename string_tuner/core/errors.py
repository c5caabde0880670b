"""Errors raised when the capture device cannot be acquired."""


class CaptureError(Exception):
    """Base class for failures to start audio capture.

    Capture errors end the current session. The engine stays idle and the
    user has to start it again.
    """

    default_message = "Could not start audio capture."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PermissionDenied(CaptureError):
    """Access to the microphone was refused."""

    default_message = (
        "Microphone access was denied. Allow microphone access for this "
        "application in your system settings and try again."
    )


class DeviceUnavailable(CaptureError):
    """No usable capture device exists."""

    default_message = (
        "No audio input device is available. Connect a microphone or "
        "select another input device and try again."
    )

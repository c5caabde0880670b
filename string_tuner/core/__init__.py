"""Core components for the String Tuner application."""

# Import interfaces for easier access
from .interfaces import ISampleSource, IPitchEstimator
from .errors import CaptureError, PermissionDenied, DeviceUnavailable

__all__ = [
    "ISampleSource",
    "IPitchEstimator",
    "CaptureError",
    "PermissionDenied",
    "DeviceUnavailable",
]

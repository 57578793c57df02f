"""
Exceptions raised by address resolution and frame forgery.
"""

from typing import List, Optional


class ARPSpoofError(Exception):
    """Base class; carries the failing operation and the address involved."""

    def __init__(self, message: str, operation: str = "", address: Optional[object] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.address = address

    def __str__(self):
        prefix = f"[{self.operation}] " if self.operation else ""
        where = f"{self.address}: " if self.address is not None else ""
        return f"{prefix}{where}{self.message}"


class ResolutionError(ARPSpoofError):
    """MAC resolution failed."""


class LocalAddressUnavailable(ResolutionError):
    """The device has no IPv4 address to send the request from."""


class ResolutionTimeout(ResolutionError):
    """No matching ARP reply arrived in time (host down)."""


class ResolutionCancelled(ResolutionError):
    """The caller cancelled the resolution."""


class TransmitFailure(ARPSpoofError):
    """The device could not send a frame."""


class ForgeryError(ARPSpoofError):
    """
    One or both forged frames could not be sent.

    Both frames are always attempted, so ``failures`` may hold one or two
    TransmitFailure instances.
    """

    def __init__(self, message: str, failures: List[TransmitFailure],
                 operation: str = "spoof", address: Optional[object] = None):
        super().__init__(message, operation=operation, address=address)
        self.failures = failures

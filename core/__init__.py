"""
Core module for ARP-based networking.

Includes:
- Address types and interface management
- ARP frame model and building with Scapy
- Capture device for sniffing and injecting frames
- Notifications and the error taxonomy
"""

from .network_utils import (
    HardwareAddress,
    NetworkAddress,
    parse_network_address,
    get_interfaces,
    get_interface_info,
    get_gateway,
    select_interface,
)
from .arp_packet import ARPPacketBuilder, ArpOperation, AddressBindingFrame, LinkFrame
from .capture_device import CaptureDevice, open_device
from .events import EventDispatcher, Notification
from .exceptions import (
    ARPSpoofError,
    ResolutionError,
    LocalAddressUnavailable,
    ResolutionTimeout,
    ResolutionCancelled,
    TransmitFailure,
    ForgeryError,
)

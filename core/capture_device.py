"""
Capture device: one interface that can both sniff and inject ARP frames.

Delivery runs on Scapy's AsyncSniffer thread. Registered callbacks are invoked
from that thread for every captured frame, so they must be cheap and must not
block.
"""

import logging
import threading
from typing import Callable, List, Optional

from scapy.all import AsyncSniffer, conf, get_if_hwaddr, sendp

from config import settings
from core.arp_packet import LinkFrame
from core.exceptions import TransmitFailure
from core.network_utils import HardwareAddress, get_interface_addresses

logger = logging.getLogger(__name__)

PacketCallback = Callable[[object], None]


class CaptureDevice:
    """
    A network interface opened for ARP capture and injection.

    Exposes:
    - the interface's own MAC and configured IP addresses
    - a BPF filter applied when delivery starts
    - callback registration for captured frames
    - frame transmission
    """

    def __init__(self, interface: str, mac_address: Optional[str] = None):
        """
        Open a capture device.

        Args:
            interface: Network interface name.
            mac_address: Override for the interface MAC (looked up if None).
        """
        self.name = interface
        try:
            self.mac_address = HardwareAddress.parse(mac_address or get_if_hwaddr(interface))
        except (OSError, ValueError) as e:
            raise RuntimeError(f"Could not get MAC address for {interface}: {e}") from e

        self._filter = settings.ARP_CAPTURE_FILTER
        self._callbacks: List[PacketCallback] = []
        self._callbacks_lock = threading.Lock()
        self._sniffer: Optional[AsyncSniffer] = None

        logger.info("Opened %s (%s)", interface, self.mac_address)

    @property
    def addresses(self):
        """Configured addresses of the interface, IPv4 first."""
        return get_interface_addresses(self.name)

    @property
    def is_delivering(self) -> bool:
        return self._sniffer is not None and self._sniffer.running

    def set_filter(self, expression: str):
        """Set the BPF filter. Takes effect the next time delivery starts."""
        if self.is_delivering and expression != self._filter:
            logger.warning("Filter %r will apply after delivery is restarted", expression)
        self._filter = expression

    def add_callback(self, callback: PacketCallback):
        with self._callbacks_lock:
            self._callbacks.append(callback)

    def remove_callback(self, callback: PacketCallback):
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def _dispatch(self, packet):
        """Deliver a captured packet to every callback (sniffer thread)"""
        with self._callbacks_lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(packet)
            except Exception as e:
                logger.warning("Packet callback error: %s", e)

    def start_delivery(self):
        """Start capturing. Does nothing if delivery is already running."""
        if self.is_delivering:
            return
        self._sniffer = AsyncSniffer(
            iface=self.name,
            filter=self._filter,
            prn=self._dispatch,
            store=False
        )
        self._sniffer.start()
        logger.debug("Capture started on %s with filter %r", self.name, self._filter)

    def stop_delivery(self):
        if not self.is_delivering:
            self._sniffer = None
            return
        try:
            self._sniffer.stop()
        except Exception as e:
            logger.warning("Error stopping capture on %s: %s", self.name, e)
        self._sniffer = None
        logger.debug("Capture stopped on %s", self.name)

    def send(self, frame: LinkFrame):
        """
        Transmit a frame.

        Raises:
            TransmitFailure: If the underlying send fails.
        """
        try:
            sendp(frame.to_scapy(), iface=self.name, verbose=False)
        except Exception as e:
            raise TransmitFailure(str(e), operation="send", address=self.name) from e

    def close(self):
        self.stop_delivery()
        with self._callbacks_lock:
            self._callbacks.clear()
        logger.info("Closed %s", self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def open_device(interface: str) -> CaptureDevice:
    """Open a CaptureDevice and make it Scapy's default interface."""
    device = CaptureDevice(interface)
    conf.iface = interface
    conf.verb = 0
    return device

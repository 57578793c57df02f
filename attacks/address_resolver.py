"""
Active ARP resolution.

Sends one broadcast "who-has" and waits for the matching "is-at" delivered by
the capture device, racing it against a timeout and a cancellation event.

Capture is started before the request goes out and is deliberately left running
afterwards: stopping it between two resolutions on the same device makes the
second one miss its reply.
"""

import asyncio
import logging
from typing import Optional, Union

from config import settings
from core.arp_packet import ARPPacketBuilder, ArpOperation, LinkFrame
from core.events import REQUEST_SENT, REPLY_MATCHED, EventDispatcher
from core.exceptions import (
    LocalAddressUnavailable, ResolutionCancelled, ResolutionError,
    ResolutionTimeout
)
from core.network_utils import HardwareAddress, NetworkAddress, parse_network_address

logger = logging.getLogger(__name__)

OPERATION = "resolve"


class AddressResolver:
    """
    Resolves IPv4 addresses to MAC addresses over a capture device.

    Resolutions on one resolver are expected to run one at a time.
    """

    def __init__(
        self,
        device,
        timeout: float = settings.RESOLVE_TIMEOUT,
        settle_delay: float = settings.CAPTURE_SETTLE_DELAY,
        events: Optional[EventDispatcher] = None
    ):
        """
        Args:
            device: Capture device (see core.capture_device.CaptureDevice)
            timeout: Seconds to wait for the reply after sending the request
            settle_delay: Seconds between starting capture and sending
            events: Dispatcher for request_sent/reply_matched notifications
        """
        self.device = device
        self.timeout = timeout
        self.settle_delay = settle_delay
        self.events = events or EventDispatcher()

    def _local_ipv4(self, target: NetworkAddress) -> NetworkAddress:
        for address in self.device.addresses:
            if address.version == 4:
                return address
        raise LocalAddressUnavailable(
            f"no IPv4 address configured on {getattr(self.device, 'name', 'device')}",
            operation=OPERATION, address=target
        )

    async def resolve(
        self,
        target_ip: Union[str, NetworkAddress],
        cancellation: Optional[asyncio.Event] = None
    ) -> HardwareAddress:
        """
        Resolve target_ip to its MAC address.

        Args:
            target_ip: IPv4 address to resolve
            cancellation: Event that aborts the resolution when set

        Returns:
            The sender MAC of the first matching ARP reply.

        Raises:
            LocalAddressUnavailable: The device has no IPv4 address.
            ResolutionTimeout: No matching reply within the timeout.
            ResolutionCancelled: The cancellation event was set first.
            ResolutionError: Anything else, including transmit failures.
        """
        try:
            target = parse_network_address(target_ip)
        except ValueError as e:
            raise ResolutionError(str(e), operation=OPERATION, address=target_ip) from e

        request = ARPPacketBuilder(
            self.device.mac_address, self._local_ipv4(target)
        ).build_arp_request(target)

        if cancellation is None:
            cancellation = asyncio.Event()

        loop = asyncio.get_running_loop()
        result = loop.create_future()

        def fulfil(mac: HardwareAddress):
            # Runs on the event loop; only the first reply counts
            if result.done():
                logger.debug("Ignoring extra reply from %s (%s)", target, mac)
                return
            result.set_result(mac)
            self.events.emit(REPLY_MATCHED, target, mac)

        def on_packet(packet):
            # Runs on the capture thread
            frame = LinkFrame.from_scapy(packet)
            if frame is None:
                return
            arp = frame.payload
            if arp.operation != ArpOperation.REPLY or arp.sender_ip != target:
                return
            # The capture thread may still hold this callback after resolve returned
            if loop.is_closed():
                return
            try:
                loop.call_soon_threadsafe(fulfil, arp.sender_mac)
            except RuntimeError:
                logger.debug("Late reply from %s after the event loop closed", target)

        self.device.add_callback(on_packet)
        try:
            self.device.set_filter(settings.ARP_CAPTURE_FILTER)
            self.device.start_delivery()

            if await self._wait_for_cancel(cancellation, self.settle_delay):
                raise ResolutionCancelled("cancelled before the request was sent",
                                          operation=OPERATION, address=target)

            self.device.send(request)
            self.events.emit(REQUEST_SENT, target, HardwareAddress.BROADCAST)
            logger.debug("Sent ARP who-has %s from %s", target, request.payload.sender_ip)

            return await self._await_reply(result, cancellation, target)
        except ResolutionError:
            raise
        except Exception as e:
            raise ResolutionError(str(e), operation=OPERATION, address=target) from e
        finally:
            self.device.remove_callback(on_packet)
            if not result.done():
                result.cancel()

    @staticmethod
    async def _wait_for_cancel(cancellation: asyncio.Event, delay: float) -> bool:
        """Sleep for delay seconds; True if cancellation was set meanwhile."""
        if delay <= 0:
            return cancellation.is_set()
        try:
            await asyncio.wait_for(cancellation.wait(), delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _await_reply(self, result: asyncio.Future, cancellation: asyncio.Event,
                           target: NetworkAddress) -> HardwareAddress:
        cancel_waiter = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait(
                {result, cancel_waiter},
                timeout=self.timeout,
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_waiter.cancel()

        if result in done:
            return result.result()
        if cancel_waiter in done:
            raise ResolutionCancelled("cancelled while waiting for a reply",
                                      operation=OPERATION, address=target)
        raise ResolutionTimeout(f"MAC address not found (host down after {self.timeout}s)",
                                operation=OPERATION, address=target)

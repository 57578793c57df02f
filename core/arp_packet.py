"""
ARP packet building and manipulation utilities.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

from scapy.all import ARP, Ether

from config import settings
from core.network_utils import (
    HardwareAddress, NetworkAddress, parse_network_address
)


class ArpOperation(IntEnum):
    """ARP operation codes."""
    REQUEST = settings.ARP_REQUEST
    REPLY = settings.ARP_REPLY


@dataclass(frozen=True)
class AddressBindingFrame:
    """The ARP payload: who claims which IP, and to whom."""
    operation: ArpOperation
    sender_mac: HardwareAddress
    sender_ip: NetworkAddress
    target_mac: HardwareAddress
    target_ip: NetworkAddress

    def to_scapy(self) -> ARP:
        return ARP(
            hwtype=ARPPacketBuilder.HWTYPE_ETHERNET,
            ptype=ARPPacketBuilder.PTYPE_IPV4,
            hwlen=ARPPacketBuilder.HWLEN,
            plen=ARPPacketBuilder.PLEN,
            op=int(self.operation),
            hwsrc=str(self.sender_mac),
            psrc=str(self.sender_ip),
            hwdst=str(self.target_mac),
            pdst=str(self.target_ip)
        )

    @classmethod
    def from_scapy(cls, arp: ARP) -> Optional['AddressBindingFrame']:
        """
        Decode a Scapy ARP layer.

        Returns:
            The frame, or None for non Ethernet/IPv4 ARP or unknown opcodes.
        """
        if (arp.hwtype != ARPPacketBuilder.HWTYPE_ETHERNET
                or arp.ptype != ARPPacketBuilder.PTYPE_IPV4):
            return None
        if arp.hwlen != ARPPacketBuilder.HWLEN or arp.plen != ARPPacketBuilder.PLEN:
            return None
        try:
            operation = ArpOperation(arp.op)
        except ValueError:
            return None
        return cls(
            operation=operation,
            sender_mac=HardwareAddress.parse(arp.hwsrc),
            sender_ip=parse_network_address(arp.psrc),
            target_mac=HardwareAddress.parse(arp.hwdst),
            target_ip=parse_network_address(arp.pdst)
        )


@dataclass(frozen=True)
class LinkFrame:
    """Ethernet frame carrying an ARP payload."""
    source: HardwareAddress
    destination: HardwareAddress
    payload: AddressBindingFrame

    ether_type = settings.ETH_TYPE_ARP

    def to_scapy(self) -> Ether:
        return (
            Ether(src=str(self.source), dst=str(self.destination), type=self.ether_type) /
            self.payload.to_scapy()
        )

    def to_bytes(self) -> bytes:
        return bytes(self.to_scapy())

    @classmethod
    def from_scapy(cls, packet) -> Optional['LinkFrame']:
        """
        Decode a captured Scapy packet.

        Returns:
            The frame, or None if the packet is not Ethernet/ARP.
        """
        if not packet.haslayer(Ether) or not packet.haslayer(ARP):
            return None
        payload = AddressBindingFrame.from_scapy(packet[ARP])
        if payload is None:
            return None
        return cls(
            source=HardwareAddress.parse(packet[Ether].src),
            destination=HardwareAddress.parse(packet[Ether].dst),
            payload=payload
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> Optional['LinkFrame']:
        return cls.from_scapy(Ether(data))


AddressLike = Union[str, NetworkAddress]
MacLike = Union[str, HardwareAddress]


class ARPPacketBuilder:
    """
    Builder class for constructing ARP frames sent from one interface.
    Supports both resolution requests and spoofing operations.
    """

    # ARP hardware types
    HWTYPE_ETHERNET = 1

    # ARP protocol types
    PTYPE_IPV4 = settings.ETH_TYPE_IPV4

    # Hardware and protocol address lengths
    HWLEN = 6  # MAC address length
    PLEN = 4   # IPv4 address length

    def __init__(self, src_mac: MacLike, src_ip: Optional[AddressLike] = None):
        """
        Initialize the packet builder.

        Args:
            src_mac: Source MAC address.
            src_ip: Source IP address (only needed for requests).
        """
        self.src_mac = HardwareAddress.parse(src_mac)
        self.src_ip = parse_network_address(src_ip) if src_ip is not None else None

    def build_arp_request(self, target_ip: AddressLike) -> LinkFrame:
        """
        Build a broadcast ARP request ("who has target_ip?").

        Args:
            target_ip: IP address to resolve.

        Returns:
            LinkFrame addressed to the broadcast MAC.
        """
        if self.src_ip is None:
            raise ValueError("A source IP address is required for ARP requests")

        return LinkFrame(
            source=self.src_mac,
            destination=HardwareAddress.BROADCAST,
            payload=AddressBindingFrame(
                operation=ArpOperation.REQUEST,
                sender_mac=self.src_mac,
                sender_ip=self.src_ip,
                target_mac=HardwareAddress.ZERO,
                target_ip=parse_network_address(target_ip)
            )
        )

    def build_arp_reply(self, claimed_ip: AddressLike, target_ip: AddressLike,
                        target_mac: MacLike, link_dst: Optional[MacLike] = None) -> LinkFrame:
        """
        Build an ARP reply claiming that claimed_ip is at src_mac.

        Args:
            claimed_ip: IP whose binding is asserted.
            target_ip: ARP target IP.
            target_mac: ARP target MAC.
            link_dst: Ethernet destination. Defaults to target_mac.

        Returns:
            LinkFrame carrying the reply, sent from src_mac.
        """
        target_mac = HardwareAddress.parse(target_mac)
        return LinkFrame(
            source=self.src_mac,
            destination=HardwareAddress.parse(link_dst) if link_dst else target_mac,
            payload=AddressBindingFrame(
                operation=ArpOperation.REPLY,
                sender_mac=self.src_mac,
                sender_ip=parse_network_address(claimed_ip),
                target_mac=target_mac,
                target_ip=parse_network_address(target_ip)
            )
        )
